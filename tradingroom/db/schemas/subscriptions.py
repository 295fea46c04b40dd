import uuid
from datetime import datetime
from pydantic import BaseModel, ConfigDict


class Subscription(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    stripe_subscription_id: str
    stripe_customer_id: str
    status: str
    current_period_end: datetime | None = None
    cancel_at_period_end: bool
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class RoleSyncResult(BaseModel):
    user_id: uuid.UUID
    premium: bool
    memberships_updated: int
