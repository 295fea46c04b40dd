import uuid
from datetime import datetime
from typing import Optional, Dict, Any
from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class AuditLogBase(BaseModel):
    action_type: str
    status: str
    target_type: Optional[str] = None
    target_id: Optional[uuid.UUID] = None
    reason: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(
        default=None, validation_alias=AliasChoices('metadata_json', 'metadata')
    )


class AuditLogCreate(AuditLogBase):
    pass


class AuditLog(AuditLogBase):
    id: uuid.UUID
    server_id: Optional[uuid.UUID] = None
    actor_user_id: uuid.UUID
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
