import uuid
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class UserBase(BaseModel):
    email: str
    display_name: str | None = None


class UserCreate(UserBase):
    pass


class UserUpdate(BaseModel):
    display_name: str | None = Field(default=None, max_length=100)
    image_url: str | None = None


class User(UserBase):
    id: uuid.UUID
    image_url: str | None = None
    is_superadmin: bool
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)
