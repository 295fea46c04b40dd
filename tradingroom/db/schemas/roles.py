import uuid
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class RoleBase(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    color: str | None = Field(default=None, max_length=16)


class RoleCreate(RoleBase):
    is_admin: bool = False


class RoleUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=50)
    color: str | None = Field(default=None, max_length=16)
    is_admin: bool | None = None


class Role(RoleBase):
    id: uuid.UUID
    server_id: uuid.UUID
    is_default: bool
    is_admin: bool
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class RoleGrants(BaseModel):
    role_id: uuid.UUID
    channel_ids: list[uuid.UUID]
    section_ids: list[uuid.UUID]


class MemberBase(BaseModel):
    user_id: uuid.UUID
    role_id: uuid.UUID
    nickname: str | None = None


class Member(MemberBase):
    id: uuid.UUID
    server_id: uuid.UUID
    joined_at: datetime
    model_config = ConfigDict(from_attributes=True)


class MemberRoleUpdate(BaseModel):
    role_id: uuid.UUID
