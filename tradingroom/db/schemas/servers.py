import uuid
from datetime import datetime
from typing import Literal
from pydantic import BaseModel, ConfigDict, Field


class ServerBase(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    image_url: str | None = None


class ServerCreate(ServerBase):
    pass


class Server(ServerBase):
    id: uuid.UUID
    invite_code: str
    owner_id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class SectionBase(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    parent_id: uuid.UUID | None = None
    position: int = 0


class SectionCreate(SectionBase):
    pass


class Section(SectionBase):
    id: uuid.UUID
    server_id: uuid.UUID
    creator_id: uuid.UUID
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ChannelBase(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    type: Literal['text', 'announcement'] = 'text'
    topic: str | None = None
    section_id: uuid.UUID | None = None
    position: int = 0


class ChannelCreate(ChannelBase):
    pass


class Channel(ChannelBase):
    id: uuid.UUID
    server_id: uuid.UUID
    creator_id: uuid.UUID
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class JoinServerRequest(BaseModel):
    invite_code: str
