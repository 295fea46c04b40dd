import uuid
from datetime import datetime
from typing import List
from pydantic import BaseModel, ConfigDict, Field


class MessageCreate(BaseModel):
    content: str = Field(min_length=1, max_length=4000)


class Message(BaseModel):
    id: uuid.UUID
    channel_id: uuid.UUID
    member_id: uuid.UUID
    content: str
    deleted: bool
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class MessageListResponse(BaseModel):
    messages: List[Message]
    next_cursor: str | None = None
