import uuid
from datetime import datetime
from typing import Optional, Dict, Any, List
from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class NotificationBase(BaseModel):
    user_id: uuid.UUID
    event_type: str
    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1, max_length=1000)
    action_url: Optional[str] = None
    # ORM rows carry the payload on `metadata_json`; plain dicts use `metadata`
    metadata: Optional[Dict[str, Any]] = Field(
        default=None, validation_alias=AliasChoices('metadata_json', 'metadata')
    )


class NotificationCreate(NotificationBase):
    expires_days: Optional[int] = 30


class Notification(NotificationBase):
    id: uuid.UUID
    message_id: Optional[uuid.UUID] = None
    is_read: bool
    read_at: Optional[datetime]
    created_at: datetime
    expires_at: Optional[datetime]
    model_config = ConfigDict(from_attributes=True)


class NotificationListResponse(BaseModel):
    notifications: List[Notification]
    unread_count: int
    total_count: int
    has_more: bool


class NotificationStatsResponse(BaseModel):
    total: int
    unread: int
    by_type: Dict[str, int]
    recent_24h: int


class ChannelNotificationPreferenceUpdate(BaseModel):
    enabled: bool


class ChannelNotificationPreference(BaseModel):
    channel_id: uuid.UUID
    enabled: bool


class BulkUpdateResponse(BaseModel):
    updated: int


class BulkDeleteResponse(BaseModel):
    deleted: int
