import uuid
from sqlalchemy import Column, String, Text, DateTime, Boolean, ForeignKey, Index, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID, JSONB
from .base import Base, now_utc


class ChannelNotificationPreference(Base):
    __tablename__ = 'channel_notification_preferences'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    channel_id = Column(UUID(as_uuid=True), ForeignKey('channels.id', ondelete='CASCADE'), nullable=False)
    enabled = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    __table_args__ = (
        UniqueConstraint('user_id', 'channel_id', name='uq_channel_notification_preferences_user_channel'),
        Index('idx_channel_notification_preferences_channel_id', 'channel_id'),
    )


class Notification(Base):
    __tablename__ = 'notifications'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    event_type = Column(String(50), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    action_url = Column(String(500), nullable=True)
    metadata_json = Column('metadata', JSONB, nullable=True)
    message_id = Column(UUID(as_uuid=True), ForeignKey('messages.id', ondelete='CASCADE'), nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index('idx_notifications_user_id_created_at', 'user_id', 'created_at'),
        Index('idx_notifications_user_id_is_read', 'user_id', 'is_read'),
        Index('idx_notifications_expires_at', 'expires_at'),
        Index('idx_notifications_event_type', 'event_type'),
        # One fan-out row per recipient per message
        UniqueConstraint('user_id', 'message_id', name='uq_notifications_user_id_message_id'),
    )

    def get_metadata(self):
        return self.metadata_json

    def set_metadata(self, value):
        self.metadata_json = value
