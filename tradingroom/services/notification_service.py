"""
Notification service: channel fan-out, direct notices, inbox and preferences.
Centralizes business logic for consistent handling across the app.
"""

import uuid
import logging
from datetime import datetime, timedelta, UTC
from typing import Optional, List, Dict, Any, Tuple
from sqlalchemy.orm import Session
from sqlalchemy import and_, or_, desc, func

from tradingroom.db import models
from tradingroom.services.access_service import AccessService
from tradingroom.utils.feature_flags import mention_notifications_enabled
from tradingroom.utils.mentions import extract_mentions, is_mentioned, preview, sender_label
from tradingroom.utils.runtime import notification_ttl_days

logger = logging.getLogger(__name__)

# Event type constants (single source of truth)
EVENT_NEW_MESSAGE = 'new_message'
EVENT_MENTION = 'mention'
EVENT_SUBSCRIPTION_CANCELLED = 'subscription_cancelled'
EVENT_PAYMENT_FAILED = 'payment_failed'
EVENT_SUBSCRIPTION_RENEWED = 'subscription_renewed'

TITLE_MAX_LENGTH = 200
MESSAGE_MAX_LENGTH = 1000
MAX_PAGE_SIZE = 50


class NotificationService:
    """Service class for handling all notification operations."""

    def __init__(self, db: Session):
        self.db = db

    def _not_expired(self, now: Optional[datetime] = None):
        now = now or datetime.now(UTC)
        return or_(
            models.Notification.expires_at.is_(None),
            models.Notification.expires_at > now,
        )

    # === Fan-out ===

    def fan_out_message(
        self,
        message: models.Message,
        channel: models.Channel,
        server: models.Server,
        sender: models.User,
    ) -> int:
        """
        Insert one notification per eligible recipient of ``message``.

        Recipients are members of the channel's server whose role can see the
        channel, who have not switched the channel off, excluding the sender.
        Rows are flushed, not committed, so they land in the caller's
        transaction together with the message.

        Returns:
            Number of notifications created
        """
        role_ids = AccessService(self.db).eligible_role_ids(channel)
        if not role_ids:
            return 0

        opted_out = {
            row[0]
            for row in self.db.query(models.ChannelNotificationPreference.user_id).filter(
                models.ChannelNotificationPreference.channel_id == channel.id,
                models.ChannelNotificationPreference.enabled.is_(False),
            )
        }
        recipients = (
            self.db.query(models.User)
            .join(models.Member, models.Member.user_id == models.User.id)
            .filter(
                models.Member.server_id == channel.server_id,
                models.Member.role_id.in_(role_ids),
                models.Member.user_id != sender.id,
            )
            .all()
        )

        mentions = extract_mentions(message.content) if mention_notifications_enabled() else set()
        sender_name = sender_label(sender.email, sender.display_name)
        body = f"{sender_name}: {preview(message.content)}"
        action_url = f"/servers/{channel.server_id}/channels/{channel.id}"
        expires_at = datetime.now(UTC) + timedelta(days=notification_ttl_days())
        metadata = {
            "channel_id": str(channel.id),
            "channel_name": channel.name,
            "message_id": str(message.id),
            "sender_id": str(sender.id),
            "sender_name": sender_name,
            "server_id": str(server.id),
            "server_name": server.name,
        }

        created = 0
        for user in recipients:
            if user.id in opted_out:
                continue
            mentioned = is_mentioned(mentions, user.email, user.display_name)
            notification = models.Notification(
                user_id=user.id,
                event_type=EVENT_MENTION if mentioned else EVENT_NEW_MESSAGE,
                title=(
                    f"You were mentioned in #{channel.name}" if mentioned
                    else f"New message in #{channel.name}"
                )[:TITLE_MAX_LENGTH],
                message=body[:MESSAGE_MAX_LENGTH],
                action_url=action_url,
                message_id=message.id,
                expires_at=expires_at,
            )
            notification.set_metadata(dict(metadata))
            self.db.add(notification)
            created += 1

        self.db.flush()
        logger.debug("Fan-out for message_id=%s created %d notification(s)", message.id, created)
        return created

    # === Direct notifications ===

    def create_notification(
        self,
        user_id: uuid.UUID,
        event_type: str,
        title: str,
        message: str,
        action_url: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        expires_days: Optional[int] = None,
        commit: bool = True,
    ) -> models.Notification:
        """
        Create an in-app notification for a user.

        Args:
            user_id: The recipient user ID
            event_type: Type of event (e.g., 'payment_failed')
            title: Short notification title (at most 200 characters)
            message: Notification body (at most 1000 characters)
            action_url: Optional URL the client navigates to
            metadata: Additional event-specific data
            expires_days: Days until expiry; defaults to NOTIFICATION_TTL_DAYS
            commit: Commit immediately, or only flush into the caller's transaction

        Raises:
            ValueError: If title or message is empty or too long
        """
        if not title or not title.strip():
            raise ValueError("Notification title must not be empty")
        if len(title) > TITLE_MAX_LENGTH:
            raise ValueError(f"Notification title must be at most {TITLE_MAX_LENGTH} characters")
        if not message or not message.strip():
            raise ValueError("Notification message must not be empty")
        if len(message) > MESSAGE_MAX_LENGTH:
            raise ValueError(f"Notification message must be at most {MESSAGE_MAX_LENGTH} characters")

        days = notification_ttl_days() if expires_days is None else expires_days
        notification = models.Notification(
            user_id=user_id,
            event_type=event_type,
            title=title,
            message=message,
            action_url=action_url,
            expires_at=datetime.now(UTC) + timedelta(days=days),
        )
        if metadata:
            notification.set_metadata(metadata)

        self.db.add(notification)
        if commit:
            self.db.commit()
            self.db.refresh(notification)
        else:
            self.db.flush()
        return notification

    # === Inbox ===

    def get_user_notifications(
        self,
        user_id: uuid.UUID,
        unread_only: bool = False,
        limit: int = MAX_PAGE_SIZE,
        offset: int = 0,
    ) -> Tuple[List[models.Notification], bool]:
        """
        Get a page of a user's live notifications, most recent first.

        Returns:
            (notifications, has_more)
        """
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        offset = max(0, offset)
        query = self.db.query(models.Notification).filter(
            models.Notification.user_id == user_id,
            self._not_expired(),
        )
        if unread_only:
            query = query.filter(models.Notification.is_read.is_(False))

        rows = (
            query.order_by(desc(models.Notification.created_at), desc(models.Notification.id))
            .offset(offset)
            .limit(limit + 1)
            .all()
        )
        return rows[:limit], len(rows) > limit

    def get_unread_count(self, user_id: uuid.UUID) -> int:
        return self.db.query(models.Notification).filter(
            and_(
                models.Notification.user_id == user_id,
                models.Notification.is_read.is_(False),
                self._not_expired(),
            )
        ).count()

    def get_total_count(self, user_id: uuid.UUID, unread_only: bool = False) -> int:
        query = self.db.query(models.Notification).filter(
            models.Notification.user_id == user_id,
            self._not_expired(),
        )
        if unread_only:
            query = query.filter(models.Notification.is_read.is_(False))
        return query.count()

    def get_stats(self, user_id: uuid.UUID) -> Dict[str, Any]:
        now = datetime.now(UTC)
        live = and_(models.Notification.user_id == user_id, self._not_expired(now))
        by_type = {
            event_type: count
            for event_type, count in self.db.query(
                models.Notification.event_type, func.count(models.Notification.id)
            ).filter(live).group_by(models.Notification.event_type)
        }
        recent = self.db.query(models.Notification).filter(
            live, models.Notification.created_at >= now - timedelta(hours=24)
        ).count()
        return {
            "total": sum(by_type.values()),
            "unread": self.get_unread_count(user_id),
            "by_type": by_type,
            "recent_24h": recent,
        }

    def mark_notification_read(self, notification_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        """
        Mark a notification as read for a specific user.
        Returns True if successful, False if notification not found or not owned by user.
        """
        notification = self.db.query(models.Notification).filter(
            and_(
                models.Notification.id == notification_id,
                models.Notification.user_id == user_id,
            )
        ).first()
        if not notification:
            return False
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.now(UTC)
            self.db.commit()
        return True

    def mark_all_read(self, user_id: uuid.UUID) -> int:
        updated = (
            self.db.query(models.Notification)
            .filter(models.Notification.user_id == user_id, models.Notification.is_read.is_(False))
            .update(
                {models.Notification.is_read: True, models.Notification.read_at: datetime.now(UTC)},
                synchronize_session=False,
            )
        )
        self.db.commit()
        return updated

    def delete_notification(self, notification_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        deleted = (
            self.db.query(models.Notification)
            .filter(models.Notification.id == notification_id, models.Notification.user_id == user_id)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return deleted > 0

    def delete_all_read(self, user_id: uuid.UUID) -> int:
        deleted = (
            self.db.query(models.Notification)
            .filter(models.Notification.user_id == user_id, models.Notification.is_read.is_(True))
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return deleted

    # === Channel preferences ===

    def get_channel_preference(self, user_id: uuid.UUID, channel_id: uuid.UUID) -> bool:
        """Whether ``user_id`` receives notifications for ``channel_id`` (default True)."""
        pref = self.db.query(models.ChannelNotificationPreference).filter(
            models.ChannelNotificationPreference.user_id == user_id,
            models.ChannelNotificationPreference.channel_id == channel_id,
        ).first()
        return True if pref is None else bool(pref.enabled)

    def set_channel_preference(self, user_id: uuid.UUID, channel_id: uuid.UUID, enabled: bool) -> bool:
        pref = self.db.query(models.ChannelNotificationPreference).filter(
            models.ChannelNotificationPreference.user_id == user_id,
            models.ChannelNotificationPreference.channel_id == channel_id,
        ).first()
        if pref is None:
            pref = models.ChannelNotificationPreference(user_id=user_id, channel_id=channel_id, enabled=enabled)
            self.db.add(pref)
        else:
            pref.enabled = enabled
        self.db.commit()
        return enabled

    # === Cleanup ===

    def cleanup_expired_notifications(self) -> int:
        """
        Remove notifications that have exceeded their expiration date.
        Returns count of cleaned up notifications.
        """
        deleted = (
            self.db.query(models.Notification)
            .filter(models.Notification.expires_at <= datetime.now(UTC))
            .delete(synchronize_session=False)
        )
        self.db.commit()
        logger.info("Removed %d expired notification(s)", deleted)
        return deleted
