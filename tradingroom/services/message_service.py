"""
Message posting, listing and soft deletion.

Posting writes the message and its notification fan-out in one transaction:
either both are committed or neither is. When the database trigger is active
it produces the notifications and the application skips its own fan-out.
"""

import uuid
import logging
from datetime import datetime
from typing import Optional, List, Tuple

from sqlalchemy.orm import Session

from tradingroom.db import models
from tradingroom.db.repositories import messages as message_repo
from tradingroom.db.repositories import servers as server_repo
from tradingroom.services.access_service import AccessService
from tradingroom.services.notification_service import NotificationService
from tradingroom.services.notification_trigger_service import NotificationTriggerService

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
CURSOR_SEPARATOR = "|"


def encode_cursor(message: models.Message) -> str:
    """Opaque position of ``message`` in a newest-first listing."""
    return f"{message.created_at.isoformat()}{CURSOR_SEPARATOR}{message.id}"


def decode_cursor(cursor: str) -> Tuple[datetime, Optional[uuid.UUID]]:
    """Parse a cursor from ``encode_cursor``; a bare timestamp is also accepted.

    Raises:
        ValueError: If the cursor is malformed.
    """
    stamp, sep, raw_id = cursor.strip().rpartition(CURSOR_SEPARATOR)
    if not sep:
        return datetime.fromisoformat(raw_id), None
    return datetime.fromisoformat(stamp), uuid.UUID(raw_id)


class MessageService:

    def __init__(self, db: Session):
        self.db = db

    def post_message(self, channel: models.Channel, sender: models.User, content: str) -> models.Message:
        """
        Persist a message from ``sender`` in ``channel`` and fan it out.

        Raises:
            ValueError: If ``sender`` is not a member of the channel's server
                or the content is blank.
        """
        if not content or not content.strip():
            raise ValueError("Message content must not be empty")
        member = server_repo.get_member(self.db, channel.server_id, sender.id)
        if member is None:
            raise ValueError("Sender is not a member of this server")
        server = server_repo.get_server(self.db, channel.server_id)

        try:
            message = models.Message(channel_id=channel.id, member_id=member.id, content=content)
            self.db.add(message)
            self.db.flush()
            if NotificationTriggerService(self.db).is_active():
                logger.debug("Notification trigger active; skipping application fan-out for message_id=%s", message.id)
            else:
                NotificationService(self.db).fan_out_message(message, channel, server, sender)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Failed to post message in channel_id=%s", channel.id)
            raise
        self.db.refresh(message)
        logger.info("Posted message_id=%s in channel_id=%s by member_id=%s", message.id, channel.id, member.id)
        return message

    def list_messages(
        self,
        channel_id: uuid.UUID,
        cursor: Optional[str] = None,
        limit: int = 50,
    ) -> Tuple[List[models.Message], Optional[str]]:
        """
        Return a newest-first page and the cursor for the next one.

        The next cursor is None once a page comes back short.

        Raises:
            ValueError: If ``cursor`` is malformed.
        """
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        before, before_id = decode_cursor(cursor) if cursor else (None, None)
        messages = message_repo.get_channel_messages(
            self.db, channel_id, before=before, before_id=before_id, limit=limit
        )
        next_cursor = encode_cursor(messages[-1]) if len(messages) == limit else None
        return messages, next_cursor

    def can_delete(self, message: models.Message, user: models.User) -> bool:
        """Authors may delete their own messages; server managers may delete any."""
        member = server_repo.get_member_by_id(self.db, message.member_id)
        if member is not None and member.user_id == user.id:
            return True
        channel = server_repo.get_channel(self.db, message.channel_id)
        server = server_repo.get_server(self.db, channel.server_id) if channel else None
        return AccessService(self.db).can_manage_server(user, server)

    def delete_message(self, message: models.Message) -> models.Message:
        message.deleted = True
        self.db.commit()
        self.db.refresh(message)
        return message
