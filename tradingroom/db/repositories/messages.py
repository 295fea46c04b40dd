"""
Message repository functions.

Reads only; posting goes through ``MessageService`` so the message insert
and its notification fan-out share one transaction.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional, List
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from tradingroom.db import models


def get_message(db: Session, message_id: uuid.UUID) -> Optional[models.Message]:
    return db.query(models.Message).filter(models.Message.id == message_id).first()


def get_channel_messages(
    db: Session,
    channel_id: uuid.UUID,
    *,
    before: Optional[datetime] = None,
    before_id: Optional[uuid.UUID] = None,
    limit: int = 50,
) -> List[models.Message]:
    """Newest-first page of non-deleted messages.

    ``(before, before_id)`` is the position of the last row of the previous
    page; rows sharing its timestamp continue in id order.
    """
    query = db.query(models.Message).filter(
        models.Message.channel_id == channel_id,
        models.Message.deleted.is_(False),
    )
    if before is not None and before_id is not None:
        query = query.filter(
            or_(
                models.Message.created_at < before,
                and_(models.Message.created_at == before, models.Message.id < before_id),
            )
        )
    elif before is not None:
        query = query.filter(models.Message.created_at < before)
    return (
        query.order_by(models.Message.created_at.desc(), models.Message.id.desc())
        .limit(limit)
        .all()
    )
