"""
Messages API endpoints.

Posting fans the message out to channel subscribers in the same
transaction; listing pages newest-first with an opaque ``before`` cursor.
"""
from typing import Optional
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from tradingroom import audit
from tradingroom.audit import AuditAction
from tradingroom.db.database import get_db
from tradingroom.db import schemas
from tradingroom.db.repositories import messages as message_repo
from tradingroom.api.deps import get_current_user_context, load_channel_for_reader
from tradingroom.services.access_service import AccessService
from tradingroom.services.message_service import MessageService


router = APIRouter(tags=["messages"])


@router.post(
    "/channels/{channel_id}/messages",
    response_model=schemas.Message,
    status_code=status.HTTP_201_CREATED,
)
def post_message(
    channel_id: uuid.UUID,
    payload: schemas.MessageCreate,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, _ctx = user_context
    channel = load_channel_for_reader(db, channel_id, user)
    if not AccessService(db).can_post(user, channel):
        raise HTTPException(status_code=403, detail="Only server managers can post in announcement channels")
    try:
        return MessageService(db).post_message(channel, user, payload.content)
    except ValueError as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.get("/channels/{channel_id}/messages", response_model=schemas.MessageListResponse)
def list_messages(
    channel_id: uuid.UUID,
    before: Optional[str] = None,
    limit: int = Query(default=50, ge=1, le=100),
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    """
    List messages newest first.

    - **before**: the ``next_cursor`` of the previous page
    - **limit**: page size (1-100)
    """
    user, _ctx = user_context
    channel = load_channel_for_reader(db, channel_id, user)
    try:
        messages, next_cursor = MessageService(db).list_messages(channel.id, cursor=before, limit=limit)
    except ValueError:
        raise HTTPException(status_code=422, detail="Invalid cursor")
    return schemas.MessageListResponse(messages=messages, next_cursor=next_cursor)


@router.delete("/messages/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_message(
    message_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    """Soft delete; allowed for the author and for server managers."""
    user, _ctx = user_context
    message = message_repo.get_message(db, message_id)
    if message is None or message.deleted:
        raise HTTPException(status_code=404, detail="Message not found")
    channel = load_channel_for_reader(db, message.channel_id, user)
    service = MessageService(db)
    if not service.can_delete(message, user):
        raise HTTPException(status_code=403, detail="Forbidden")
    service.delete_message(message)
    audit.log(
        db,
        action=AuditAction.MESSAGE_DELETE,
        target_type="message",
        target_id=message.id,
        actor_user_id=user.id,
        server_id=channel.server_id,
    )
