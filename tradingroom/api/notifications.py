"""
Notification API Endpoints

In-app inbox for the current user plus per-channel notification
preferences.
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from tradingroom.db.database import get_db
from tradingroom.db import schemas
from tradingroom.api.deps import get_current_user_context, load_channel_for_reader, require_superadmin
from tradingroom.services.notification_service import NotificationService, MAX_PAGE_SIZE


router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=schemas.NotificationListResponse)
def get_notifications(
    unread_only: bool = False,
    limit: int = Query(default=MAX_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context)
):
    """
    Get notifications for the current user.

    - **unread_only**: If true, only return unread notifications
    - **limit**: Maximum number of notifications to return (at most 50)
    - **offset**: Number of notifications to skip
    """
    user, current_user = user_context

    service = NotificationService(db)
    notifications, has_more = service.get_user_notifications(
        user_id=user.id,
        unread_only=unread_only,
        limit=limit,
        offset=offset,
    )
    return schemas.NotificationListResponse(
        notifications=notifications,
        unread_count=service.get_unread_count(user.id),
        total_count=service.get_total_count(user.id, unread_only=unread_only),
        has_more=has_more,
    )


@router.get("/stats", response_model=schemas.NotificationStatsResponse)
def get_notification_stats(
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context)
):
    user, current_user = user_context
    return schemas.NotificationStatsResponse(**NotificationService(db).get_stats(user.id))


@router.get("/unread-count")
def get_unread_count(
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context)
):
    user, current_user = user_context
    return {"unread_count": NotificationService(db).get_unread_count(user.id)}


@router.post("/read-all", response_model=schemas.BulkUpdateResponse)
def mark_all_read(
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context)
):
    user, current_user = user_context
    return schemas.BulkUpdateResponse(updated=NotificationService(db).mark_all_read(user.id))


@router.delete("/read", response_model=schemas.BulkDeleteResponse)
def delete_read_notifications(
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context)
):
    user, current_user = user_context
    return schemas.BulkDeleteResponse(deleted=NotificationService(db).delete_all_read(user.id))


@router.delete("/cleanup/expired", response_model=schemas.BulkDeleteResponse)
def cleanup_expired_notifications(
    db: Session = Depends(get_db),
    admin = Depends(require_superadmin),
):
    return schemas.BulkDeleteResponse(deleted=NotificationService(db).cleanup_expired_notifications())


@router.get("/channels/{channel_id}", response_model=schemas.ChannelNotificationPreference)
def get_channel_preference(
    channel_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context)
):
    user, current_user = user_context
    channel = load_channel_for_reader(db, channel_id, user)
    enabled = NotificationService(db).get_channel_preference(user.id, channel.id)
    return schemas.ChannelNotificationPreference(channel_id=channel.id, enabled=enabled)


@router.put("/channels/{channel_id}", response_model=schemas.ChannelNotificationPreference)
def set_channel_preference(
    channel_id: uuid.UUID,
    payload: schemas.ChannelNotificationPreferenceUpdate,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context)
):
    user, current_user = user_context
    channel = load_channel_for_reader(db, channel_id, user)
    enabled = NotificationService(db).set_channel_preference(user.id, channel.id, payload.enabled)
    return schemas.ChannelNotificationPreference(channel_id=channel.id, enabled=enabled)


@router.post("/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
def mark_notification_read(
    notification_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context)
):
    """
    Mark a specific notification as read.
    """
    user, current_user = user_context
    if not NotificationService(db).mark_notification_read(notification_id, user.id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found"
        )


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_notification(
    notification_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context)
):
    user, current_user = user_context
    if not NotificationService(db).delete_notification(notification_id, user.id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found"
        )
