"""
Superadmin operations.

Manual role re-sync for a user and visibility into the notification
trigger state.
"""
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from tradingroom.db.database import get_db
from tradingroom.db import models, schemas
from tradingroom.api.deps import require_superadmin
from tradingroom.services.notification_trigger_service import NotificationTriggerService
from tradingroom.services.subscription_service import SubscriptionSyncService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/users/{user_id}/sync-roles", response_model=schemas.RoleSyncResult)
def sync_user_roles(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_superadmin),
):
    if db.get(models.User, user_id) is None:
        raise HTTPException(status_code=404, detail="User not found")
    return SubscriptionSyncService(db).sync_user_roles(user_id, actor_user_id=admin.id)


@router.get("/notification-trigger")
def notification_trigger_status(
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_superadmin),
):
    return NotificationTriggerService(db).status()
