"""
Users API endpoints.

Exposes the caller's profile, memberships and subscription state.
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from tradingroom.db.database import get_db
from tradingroom.db import schemas
from tradingroom.api.deps import get_current_user_context
from tradingroom.services.subscription_service import SubscriptionSyncService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me")
def get_me(
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, current_user = user_context
    service = SubscriptionSyncService(db)
    subscription = service.get_user_subscription(user.id)
    return {
        "id": str(user.id),
        "email": user.email,
        "display_name": user.display_name,
        "image_url": user.image_url,
        "is_superadmin": bool(user.is_superadmin),
        "memberships": current_user["memberships"],
        "subscription": schemas.Subscription.model_validate(subscription).model_dump(mode="json") if subscription else None,
        "premium": service.user_is_premium(user.id),
    }


@router.patch("/me", response_model=schemas.User)
def update_me(
    payload: schemas.UserUpdate,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, _ctx = user_context
    data = payload.model_dump(exclude_unset=True)
    if "display_name" in data:
        # Display names double as mention handles, so blank is not allowed
        s = (data["display_name"] or "").strip()
        if not s:
            raise HTTPException(status_code=422, detail="display_name must not be empty")
        user.display_name = s
    if "image_url" in data:
        user.image_url = data["image_url"]
    db.commit()
    db.refresh(user)
    return user
