"""
API dependency helpers.

Provides the dependency-resolved user context plus loaders that turn path
ids into rows or the matching HTTP error.
"""
import uuid
from typing import Optional, Tuple, Dict, Any

from fastapi import Header, HTTPException, status, Depends
from sqlalchemy.orm import Session

from tradingroom.db.database import get_db
from tradingroom.db import models
from tradingroom.db.repositories import servers as server_repo
from tradingroom.db.repositories import roles as role_repo
from tradingroom.api.auth import resolve_identity_from_headers, get_or_create_user, get_user_memberships
from tradingroom.services.access_service import AccessService
from tradingroom.utils.runtime import dev_mode_active

DEV_USER_EMAIL = "dev@localhost"

# Contract:
# Returns (sqlalchemy User model, current_user_context_dict)
# Raises 401 if identity cannot be resolved.

def get_current_user_context(
    db: Session = Depends(get_db),
    x_auth_request_user: Optional[str] = Header(default=None),
    x_auth_request_email: Optional[str] = Header(default=None),
    x_forwarded_user: Optional[str] = Header(default=None),
    x_forwarded_email: Optional[str] = Header(default=None),
) -> Tuple[models.User, Dict[str, Any]]:
    if dev_mode_active():
        email = DEV_USER_EMAIL
        name = "Development User"
    else:
        name, email = resolve_identity_from_headers(
            x_auth_request_user=x_auth_request_user,
            x_auth_request_email=x_auth_request_email,
            x_forwarded_user=x_forwarded_user,
            x_forwarded_email=x_forwarded_email,
        )
        if not email:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    user = get_or_create_user(db, email=email, display_name=name)

    memberships = get_user_memberships(db, user.id)
    current_user = {
        "id": user.id,
        "email": user.email,
        "display_name": user.display_name,
        "is_superadmin": bool(user.is_superadmin),
        "memberships": memberships,
        "memberships_by_server": {m["server_id"]: m for m in memberships},
    }
    return user, current_user


def require_superadmin(user_context=Depends(get_current_user_context)) -> models.User:
    user, current_user = user_context
    if not current_user.get("is_superadmin"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Superadmin access required")
    return user


# Loaders used by routers. Membership checks hide existence with 404 where the
# caller could not see the resource at all.

def load_server_for_member(db: Session, server_id: uuid.UUID, user: models.User) -> models.Server:
    server = server_repo.get_server(db, server_id)
    if server is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Server not found")
    if not user.is_superadmin and server_repo.get_member(db, server_id, user.id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Server not found")
    return server


def load_server_for_manager(db: Session, server_id: uuid.UUID, user: models.User) -> models.Server:
    server = load_server_for_member(db, server_id, user)
    if not AccessService(db).can_manage_server(user, server):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return server


def load_channel_for_reader(db: Session, channel_id: uuid.UUID, user: models.User) -> models.Channel:
    channel = server_repo.get_channel(db, channel_id)
    if channel is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Channel not found")
    if not AccessService(db).member_can_access_channel(user, channel):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="No access to this channel")
    return channel


def load_role_in_server(db: Session, server_id: uuid.UUID, role_id: uuid.UUID) -> models.Role:
    role = role_repo.get_role(db, role_id)
    if role is None or role.server_id != server_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not found")
    return role
