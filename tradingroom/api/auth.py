"""
Authentication helpers and identity resolution.

Parses trusted proxy headers, normalizes emails, and upserts users while
supporting superadmin elevation via the ADMIN_EMAILS environment variable.
"""
import os
import logging
from typing import Optional, Dict, Any, List, Tuple
from sqlalchemy.orm import Session

from tradingroom.db import models

logger = logging.getLogger("tradingroom.auth")


def _normalize_email(email: Optional[str]) -> Optional[str]:
    if not email:
        return None
    return email.strip().lower()


def _admin_emails() -> set:
    values = set()
    for entry in os.getenv("ADMIN_EMAILS", "").split(","):
        cleaned = entry.strip().strip('"').strip("'")
        if cleaned:
            values.add(cleaned.lower())
    return values


def resolve_identity_from_headers(
    x_auth_request_user: Optional[str],
    x_auth_request_email: Optional[str],
    x_forwarded_user: Optional[str],
    x_forwarded_email: Optional[str],
) -> Tuple[Optional[str], Optional[str]]:
    user = x_auth_request_user or x_forwarded_user
    email = _normalize_email(x_auth_request_email or x_forwarded_email)
    return user, email


def get_or_create_user(db: Session, email: str, display_name: Optional[str] = None) -> models.User:
    user = db.query(models.User).filter(models.User.email == email).first()
    admins = _admin_emails()
    if not user:
        user = models.User(
            email=email,
            display_name=display_name or email.split("@")[0],
            auth_provider="proxy",
            external_subject=email,
            is_superadmin=email in admins,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info("Created user_id=%s superadmin=%s", user.id, user.is_superadmin)
        return user

    # Existing users might predate a new ADMIN_EMAILS value; promote them when necessary.
    if email in admins and not user.is_superadmin:
        user.is_superadmin = True
        db.commit()
        db.refresh(user)
        logger.info("Promoted user_id=%s to superadmin", user.id)
    return user


def get_user_memberships(db: Session, user_id) -> List[Dict[str, Any]]:
    rows = (
        db.query(models.Member, models.Server, models.Role)
        .join(models.Server, models.Server.id == models.Member.server_id)
        .join(models.Role, models.Role.id == models.Member.role_id)
        .filter(models.Member.user_id == user_id)
        .all()
    )
    memberships: List[Dict[str, Any]] = []
    for member, server, role in rows:
        memberships.append(
            {
                "member_id": str(member.id),
                "server_id": str(server.id),
                "server_name": server.name,
                "role_id": str(role.id),
                "role": role.name,
                "is_admin": bool(role.is_admin),
                "is_owner": server.owner_id == user_id,
            }
        )
    return memberships
