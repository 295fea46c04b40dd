"""
Role repository functions.

Implements role lookup and creation, including the per-server built-in
roles, and the role-to-channel and role-to-section grant tables.
"""
from __future__ import annotations

import uuid
import logging
from typing import Dict, Optional, List
from sqlalchemy.orm import Session

from tradingroom.db import models
from tradingroom.utils.role_permissions import BUILTIN_ROLES, get_builtin_role_spec

logger = logging.getLogger(__name__)


def get_role(db: Session, role_id: uuid.UUID) -> Optional[models.Role]:
    return db.query(models.Role).filter(models.Role.id == role_id).first()


def get_roles(db: Session, server_id: uuid.UUID) -> List[models.Role]:
    return (
        db.query(models.Role)
        .filter(models.Role.server_id == server_id)
        .order_by(models.Role.created_at.asc())
        .all()
    )


def get_role_by_name(db: Session, server_id: uuid.UUID, name: str) -> Optional[models.Role]:
    return (
        db.query(models.Role)
        .filter(models.Role.server_id == server_id, models.Role.name == name)
        .first()
    )


def get_default_role(db: Session, server_id: uuid.UUID) -> Optional[models.Role]:
    return (
        db.query(models.Role)
        .filter(models.Role.server_id == server_id, models.Role.is_default.is_(True))
        .first()
    )


def get_or_create_builtin_role(
    db: Session, server_id: uuid.UUID, name: str, creator_id: Optional[uuid.UUID] = None
) -> models.Role:
    """Return the named built-in role for a server, creating it if missing.

    An existing row whose admin flag disagrees with the built-in definition
    is corrected, so a premium sync can never hand out admin rights.
    Flushes but does not commit; callers own the transaction.
    """
    spec = get_builtin_role_spec(name)
    role = get_role_by_name(db, server_id, name)
    if role:
        if role.is_admin != spec["is_admin"]:
            logger.warning(
                "Resetting is_admin=%s on built-in role=%s role_id=%s", spec["is_admin"], name, role.id
            )
            role.is_admin = spec["is_admin"]
            db.flush()
        return role
    # Only one default role per server
    if spec["is_default"] and get_default_role(db, server_id) is not None:
        spec["is_default"] = False
    role = models.Role(server_id=server_id, name=name, creator_id=creator_id, **spec)
    db.add(role)
    db.flush()
    return role


def ensure_builtin_roles(
    db: Session, server_id: uuid.UUID, creator_id: Optional[uuid.UUID] = None
) -> Dict[str, models.Role]:
    return {
        name: get_or_create_builtin_role(db, server_id, name, creator_id=creator_id)
        for name in BUILTIN_ROLES
    }


def create_role(
    db: Session,
    server_id: uuid.UUID,
    *,
    name: str,
    color: Optional[str],
    is_admin: bool,
    creator_id: uuid.UUID,
) -> models.Role:
    role = models.Role(
        server_id=server_id,
        name=name,
        color=color,
        is_admin=is_admin,
        is_default=False,
        creator_id=creator_id,
    )
    db.add(role)
    db.commit()
    db.refresh(role)
    return role


def count_members_with_role(db: Session, role_id: uuid.UUID) -> int:
    return db.query(models.Member).filter(models.Member.role_id == role_id).count()


def get_channel_grant(db: Session, role_id: uuid.UUID, channel_id: uuid.UUID) -> Optional[models.RoleChannelAccess]:
    return (
        db.query(models.RoleChannelAccess)
        .filter(models.RoleChannelAccess.role_id == role_id, models.RoleChannelAccess.channel_id == channel_id)
        .first()
    )


def get_section_grant(db: Session, role_id: uuid.UUID, section_id: uuid.UUID) -> Optional[models.RoleSectionAccess]:
    return (
        db.query(models.RoleSectionAccess)
        .filter(models.RoleSectionAccess.role_id == role_id, models.RoleSectionAccess.section_id == section_id)
        .first()
    )


def get_channel_grant_ids(db: Session, role_id: uuid.UUID) -> List[uuid.UUID]:
    rows = db.query(models.RoleChannelAccess.channel_id).filter(models.RoleChannelAccess.role_id == role_id).all()
    return [row[0] for row in rows]


def get_section_grant_ids(db: Session, role_id: uuid.UUID) -> List[uuid.UUID]:
    rows = db.query(models.RoleSectionAccess.section_id).filter(models.RoleSectionAccess.role_id == role_id).all()
    return [row[0] for row in rows]
