"""
Audit logging helpers and enums.

Centralized helpers to persist normalized audit records with consistent
schema; includes convenience wrappers per target type.
"""
from __future__ import annotations
import uuid
from enum import Enum
from typing import Any, Optional, Dict
from sqlalchemy.orm import Session

from tradingroom.db import schemas
from tradingroom.db.repositories import audits as audit_repo


class AuditAction(str, Enum):
    # Server
    SERVER_CREATE = "server_create"
    SECTION_CREATE = "section_create"
    CHANNEL_CREATE = "channel_create"
    # Membership
    MEMBER_JOIN = "member_join"
    MEMBER_REMOVE = "member_remove"
    MEMBER_ROLE_CHANGE = "member_role_change"
    # Roles
    ROLE_CREATE = "role_create"
    ROLE_UPDATE = "role_update"
    ROLE_DELETE = "role_delete"
    # Access grants
    ACCESS_GRANT = "access_grant"
    ACCESS_REVOKE = "access_revoke"
    # Billing
    SUBSCRIPTION_ROLE_SYNC = "subscription_role_sync"
    # Messages
    MESSAGE_DELETE = "message_delete"


class AuditStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


def log(
    db: Session,
    *,
    action: AuditAction | str,
    status: AuditStatus | str = AuditStatus.SUCCESS,
    target_type: str,
    target_id: Optional[uuid.UUID] = None,
    actor_user_id: uuid.UUID,
    server_id: Optional[uuid.UUID] = None,
    metadata: Optional[Dict[str, Any]] = None,
    commit: bool = True,
):
    """Central audit logging helper.

    Pass ``commit=False`` to write the row inside a caller-owned transaction.
    """
    # Persist plain string values, not Enum reprs
    action_value = action.value if isinstance(action, AuditAction) else str(action)
    status_value = status.value if isinstance(status, AuditStatus) else str(status)
    entry = schemas.AuditLogCreate(
        action_type=action_value,
        status=status_value,
        target_type=target_type,
        target_id=target_id,
        metadata=metadata or {},
    )
    return audit_repo.create_audit_log(
        db,
        entry=entry,
        actor_user_id=actor_user_id,
        server_id=server_id,
        commit=commit,
    )


def log_role(db: Session, *, actor_user_id: uuid.UUID, server_id: uuid.UUID, role_id: uuid.UUID, action: AuditAction, name: Optional[str] = None, metadata: Optional[Dict[str, Any]] = None):
    payload = dict(metadata or {})
    if name:
        payload["name"] = name
    return log(
        db,
        action=action,
        target_type="role",
        target_id=role_id,
        actor_user_id=actor_user_id,
        server_id=server_id,
        metadata=payload or None,
    )


def log_access(db: Session, *, actor_user_id: uuid.UUID, server_id: uuid.UUID, role_id: uuid.UUID, action: AuditAction, channel_id: Optional[uuid.UUID] = None, section_id: Optional[uuid.UUID] = None):
    return log(
        db,
        action=action,
        target_type="role",
        target_id=role_id,
        actor_user_id=actor_user_id,
        server_id=server_id,
        metadata={
            "channel_id": str(channel_id) if channel_id else None,
            "section_id": str(section_id) if section_id else None,
        },
    )


def log_member(db: Session, *, actor_user_id: uuid.UUID, server_id: uuid.UUID, member_id: uuid.UUID, action: AuditAction, metadata: Optional[Dict[str, Any]] = None, commit: bool = True):
    return log(
        db,
        action=action,
        target_type="member",
        target_id=member_id,
        actor_user_id=actor_user_id,
        server_id=server_id,
        metadata=metadata,
        commit=commit,
    )


__all__ = ["AuditAction", "AuditStatus", "log", "log_role", "log_access", "log_member"]
