"""
Audit trail persistence.

Rows are scoped to a server; subscription role syncs write one row per
membership touched, inside the webhook transaction.
"""
from __future__ import annotations

import uuid
from typing import Optional, List
from sqlalchemy.orm import Session

from tradingroom.db import schemas, models


def create_audit_log(
    db: Session,
    entry: schemas.AuditLogCreate,
    actor_user_id: uuid.UUID,
    server_id: Optional[uuid.UUID] = None,
    *,
    commit: bool = True,
) -> models.AuditLog:
    fields = entry.model_dump(exclude={'metadata'})
    row = models.AuditLog(
        **fields,
        actor_user_id=actor_user_id,
        server_id=server_id,
        metadata_json=entry.metadata,
    )
    db.add(row)
    if not commit:
        db.flush()
        return row
    db.commit()
    db.refresh(row)
    return row


def get_audit_logs(
    db: Session,
    *,
    server_id: Optional[uuid.UUID] = None,
    actor_user_id: Optional[uuid.UUID] = None,
    action_type: Optional[str] = None,
    target_type: Optional[str] = None,
    target_id: Optional[uuid.UUID] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[models.AuditLog]:
    """Newest first; every filter left as None is ignored."""
    filters = []
    if server_id is not None:
        filters.append(models.AuditLog.server_id == server_id)
    if actor_user_id is not None:
        filters.append(models.AuditLog.actor_user_id == actor_user_id)
    if action_type:
        filters.append(models.AuditLog.action_type == action_type)
    if target_type:
        filters.append(models.AuditLog.target_type == target_type)
    if target_id is not None:
        filters.append(models.AuditLog.target_id == target_id)
    return (
        db.query(models.AuditLog)
        .filter(*filters)
        .order_by(models.AuditLog.created_at.desc(), models.AuditLog.id)
        .offset(skip)
        .limit(limit)
        .all()
    )
