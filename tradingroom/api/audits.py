"""
Audit log API endpoints.

Server managers can read the audit trail of their server; superadmins can
read across servers.
"""
from typing import List, Optional
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from tradingroom.db.database import get_db
from tradingroom.db import schemas
from tradingroom.db.repositories import audits as audit_repo
from tradingroom.api.deps import get_current_user_context, load_server_for_manager

router = APIRouter(prefix="/audits", tags=["audits"])


@router.get("/", response_model=List[schemas.AuditLog])
def list_audit_logs(
    server_id: Optional[uuid.UUID] = None,
    action_type: Optional[str] = None,
    actor_user_id: Optional[uuid.UUID] = None,
    target_type: Optional[str] = None,
    target_id: Optional[uuid.UUID] = None,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, current_user = user_context
    if server_id is None:
        if not current_user.get("is_superadmin"):
            raise HTTPException(status_code=403, detail="server_id is required")
    else:
        load_server_for_manager(db, server_id, user)
    return audit_repo.get_audit_logs(
        db,
        server_id=server_id,
        actor_user_id=actor_user_id,
        action_type=action_type,
        target_type=target_type,
        target_id=target_id,
        skip=skip,
        limit=limit,
    )
