"""
Roles API endpoints.

Role CRUD, channel/section grants and member role assignment for a server.
Every mutation requires server management rights and is audited.
"""
from typing import List
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from tradingroom import audit
from tradingroom.audit import AuditAction
from tradingroom.db.database import get_db
from tradingroom.db import schemas
from tradingroom.db.repositories import servers as server_repo
from tradingroom.db.repositories import roles as role_repo
from tradingroom.api.deps import (
    get_current_user_context,
    load_server_for_member,
    load_server_for_manager,
    load_role_in_server,
)
from tradingroom.services.access_service import AccessService
from tradingroom.services.role_service import RoleService, RoleConflictError


router = APIRouter(prefix="/servers/{server_id}", tags=["roles"])


@router.get("/roles", response_model=List[schemas.Role])
def list_roles(
    server_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, _ctx = user_context
    load_server_for_member(db, server_id, user)
    return role_repo.get_roles(db, server_id)


@router.post("/roles", response_model=schemas.Role, status_code=status.HTTP_201_CREATED)
def create_role(
    server_id: uuid.UUID,
    payload: schemas.RoleCreate,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, _ctx = user_context
    load_server_for_manager(db, server_id, user)
    try:
        role = RoleService(db).create_role(server_id, payload, creator_id=user.id)
    except RoleConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    audit.log_role(
        db,
        actor_user_id=user.id,
        server_id=server_id,
        role_id=role.id,
        action=AuditAction.ROLE_CREATE,
        name=role.name,
        metadata={"is_admin": role.is_admin},
    )
    return role


@router.patch("/roles/{role_id}", response_model=schemas.Role)
def update_role(
    server_id: uuid.UUID,
    role_id: uuid.UUID,
    payload: schemas.RoleUpdate,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, _ctx = user_context
    load_server_for_manager(db, server_id, user)
    role = load_role_in_server(db, server_id, role_id)
    try:
        role = RoleService(db).update_role(role, payload)
    except RoleConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    audit.log_role(
        db,
        actor_user_id=user.id,
        server_id=server_id,
        role_id=role.id,
        action=AuditAction.ROLE_UPDATE,
        name=role.name,
        metadata={"changes": payload.model_dump(exclude_unset=True)},
    )
    return role


@router.delete("/roles/{role_id}")
def delete_role(
    server_id: uuid.UUID,
    role_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, _ctx = user_context
    load_server_for_manager(db, server_id, user)
    role = load_role_in_server(db, server_id, role_id)
    name = role.name
    try:
        moved = RoleService(db).delete_role(role)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    audit.log_role(
        db,
        actor_user_id=user.id,
        server_id=server_id,
        role_id=role_id,
        action=AuditAction.ROLE_DELETE,
        name=name,
        metadata={"members_reassigned": moved},
    )
    return {"deleted": True, "members_reassigned": moved}


@router.get("/roles/{role_id}/grants", response_model=schemas.RoleGrants)
def get_role_grants(
    server_id: uuid.UUID,
    role_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, _ctx = user_context
    load_server_for_manager(db, server_id, user)
    role = load_role_in_server(db, server_id, role_id)
    return schemas.RoleGrants(
        role_id=role.id,
        channel_ids=role_repo.get_channel_grant_ids(db, role.id),
        section_ids=role_repo.get_section_grant_ids(db, role.id),
    )


def _channel_in_server(db: Session, server_id: uuid.UUID, channel_id: uuid.UUID):
    channel = server_repo.get_channel(db, channel_id)
    if channel is None or channel.server_id != server_id:
        raise HTTPException(status_code=404, detail="Channel not found")
    return channel


def _section_in_server(db: Session, server_id: uuid.UUID, section_id: uuid.UUID):
    section = server_repo.get_section(db, section_id)
    if section is None or section.server_id != server_id:
        raise HTTPException(status_code=404, detail="Section not found")
    return section


@router.put("/roles/{role_id}/channels/{channel_id}", status_code=status.HTTP_204_NO_CONTENT)
def grant_channel(
    server_id: uuid.UUID,
    role_id: uuid.UUID,
    channel_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, _ctx = user_context
    load_server_for_manager(db, server_id, user)
    role = load_role_in_server(db, server_id, role_id)
    channel = _channel_in_server(db, server_id, channel_id)
    if AccessService(db).grant_channel_access(role, channel):
        audit.log_access(
            db, actor_user_id=user.id, server_id=server_id, role_id=role.id,
            action=AuditAction.ACCESS_GRANT, channel_id=channel.id,
        )


@router.delete("/roles/{role_id}/channels/{channel_id}", status_code=status.HTTP_204_NO_CONTENT)
def revoke_channel(
    server_id: uuid.UUID,
    role_id: uuid.UUID,
    channel_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, _ctx = user_context
    load_server_for_manager(db, server_id, user)
    role = load_role_in_server(db, server_id, role_id)
    channel = _channel_in_server(db, server_id, channel_id)
    if AccessService(db).revoke_channel_access(role, channel):
        audit.log_access(
            db, actor_user_id=user.id, server_id=server_id, role_id=role.id,
            action=AuditAction.ACCESS_REVOKE, channel_id=channel.id,
        )


@router.put("/roles/{role_id}/sections/{section_id}", status_code=status.HTTP_204_NO_CONTENT)
def grant_section(
    server_id: uuid.UUID,
    role_id: uuid.UUID,
    section_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, _ctx = user_context
    load_server_for_manager(db, server_id, user)
    role = load_role_in_server(db, server_id, role_id)
    section = _section_in_server(db, server_id, section_id)
    if AccessService(db).grant_section_access(role, section):
        audit.log_access(
            db, actor_user_id=user.id, server_id=server_id, role_id=role.id,
            action=AuditAction.ACCESS_GRANT, section_id=section.id,
        )


@router.delete("/roles/{role_id}/sections/{section_id}", status_code=status.HTTP_204_NO_CONTENT)
def revoke_section(
    server_id: uuid.UUID,
    role_id: uuid.UUID,
    section_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, _ctx = user_context
    load_server_for_manager(db, server_id, user)
    role = load_role_in_server(db, server_id, role_id)
    section = _section_in_server(db, server_id, section_id)
    if AccessService(db).revoke_section_access(role, section):
        audit.log_access(
            db, actor_user_id=user.id, server_id=server_id, role_id=role.id,
            action=AuditAction.ACCESS_REVOKE, section_id=section.id,
        )


@router.put("/members/{member_id}/role", response_model=schemas.Member)
def assign_member_role(
    server_id: uuid.UUID,
    member_id: uuid.UUID,
    payload: schemas.MemberRoleUpdate,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, _ctx = user_context
    load_server_for_manager(db, server_id, user)
    member = server_repo.get_member_by_id(db, member_id)
    if member is None or member.server_id != server_id:
        raise HTTPException(status_code=404, detail="Member not found")
    role = role_repo.get_role(db, payload.role_id)
    if role is None:
        raise HTTPException(status_code=404, detail="Role not found")
    try:
        previous = RoleService(db).assign_member_role(member, role)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    audit.log_member(
        db,
        actor_user_id=user.id,
        server_id=server_id,
        member_id=member.id,
        action=AuditAction.MEMBER_ROLE_CHANGE,
        metadata={"from_role_id": str(previous), "to_role_id": str(role.id)},
    )
    return member
