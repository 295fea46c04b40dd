"""
Servers API endpoints.

Create and join servers, and manage their sections, channels and members.
Structure changes require server management rights; channel listings are
filtered to what the caller's role can see.
"""
from typing import List
import uuid
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from tradingroom import audit
from tradingroom.audit import AuditAction, AuditStatus
from tradingroom.db.database import get_db
from tradingroom.db import schemas
from tradingroom.db.repositories import servers as server_repo
from tradingroom.api.deps import (
    get_current_user_context,
    load_server_for_member,
    load_server_for_manager,
)
from tradingroom.services.access_service import AccessService
from tradingroom.services.subscription_service import SubscriptionSyncService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/servers", tags=["servers"])


@router.post("/", response_model=schemas.Server, status_code=status.HTTP_201_CREATED)
def create_server(
    payload: schemas.ServerCreate,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, _ctx = user_context
    if not payload.name.strip():
        raise HTTPException(status_code=422, detail="Server name is required")
    server = server_repo.create_server(db, payload, owner_id=user.id)
    audit.log(
        db,
        action=AuditAction.SERVER_CREATE,
        status=AuditStatus.SUCCESS,
        target_type="server",
        target_id=server.id,
        actor_user_id=user.id,
        server_id=server.id,
        metadata={"name": server.name},
    )
    return server


@router.get("/", response_model=List[schemas.Server])
def list_my_servers(
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, _ctx = user_context
    return server_repo.get_servers_for_user(db, user.id)


@router.post("/join", response_model=schemas.Member)
def join_server(
    payload: schemas.JoinServerRequest,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    """Join by invite code. Joining twice returns the existing membership."""
    user, _ctx = user_context
    server = server_repo.get_server_by_invite_code(db, payload.invite_code.strip())
    if server is None:
        raise HTTPException(status_code=404, detail="Invalid invite code")

    existing = server_repo.get_member(db, server.id, user.id)
    if existing is not None:
        return existing

    role = SubscriptionSyncService(db).role_for_new_member(server.id, user.id)
    member = server_repo.create_member(db, server.id, user.id, role.id)
    audit.log_member(
        db,
        actor_user_id=user.id,
        server_id=server.id,
        member_id=member.id,
        action=AuditAction.MEMBER_JOIN,
        metadata={"role_id": str(role.id), "role": role.name},
    )
    return member


@router.get("/{server_id}", response_model=schemas.Server)
def get_server(
    server_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, _ctx = user_context
    return load_server_for_member(db, server_id, user)


@router.get("/{server_id}/members", response_model=List[schemas.Member])
def list_members(
    server_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, _ctx = user_context
    load_server_for_member(db, server_id, user)
    return server_repo.get_members(db, server_id)


@router.delete("/{server_id}/members/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_member(
    server_id: uuid.UUID,
    member_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, _ctx = user_context
    server = load_server_for_manager(db, server_id, user)
    member = server_repo.get_member_by_id(db, member_id)
    if member is None or member.server_id != server_id:
        raise HTTPException(status_code=404, detail="Member not found")
    if member.user_id == server.owner_id:
        raise HTTPException(status_code=409, detail="The server owner cannot be removed")
    removed_user_id = member.user_id
    server_repo.delete_member(db, member)
    audit.log_member(
        db,
        actor_user_id=user.id,
        server_id=server_id,
        member_id=member_id,
        action=AuditAction.MEMBER_REMOVE,
        metadata={"user_id": str(removed_user_id)},
    )


@router.get("/{server_id}/sections", response_model=List[schemas.Section])
def list_sections(
    server_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, _ctx = user_context
    load_server_for_member(db, server_id, user)
    return server_repo.get_sections(db, server_id)


@router.post("/{server_id}/sections", response_model=schemas.Section, status_code=status.HTTP_201_CREATED)
def create_section(
    server_id: uuid.UUID,
    payload: schemas.SectionCreate,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, _ctx = user_context
    load_server_for_manager(db, server_id, user)
    try:
        AccessService(db).validate_section_parent(server_id, payload.parent_id)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    section = server_repo.create_section(db, server_id, payload, creator_id=user.id)
    audit.log(
        db,
        action=AuditAction.SECTION_CREATE,
        target_type="section",
        target_id=section.id,
        actor_user_id=user.id,
        server_id=server_id,
        metadata={"name": section.name, "parent_id": str(section.parent_id) if section.parent_id else None},
    )
    return section


@router.get("/{server_id}/channels", response_model=List[schemas.Channel])
def list_channels(
    server_id: uuid.UUID,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    """Channels of the server the caller's role can see."""
    user, _ctx = user_context
    load_server_for_member(db, server_id, user)
    return AccessService(db).visible_channels(user, server_id)


@router.post("/{server_id}/channels", response_model=schemas.Channel, status_code=status.HTTP_201_CREATED)
def create_channel(
    server_id: uuid.UUID,
    payload: schemas.ChannelCreate,
    db: Session = Depends(get_db),
    user_context = Depends(get_current_user_context),
):
    user, _ctx = user_context
    load_server_for_manager(db, server_id, user)
    try:
        AccessService(db).validate_channel_section(server_id, payload)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    channel = server_repo.create_channel(db, server_id, payload, creator_id=user.id)
    audit.log(
        db,
        action=AuditAction.CHANNEL_CREATE,
        target_type="channel",
        target_id=channel.id,
        actor_user_id=user.id,
        server_id=server_id,
        metadata={"name": channel.name, "type": channel.type},
    )
    return channel
