"""
Server repository functions.

Implements CRUD for servers, sections, channels and memberships. Role
bookkeeping lives in ``repositories.roles``.
"""
from __future__ import annotations

import secrets
import uuid
from typing import Optional, List
from sqlalchemy.orm import Session

from tradingroom.db import schemas, models
from tradingroom.db.repositories import roles as role_repo
from tradingroom.utils.role_permissions import ROLE_ADMIN


def _new_invite_code() -> str:
    return secrets.token_urlsafe(12)


def create_server(db: Session, server: schemas.ServerCreate, owner_id: uuid.UUID) -> models.Server:
    db_server = models.Server(
        name=server.name.strip(),
        image_url=server.image_url,
        invite_code=_new_invite_code(),
        owner_id=owner_id,
    )
    db.add(db_server)
    db.flush()
    roles = role_repo.ensure_builtin_roles(db, db_server.id, creator_id=owner_id)
    # Owner joins with the admin role
    db.add(models.Member(server_id=db_server.id, user_id=owner_id, role_id=roles[ROLE_ADMIN].id))
    db.commit()
    db.refresh(db_server)
    return db_server


def get_server(db: Session, server_id: uuid.UUID) -> Optional[models.Server]:
    return db.query(models.Server).filter(models.Server.id == server_id).first()


def get_server_by_invite_code(db: Session, invite_code: str) -> Optional[models.Server]:
    return db.query(models.Server).filter(models.Server.invite_code == invite_code).first()


def get_servers_for_user(db: Session, user_id: uuid.UUID) -> List[models.Server]:
    return (
        db.query(models.Server)
        .join(models.Member, models.Member.server_id == models.Server.id)
        .filter(models.Member.user_id == user_id)
        .order_by(models.Server.created_at.asc())
        .all()
    )


def get_member(db: Session, server_id: uuid.UUID, user_id: uuid.UUID) -> Optional[models.Member]:
    return (
        db.query(models.Member)
        .filter(models.Member.server_id == server_id, models.Member.user_id == user_id)
        .first()
    )


def get_member_by_id(db: Session, member_id: uuid.UUID) -> Optional[models.Member]:
    return db.query(models.Member).filter(models.Member.id == member_id).first()


def get_members(db: Session, server_id: uuid.UUID) -> List[models.Member]:
    return (
        db.query(models.Member)
        .filter(models.Member.server_id == server_id)
        .order_by(models.Member.joined_at.asc())
        .all()
    )


def get_memberships_for_user(db: Session, user_id: uuid.UUID) -> List[models.Member]:
    return db.query(models.Member).filter(models.Member.user_id == user_id).all()


def create_member(db: Session, server_id: uuid.UUID, user_id: uuid.UUID, role_id: uuid.UUID) -> models.Member:
    db_member = models.Member(server_id=server_id, user_id=user_id, role_id=role_id)
    db.add(db_member)
    db.commit()
    db.refresh(db_member)
    return db_member


def delete_member(db: Session, member: models.Member) -> None:
    db.delete(member)
    db.commit()


def get_section(db: Session, section_id: uuid.UUID) -> Optional[models.Section]:
    return db.query(models.Section).filter(models.Section.id == section_id).first()


def get_sections(db: Session, server_id: uuid.UUID) -> List[models.Section]:
    return (
        db.query(models.Section)
        .filter(models.Section.server_id == server_id)
        .order_by(models.Section.position.asc(), models.Section.created_at.asc())
        .all()
    )


def create_section(db: Session, server_id: uuid.UUID, section: schemas.SectionCreate, creator_id: uuid.UUID) -> models.Section:
    db_section = models.Section(
        server_id=server_id,
        parent_id=section.parent_id,
        name=section.name.strip(),
        position=section.position,
        creator_id=creator_id,
    )
    db.add(db_section)
    db.commit()
    db.refresh(db_section)
    return db_section


def get_channel(db: Session, channel_id: uuid.UUID) -> Optional[models.Channel]:
    return db.query(models.Channel).filter(models.Channel.id == channel_id).first()


def get_channels(db: Session, server_id: uuid.UUID) -> List[models.Channel]:
    return (
        db.query(models.Channel)
        .filter(models.Channel.server_id == server_id)
        .order_by(models.Channel.position.asc(), models.Channel.created_at.asc())
        .all()
    )


def create_channel(db: Session, server_id: uuid.UUID, channel: schemas.ChannelCreate, creator_id: uuid.UUID) -> models.Channel:
    db_channel = models.Channel(
        server_id=server_id,
        section_id=channel.section_id,
        name=channel.name.strip(),
        type=channel.type,
        topic=channel.topic,
        position=channel.position,
        creator_id=creator_id,
    )
    db.add(db_channel)
    db.commit()
    db.refresh(db_channel)
    return db_channel
