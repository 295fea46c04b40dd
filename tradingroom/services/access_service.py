"""
Role-based channel access.

A role can see a channel when it is an admin role, when it holds a direct
channel grant, or when it holds a grant on the channel's section or on any
section above it. Parent chains are walked with a visited set so a cycle in
``sections.parent_id`` cannot loop forever.
"""

import uuid
import logging
from typing import Optional, List, Set

from sqlalchemy.orm import Session

from tradingroom.db import models
from tradingroom.db.repositories import servers as server_repo
from tradingroom.db.repositories import roles as role_repo
from tradingroom.db.schemas import ChannelBase

logger = logging.getLogger(__name__)

CHANNEL_TYPE_ANNOUNCEMENT = 'announcement'


class AccessService:
    """Answers who may see, post to and manage what inside a server."""

    def __init__(self, db: Session):
        self.db = db

    # === Section hierarchy ===

    def section_chain(self, section_id: Optional[uuid.UUID]) -> List[uuid.UUID]:
        """Return ``section_id`` followed by its ancestors, nearest first."""
        chain: List[uuid.UUID] = []
        seen: Set[uuid.UUID] = set()
        current = section_id
        while current is not None and current not in seen:
            seen.add(current)
            chain.append(current)
            row = (
                self.db.query(models.Section.parent_id)
                .filter(models.Section.id == current)
                .first()
            )
            current = row[0] if row else None
        if current is not None:
            logger.warning("Cycle detected in section hierarchy at section_id=%s", current)
        return chain

    # === Role level ===

    def role_can_access_channel(self, role: models.Role, channel: models.Channel) -> bool:
        if role is None or channel is None:
            return False
        if role.server_id != channel.server_id:
            return False
        if role.is_admin:
            return True
        if role_repo.get_channel_grant(self.db, role.id, channel.id):
            return True
        chain = self.section_chain(channel.section_id)
        if not chain:
            return False
        hit = (
            self.db.query(models.RoleSectionAccess.id)
            .filter(
                models.RoleSectionAccess.role_id == role.id,
                models.RoleSectionAccess.section_id.in_(chain),
            )
            .first()
        )
        return hit is not None

    def eligible_role_ids(self, channel: models.Channel) -> Set[uuid.UUID]:
        """IDs of every role in the channel's server that can see the channel."""
        admin_ids = {
            row[0]
            for row in self.db.query(models.Role.id).filter(
                models.Role.server_id == channel.server_id,
                models.Role.is_admin.is_(True),
            )
        }
        direct_ids = {
            row[0]
            for row in self.db.query(models.RoleChannelAccess.role_id).filter(
                models.RoleChannelAccess.channel_id == channel.id
            )
        }
        section_ids: Set[uuid.UUID] = set()
        chain = self.section_chain(channel.section_id)
        if chain:
            section_ids = {
                row[0]
                for row in self.db.query(models.RoleSectionAccess.role_id).filter(
                    models.RoleSectionAccess.section_id.in_(chain)
                )
            }
        return admin_ids | direct_ids | section_ids

    # === Member level ===

    def accessible_channel_ids(self, member: models.Member) -> Set[uuid.UUID]:
        role = role_repo.get_role(self.db, member.role_id)
        channels = server_repo.get_channels(self.db, member.server_id)
        if role is not None and role.is_admin:
            return {c.id for c in channels}
        return {c.id for c in channels if self.role_can_access_channel(role, c)}

    def member_can_access_channel(self, user: models.User, channel: models.Channel) -> bool:
        """True if ``user`` may read ``channel``. Superadmins always may."""
        if user is None or channel is None:
            return False
        if getattr(user, "is_superadmin", False):
            return True
        member = server_repo.get_member(self.db, channel.server_id, user.id)
        if member is None:
            return False
        role = role_repo.get_role(self.db, member.role_id)
        return self.role_can_access_channel(role, channel)

    def visible_channels(self, user: models.User, server_id: uuid.UUID) -> List[models.Channel]:
        channels = server_repo.get_channels(self.db, server_id)
        if getattr(user, "is_superadmin", False):
            return channels
        member = server_repo.get_member(self.db, server_id, user.id)
        if member is None:
            return []
        allowed = self.accessible_channel_ids(member)
        return [c for c in channels if c.id in allowed]

    # === Management ===

    def can_manage_server(self, user: models.User, server: models.Server) -> bool:
        if user is None or server is None:
            return False
        if getattr(user, "is_superadmin", False):
            return True
        if server.owner_id == user.id:
            return True
        member = server_repo.get_member(self.db, server.id, user.id)
        if member is None:
            return False
        role = role_repo.get_role(self.db, member.role_id)
        return bool(role and role.is_admin)

    def can_post(self, user: models.User, channel: models.Channel) -> bool:
        """Posting needs read access; announcement channels also need manage rights."""
        if not self.member_can_access_channel(user, channel):
            return False
        if channel.type == CHANNEL_TYPE_ANNOUNCEMENT:
            server = server_repo.get_server(self.db, channel.server_id)
            return self.can_manage_server(user, server)
        return True

    # === Structure validation ===

    def validate_section_parent(self, server_id: uuid.UUID, parent_id: Optional[uuid.UUID]) -> None:
        """Raises ValueError unless ``parent_id`` is empty or a section of ``server_id``."""
        if parent_id is None:
            return
        parent = server_repo.get_section(self.db, parent_id)
        if parent is None or parent.server_id != server_id:
            raise ValueError("Parent section must belong to the same server")

    def validate_channel_section(self, server_id: uuid.UUID, channel: ChannelBase) -> None:
        if channel.section_id is None:
            return
        section = server_repo.get_section(self.db, channel.section_id)
        if section is None or section.server_id != server_id:
            raise ValueError("Section must belong to the same server")

    # === Grants ===

    def grant_channel_access(self, role: models.Role, channel: models.Channel) -> bool:
        """Grant ``role`` access to ``channel``. Returns False if it already existed."""
        if role.server_id != channel.server_id:
            raise ValueError("Role and channel belong to different servers")
        if role_repo.get_channel_grant(self.db, role.id, channel.id):
            return False
        self.db.add(models.RoleChannelAccess(role_id=role.id, channel_id=channel.id))
        self.db.commit()
        logger.info("Granted role_id=%s access to channel_id=%s", role.id, channel.id)
        return True

    def revoke_channel_access(self, role: models.Role, channel: models.Channel) -> bool:
        grant = role_repo.get_channel_grant(self.db, role.id, channel.id)
        if grant is None:
            return False
        self.db.delete(grant)
        self.db.commit()
        logger.info("Revoked role_id=%s access to channel_id=%s", role.id, channel.id)
        return True

    def grant_section_access(self, role: models.Role, section: models.Section) -> bool:
        if role.server_id != section.server_id:
            raise ValueError("Role and section belong to different servers")
        if role_repo.get_section_grant(self.db, role.id, section.id):
            return False
        self.db.add(models.RoleSectionAccess(role_id=role.id, section_id=section.id))
        self.db.commit()
        logger.info("Granted role_id=%s access to section_id=%s", role.id, section.id)
        return True

    def revoke_section_access(self, role: models.Role, section: models.Section) -> bool:
        grant = role_repo.get_section_grant(self.db, role.id, section.id)
        if grant is None:
            return False
        self.db.delete(grant)
        self.db.commit()
        logger.info("Revoked role_id=%s access to section_id=%s", role.id, section.id)
        return True
