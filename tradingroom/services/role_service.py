"""
Role management within a server.

Role names are unique per server and the built-in role names are reserved.
The default role cannot be deleted; members of a deleted role fall back to
the default role.
"""

import uuid
import logging
from typing import Optional

from sqlalchemy.orm import Session

from tradingroom.db import models, schemas
from tradingroom.db.repositories import roles as role_repo
from tradingroom.utils.role_permissions import (
    is_builtin_role_name,
    normalize_role_name,
    validate_color,
    ROLE_FREE,
)

logger = logging.getLogger(__name__)


class RoleConflictError(ValueError):
    """The requested role name is taken or reserved in the server."""


class RoleService:

    def __init__(self, db: Session):
        self.db = db

    def create_role(self, server_id: uuid.UUID, payload: schemas.RoleCreate, creator_id: uuid.UUID) -> models.Role:
        name = normalize_role_name(payload.name)
        validate_color(payload.color)
        if is_builtin_role_name(name):
            raise RoleConflictError(f"Role name '{name}' is reserved")
        if role_repo.get_role_by_name(self.db, server_id, name):
            raise RoleConflictError(f"Role '{name}' already exists")
        role = role_repo.create_role(
            self.db,
            server_id,
            name=name,
            color=payload.color,
            is_admin=payload.is_admin,
            creator_id=creator_id,
        )
        logger.info("Created role_id=%s in server_id=%s", role.id, server_id)
        return role

    def update_role(self, role: models.Role, payload: schemas.RoleUpdate) -> models.Role:
        data = payload.model_dump(exclude_unset=True)
        if "name" in data and data["name"] is not None:
            name = normalize_role_name(data["name"])
            if name != role.name:
                if is_builtin_role_name(role.name):
                    raise ValueError(f"Built-in role '{role.name}' cannot be renamed")
                if is_builtin_role_name(name):
                    raise RoleConflictError(f"Role name '{name}' is reserved")
                existing = role_repo.get_role_by_name(self.db, role.server_id, name)
                if existing and existing.id != role.id:
                    raise RoleConflictError(f"Role '{name}' already exists")
                role.name = name
        if "color" in data:
            validate_color(data["color"])
            role.color = data["color"]
        if data.get("is_admin") is not None and data["is_admin"] != role.is_admin:
            if is_builtin_role_name(role.name):
                raise ValueError(f"Built-in role '{role.name}' cannot change its admin flag")
            role.is_admin = data["is_admin"]
        self.db.commit()
        self.db.refresh(role)
        return role

    def delete_role(self, role: models.Role) -> int:
        """Delete ``role`` and move its members to the default role.

        Returns the number of members reassigned.

        Raises:
            ValueError: If ``role`` is the server's default role.
        """
        if role.is_default:
            raise ValueError("The default role cannot be deleted")
        default_role = role_repo.get_default_role(self.db, role.server_id)
        if default_role is None:
            default_role = role_repo.get_or_create_builtin_role(self.db, role.server_id, ROLE_FREE)
        moved = (
            self.db.query(models.Member)
            .filter(models.Member.role_id == role.id)
            .update({models.Member.role_id: default_role.id}, synchronize_session=False)
        )
        role_id, default_role_id = role.id, default_role.id
        self.db.delete(role)
        self.db.commit()
        logger.info("Deleted role_id=%s; reassigned %d member(s) to role_id=%s", role_id, moved, default_role_id)
        return moved

    def assign_member_role(self, member: models.Member, role: models.Role) -> Optional[uuid.UUID]:
        """Set ``member``'s role; returns the previous role id.

        Raises:
            ValueError: If the role belongs to a different server.
        """
        if role.server_id != member.server_id:
            raise ValueError("Role does not belong to the member's server")
        previous = member.role_id
        member.role_id = role.id
        self.db.commit()
        self.db.refresh(member)
        return previous
