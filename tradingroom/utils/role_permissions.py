"""
Built-in server roles and role validation helpers.

Every server is bootstrapped with the three roles below. ``free`` is the
default role new members receive; ``premium`` is assigned to members with a
paying subscription; ``admin`` can see every channel and manage the server.
"""

import re
from enum import Enum
from typing import Dict, Any, Optional

ROLE_FREE = "free"
ROLE_PREMIUM = "premium"
ROLE_ADMIN = "admin"

BUILTIN_ROLES: Dict[str, Dict[str, Any]] = {
    ROLE_FREE: {
        "color": "#808080",
        "is_default": True,
        "is_admin": False,
    },
    ROLE_PREMIUM: {
        "color": "#FFD700",
        "is_default": False,
        "is_admin": False,
    },
    ROLE_ADMIN: {
        "color": "#E74C3C",
        "is_default": False,
        "is_admin": True,
    },
}

ROLE_NAME_MAX_LENGTH = 50
_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


class RoleEnum(str, Enum):
    """Names of the roles every server carries."""
    free = ROLE_FREE
    premium = ROLE_PREMIUM
    admin = ROLE_ADMIN


def get_builtin_role_spec(name: str) -> Dict[str, Any]:
    """Return a copy of the attributes for a built-in role.

    Raises:
        ValueError: If ``name`` is not a built-in role.
    """
    if name not in BUILTIN_ROLES:
        raise ValueError(f"Unknown built-in role: {name}. Built-in roles: {sorted(BUILTIN_ROLES)}")
    return dict(BUILTIN_ROLES[name])


def is_builtin_role_name(name: Optional[str]) -> bool:
    return bool(name) and name.strip().lower() in BUILTIN_ROLES


def normalize_role_name(name: str) -> str:
    """Strip and validate a role name.

    Raises:
        ValueError: If the name is empty or too long.
    """
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValueError("Role name must not be empty")
    if len(cleaned) > ROLE_NAME_MAX_LENGTH:
        raise ValueError(f"Role name must be at most {ROLE_NAME_MAX_LENGTH} characters")
    return cleaned


def validate_color(color: Optional[str]) -> None:
    if color is None:
        return
    if not _COLOR_RE.match(color):
        raise ValueError(f"Invalid color '{color}'. Expected #RRGGBB")
