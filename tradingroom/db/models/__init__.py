"""
Domain-split SQLAlchemy models with a single import surface.

Exposes `Base`, `now_utc` and all ORM classes.
"""

from .base import Base, now_utc, as_utc  # re-export

# Domain models
from .users import User
from .servers import Server, Section, Channel
from .roles import Role, RoleChannelAccess, RoleSectionAccess, Member
from .messages import Message
from .notifications import ChannelNotificationPreference, Notification
from .subscriptions import Subscription
from .audit import AuditLog

__all__ = [
    # base
    "Base",
    "now_utc",
    "as_utc",
    # users
    "User",
    # servers
    "Server",
    "Section",
    "Channel",
    # access
    "Role",
    "RoleChannelAccess",
    "RoleSectionAccess",
    "Member",
    # messages/notifications
    "Message",
    "ChannelNotificationPreference",
    "Notification",
    # billing
    "Subscription",
    # audit
    "AuditLog",
]
