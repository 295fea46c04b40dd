"""
Domain-split Pydantic schemas with a single import surface.
"""

from .users import UserBase, UserCreate, UserUpdate, User
from .servers import (
    ServerBase,
    ServerCreate,
    Server,
    SectionBase,
    SectionCreate,
    Section,
    ChannelBase,
    ChannelCreate,
    Channel,
    JoinServerRequest,
)
from .roles import (
    RoleBase,
    RoleCreate,
    RoleUpdate,
    Role,
    RoleGrants,
    MemberBase,
    Member,
    MemberRoleUpdate,
)
from .messages import MessageCreate, Message, MessageListResponse
from .notifications import (
    NotificationBase,
    NotificationCreate,
    Notification,
    NotificationListResponse,
    NotificationStatsResponse,
    ChannelNotificationPreferenceUpdate,
    ChannelNotificationPreference,
    BulkUpdateResponse,
    BulkDeleteResponse,
)
from .subscriptions import Subscription, RoleSyncResult
from .audits import AuditLogBase, AuditLogCreate, AuditLog

__all__ = [
    # users
    "UserBase", "UserCreate", "UserUpdate", "User",
    # servers
    "ServerBase", "ServerCreate", "Server",
    "SectionBase", "SectionCreate", "Section",
    "ChannelBase", "ChannelCreate", "Channel",
    "JoinServerRequest",
    # roles/members
    "RoleBase", "RoleCreate", "RoleUpdate", "Role", "RoleGrants",
    "MemberBase", "Member", "MemberRoleUpdate",
    # messages
    "MessageCreate", "Message", "MessageListResponse",
    # notifications
    "NotificationBase", "NotificationCreate", "Notification",
    "NotificationListResponse", "NotificationStatsResponse",
    "ChannelNotificationPreferenceUpdate", "ChannelNotificationPreference",
    "BulkUpdateResponse", "BulkDeleteResponse",
    # billing
    "Subscription", "RoleSyncResult",
    # audit
    "AuditLogBase", "AuditLogCreate", "AuditLog",
]
