"""Business logic services package with public service classes."""

from .access_service import AccessService
from .role_service import RoleService, RoleConflictError
from .notification_service import NotificationService
from .notification_trigger_service import NotificationTriggerService
from .message_service import MessageService
from .subscription_service import SubscriptionSyncService

__all__ = [
    "AccessService",
    "RoleService",
    "RoleConflictError",
    "NotificationService",
    "NotificationTriggerService",
    "MessageService",
    "SubscriptionSyncService",
]
