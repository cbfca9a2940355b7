from .dispatcher import SmartNotificationDispatcher
from .notification_service import NotificationService
from .presence_service import UserPresenceService

__all__ = ["NotificationService", "SmartNotificationDispatcher", "UserPresenceService"]
