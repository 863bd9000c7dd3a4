"""User notifications."""

from campus.notifications.registry import SessionRegistry
from campus.notifications.schemas import Notification, NotificationEvent, NotificationType
from campus.notifications.service import NotificationDispatcher

__all__ = [
    "Notification",
    "NotificationDispatcher",
    "NotificationEvent",
    "NotificationType",
    "SessionRegistry",
]
