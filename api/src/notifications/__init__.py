"""Notifications module.

Provides:
- Dashboard notifications for grading, certificates and level unlocks
- Fire-and-forget side-effect dispatcher

Note: Router is imported directly in main.py to avoid circular imports.
"""

from src.notifications.dispatcher import SideEffectDispatcher
from src.notifications.models import (
    NOTIFICATIONS_TABLES_CQL,
    Notification,
    NotificationType,
)
from src.notifications.service import NotificationService


__all__ = [
    "NOTIFICATIONS_TABLES_CQL",
    "Notification",
    "NotificationService",
    "NotificationType",
    "SideEffectDispatcher",
]
