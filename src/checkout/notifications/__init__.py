"""Notification adapter factory."""

from checkout.notifications.fake_adapter import FakeNotificationService
from checkout.notifications.port import NotificationError, NotificationService

__all__ = ["FakeNotificationService", "NotificationError", "NotificationService", "create_notifier"]


def create_notifier(settings) -> NotificationService:
    """Build the notification adapter named by ``settings.notification_adapter``."""
    if settings.notification_adapter == "fake":
        return FakeNotificationService()
    raise ValueError(f"Unknown notification adapter: {settings.notification_adapter}")
