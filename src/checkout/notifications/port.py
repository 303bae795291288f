"""Notification port: order confirmation dispatch.

Rendering and delivery belong to the notification service; checkout only
hands over the recipient and a snapshot of the order.
"""

from abc import ABC, abstractmethod


class NotificationError(Exception):
    """The notification service could not accept the message."""


class NotificationService(ABC):
    @abstractmethod
    def send_order_confirmation(
        self,
        recipient_email: str,
        recipient_name: str,
        order_snapshot: dict,
    ) -> str:
        """Dispatch an order confirmation and return the message id.

        Raises NotificationError on failure.
        """
        ...
