"""Fake notification service: records confirmations for test assertions."""

from uuid import uuid4

from checkout.notifications.port import NotificationError, NotificationService


class FakeNotificationService(NotificationService):
    def __init__(self):
        self.sent: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Email delivery failed"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Email delivery failed"):
        """Configure the fake adapter behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def send_order_confirmation(self, recipient_email: str, recipient_name: str, order_snapshot: dict) -> str:
        if not self.should_succeed:
            raise NotificationError(self.failure_reason)

        message_id = f"email-{uuid4().hex[:12]}"
        self.sent.append(
            {
                "message_id": message_id,
                "to": recipient_email,
                "name": recipient_name,
                "subject": f"Order Confirmation - {order_snapshot.get('order_number')}",
                "order": order_snapshot,
            }
        )
        return message_id

    def reset(self):
        """Clear sent messages (useful between tests)."""
        self.sent.clear()
        self.should_succeed = True
        self.failure_reason = "Email delivery failed"
