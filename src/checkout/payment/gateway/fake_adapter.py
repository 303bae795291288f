"""Configurable fake payment gateway for development and testing.

Simulates the gateway without any external calls. It can be told to succeed
or fail, records every call, and can sign callbacks the way the real gateway
would, so tests can drive the full checkout-then-verify flow.
"""

from uuid import uuid4

from checkout.exceptions import GatewayError
from checkout.payment.gateway.port import PaymentGateway, PaymentIntent
from checkout.payment.signature import compute_signature


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    name = "fake"

    def __init__(self, key_id: str = "rzp_test_key", key_secret: str = "rzp_test_secret") -> None:
        self.public_key = key_id
        self.key_secret = key_secret
        self.should_succeed: bool = True
        self.failure_reason: str = "Gateway rejected the order"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Gateway rejected the order") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def reset(self) -> None:
        self.should_succeed = True
        self.calls.clear()

    def create_intent(
        self,
        amount_minor: int,
        currency: str,
        receipt: str,
        metadata: dict | None = None,
    ) -> PaymentIntent:
        self.calls.append(
            {
                "method": "create_intent",
                "amount_minor": amount_minor,
                "currency": currency,
                "receipt": receipt,
                "metadata": dict(metadata or {}),
            }
        )

        if not self.should_succeed:
            raise GatewayError("Payment gateway rejected the request", detail=self.failure_reason)

        gateway_order_id = f"order_fake_{uuid4().hex[:14]}"
        return PaymentIntent(
            gateway_order_id=gateway_order_id,
            client_token=gateway_order_id,
            amount_minor=amount_minor,
            currency=currency,
        )

    def sign(self, gateway_order_id: str, gateway_payment_id: str) -> str:
        """Produce the signature the hosted checkout would hand the client."""
        return compute_signature(self.key_secret, gateway_order_id, gateway_payment_id)
