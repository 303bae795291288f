"""Payment gateway port (abstract interface).

Checkout only needs the gateway to open a payment intent; the buyer then
completes payment in the gateway's hosted flow and the result comes back
through signature verification, which is computed locally.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class PaymentIntent:
    """A provider-side payment authorization handle."""

    gateway_order_id: str
    client_token: str
    amount_minor: int
    currency: str
    raw: dict = field(default_factory=dict, compare=False, repr=False)


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    name: str = "gateway"
    public_key: str | None = None

    @abstractmethod
    def create_intent(
        self,
        amount_minor: int,
        currency: str,
        receipt: str,
        metadata: dict | None = None,
    ) -> PaymentIntent:
        """Open a payment intent for ``amount_minor`` units of ``currency``.

        Raises GatewayError when the provider rejects the request or cannot
        be reached in time.
        """
        ...
