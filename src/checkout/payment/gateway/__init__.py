"""Payment gateway factory.

The gateway is built once at application start from settings and handed to
the services that need it:
- FakeGateway for development and testing
- RazorpayGateway for production
"""

from checkout.payment.gateway.fake_adapter import FakeGateway
from checkout.payment.gateway.port import PaymentGateway, PaymentIntent
from checkout.payment.gateway.razorpay_adapter import RazorpayGateway

__all__ = ["FakeGateway", "PaymentGateway", "PaymentIntent", "RazorpayGateway", "create_gateway"]


def create_gateway(settings) -> PaymentGateway:
    """Build the gateway adapter named by ``settings.gateway_adapter``."""
    if settings.gateway_adapter == "fake":
        return FakeGateway(key_id=settings.gateway_key_id, key_secret=settings.gateway_key_secret)
    if settings.gateway_adapter == "razorpay":
        return RazorpayGateway(
            key_id=settings.gateway_key_id,
            key_secret=settings.gateway_key_secret,
            base_url=settings.gateway_base_url,
            timeout=settings.gateway_timeout,
        )
    raise ValueError(f"Unknown payment gateway adapter: {settings.gateway_adapter}")
