"""Deployment settings for the checkout engine, read from the environment.

Currency and tax rate are fixed per deployment region; the gateway and
notification adapters are chosen the same way the carrier adapter is, through
an environment variable with a ``fake`` default.
"""

import os
from dataclasses import dataclass, field

from protean.exceptions import ConfigurationError

_TRUTHY = {"1", "true", "yes", "on"}


def _float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


def _int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    environment: str = "development"
    currency: str = "INR"
    tax_rate: float = 0.10
    cart_ttl_days: int = 30
    gateway_adapter: str = "fake"
    gateway_name: str = "razorpay"
    gateway_key_id: str = "rzp_test_key"
    gateway_key_secret: str = field(default="rzp_test_secret", repr=False)
    gateway_base_url: str = "https://api.razorpay.com/v1"
    gateway_timeout: float = 10.0
    notification_adapter: str = "fake"
    send_confirmation_emails: bool = True

    @classmethod
    def from_env(cls) -> "Settings":
        settings = cls(
            environment=os.environ.get("PROTEAN_ENV", "development"),
            currency=os.environ.get("CHECKOUT_CURRENCY", "INR").upper(),
            tax_rate=_float("CHECKOUT_TAX_RATE", 0.10),
            cart_ttl_days=_int("CHECKOUT_CART_TTL_DAYS", 30),
            gateway_adapter=os.environ.get("PAYMENT_GATEWAY", "fake"),
            gateway_key_id=os.environ.get("RAZORPAY_KEY_ID", "rzp_test_key"),
            gateway_key_secret=os.environ.get("RAZORPAY_KEY_SECRET", "rzp_test_secret"),
            gateway_base_url=os.environ.get("RAZORPAY_BASE_URL", "https://api.razorpay.com/v1"),
            gateway_timeout=_float("PAYMENT_GATEWAY_TIMEOUT", 10.0),
            notification_adapter=os.environ.get("NOTIFICATION_ADAPTER", "fake"),
            send_confirmation_emails=os.environ.get("CHECKOUT_SEND_EMAILS", "true").lower() in _TRUTHY,
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        if not 0 <= self.tax_rate < 1:
            raise ConfigurationError(f"Tax rate must be in [0, 1), got {self.tax_rate}")
        if self.cart_ttl_days < 1:
            raise ConfigurationError("Cart TTL must be at least one day")
        if self.gateway_timeout <= 0:
            raise ConfigurationError("Gateway timeout must be positive")
        if self.environment == "production" and self.gateway_adapter == "fake":
            raise ConfigurationError("The fake payment gateway cannot be used in production")


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the process settings, reading the environment on first use."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    """Forget cached settings (useful for testing)."""
    global _settings
    _settings = None
