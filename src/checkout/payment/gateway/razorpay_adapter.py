"""Razorpay payment gateway adapter.

Opens orders through Razorpay's REST API. Authentication is HTTP basic with
the key id and key secret; amounts are sent in minor units (paise for INR).
Any transport failure, timeout or non-2xx response surfaces as GatewayError
carrying whatever Razorpay reported.
"""

import requests
import structlog

from checkout.exceptions import GatewayError
from checkout.payment.gateway.port import PaymentGateway, PaymentIntent

logger = structlog.get_logger(__name__)

# Razorpay accepts at most 15 note entries, each value up to 256 characters
_MAX_NOTES = 15
_MAX_NOTE_LENGTH = 256


class RazorpayGateway(PaymentGateway):
    name = "razorpay"

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        base_url: str = "https://api.razorpay.com/v1",
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.public_key = key_id
        self.key_secret = key_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def create_intent(
        self,
        amount_minor: int,
        currency: str,
        receipt: str,
        metadata: dict | None = None,
    ) -> PaymentIntent:
        payload = {
            "amount": int(amount_minor),
            "currency": currency,
            "receipt": receipt[:40],
            "notes": self._notes(metadata),
        }

        try:
            response = self.session.post(
                f"{self.base_url}/orders",
                json=payload,
                auth=(self.public_key, self.key_secret),
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            logger.warning("Razorpay order creation timed out", receipt=receipt, timeout=self.timeout)
            raise GatewayError("Payment gateway timed out", detail=str(exc)) from exc
        except requests.RequestException as exc:
            logger.warning("Razorpay order creation failed", receipt=receipt, error=str(exc))
            raise GatewayError("Payment gateway unreachable", detail=str(exc)) from exc

        if response.status_code >= 400:
            detail = self._error_detail(response)
            logger.warning(
                "Razorpay rejected order creation",
                receipt=receipt,
                status_code=response.status_code,
                detail=detail,
            )
            raise GatewayError("Payment gateway rejected the request", detail=detail, status_code=response.status_code)

        try:
            body = response.json()
        except ValueError as exc:
            raise GatewayError("Payment gateway returned an unreadable response", detail=response.text[:500]) from exc

        gateway_order_id = body.get("id")
        if not gateway_order_id:
            raise GatewayError("Payment gateway response carried no order id", detail=str(body)[:500])

        return PaymentIntent(
            gateway_order_id=gateway_order_id,
            client_token=gateway_order_id,
            amount_minor=int(body.get("amount", amount_minor)),
            currency=body.get("currency", currency),
            raw=body,
        )

    @staticmethod
    def _notes(metadata: dict | None) -> dict:
        notes = {}
        for key, value in list((metadata or {}).items())[:_MAX_NOTES]:
            if value is not None:
                notes[str(key)] = str(value)[:_MAX_NOTE_LENGTH]
        return notes

    @staticmethod
    def _error_detail(response) -> str:
        try:
            error = response.json().get("error", {})
        except ValueError:
            return response.text[:500]
        return error.get("description") or error.get("code") or response.text[:500]
