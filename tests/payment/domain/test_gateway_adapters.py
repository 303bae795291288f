"""Tests for the payment gateway and notification adapters."""

from unittest.mock import MagicMock

import pytest
import requests
from checkout.config import Settings
from checkout.exceptions import GatewayError
from checkout.notifications import FakeNotificationService, NotificationError, create_notifier
from checkout.payment.gateway import FakeGateway, RazorpayGateway, create_gateway
from checkout.payment.signature import signature_matches


def _response(status_code=200, body=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body
    return response


class TestFakeGateway:
    def test_create_intent(self):
        gateway = FakeGateway()
        intent = gateway.create_intent(22000, "INR", receipt="ORD-1", metadata={"owner_id": "u-1"})

        assert intent.gateway_order_id.startswith("order_fake_")
        assert intent.client_token == intent.gateway_order_id
        assert intent.amount_minor == 22000
        assert gateway.calls[0]["receipt"] == "ORD-1"
        assert gateway.calls[0]["metadata"] == {"owner_id": "u-1"}

    def test_configured_failure(self):
        gateway = FakeGateway()
        gateway.configure(should_succeed=False, failure_reason="Service unavailable")
        with pytest.raises(GatewayError) as exc:
            gateway.create_intent(100, "INR", receipt="ORD-1")
        assert exc.value.detail == "Service unavailable"
        assert len(gateway.calls) == 1

    def test_reset(self):
        gateway = FakeGateway()
        gateway.configure(should_succeed=False)
        gateway.reset()
        assert gateway.should_succeed is True
        assert gateway.calls == []

    def test_sign_matches_local_verification(self):
        gateway = FakeGateway(key_secret="s3cret")
        signature = gateway.sign("order_A", "pay_B")
        assert signature_matches("s3cret", "order_A", "pay_B", signature)


class TestRazorpayGateway:
    def _gateway(self, response=None, error=None):
        session = MagicMock()
        if error is not None:
            session.post.side_effect = error
        else:
            session.post.return_value = response
        gateway = RazorpayGateway("rzp_key", "rzp_secret", base_url="https://rzp.test/v1/", timeout=3, session=session)
        return gateway, session

    def test_create_intent(self):
        gateway, session = self._gateway(_response(200, {"id": "order_rzp_1", "amount": 22000, "currency": "INR"}))
        intent = gateway.create_intent(22000, "INR", receipt="ORD-1", metadata={"order_number": "ORD-1", "skip": None})

        assert intent.gateway_order_id == "order_rzp_1"
        assert intent.raw["id"] == "order_rzp_1"

        args, kwargs = session.post.call_args
        assert args[0] == "https://rzp.test/v1/orders"
        assert kwargs["auth"] == ("rzp_key", "rzp_secret")
        assert kwargs["timeout"] == 3
        assert kwargs["json"] == {
            "amount": 22000,
            "currency": "INR",
            "receipt": "ORD-1",
            "notes": {"order_number": "ORD-1"},
        }

    def test_receipt_and_notes_are_trimmed(self):
        gateway, session = self._gateway(_response(200, {"id": "order_rzp_1"}))
        metadata = {f"key{i}": "x" * 300 for i in range(20)}
        gateway.create_intent(100, "INR", receipt="R" * 60, metadata=metadata)

        payload = session.post.call_args.kwargs["json"]
        assert len(payload["receipt"]) == 40
        assert len(payload["notes"]) == 15
        assert all(len(v) == 256 for v in payload["notes"].values())

    def test_rejection_carries_provider_detail(self):
        body = {"error": {"code": "BAD_REQUEST_ERROR", "description": "Amount exceeds maximum"}}
        gateway, _ = self._gateway(_response(400, body))
        with pytest.raises(GatewayError) as exc:
            gateway.create_intent(100, "INR", receipt="ORD-1")
        assert exc.value.detail == "Amount exceeds maximum"
        assert exc.value.context["status_code"] == 400

    def test_timeout(self):
        gateway, _ = self._gateway(error=requests.Timeout("read timed out"))
        with pytest.raises(GatewayError) as exc:
            gateway.create_intent(100, "INR", receipt="ORD-1")
        assert exc.value.message == "Payment gateway timed out"

    def test_unreachable(self):
        gateway, _ = self._gateway(error=requests.ConnectionError("refused"))
        with pytest.raises(GatewayError) as exc:
            gateway.create_intent(100, "INR", receipt="ORD-1")
        assert exc.value.message == "Payment gateway unreachable"

    def test_unreadable_response(self):
        gateway, _ = self._gateway(_response(200, ValueError("not json"), text="<html>"))
        with pytest.raises(GatewayError):
            gateway.create_intent(100, "INR", receipt="ORD-1")

    def test_response_without_id(self):
        gateway, _ = self._gateway(_response(200, {"status": "created"}))
        with pytest.raises(GatewayError):
            gateway.create_intent(100, "INR", receipt="ORD-1")


class TestAdapterFactories:
    def test_fake_gateway_by_default(self):
        gateway = create_gateway(Settings())
        assert isinstance(gateway, FakeGateway)
        assert gateway.public_key == "rzp_test_key"

    def test_razorpay_gateway(self):
        gateway = create_gateway(Settings(gateway_adapter="razorpay", gateway_timeout=4.0))
        assert isinstance(gateway, RazorpayGateway)
        assert gateway.timeout == 4.0

    def test_unknown_gateway(self):
        with pytest.raises(ValueError):
            create_gateway(Settings(gateway_adapter="paypal"))

    def test_fake_notifier(self):
        assert isinstance(create_notifier(Settings()), FakeNotificationService)

    def test_unknown_notifier(self):
        with pytest.raises(ValueError):
            create_notifier(Settings(notification_adapter="smtp"))


class TestFakeNotificationService:
    def test_records_confirmation(self):
        notifier = FakeNotificationService()
        message_id = notifier.send_order_confirmation("a@example.com", "Asha", {"order_number": "ORD-1"})

        assert message_id.startswith("email-")
        assert notifier.sent[0]["to"] == "a@example.com"
        assert notifier.sent[0]["subject"] == "Order Confirmation - ORD-1"

    def test_configured_failure(self):
        notifier = FakeNotificationService()
        notifier.configure(should_succeed=False, failure_reason="SMTP down")
        with pytest.raises(NotificationError, match="SMTP down"):
            notifier.send_order_confirmation("a@example.com", "Asha", {})
        assert notifier.sent == []
