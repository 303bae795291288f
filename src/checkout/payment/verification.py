"""PaymentVerifier: trust a gateway callback and settle the order it pays for.

The browser relays the gateway's signature after the buyer pays. Nothing is
trusted until the signature is recomputed locally. A verified payment then
settles in steps, each behind its own persisted marker:

    a. order marked paid and confirmed
    b. payment audit marked successful
    c. each line's sale recorded against stock (short lines noted, never forced)
    d. source cart released

A repeated callback, or a retry after a failure part-way through, re-runs
only the steps that have not been applied yet. The confirmation email goes
out once, after everything is saved, and its failure never undoes anything.
"""

from dataclasses import dataclass, field

import structlog
from protean.utils.globals import current_domain

from checkout.exceptions import SignatureMismatch
from checkout.inventory.ledger import InventoryLedger
from checkout.order.lookup import load_order
from checkout.order.order import Order
from checkout.order.settlement import release_cart, settle_stock
from checkout.payment.audit import PaymentAudit
from checkout.payment.signature import signature_matches
from checkout.shared.revision import save_revisioned

logger = structlog.get_logger(__name__)


@dataclass
class VerificationResult:
    order_id: str
    order_number: str
    order_status: str
    payment_status: str
    already_verified: bool = False
    shortfalls: list[dict] = field(default_factory=list)


def confirmation_snapshot(order: Order) -> dict:
    """What the confirmation email needs to know about an order."""
    return {
        "order_id": str(order.id),
        "order_number": order.order_number,
        "status": order.status,
        "total": order.pricing.total,
        "currency": order.pricing.currency,
        "items": [
            {"name": item.name, "quantity": item.quantity, "unit_price": item.unit_price, "total": item.total_price}
            for item in order.items
        ],
        "shipping_address": order.shipping_address.to_dict() if order.shipping_address else None,
        "paid_at": order.payment_info.paid_at.isoformat() if order.payment_info.paid_at else None,
    }


class PaymentVerifier:
    def __init__(self, key_secret: str, notifier=None, send_confirmation: bool = True, ledger=None):
        self._key_secret = key_secret
        self._notifier = notifier
        self._send_confirmation = send_confirmation
        self._ledger = ledger or InventoryLedger()

    def verify(self, gateway_order_id, gateway_payment_id, signature, order_id, owner) -> VerificationResult:
        audits = current_domain.repository_for(PaymentAudit)
        audit = audits.find_by_gateway_order(gateway_order_id)

        if not signature_matches(self._key_secret, gateway_order_id, gateway_payment_id, signature):
            self._reject(audit, gateway_order_id, gateway_payment_id, order_id)
            raise SignatureMismatch("Payment verification failed", gateway_order_id=gateway_order_id)

        orders = current_domain.repository_for(Order)
        order = load_order(order_id, owner=owner, gateway_order_id=gateway_order_id)

        # a. Order paid
        newly_paid = order.record_payment(gateway_payment_id, gateway_signature=signature)
        if newly_paid:
            save_revisioned(orders, order)
            logger.info(
                "Payment verified",
                order_id=str(order.id),
                gateway_order_id=gateway_order_id,
                gateway_payment_id=gateway_payment_id,
            )
        else:
            logger.info("Payment already verified", order_id=str(order.id), gateway_payment_id=gateway_payment_id)

        # b. Audit completed
        if audit is None:
            logger.warning("No payment audit for verified payment", gateway_order_id=gateway_order_id)
        elif audit.mark_successful(gateway_payment_id, signature, order_id=order.id):
            save_revisioned(audits, audit)

        # c. Stock settled
        settle_stock(order, self._ledger)

        # d. Cart released
        release_cart(order)

        if newly_paid:
            self._notify(order)

        return VerificationResult(
            order_id=str(order.id),
            order_number=order.order_number,
            order_status=order.status,
            payment_status=order.payment_info.status,
            already_verified=not newly_paid,
            shortfalls=order.shortfall_lines,
        )

    def _reject(self, audit, gateway_order_id, gateway_payment_id, order_id):
        logger.warning(
            "Payment signature mismatch",
            gateway_order_id=gateway_order_id,
            gateway_payment_id=gateway_payment_id,
            order_id=str(order_id) if order_id else None,
        )
        if audit is None:
            return
        # A verified payment keeps its status; the rejected attempt is only noted
        audit.mark_failed(
            "Signature verification failed",
            error_code="SIGNATURE_MISMATCH",
            gateway_payment_id=gateway_payment_id,
        )
        save_revisioned(current_domain.repository_for(PaymentAudit), audit)

    def _notify(self, order: Order):
        if self._notifier is None or not self._send_confirmation:
            return

        recipient = (order.billing_address.email if order.billing_address else None) or (
            order.customer.email if order.customer else None
        )
        if not recipient:
            logger.warning("No email for order confirmation", order_id=str(order.id))
            return

        try:
            message_id = self._notifier.send_order_confirmation(
                recipient_email=recipient,
                recipient_name=order.customer.name if order.customer else order.billing_address.full_name,
                order_snapshot=confirmation_snapshot(order),
            )
        except Exception:
            logger.exception("Order confirmation failed", order_id=str(order.id), recipient=recipient)
            return
        logger.info("Order confirmation sent", order_id=str(order.id), message_id=message_id)
