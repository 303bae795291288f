"""PaymentAudit aggregate: the ledger of gateway interactions.

The audit is keyed by the gateway's own order id and is written before the
Order, so payment history survives even when the Order write fails. An audit
whose ``order_id`` is still empty is an orphan: it can always be found again
through its gateway order id.

State Machine:
    INITIATED → SUCCESS → REFUNDED | PARTIALLY_REFUNDED
    INITIATED → FAILED → SUCCESS (a later trusted callback)
    PARTIALLY_REFUNDED → REFUNDED | PARTIALLY_REFUNDED
"""

import json
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from checkout.domain import checkout
from checkout.exceptions import StateConflict
from checkout.payment.events import PaymentFailed, PaymentInitiated, PaymentRefunded, PaymentSucceeded
from checkout.shared.clock import utcnow
from checkout.shared.money import round_money
from checkout.shared.owner import OwnerKind, owner_of


class AuditStatus(Enum):
    INITIATED = "initiated"
    SUCCESS = "success"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


@checkout.aggregate
class PaymentAudit:
    gateway_order_id = String(required=True, max_length=255)
    order_id = Identifier()
    owner_kind = String(required=True, choices=OwnerKind)
    owner_id = Identifier(required=True)
    gateway = String(max_length=50, default="razorpay")
    amount = Float(required=True, min_value=0.0)
    amount_minor = Integer(min_value=1)
    currency = String(max_length=3, default="INR")
    gateway_payment_id = String(max_length=255)
    gateway_signature = String(max_length=255)
    status = String(choices=AuditStatus, default=AuditStatus.INITIATED.value)
    initiated_at = DateTime()
    completed_at = DateTime()
    failed_at = DateTime()
    refunded_at = DateTime()
    failure_reason = String(max_length=500)
    error_code = String(max_length=100)
    error_description = String(max_length=1000)
    refunded_amount = Float(default=0.0)
    notes = Text()  # JSON object
    revision = Integer(default=0)

    @classmethod
    def initiate(cls, owner, gateway, gateway_order_id, amount, amount_minor, currency, notes=None):
        now = utcnow()
        audit = cls(
            gateway_order_id=gateway_order_id,
            owner_kind=owner.kind,
            owner_id=owner.id,
            gateway=gateway,
            amount=amount,
            amount_minor=amount_minor,
            currency=currency,
            status=AuditStatus.INITIATED.value,
            initiated_at=now,
            notes=json.dumps(notes or {}),
        )
        audit.raise_(
            PaymentInitiated(
                audit_id=str(audit.id),
                gateway=gateway,
                gateway_order_id=gateway_order_id,
                amount=amount,
                currency=currency,
                initiated_at=now,
            )
        )
        return audit

    @property
    def owner(self):
        return owner_of(self)

    @property
    def note_values(self) -> dict:
        return json.loads(self.notes) if self.notes else {}

    def annotate(self, **values):
        merged = self.note_values
        merged.update(values)
        self.notes = json.dumps(merged)

    def link_order(self, order_id, order_number=None):
        self.order_id = str(order_id)
        if order_number:
            self.annotate(order_number=order_number)

    def mark_successful(self, gateway_payment_id, gateway_signature=None, order_id=None):
        """Record a verified payment. Returns False if it was already recorded."""
        if self.status != AuditStatus.INITIATED.value and self.status != AuditStatus.FAILED.value:
            return False

        now = utcnow()
        self.status = AuditStatus.SUCCESS.value
        self.gateway_payment_id = gateway_payment_id
        self.gateway_signature = gateway_signature
        self.completed_at = now
        if order_id and not self.order_id:
            self.order_id = str(order_id)

        self.raise_(
            PaymentSucceeded(
                audit_id=str(self.id),
                gateway_order_id=self.gateway_order_id,
                gateway_payment_id=gateway_payment_id,
                order_id=str(self.order_id) if self.order_id else None,
                completed_at=now,
            )
        )
        return True

    def mark_failed(self, reason, error_code=None, error_description=None, gateway_payment_id=None):
        """Record a failed or untrusted attempt.

        A payment already verified is never downgraded; the attempt is only
        noted. Returns whether the status changed.
        """
        now = utcnow()
        if self.status != AuditStatus.INITIATED.value and self.status != AuditStatus.FAILED.value:
            self.annotate(last_rejected_attempt={"reason": reason, "at": now.isoformat()})
            return False

        self.status = AuditStatus.FAILED.value
        self.failed_at = now
        self.failure_reason = reason
        self.error_code = error_code
        self.error_description = error_description
        if gateway_payment_id:
            self.gateway_payment_id = gateway_payment_id

        self.raise_(
            PaymentFailed(
                audit_id=str(self.id),
                gateway_order_id=self.gateway_order_id,
                reason=reason,
                failed_at=now,
            )
        )
        return True

    def record_refund(self, amount, order_total=None):
        if self.status not in (AuditStatus.SUCCESS.value, AuditStatus.PARTIALLY_REFUNDED.value):
            raise StateConflict("Only successful payments can be refunded", field="payment")
        if amount <= 0:
            raise ValidationError({"amount": ["Refund amount must be positive"]})

        ceiling = order_total if order_total is not None else self.amount
        refunded = round_money((self.refunded_amount or 0.0) + amount)
        if refunded > ceiling:
            raise ValidationError({"amount": [f"Refund would exceed the paid amount of {ceiling}"]})

        now = utcnow()
        self.refunded_amount = refunded
        self.refunded_at = now
        self.status = AuditStatus.REFUNDED.value if refunded >= ceiling else AuditStatus.PARTIALLY_REFUNDED.value

        self.raise_(
            PaymentRefunded(
                audit_id=str(self.id),
                gateway_order_id=self.gateway_order_id,
                amount=round_money(amount),
                refunded_total=refunded,
                status=self.status,
                refunded_at=now,
            )
        )

