"""Domain events for the PaymentAudit aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from checkout.domain import checkout


@checkout.event(part_of="PaymentAudit")
class PaymentInitiated:
    """A gateway intent was created and recorded."""

    __version__ = 1

    audit_id = Identifier(required=True)
    gateway = String(required=True)
    gateway_order_id = String(required=True)
    amount = Float(required=True)
    currency = String(required=True)
    initiated_at = DateTime(required=True)


@checkout.event(part_of="PaymentAudit")
class PaymentSucceeded:
    """The gateway payment was verified."""

    __version__ = 1

    audit_id = Identifier(required=True)
    gateway_order_id = String(required=True)
    gateway_payment_id = String(required=True)
    order_id = Identifier()
    completed_at = DateTime(required=True)


@checkout.event(part_of="PaymentAudit")
class PaymentFailed:
    """A payment attempt failed or could not be trusted."""

    __version__ = 1

    audit_id = Identifier(required=True)
    gateway_order_id = String(required=True)
    reason = String(required=True)
    failed_at = DateTime(required=True)


@checkout.event(part_of="PaymentAudit")
class PaymentRefunded:
    """Part or all of a verified payment was returned."""

    __version__ = 1

    audit_id = Identifier(required=True)
    gateway_order_id = String(required=True)
    amount = Float(required=True)
    refunded_total = Float(required=True)
    status = String(required=True)
    refunded_at = DateTime(required=True)
