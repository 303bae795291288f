"""Order lifecycle after placement: status, tracking, cancellation, refunds.

Cancelling an order whose payment already settled stock puts that stock back,
once. Refunds are mirrored onto the payment audit so the gateway ledger and
the order agree on how much was returned.
"""

import structlog
from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.exceptions import StateConflict
from checkout.order.lookup import load_order
from checkout.order.order import ActorType, Order, OrderStatus
from checkout.order.settlement import restore_stock
from checkout.payment.audit import AuditStatus, PaymentAudit
from checkout.shared.owner import Owner, OwnerKind
from checkout.shared.revision import save_revisioned

logger = structlog.get_logger(__name__)

_REFUND_STATES = {OrderStatus.REFUNDED.value, OrderStatus.PARTIALLY_REFUNDED.value}


@checkout.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, choices=OrderStatus)
    message = String(max_length=500)
    actor_id = String(max_length=255)
    actor_type = String(choices=ActorType, default=ActorType.ADMIN.value)
    tracking_number = String(max_length=100)
    carrier = String(max_length=100)


@checkout.command(part_of="Order")
class AddTrackingInfo:
    order_id = Identifier(required=True)
    tracking_number = String(required=True, max_length=100)
    carrier = String(max_length=100)
    actor_id = String(max_length=255)


@checkout.command(part_of="Order")
class RequestCancellation:
    order_id = Identifier(required=True)
    owner_kind = String(required=True, choices=OwnerKind)
    owner_id = Identifier(required=True)
    reason = String(required=True, max_length=500)


@checkout.command(part_of="Order")
class ApproveCancellation:
    order_id = Identifier(required=True)
    refund_amount = Float(min_value=0.0)  # Optional: defaults to the paid total
    notes = String(max_length=1000)
    actor_id = String(max_length=255)


@checkout.command(part_of="Order")
class ProcessRefund:
    order_id = Identifier(required=True)
    amount = Float(required=True)
    actor_id = String(max_length=255)


@checkout.command_handler(part_of=Order)
class OrderLifecycleHandler:
    @handle(UpdateOrderStatus)
    def update_order_status(self, command):
        if command.status in _REFUND_STATES:
            raise StateConflict("Refund statuses are set by processing a refund", field="status")
        if command.status == OrderStatus.CANCELLED.value:
            return self._cancel(command.order_id, notes=command.message, actor_id=command.actor_id)

        repo = current_domain.repository_for(Order)
        order = load_order(command.order_id)
        order.update_status(
            command.status,
            message=command.message,
            updated_by=command.actor_id,
            updated_by_type=command.actor_type,
        )
        if command.tracking_number:
            order.add_tracking(
                command.tracking_number,
                provider=command.carrier,
                updated_by=command.actor_id,
                updated_by_type=command.actor_type,
            )
        save_revisioned(repo, order)

        logger.info("Order status updated", order_id=str(order.id), status=order.status, actor_id=command.actor_id)
        return str(order.id)

    @handle(AddTrackingInfo)
    def add_tracking_info(self, command):
        repo = current_domain.repository_for(Order)
        order = load_order(command.order_id)
        order.add_tracking(command.tracking_number, provider=command.carrier, updated_by=command.actor_id)
        save_revisioned(repo, order)
        return str(order.id)

    @handle(RequestCancellation)
    def request_cancellation(self, command):
        owner = Owner(kind=command.owner_kind, id=str(command.owner_id))
        repo = current_domain.repository_for(Order)
        order = load_order(command.order_id, owner=owner)
        order.request_cancellation(command.reason, updated_by=owner.id, updated_by_type=owner.actor_type)
        save_revisioned(repo, order)

        logger.info("Cancellation requested", order_id=str(order.id), status=order.status)
        return str(order.id)

    @handle(ApproveCancellation)
    def approve_cancellation(self, command):
        return self._cancel(
            command.order_id,
            refund_amount=command.refund_amount,
            notes=command.notes,
            actor_id=command.actor_id,
        )

    @handle(ProcessRefund)
    def process_refund(self, command):
        repo = current_domain.repository_for(Order)
        order = load_order(command.order_id)
        order.record_refund(command.amount, updated_by=command.actor_id)
        save_revisioned(repo, order)

        audit = self._audit_for(order)
        if audit is None:
            logger.warning("No settled payment audit to mirror refund", order_id=str(order.id))
        else:
            audit.record_refund(command.amount, order_total=order.pricing.total)
            save_revisioned(current_domain.repository_for(PaymentAudit), audit)

        logger.info(
            "Refund processed",
            order_id=str(order.id),
            amount=command.amount,
            refunded_total=order.payment_info.refund_amount,
            status=order.status,
        )
        return str(order.id)

    def _cancel(self, order_id, refund_amount=None, notes=None, actor_id=None):
        repo = current_domain.repository_for(Order)
        order = load_order(order_id)
        order.approve_cancellation(refund_amount=refund_amount, notes=notes, updated_by=actor_id)
        save_revisioned(repo, order)

        restore_stock(order)

        logger.info(
            "Order cancelled",
            order_id=str(order.id),
            refund_amount=order.cancellation.refund_amount,
            stock_restored=order.stock_restored,
        )
        return str(order.id)

    @staticmethod
    def _audit_for(order: Order) -> PaymentAudit | None:
        gateway_order_id = order.payment_info.gateway_order_id if order.payment_info else None
        if not gateway_order_id:
            return None
        audit = current_domain.repository_for(PaymentAudit).find_by_gateway_order(gateway_order_id)
        if audit is None or audit.status not in (AuditStatus.SUCCESS.value, AuditStatus.PARTIALLY_REFUNDED.value):
            return None
        return audit
