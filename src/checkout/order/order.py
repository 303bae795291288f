"""Order aggregate: the durable snapshot a checkout produces.

Items, prices, customer and addresses are frozen when the order is placed.
What changes afterwards is the status, the payment record, shipping details,
the cancellation record and the append-only timeline.

State Machine:
    PENDING → CONFIRMED → PROCESSING → SHIPPED → DELIVERED
    PENDING | CONFIRMED → CANCELLED
    DELIVERED | CANCELLED → REFUNDED | PARTIALLY_REFUNDED
    PARTIALLY_REFUNDED → REFUNDED | PARTIALLY_REFUNDED

Payment verification settles an order in steps (payment recorded, audit
completed, stock settled, cart released). The order carries a persisted
marker per step so a retried verification resumes where it stopped.
"""

import json
import random
import string
import time
from datetime import timedelta
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from checkout.domain import checkout
from checkout.exceptions import CancellationNotAllowed, InvalidTransition, PaymentAlreadyVerified, StateConflict
from checkout.order.events import (
    CancellationRequested,
    OrderCancelled,
    OrderPaymentConfirmed,
    OrderPlaced,
    OrderRefunded,
    OrderStatusChanged,
    StockShortfallRecorded,
    TrackingInfoAdded,
)
from checkout.shared.clock import as_utc, utcnow
from checkout.shared.money import round_money
from checkout.shared.owner import OwnerKind, is_owned_by, owner_of

RETURN_WINDOW_DAYS = 30


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class PaymentMethod(Enum):
    GATEWAY = "gateway"
    CASH_ON_DELIVERY = "cash_on_delivery"
    BANK_TRANSFER = "bank_transfer"


class RefundStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PROCESSED = "processed"


class ActorType(Enum):
    USER = "User"
    EMPLOYER = "Employer"
    ADMIN = "Admin"
    SYSTEM = "System"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: {OrderStatus.REFUNDED, OrderStatus.PARTIALLY_REFUNDED},
    OrderStatus.CANCELLED: {OrderStatus.REFUNDED, OrderStatus.PARTIALLY_REFUNDED},
    OrderStatus.PARTIALLY_REFUNDED: {OrderStatus.REFUNDED, OrderStatus.PARTIALLY_REFUNDED},
    OrderStatus.REFUNDED: set(),  # Terminal
}

_CANCELLABLE_STATES = {OrderStatus.PENDING, OrderStatus.CONFIRMED}

_REFUNDABLE_PAYMENT_STATES = {PaymentStatus.PAID.value, PaymentStatus.PARTIALLY_REFUNDED.value}


def generate_order_number() -> str:
    """``ORD-<last 8 digits of epoch millis>-<4 random base36 characters>``."""
    millis = str(int(time.time() * 1000))[-8:]
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=4))
    return f"ORD-{millis}-{suffix}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@checkout.value_object(part_of="Order")
class CustomerInfo:
    """Who placed the order, as known at checkout time."""

    name = String(required=True, max_length=200)
    email = String(max_length=254)
    phone = String(max_length=30)


@checkout.value_object(part_of="Order")
class PostalAddress:
    """A billing or shipping address captured at checkout.

    Once recorded the address never changes, even if the owner edits their
    address book afterwards.
    """

    full_name = String(required=True, max_length=200)
    email = String(max_length=254)
    phone = String(required=True, max_length=30)
    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)
    landmark = String(max_length=255)


@checkout.value_object(part_of="Order")
class OrderPricing:
    subtotal = Float(default=0.0)
    discount = Float(default=0.0)
    tax = Float(default=0.0)
    shipping_cost = Float(default=0.0)
    total = Float(default=0.0)
    currency = String(max_length=3, default="INR")


@checkout.value_object(part_of="Order")
class PaymentInfo:
    method = String(choices=PaymentMethod, default=PaymentMethod.GATEWAY.value)
    status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    transaction_id = String(max_length=255)
    gateway_order_id = String(max_length=255)
    gateway_payment_id = String(max_length=255)
    gateway_signature = String(max_length=255)
    paid_at = DateTime()
    failed_at = DateTime()
    refunded_at = DateTime()
    refund_amount = Float(default=0.0)

    def evolve(self, **changes):
        values = {
            "method": self.method,
            "status": self.status,
            "transaction_id": self.transaction_id,
            "gateway_order_id": self.gateway_order_id,
            "gateway_payment_id": self.gateway_payment_id,
            "gateway_signature": self.gateway_signature,
            "paid_at": self.paid_at,
            "failed_at": self.failed_at,
            "refunded_at": self.refunded_at,
            "refund_amount": self.refund_amount,
        }
        values.update(changes)
        return self.__class__(**values)


@checkout.value_object(part_of="Order")
class ShippingInfo:
    method = String(max_length=20, default="standard")
    provider = String(max_length=100)
    tracking_number = String(max_length=100)
    shipped_at = DateTime()
    delivered_at = DateTime()

    def evolve(self, **changes):
        values = {
            "method": self.method,
            "provider": self.provider,
            "tracking_number": self.tracking_number,
            "shipped_at": self.shipped_at,
            "delivered_at": self.delivered_at,
        }
        values.update(changes)
        return self.__class__(**values)


@checkout.value_object(part_of="Order")
class Cancellation:
    reason = String(max_length=500)
    requested_at = DateTime()
    approved_at = DateTime()
    refund_amount = Float(default=0.0)
    refund_status = String(choices=RefundStatus, default=RefundStatus.PENDING.value)
    notes = String(max_length=1000)

    def evolve(self, **changes):
        values = {
            "reason": self.reason,
            "requested_at": self.requested_at,
            "approved_at": self.approved_at,
            "refund_amount": self.refund_amount,
            "refund_status": self.refund_status,
            "notes": self.notes,
        }
        values.update(changes)
        return self.__class__(**values)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@checkout.entity(part_of="Order")
class OrderItem:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    total_price = Float(required=True, min_value=0.0)
    name = String(required=True, max_length=200)
    description = Text()
    image = String(max_length=500)
    category = String(max_length=100)
    sku = String(max_length=100)
    product_type = String(max_length=20)
    is_unlimited = Boolean(default=False)


@checkout.entity(part_of="Order")
class TimelineEntry:
    status = String(required=True, choices=OrderStatus)
    message = String(required=True, max_length=500)
    occurred_at = DateTime(required=True)
    updated_by = String(max_length=255)
    updated_by_type = String(choices=ActorType, default=ActorType.SYSTEM.value)


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------
@checkout.aggregate
class Order:
    order_number = String(required=True, max_length=30)
    owner_kind = String(required=True, choices=OwnerKind)
    owner_id = Identifier(required=True)
    customer = ValueObject(CustomerInfo)
    items = HasMany(OrderItem)
    applied_coupons = Text()  # JSON array of {code, discount, coupon_type}
    pricing = ValueObject(OrderPricing)
    billing_address = ValueObject(PostalAddress)
    shipping_address = ValueObject(PostalAddress)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    order_notes = Text()
    payment_info = ValueObject(PaymentInfo)
    shipping_info = ValueObject(ShippingInfo)
    timeline = HasMany(TimelineEntry)
    cancellation = ValueObject(Cancellation)
    source_cart_id = Identifier()

    # Settlement markers
    stock_settled = Boolean(default=False)
    cart_released = Boolean(default=False)
    stock_restored = Boolean(default=False)
    stock_shortfall = Text()  # JSON array of {product_id, requested, available}
    settled_products = Text()  # JSON array of product ids whose sale was recorded

    revision = Integer(default=0)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        owner,
        customer,
        items,
        pricing,
        billing_address,
        shipping_address,
        coupons=None,
        payment_method=PaymentMethod.GATEWAY.value,
        gateway_order_id=None,
        shipping_method="standard",
        source_cart_id=None,
        order_notes=None,
        order_number=None,
    ):
        if not items:
            raise ValidationError({"items": ["An order needs at least one item"]})

        now = utcnow()
        order = cls(
            order_number=order_number or generate_order_number(),
            owner_kind=owner.kind,
            owner_id=owner.id,
            customer=customer,
            applied_coupons=json.dumps(coupons or []),
            pricing=pricing,
            billing_address=billing_address,
            shipping_address=shipping_address,
            status=OrderStatus.PENDING.value,
            order_notes=order_notes,
            payment_info=PaymentInfo(
                method=payment_method,
                status=PaymentStatus.PENDING.value,
                gateway_order_id=gateway_order_id,
            ),
            shipping_info=ShippingInfo(method=shipping_method or "standard"),
            source_cart_id=source_cart_id,
            stock_shortfall=json.dumps([]),
            settled_products=json.dumps([]),
            created_at=now,
            updated_at=now,
        )
        for item in items:
            order.add_items(item)
        order._log(OrderStatus.PENDING.value, "Order placed", owner.id, owner.actor_type, now)

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                owner_kind=owner.kind,
                owner_id=owner.id,
                item_count=sum(i.quantity for i in items),
                total=pricing.total,
                currency=pricing.currency,
                payment_method=payment_method,
                gateway_order_id=gateway_order_id,
                source_cart_id=str(source_cart_id) if source_cart_id else None,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def owner(self):
        return owner_of(self)

    def belongs_to(self, owner) -> bool:
        return is_owned_by(self, owner)

    @property
    def is_paid(self) -> bool:
        return self.payment_info is not None and self.payment_info.paid_at is not None

    @property
    def can_cancel(self) -> bool:
        approved = self.cancellation is not None and self.cancellation.approved_at is not None
        return OrderStatus(self.status) in _CANCELLABLE_STATES and not approved

    @property
    def can_return(self) -> bool:
        if self.status != OrderStatus.DELIVERED.value:
            return False
        delivered_at = self.shipping_info.delivered_at if self.shipping_info else None
        if delivered_at is None:
            return False
        return utcnow() - as_utc(delivered_at) <= timedelta(days=RETURN_WINDOW_DAYS)

    @property
    def shortfall_lines(self) -> list[dict]:
        return json.loads(self.stock_shortfall) if self.stock_shortfall else []

    @property
    def coupons(self) -> list[dict]:
        return json.loads(self.applied_coupons) if self.applied_coupons else []

    # -------------------------------------------------------------------
    # Status transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target: OrderStatus):
        current = OrderStatus(self.status)
        if target not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransition(current.value, target.value)

    def update_status(self, new_status, message=None, updated_by=None, updated_by_type=ActorType.ADMIN.value):
        """Move to ``new_status``, stamping shipping timestamps where they apply."""
        target = OrderStatus(new_status)
        self._assert_can_transition(target)

        now = utcnow()
        previous = self.status
        self.status = target.value
        self.updated_at = now

        if target == OrderStatus.SHIPPED:
            self.shipping_info = (self.shipping_info or ShippingInfo()).evolve(shipped_at=now)
        elif target == OrderStatus.DELIVERED:
            self.shipping_info = (self.shipping_info or ShippingInfo()).evolve(delivered_at=now)

        self._log(target.value, message or f"Order {target.value.replace('_', ' ')}", updated_by, updated_by_type, now)

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=previous,
                new_status=target.value,
                updated_by=updated_by,
                updated_by_type=updated_by_type,
                changed_at=now,
            )
        )

    def add_tracking(self, tracking_number, provider=None, updated_by=None, updated_by_type=ActorType.ADMIN.value):
        if not tracking_number:
            raise ValidationError({"tracking_number": ["Tracking number is required"]})

        now = utcnow()
        self.shipping_info = (self.shipping_info or ShippingInfo()).evolve(
            tracking_number=tracking_number,
            provider=provider or (self.shipping_info.provider if self.shipping_info else None),
        )
        self.updated_at = now
        self._log(self.status, f"Tracking information added: {tracking_number}", updated_by, updated_by_type, now)

        self.raise_(TrackingInfoAdded(order_id=str(self.id), tracking_number=tracking_number, provider=provider))

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def record_payment(self, gateway_payment_id, gateway_signature=None, paid_at=None):
        """Mark the order paid and confirm it.

        Returns False, changing nothing, when the same payment was already
        recorded. A different payment for an already-paid order is a conflict.
        """
        if self.is_paid:
            if self.payment_info.gateway_payment_id == gateway_payment_id:
                return False
            raise PaymentAlreadyVerified(self.id)

        paid_at = paid_at or utcnow()
        self.payment_info = self.payment_info.evolve(
            status=PaymentStatus.PAID.value,
            paid_at=paid_at,
            transaction_id=gateway_payment_id,
            gateway_payment_id=gateway_payment_id,
            gateway_signature=gateway_signature,
        )
        self.updated_at = paid_at

        if self.status == OrderStatus.PENDING.value:
            previous = self.status
            self.status = OrderStatus.CONFIRMED.value
            self._log(OrderStatus.CONFIRMED.value, "Payment received and order confirmed", None, ActorType.SYSTEM.value, paid_at)
            self.raise_(
                OrderStatusChanged(
                    order_id=str(self.id),
                    previous_status=previous,
                    new_status=self.status,
                    updated_by_type=ActorType.SYSTEM.value,
                    changed_at=paid_at,
                )
            )
        else:
            self._log(self.status, f"Payment received while order was {self.status}", None, ActorType.SYSTEM.value, paid_at)

        self.raise_(
            OrderPaymentConfirmed(
                order_id=str(self.id),
                gateway_order_id=self.payment_info.gateway_order_id,
                gateway_payment_id=gateway_payment_id,
                amount=self.pricing.total,
                paid_at=paid_at,
            )
        )
        return True

    # -------------------------------------------------------------------
    # Settlement markers
    # -------------------------------------------------------------------
    @property
    def settled_product_ids(self) -> list[str]:
        return json.loads(self.settled_products) if self.settled_products else []

    def mark_line_settled(self, product_id):
        """Record that the sale of one line was taken from stock."""
        settled = self.settled_product_ids
        if str(product_id) not in settled:
            settled.append(str(product_id))
            self.settled_products = json.dumps(settled)
            self.updated_at = utcnow()

    def unsettled_lines(self):
        """Lines not yet taken from stock nor recorded as short."""
        done = set(self.settled_product_ids) | {str(s["product_id"]) for s in self.shortfall_lines}
        return [i for i in self.items if str(i.product_id) not in done]

    def mark_line_short(self, product_id, requested, available, name=None):
        """Record a line whose stock no longer covered it at settlement."""
        shortfalls = [s for s in self.shortfall_lines if str(s["product_id"]) != str(product_id)]
        shortfalls.append(
            {"product_id": str(product_id), "name": name, "requested": requested, "available": available}
        )
        self.stock_shortfall = json.dumps(shortfalls)
        self.updated_at = utcnow()

    def mark_stock_settled(self):
        self.stock_settled = True
        self.updated_at = utcnow()

        shortfalls = self.shortfall_lines
        if shortfalls:
            names = ", ".join(str(s.get("name") or s["product_id"]) for s in shortfalls)
            self._log(self.status, f"Stock could not be settled for: {names}", None, ActorType.SYSTEM.value, self.updated_at)
            self.raise_(StockShortfallRecorded(order_id=str(self.id), lines=json.dumps(shortfalls)))

    def mark_cart_released(self):
        self.cart_released = True
        self.updated_at = utcnow()

    def mark_stock_restored(self):
        self.stock_restored = True
        self.updated_at = utcnow()

    def settled_lines(self):
        """Lines whose stock was actually taken when payment settled."""
        settled = set(self.settled_product_ids)
        return [i for i in self.items if str(i.product_id) in settled]

    # -------------------------------------------------------------------
    # Cancellation and refunds
    # -------------------------------------------------------------------
    def request_cancellation(self, reason, updated_by=None, updated_by_type=ActorType.USER.value):
        if self.cancellation is not None and self.cancellation.approved_at is not None:
            raise CancellationNotAllowed(self.status, reason="Cancellation has already been approved")
        if not self.can_cancel:
            raise CancellationNotAllowed(self.status)
        if not reason or not reason.strip():
            raise ValidationError({"reason": ["Cancellation reason is required"]})

        now = utcnow()
        self.cancellation = Cancellation(
            reason=reason.strip(),
            requested_at=now,
            refund_status=RefundStatus.PENDING.value,
        )
        self.updated_at = now
        self._log(self.status, f"Cancellation requested: {reason.strip()}", updated_by, updated_by_type, now)

        self.raise_(CancellationRequested(order_id=str(self.id), reason=reason.strip(), requested_at=now))

    def approve_cancellation(self, refund_amount=None, notes=None, updated_by=None):
        if not self.can_cancel:
            raise CancellationNotAllowed(self.status)
        self._assert_can_transition(OrderStatus.CANCELLED)

        if refund_amount is None:
            refund_amount = self.pricing.total if self.is_paid else 0.0
        if refund_amount < 0 or refund_amount > self.pricing.total:
            raise ValidationError({"refund_amount": ["Refund amount must be between 0 and the order total"]})

        now = utcnow()
        self.cancellation = (self.cancellation or Cancellation(requested_at=now)).evolve(
            approved_at=now,
            refund_amount=round_money(refund_amount),
            refund_status=RefundStatus.APPROVED.value,
            notes=notes,
        )
        previous = self.status
        self.status = OrderStatus.CANCELLED.value
        self.updated_at = now
        self._log(OrderStatus.CANCELLED.value, "Order cancelled", updated_by, ActorType.ADMIN.value, now)

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=previous,
                new_status=self.status,
                updated_by=updated_by,
                updated_by_type=ActorType.ADMIN.value,
                changed_at=now,
            )
        )
        self.raise_(OrderCancelled(order_id=str(self.id), refund_amount=round_money(refund_amount), approved_at=now))

    def record_refund(self, amount, updated_by=None):
        """Accumulate a refund and derive refunded vs partially refunded."""
        if self.payment_info is None or self.payment_info.status not in _REFUNDABLE_PAYMENT_STATES:
            raise StateConflict("Only paid orders can be refunded", field="payment")
        if amount is None or amount <= 0:
            raise ValidationError({"amount": ["Refund amount must be positive"]})

        total = self.pricing.total
        refunded = round_money((self.payment_info.refund_amount or 0.0) + amount)
        if refunded > total:
            raise ValidationError({"amount": [f"Refund would exceed the order total of {total}"]})

        target = OrderStatus.REFUNDED if refunded >= total else OrderStatus.PARTIALLY_REFUNDED
        self._assert_can_transition(target)

        now = utcnow()
        payment_status = PaymentStatus(target.value)
        self.payment_info = self.payment_info.evolve(
            status=payment_status.value,
            refund_amount=refunded,
            refunded_at=now,
        )
        if self.cancellation is not None:
            self.cancellation = self.cancellation.evolve(refund_status=RefundStatus.PROCESSED.value)

        previous = self.status
        self.status = target.value
        self.updated_at = now
        message = "Refund processed" if target == OrderStatus.REFUNDED else f"Partial refund of {round_money(amount)} processed"
        self._log(target.value, message, updated_by, ActorType.ADMIN.value, now)

        if previous != target.value:
            self.raise_(
                OrderStatusChanged(
                    order_id=str(self.id),
                    previous_status=previous,
                    new_status=target.value,
                    updated_by=updated_by,
                    updated_by_type=ActorType.ADMIN.value,
                    changed_at=now,
                )
            )
        self.raise_(
            OrderRefunded(
                order_id=str(self.id),
                amount=round_money(amount),
                refunded_total=refunded,
                payment_status=payment_status.value,
                refunded_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    def _log(self, status, message, updated_by, updated_by_type, occurred_at):
        self.add_timeline(
            TimelineEntry(
                status=status,
                message=message,
                occurred_at=occurred_at,
                updated_by=str(updated_by) if updated_by else None,
                updated_by_type=updated_by_type or ActorType.SYSTEM.value,
            )
        )
