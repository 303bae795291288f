"""Shopping Cart aggregate: line items, coupons, shipping and derived totals.

The cart is the only writer of its own state. Every mutation validates the
product against its current record, snapshots display fields and prices, and
recomputes subtotal/discount/tax/total before the cart is saved. Totals are
never accepted from the client.

A cart is deactivated, not deleted, once the order it produced is paid, and
is reclaimed once it has been left untouched past its expiry.
"""

from datetime import datetime, timedelta
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from checkout.cart.events import (
    CartCleared,
    CartCouponApplied,
    CartCouponRemoved,
    CartDeactivated,
    CartItemAdded,
    CartItemRemoved,
    CartQuantityUpdated,
    CartShippingSelected,
)
from checkout.cart.pricing import compute_totals
from checkout.domain import checkout
from checkout.exceptions import ItemNotInCart, StateConflict
from checkout.shared.clock import as_utc, utcnow
from checkout.shared.owner import OwnerKind, is_owned_by, owner_of


class CouponType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class ShippingMethod(Enum):
    STANDARD = "standard"
    EXPRESS = "express"
    DIGITAL = "digital"
    PICKUP = "pickup"


class DeactivationReason(Enum):
    CHECKED_OUT = "checked_out"
    EXPIRED = "expired"


@checkout.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    discounted_price = Float(min_value=0.0)
    name = String(max_length=200)
    image = String(max_length=500)
    category = String(max_length=100)
    product_type = String(max_length=20)
    added_at = DateTime()

    @property
    def effective_price(self) -> float:
        return self.unit_price if self.discounted_price is None else self.discounted_price

    @property
    def line_total(self) -> float:
        return self.effective_price * self.quantity


@checkout.entity(part_of="ShoppingCart")
class AppliedCoupon:
    code = String(required=True, max_length=50)
    discount = Float(required=True, min_value=0.0)
    coupon_type = String(required=True, choices=CouponType)
    applied_at = DateTime()


@checkout.value_object(part_of="ShoppingCart")
class ShippingSelection:
    method = String(choices=ShippingMethod, default=ShippingMethod.STANDARD.value)
    cost = Float(default=0.0, min_value=0.0)


@checkout.aggregate
class ShoppingCart:
    owner_kind = String(required=True, choices=OwnerKind)
    owner_id = Identifier(required=True)
    items = HasMany(CartItem)
    coupons = HasMany(AppliedCoupon)
    shipping = ValueObject(ShippingSelection)
    currency = String(max_length=3, default="INR")
    tax_rate = Float(default=0.10, min_value=0.0)
    subtotal = Float(default=0.0)
    discount = Float(default=0.0)
    tax = Float(default=0.0)
    total = Float(default=0.0)
    is_active = Boolean(default=True)
    ttl_days = Integer(default=30, min_value=1)
    expires_at = DateTime()
    deactivated_at = DateTime()
    deactivation_reason = String(choices=DeactivationReason)
    revision = Integer(default=0)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def discount_cannot_exceed_subtotal(self):
        if (self.discount or 0) > (self.subtotal or 0):
            raise ValidationError({"discount": ["Discount cannot exceed the cart subtotal"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, owner, currency="INR", tax_rate=0.10, ttl_days=30):
        now = utcnow()
        return cls(
            owner_kind=owner.kind,
            owner_id=owner.id,
            currency=currency,
            tax_rate=tax_rate,
            ttl_days=ttl_days,
            shipping=ShippingSelection(),
            is_active=True,
            expires_at=now + timedelta(days=ttl_days),
            created_at=now,
            updated_at=now,
        )

    @property
    def owner(self):
        return owner_of(self)

    def belongs_to(self, owner) -> bool:
        return is_owned_by(self, owner)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def product_count(self) -> int:
        return len(self.items)

    @property
    def shipping_cost(self) -> float:
        return self.shipping.cost if self.shipping else 0.0

    def find_item(self, product_id):
        return next((i for i in self.items if str(i.product_id) == str(product_id)), None)

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product, quantity):
        """Add ``quantity`` of ``product``, merging into an existing line.

        Stock is checked against the merged quantity, not just the increment.
        """
        self._ensure_active()
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        existing = self.find_item(product.id)
        line_quantity = quantity + (existing.quantity if existing else 0)
        product.ensure_purchasable(line_quantity)

        now = utcnow()
        if existing:
            existing.quantity = line_quantity
            self._snapshot(existing, product, now)
        else:
            item = CartItem(product_id=str(product.id), quantity=line_quantity, unit_price=product.price, added_at=now)
            self._snapshot(item, product, now)
            self.add_items(item)

        self._touch(now)
        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                product_id=str(product.id),
                quantity=quantity,
                line_quantity=line_quantity,
                unit_price=product.effective_price(now),
            )
        )

    def update_item_quantity(self, product_id, quantity, product=None):
        """Set a line's quantity. Zero or less removes the line."""
        self._ensure_active()
        item = self.find_item(product_id)
        if item is None:
            raise ItemNotInCart(product_id)

        if quantity <= 0:
            self.remove_item(product_id)
            return

        if product is None:
            raise ValidationError({"product_id": ["Current product record is required to change quantity"]})
        product.ensure_purchasable(quantity)

        previous = item.quantity
        now = utcnow()
        item.quantity = quantity
        self._snapshot(item, product, now)
        self._touch(now)

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                product_id=str(product_id),
                previous_quantity=previous,
                new_quantity=quantity,
            )
        )

    def remove_item(self, product_id):
        self._ensure_active()
        item = self.find_item(product_id)
        if item is None:
            raise ItemNotInCart(product_id)

        self.remove_items(item)
        self._touch(utcnow())

        self.raise_(CartItemRemoved(cart_id=str(self.id), product_id=str(product_id)))

    def clear(self):
        self._ensure_active()
        removed = len(self.items)
        for item in list(self.items):
            self.remove_items(item)
        for coupon in list(self.coupons):
            self.remove_coupons(coupon)
        self._touch(utcnow())

        self.raise_(CartCleared(cart_id=str(self.id), items_removed=removed))

    # -------------------------------------------------------------------
    # Coupons and shipping
    # -------------------------------------------------------------------
    def apply_coupon(self, code, discount, coupon_type):
        """Apply a coupon. Re-applying a code replaces its earlier entry."""
        self._ensure_active()
        if not self.items:
            raise StateConflict("Cannot apply a coupon to an empty cart", field="coupon")

        code = (code or "").strip().upper()
        if not code:
            raise ValidationError({"code": ["Coupon code is required"]})
        if discount < 0:
            raise ValidationError({"discount": ["Discount cannot be negative"]})
        if coupon_type == CouponType.PERCENTAGE.value and discount > 100:
            raise ValidationError({"discount": ["Percentage discount cannot exceed 100"]})

        now = utcnow()
        for existing in [c for c in self.coupons if c.code == code]:
            self.remove_coupons(existing)
        self.add_coupons(AppliedCoupon(code=code, discount=discount, coupon_type=coupon_type, applied_at=now))
        self._touch(now)

        self.raise_(
            CartCouponApplied(
                cart_id=str(self.id),
                code=code,
                coupon_type=coupon_type,
                discount=discount,
            )
        )

    def remove_coupon(self, code):
        self._ensure_active()
        code = (code or "").strip().upper()
        matching = [c for c in self.coupons if c.code == code]
        for coupon in matching:
            self.remove_coupons(coupon)
        self._touch(utcnow())

        if matching:
            self.raise_(CartCouponRemoved(cart_id=str(self.id), code=code))

    def select_shipping(self, method, cost=0.0):
        self._ensure_active()
        if cost is None or cost < 0:
            raise ValidationError({"cost": ["Shipping cost cannot be negative"]})

        self.shipping = ShippingSelection(method=method, cost=cost)
        self._touch(utcnow())

        self.raise_(CartShippingSelected(cart_id=str(self.id), method=method, cost=cost))

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def is_expired(self, moment: datetime | None = None) -> bool:
        return self.expires_at is not None and as_utc(self.expires_at) <= as_utc(moment or utcnow())

    def deactivate(self, reason, order_id=None):
        if not self.is_active:
            return
        now = utcnow()
        self.is_active = False
        self.deactivated_at = now
        self.deactivation_reason = reason
        self.updated_at = now

        self.raise_(
            CartDeactivated(
                cart_id=str(self.id),
                reason=reason,
                order_id=str(order_id) if order_id else None,
                deactivated_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    def _ensure_active(self):
        if not self.is_active:
            raise StateConflict("Cart is no longer active", field="cart")

    def _snapshot(self, item, product, now):
        item.unit_price = product.price
        item.discounted_price = product.discounted_price_at(now)
        item.name = product.name
        item.image = product.image
        item.category = product.category
        item.product_type = product.product_type

    def _touch(self, now):
        self.updated_at = now
        self.expires_at = now + timedelta(days=self.ttl_days or 30)
        self.recalculate()

    def recalculate(self):
        totals = compute_totals(
            lines=[(item.effective_price, item.quantity) for item in self.items],
            coupons=[(coupon.coupon_type, coupon.discount) for coupon in self.coupons],
            tax_rate=self.tax_rate,
            shipping_cost=self.shipping_cost,
        )
        with atomic_change(self):
            self.subtotal = totals.subtotal
            self.discount = totals.discount
            self.tax = totals.tax
            self.total = totals.total
        return totals
