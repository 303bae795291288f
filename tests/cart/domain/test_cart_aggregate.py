"""Domain tests for the ShoppingCart aggregate."""

from datetime import timedelta

import pytest
from checkout.cart.cart import CouponType, DeactivationReason, ShippingMethod, ShoppingCart
from checkout.cart.events import (
    CartCleared,
    CartCouponApplied,
    CartCouponRemoved,
    CartDeactivated,
    CartItemAdded,
    CartItemRemoved,
    CartQuantityUpdated,
)
from checkout.exceptions import InsufficientStock, ItemNotInCart, ProductUnavailable, StateConflict
from checkout.inventory.product import Product, ProductDiscount, ProductStatus
from checkout.shared.clock import utcnow
from checkout.shared.owner import Owner
from protean.exceptions import ValidationError


@pytest.fixture()
def cart():
    return ShoppingCart.create(Owner.user("user-001"))


@pytest.fixture()
def notebook():
    return Product.register(name="Notebook", price=100.0, stock=10, image="nb.png", category="stationery")


class TestCartCreation:
    def test_new_cart_is_active_and_empty(self, cart):
        assert cart.is_active
        assert cart.item_count == 0
        assert cart.total == 0.0
        assert cart.shipping.method == ShippingMethod.STANDARD.value

    def test_new_cart_expires_after_ttl(self):
        cart = ShoppingCart.create(Owner.user("user-001"), ttl_days=7)
        remaining = cart.expires_at - cart.created_at
        assert remaining == timedelta(days=7)

    def test_owner_round_trip(self, cart):
        assert cart.owner == Owner.user("user-001")
        assert cart.belongs_to(Owner.user("user-001"))
        assert not cart.belongs_to(Owner.employer("user-001"))


class TestAddItem:
    def test_add_item_snapshots_product(self, cart, notebook):
        cart.add_item(notebook, 2)

        item = cart.items[0]
        assert item.quantity == 2
        assert item.unit_price == 100.0
        assert item.discounted_price is None
        assert item.name == "Notebook"
        assert item.image == "nb.png"
        assert item.category == "stationery"
        assert isinstance(cart._events[-1], CartItemAdded)

    def test_add_same_product_merges_lines(self, cart, notebook):
        cart.add_item(notebook, 2)
        cart.add_item(notebook, 3)

        assert len(cart.items) == 1
        assert cart.items[0].quantity == 5
        assert cart._events[-1].line_quantity == 5

    def test_merged_quantity_checked_against_stock(self, cart):
        product = Product.register(name="Pen", price=10.0, stock=4)
        cart.add_item(product, 3)
        with pytest.raises(InsufficientStock):
            cart.add_item(product, 2)
        assert cart.items[0].quantity == 3

    def test_unavailable_product_rejected(self, cart, notebook):
        notebook.status = ProductStatus.INACTIVE.value
        with pytest.raises(ProductUnavailable):
            cart.add_item(notebook, 1)

    def test_quantity_below_one_rejected(self, cart, notebook):
        with pytest.raises(ValidationError):
            cart.add_item(notebook, 0)

    def test_discounted_price_is_captured(self, cart):
        product = Product.register(
            name="Lamp",
            price=200.0,
            stock=5,
            discount=ProductDiscount(kind="percentage", value=10),
        )
        cart.add_item(product, 1)
        assert cart.items[0].discounted_price == 180.0
        assert cart.subtotal == 180.0


class TestQuantityAndRemoval:
    def test_update_quantity(self, cart, notebook):
        cart.add_item(notebook, 2)
        cart.update_item_quantity(notebook.id, 4, product=notebook)

        assert cart.items[0].quantity == 4
        event = cart._events[-1]
        assert isinstance(event, CartQuantityUpdated)
        assert event.previous_quantity == 2

    def test_update_to_zero_removes_line(self, cart, notebook):
        cart.add_item(notebook, 2)
        cart.update_item_quantity(notebook.id, 0)
        assert len(cart.items) == 0
        assert isinstance(cart._events[-1], CartItemRemoved)

    def test_update_beyond_stock_rejected(self, cart, notebook):
        cart.add_item(notebook, 2)
        with pytest.raises(InsufficientStock):
            cart.update_item_quantity(notebook.id, 11, product=notebook)

    def test_update_missing_line(self, cart, notebook):
        with pytest.raises(ItemNotInCart):
            cart.update_item_quantity(notebook.id, 1, product=notebook)

    def test_remove_missing_line(self, cart):
        with pytest.raises(ItemNotInCart):
            cart.remove_item("missing")

    def test_clear_removes_items_and_coupons(self, cart, notebook):
        cart.add_item(notebook, 2)
        cart.apply_coupon("SAVE10", 10, CouponType.PERCENTAGE.value)
        cart.clear()

        assert len(cart.items) == 0
        assert len(cart.coupons) == 0
        assert cart.total == 0.0
        assert isinstance(cart._events[-1], CartCleared)


class TestTotals:
    def test_totals_with_default_tax(self, cart, notebook):
        cart.add_item(notebook, 2)
        assert cart.subtotal == 200.0
        assert cart.discount == 0.0
        assert cart.tax == 20.0
        assert cart.total == 220.0

    def test_percentage_and_fixed_coupons(self, cart, notebook):
        cart.add_item(notebook, 2)
        cart.apply_coupon("TENOFF", 10, CouponType.PERCENTAGE.value)
        cart.apply_coupon("FLAT20", 20, CouponType.FIXED.value)

        assert cart.discount == 40.0
        assert cart.tax == 16.0
        assert cart.total == 176.0

    def test_shipping_cost_added_after_tax(self, cart, notebook):
        cart.add_item(notebook, 1)
        cart.select_shipping(ShippingMethod.EXPRESS.value, 50.0)

        assert cart.tax == 10.0
        assert cart.total == 160.0
        assert cart.shipping.method == "express"

    def test_discount_capped_at_subtotal(self, cart, notebook):
        cart.add_item(notebook, 1)
        cart.apply_coupon("HUGE", 500, CouponType.FIXED.value)
        assert cart.discount == 100.0
        assert cart.tax == 0.0
        assert cart.total == 0.0


class TestCoupons:
    def test_reapplying_code_replaces_entry(self, cart, notebook):
        cart.add_item(notebook, 2)
        cart.apply_coupon("save10", 10, CouponType.PERCENTAGE.value)
        cart.apply_coupon("SAVE10", 10, CouponType.PERCENTAGE.value)

        assert len(cart.coupons) == 1
        assert cart.coupons[0].code == "SAVE10"
        assert cart.discount == 20.0
        assert isinstance(cart._events[-1], CartCouponApplied)

    def test_coupon_on_empty_cart_rejected(self, cart):
        with pytest.raises(StateConflict):
            cart.apply_coupon("SAVE10", 10, CouponType.PERCENTAGE.value)

    def test_percentage_over_hundred_rejected(self, cart, notebook):
        cart.add_item(notebook, 1)
        with pytest.raises(ValidationError):
            cart.apply_coupon("TOOMUCH", 150, CouponType.PERCENTAGE.value)

    def test_remove_coupon(self, cart, notebook):
        cart.add_item(notebook, 2)
        cart.apply_coupon("FLAT20", 20, CouponType.FIXED.value)
        cart.remove_coupon("flat20")

        assert len(cart.coupons) == 0
        assert cart.discount == 0.0
        assert isinstance(cart._events[-1], CartCouponRemoved)

    def test_remove_unknown_coupon_is_quiet(self, cart, notebook):
        cart.add_item(notebook, 1)
        events_before = len(cart._events)
        cart.remove_coupon("NOPE")
        assert len(cart._events) == events_before


class TestLifecycle:
    def test_negative_shipping_cost_rejected(self, cart):
        with pytest.raises(ValidationError):
            cart.select_shipping(ShippingMethod.STANDARD.value, -1)

    def test_deactivate(self, cart):
        cart.deactivate(DeactivationReason.CHECKED_OUT.value, order_id="ord-001")

        assert not cart.is_active
        assert cart.deactivation_reason == "checked_out"
        event = cart._events[-1]
        assert isinstance(event, CartDeactivated)
        assert event.order_id == "ord-001"

    def test_deactivate_twice_is_noop(self, cart):
        cart.deactivate(DeactivationReason.EXPIRED.value)
        events_before = len(cart._events)
        cart.deactivate(DeactivationReason.CHECKED_OUT.value)

        assert cart.deactivation_reason == "expired"
        assert len(cart._events) == events_before

    def test_inactive_cart_refuses_changes(self, cart, notebook):
        cart.deactivate(DeactivationReason.EXPIRED.value)
        with pytest.raises(StateConflict):
            cart.add_item(notebook, 1)

    def test_expiry(self, cart):
        assert not cart.is_expired()
        assert cart.is_expired(utcnow() + timedelta(days=31))

    def test_changes_extend_expiry(self, cart, notebook):
        cart.expires_at = utcnow() + timedelta(days=1)
        cart.add_item(notebook, 1)
        assert cart.expires_at > utcnow() + timedelta(days=29)
