"""Application tests for cart commands processed through the domain."""

from datetime import timedelta

import pytest
from checkout.cart.cart import ShoppingCart
from checkout.cart.coupons import ApplyCoupon, RemoveCoupon
from checkout.cart.expiry import ReclaimExpiredCarts
from checkout.cart.items import AddToCart, ClearCart, RefreshCart, RemoveFromCart, UpdateCartQuantity
from checkout.cart.lookup import find_active_cart, get_active_cart
from checkout.cart.shipping import UpdateCartShipping
from checkout.exceptions import CartNotFound, InsufficientStock, ItemNotInCart, ProductNotFound
from checkout.inventory.ledger import InventoryLedger
from checkout.inventory.product import Product
from checkout.shared.clock import utcnow
from checkout.shared.owner import Owner
from protean import current_domain


def _add(owner, product_id, quantity=1):
    command = AddToCart(owner_kind=owner.kind, owner_id=owner.id, product_id=str(product_id), quantity=quantity)
    return current_domain.process(command, asynchronous=False)


def _cart(cart_id):
    return current_domain.repository_for(ShoppingCart).get(cart_id)


class TestAddToCart:
    def test_first_add_creates_cart(self, owner, make_product):
        product = make_product(price=100.0, stock=10)
        cart_id = _add(owner, product.id, 2)

        cart = _cart(cart_id)
        assert cart.owner_kind == "user"
        assert cart.owner_id == "user-001"
        assert cart.item_count == 2
        assert cart.total == 220.0
        assert cart.revision == 1

    def test_subsequent_adds_reuse_active_cart(self, owner, make_product):
        pen = make_product(name="Pen", price=10.0)
        ink = make_product(name="Ink", price=25.0)

        first = _add(owner, pen.id)
        second = _add(owner, ink.id, 2)

        assert first == second
        assert _cart(first).subtotal == 60.0

    def test_owners_get_separate_carts(self, owner, make_product):
        product = make_product()
        mine = _add(owner, product.id)
        theirs = _add(Owner.employer("user-001"), product.id)
        assert mine != theirs

    def test_unknown_product(self, owner):
        with pytest.raises(ProductNotFound):
            _add(owner, "missing-product")

    def test_stock_is_not_touched(self, owner, make_product):
        from checkout.inventory.product import Product

        product = make_product(stock=5)
        _add(owner, product.id, 5)

        assert current_domain.repository_for(Product).get(product.id).stock == 5

    def test_adding_beyond_stock_rejected(self, owner, make_product):
        product = make_product(stock=3)
        _add(owner, product.id, 2)
        with pytest.raises(InsufficientStock):
            _add(owner, product.id, 2)


class TestUpdateAndRemove:
    def test_update_quantity(self, owner, make_product):
        product = make_product(price=50.0)
        cart_id = _add(owner, product.id)
        current_domain.process(
            UpdateCartQuantity(owner_kind=owner.kind, owner_id=owner.id, product_id=str(product.id), quantity=3),
            asynchronous=False,
        )
        assert _cart(cart_id).subtotal == 150.0

    def test_zero_quantity_removes(self, owner, make_product):
        product = make_product()
        cart_id = _add(owner, product.id)
        current_domain.process(
            UpdateCartQuantity(owner_kind=owner.kind, owner_id=owner.id, product_id=str(product.id), quantity=0),
            asynchronous=False,
        )
        assert len(_cart(cart_id).items) == 0

    def test_remove_item(self, owner, make_product):
        product = make_product()
        cart_id = _add(owner, product.id)
        current_domain.process(
            RemoveFromCart(owner_kind=owner.kind, owner_id=owner.id, product_id=str(product.id)),
            asynchronous=False,
        )
        assert len(_cart(cart_id).items) == 0

    def test_remove_item_not_in_cart(self, owner, make_product):
        product = make_product()
        _add(owner, product.id)
        with pytest.raises(ItemNotInCart):
            current_domain.process(
                RemoveFromCart(owner_kind=owner.kind, owner_id=owner.id, product_id="other"),
                asynchronous=False,
            )

    def test_clear_cart(self, owner, make_product):
        product = make_product()
        cart_id = _add(owner, product.id, 3)
        current_domain.process(ClearCart(owner_kind=owner.kind, owner_id=owner.id), asynchronous=False)

        cart = _cart(cart_id)
        assert cart.item_count == 0
        assert cart.total == 0.0
        assert cart.is_active

    def test_no_active_cart(self, owner):
        with pytest.raises(CartNotFound):
            current_domain.process(ClearCart(owner_kind=owner.kind, owner_id=owner.id), asynchronous=False)


class TestCouponsAndShipping:
    def test_apply_and_remove_coupon(self, owner, make_product):
        product = make_product(price=100.0)
        cart_id = _add(owner, product.id, 2)

        current_domain.process(
            ApplyCoupon(owner_kind=owner.kind, owner_id=owner.id, code="TENOFF", discount=10, coupon_type="percentage"),
            asynchronous=False,
        )
        current_domain.process(
            ApplyCoupon(owner_kind=owner.kind, owner_id=owner.id, code="FLAT20", discount=20, coupon_type="fixed"),
            asynchronous=False,
        )
        cart = _cart(cart_id)
        assert cart.discount == 40.0
        assert cart.total == 176.0

        current_domain.process(
            RemoveCoupon(owner_kind=owner.kind, owner_id=owner.id, code="TENOFF"),
            asynchronous=False,
        )
        cart = _cart(cart_id)
        assert [c.code for c in cart.coupons] == ["FLAT20"]
        assert cart.discount == 20.0

    def test_update_shipping(self, owner, make_product):
        product = make_product(price=100.0)
        cart_id = _add(owner, product.id)
        current_domain.process(
            UpdateCartShipping(owner_kind=owner.kind, owner_id=owner.id, method="express", cost=80.0),
            asynchronous=False,
        )
        cart = _cart(cart_id)
        assert cart.shipping.method == "express"
        assert cart.total == 190.0


class TestExpiry:
    def test_reclaim_expired_carts(self, owner, make_product):
        product = make_product()
        cart_id = _add(owner, product.id)

        reclaimed = current_domain.process(
            ReclaimExpiredCarts(as_of=utcnow() + timedelta(days=31)),
            asynchronous=False,
        )
        assert reclaimed == 1

        cart = _cart(cart_id)
        assert not cart.is_active
        assert cart.deactivation_reason == "expired"

    def test_reclaim_with_nothing_expired(self, owner, make_product):
        product = make_product()
        _add(owner, product.id)
        assert current_domain.process(ReclaimExpiredCarts(), asynchronous=False) == 0

    def test_expired_cart_is_never_handed_out(self, owner, make_product):
        product = make_product()
        cart_id = _add(owner, product.id)

        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(cart_id)
        cart.expires_at = utcnow() - timedelta(minutes=1)
        repo.add(cart)

        assert find_active_cart(owner) is None
        assert not repo.get(cart_id).is_active
        with pytest.raises(CartNotFound):
            get_active_cart(owner)

    def test_new_cart_after_expiry(self, owner, make_product):
        product = make_product()
        old_id = _add(owner, product.id)

        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(old_id)
        cart.expires_at = utcnow() - timedelta(minutes=1)
        repo.add(cart)

        new_id = _add(owner, product.id)
        assert new_id != old_id


def _refresh(owner):
    return current_domain.process(RefreshCart(owner_kind=owner.kind, owner_id=owner.id), asynchronous=False)


class TestRefreshCart:
    def test_no_cart(self, owner):
        assert _refresh(owner) is None

    def test_deleted_product_dropped(self, owner, make_product):
        pen = make_product(name="Pen", price=10.0)
        ink = make_product(name="Ink", price=25.0)
        _add(owner, pen.id)
        _add(owner, ink.id, 2)
        products = current_domain.repository_for(Product)
        products._dao.delete(products.get(ink.id))

        cart = _cart(_refresh(owner))

        assert [str(i.product_id) for i in cart.items] == [str(pen.id)]
        assert cart.subtotal == 10.0
        assert cart.total == 11.0

    def test_sold_out_product_dropped(self, owner, make_product):
        pen = make_product(name="Pen", price=10.0, stock=3)
        _add(owner, pen.id)
        InventoryLedger().decrement(pen.id, 3)

        cart = _cart(_refresh(owner))

        assert cart.items == []
        assert cart.total == 0.0

    def test_available_lines_left_alone(self, owner, make_product):
        pen = make_product(name="Pen", price=10.0)
        cart_id = _add(owner, pen.id)

        assert _refresh(owner) == cart_id
        assert _cart(cart_id).revision == 1
