"""Shared BDD fixtures and step definitions for the cart."""

import pytest
from checkout.cart.cart import ShoppingCart
from checkout.cart.items import AddToCart
from checkout.inventory.catalogue import RegisterProduct
from checkout.shared.owner import Owner
from protean import current_domain
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then, when


@pytest.fixture()
def buyer():
    return Owner.user("buyer-001")


@pytest.fixture()
def products():
    """Product ids registered by the scenario, keyed by name."""
    return {}


@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


@pytest.fixture()
def cart_ref():
    return {"id": None}


def _add(buyer, products, cart_ref, quantity, name):
    command = AddToCart(
        owner_kind=buyer.kind,
        owner_id=buyer.id,
        product_id=products[name],
        quantity=quantity,
    )
    cart_ref["id"] = current_domain.process(command, asynchronous=False)


def current_cart(cart_ref) -> ShoppingCart:
    return current_domain.repository_for(ShoppingCart).get(cart_ref["id"])


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a product "{name}" priced {price:f} with {stock:d} in stock'))
def registered_product(products, name, price, stock):
    products[name] = current_domain.process(
        RegisterProduct(name=name, price=price, stock=stock),
        asynchronous=False,
    )


@given(parsers.cfparse('{quantity:d} units of "{name}" are in the cart'))
def items_in_cart(buyer, products, cart_ref, quantity, name):
    _add(buyer, products, cart_ref, quantity, name)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('{quantity:d} units of "{name}" are added to the cart'))
def add_items(buyer, products, cart_ref, error, quantity, name):
    try:
        _add(buyer, products, cart_ref, quantity, name)
    except ValidationError as exc:
        error["exc"] = exc


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the cart subtotal is {amount:f}"))
def cart_subtotal(cart_ref, amount):
    assert current_cart(cart_ref).subtotal == pytest.approx(amount)


@then(parsers.cfparse("the cart discount is {amount:f}"))
def cart_discount(cart_ref, amount):
    assert current_cart(cart_ref).discount == pytest.approx(amount)


@then(parsers.cfparse("the cart tax is {amount:f}"))
def cart_tax(cart_ref, amount):
    assert current_cart(cart_ref).tax == pytest.approx(amount)


@then(parsers.cfparse("the cart total is {amount:f}"))
def cart_total(cart_ref, amount):
    assert current_cart(cart_ref).total == pytest.approx(amount)


@then(parsers.cfparse('the request fails with "{message}"'))
def request_failed(error, message):
    assert error["exc"] is not None
    flattened = [m for msgs in error["exc"].messages.values() for m in msgs]
    assert message in flattened


@then(parsers.cfparse("the cart has {count:d} coupon"))
def coupon_count(cart_ref, count):
    assert len(current_cart(cart_ref).coupons) == count


@then(parsers.cfparse('the cart holds {quantity:d} units of "{name}"'))
def cart_holds(cart_ref, products, quantity, name):
    item = current_cart(cart_ref).find_item(products[name])
    assert item.quantity == quantity
