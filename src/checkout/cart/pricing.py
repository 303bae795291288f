"""Cart totals.

    subtotal = sum(effective unit price * quantity)
    discount = sum(coupon effects on subtotal), capped at subtotal
    tax      = (subtotal - discount) * tax rate
    total    = subtotal - discount + tax + shipping cost

Every figure is rounded to two decimals. The same function prices carts and
single-item checkouts, so both produce identical totals for identical input.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from checkout.shared.money import round_money

PERCENTAGE = "percentage"
FIXED = "fixed"


@dataclass(frozen=True)
class CartTotals:
    subtotal: float
    discount: float
    tax: float
    shipping_cost: float
    total: float


def coupon_effect(subtotal: float, coupon_type: str, value: float) -> float:
    if coupon_type == PERCENTAGE:
        return subtotal * value / 100
    return value


def compute_totals(
    lines: Iterable[tuple[float, int]],
    coupons: Iterable[tuple[str, float]] = (),
    tax_rate: float = 0.10,
    shipping_cost: float = 0.0,
) -> CartTotals:
    """Price ``lines`` of ``(effective unit price, quantity)``.

    ``coupons`` are ``(coupon type, value)`` pairs.
    """
    subtotal = round_money(sum(price * quantity for price, quantity in lines))
    discount = round_money(min(subtotal, sum(coupon_effect(subtotal, kind, value) for kind, value in coupons)))
    tax = round_money((subtotal - discount) * tax_rate)
    shipping_cost = round_money(shipping_cost or 0.0)
    total = round_money(subtotal - discount + tax + shipping_cost)
    return CartTotals(
        subtotal=subtotal,
        discount=discount,
        tax=tax,
        shipping_cost=shipping_cost,
        total=total,
    )
