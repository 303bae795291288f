"""Cart coupons: commands and handler.

Coupon codes are validated upstream; the cart records the code, its value and
its type, and folds it into the totals.
"""

from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from checkout.cart.cart import CouponType, ShoppingCart
from checkout.cart.lookup import get_active_cart
from checkout.domain import checkout
from checkout.shared.owner import Owner, OwnerKind
from checkout.shared.revision import save_revisioned


@checkout.command(part_of="ShoppingCart")
class ApplyCoupon:
    owner_kind = String(required=True, choices=OwnerKind)
    owner_id = Identifier(required=True)
    code = String(required=True, max_length=50)
    discount = Float(required=True, min_value=0.0)
    coupon_type = String(required=True, choices=CouponType)


@checkout.command(part_of="ShoppingCart")
class RemoveCoupon:
    owner_kind = String(required=True, choices=OwnerKind)
    owner_id = Identifier(required=True)
    code = String(required=True, max_length=50)


@checkout.command_handler(part_of=ShoppingCart)
class CartCouponsHandler:
    @handle(ApplyCoupon)
    def apply_coupon(self, command):
        cart = get_active_cart(Owner(kind=command.owner_kind, id=str(command.owner_id)))
        cart.apply_coupon(command.code, command.discount, command.coupon_type)
        save_revisioned(current_domain.repository_for(ShoppingCart), cart)
        return str(cart.id)

    @handle(RemoveCoupon)
    def remove_coupon(self, command):
        cart = get_active_cart(Owner(kind=command.owner_kind, id=str(command.owner_id)))
        cart.remove_coupon(command.code)
        save_revisioned(current_domain.repository_for(ShoppingCart), cart)
        return str(cart.id)
