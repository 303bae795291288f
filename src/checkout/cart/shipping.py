"""Cart shipping selection: command and handler."""

from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from checkout.cart.cart import ShippingMethod, ShoppingCart
from checkout.cart.lookup import get_active_cart
from checkout.domain import checkout
from checkout.shared.owner import Owner, OwnerKind
from checkout.shared.revision import save_revisioned


@checkout.command(part_of="ShoppingCart")
class UpdateCartShipping:
    owner_kind = String(required=True, choices=OwnerKind)
    owner_id = Identifier(required=True)
    method = String(required=True, choices=ShippingMethod)
    cost = Float(default=0.0, min_value=0.0)


@checkout.command_handler(part_of=ShoppingCart)
class CartShippingHandler:
    @handle(UpdateCartShipping)
    def select_shipping(self, command):
        cart = get_active_cart(Owner(kind=command.owner_kind, id=str(command.owner_id)))
        cart.select_shipping(command.method, command.cost)
        save_revisioned(current_domain.repository_for(ShoppingCart), cart)
        return str(cart.id)
