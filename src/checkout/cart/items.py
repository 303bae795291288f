"""Cart item management: commands and handler.

Adding to cart creates the owner's cart on first use. Every handler reads the
current product record, so availability and stock are judged on live data.
Refreshing a cart drops lines whose product has since been withdrawn, sold
out or deleted.
"""

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from checkout.cart.cart import ShoppingCart
from checkout.cart.lookup import find_active_cart, get_active_cart, get_or_create_active_cart
from checkout.domain import checkout
from checkout.exceptions import ProductNotFound
from checkout.inventory.ledger import InventoryLedger
from checkout.shared.owner import Owner, OwnerKind
from checkout.shared.revision import save_revisioned

logger = structlog.get_logger(__name__)


@checkout.command(part_of="ShoppingCart")
class AddToCart:
    owner_kind = String(required=True, choices=OwnerKind)
    owner_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(default=1, min_value=1)


@checkout.command(part_of="ShoppingCart")
class UpdateCartQuantity:
    owner_kind = String(required=True, choices=OwnerKind)
    owner_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)


@checkout.command(part_of="ShoppingCart")
class RemoveFromCart:
    owner_kind = String(required=True, choices=OwnerKind)
    owner_id = Identifier(required=True)
    product_id = Identifier(required=True)


@checkout.command(part_of="ShoppingCart")
class ClearCart:
    owner_kind = String(required=True, choices=OwnerKind)
    owner_id = Identifier(required=True)


@checkout.command(part_of="ShoppingCart")
class RefreshCart:
    owner_kind = String(required=True, choices=OwnerKind)
    owner_id = Identifier(required=True)


def _owner(command) -> Owner:
    return Owner(kind=command.owner_kind, id=str(command.owner_id))


def _still_available(ledger: InventoryLedger, product_id) -> bool:
    try:
        return ledger.get(product_id).is_available
    except ProductNotFound:
        return False


@checkout.command_handler(part_of=ShoppingCart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        product = InventoryLedger().get(command.product_id)
        cart = get_or_create_active_cart(_owner(command))
        cart.add_item(product, command.quantity)
        save_revisioned(current_domain.repository_for(ShoppingCart), cart)
        return str(cart.id)

    @handle(UpdateCartQuantity)
    def update_cart_quantity(self, command):
        cart = get_active_cart(_owner(command))
        product = InventoryLedger().get(command.product_id) if command.quantity > 0 else None
        cart.update_item_quantity(command.product_id, command.quantity, product=product)
        save_revisioned(current_domain.repository_for(ShoppingCart), cart)
        return str(cart.id)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        cart = get_active_cart(_owner(command))
        cart.remove_item(command.product_id)
        save_revisioned(current_domain.repository_for(ShoppingCart), cart)
        return str(cart.id)

    @handle(ClearCart)
    def clear_cart(self, command):
        cart = get_active_cart(_owner(command))
        cart.clear()
        save_revisioned(current_domain.repository_for(ShoppingCart), cart)
        return str(cart.id)

    @handle(RefreshCart)
    def refresh_cart(self, command):
        """Drop unavailable lines; returns None when the owner has no cart."""
        cart = find_active_cart(_owner(command))
        if cart is None:
            return None

        ledger = InventoryLedger()
        gone = [str(item.product_id) for item in cart.items if not _still_available(ledger, item.product_id)]
        if gone:
            for product_id in gone:
                cart.remove_item(product_id)
            save_revisioned(current_domain.repository_for(ShoppingCart), cart)
            logger.info("Unavailable items dropped from cart", cart_id=str(cart.id), product_ids=gone)
        return str(cart.id)
