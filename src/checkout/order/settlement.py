"""Settling a committed order against stock and its source cart, and undoing
the stock side when a settled order is cancelled.

Both steps are resumable: each line is marked on the order as soon as its
sale is recorded, and the order is saved after every line, so a retry picks
up with the first line not yet handled.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from checkout.cart.cart import DeactivationReason, ShoppingCart
from checkout.exceptions import InsufficientStock, ProductNotFound
from checkout.inventory.ledger import InventoryLedger
from checkout.order.order import Order, OrderStatus
from checkout.shared.revision import save_revisioned

logger = structlog.get_logger(__name__)


def settle_stock(order: Order, ledger: InventoryLedger | None = None) -> None:
    """Record every line's sale, noting lines whose stock no longer covers them."""
    if order.stock_settled:
        return

    orders = current_domain.repository_for(Order)
    if order.status == OrderStatus.CANCELLED.value:
        # Nothing more is taken; lines settled before the cancellation go back
        logger.warning(
            "Payment received for cancelled order",
            order_id=str(order.id),
            settled_lines=len(order.settled_product_ids),
        )
        order.mark_stock_settled()
        save_revisioned(orders, order)
        restore_stock(order, ledger)
        return

    ledger = ledger or InventoryLedger()
    reference = f"order:{order.order_number}"
    for line in order.unsettled_lines():
        try:
            ledger.decrement(line.product_id, line.quantity, reference=reference)
        except InsufficientStock as exc:
            order.mark_line_short(line.product_id, line.quantity, exc.available, name=line.name)
            logger.warning(
                "Stock shortfall at settlement",
                order_id=str(order.id),
                product_id=str(line.product_id),
                requested=line.quantity,
                available=exc.available,
            )
        except ProductNotFound:
            order.mark_line_short(line.product_id, line.quantity, 0, name=line.name)
            logger.warning("Product missing at settlement", order_id=str(order.id), product_id=str(line.product_id))
        else:
            order.mark_line_settled(line.product_id)
        save_revisioned(orders, order)

    order.mark_stock_settled()
    save_revisioned(orders, order)


def release_cart(order: Order) -> None:
    """Deactivate the cart the order was built from."""
    if order.cart_released:
        return

    if order.source_cart_id:
        carts = current_domain.repository_for(ShoppingCart)
        try:
            cart = carts.get(str(order.source_cart_id))
        except ObjectNotFoundError:
            cart = None
            logger.warning("Source cart not found", order_id=str(order.id), cart_id=str(order.source_cart_id))
        if cart is not None and cart.is_active:
            cart.deactivate(DeactivationReason.CHECKED_OUT.value, order_id=order.id)
            save_revisioned(carts, cart)
            logger.info("Cart released", cart_id=str(cart.id), order_id=str(order.id))

    order.mark_cart_released()
    save_revisioned(current_domain.repository_for(Order), order)


def restore_stock(order: Order, ledger: InventoryLedger | None = None) -> None:
    """Give back the stock a settled payment took, unless already given back.

    Settlement interrupted part-way still took stock for its marked lines,
    so those are returned too.
    """
    if order.stock_restored or not (order.stock_settled or order.settled_product_ids):
        return

    ledger = ledger or InventoryLedger()
    reference = f"order:{order.order_number}:cancelled"
    for line in order.settled_lines():
        try:
            ledger.increment(line.product_id, line.quantity, reverse_sale=True, reference=reference)
        except ProductNotFound:
            logger.warning(
                "Product missing while restoring stock",
                order_id=str(order.id),
                product_id=str(line.product_id),
                quantity=line.quantity,
            )
    order.mark_stock_restored()
    save_revisioned(current_domain.repository_for(Order), order)
