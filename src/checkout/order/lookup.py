"""Loading orders on behalf of an owner."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from checkout.exceptions import OrderNotFound
from checkout.order.order import Order


def load_order(order_id, owner=None, gateway_order_id=None) -> Order:
    """Load an order, scoped to ``owner`` and ``gateway_order_id`` when given.

    An order that exists but belongs to someone else is reported exactly like
    a missing one.
    """
    try:
        order = current_domain.repository_for(Order).get(str(order_id))
    except ObjectNotFoundError as exc:
        raise OrderNotFound(order_id) from exc

    if owner is not None and not order.belongs_to(owner):
        raise OrderNotFound(order_id)
    if gateway_order_id is not None and (order.payment_info is None or order.payment_info.gateway_order_id != gateway_order_id):
        raise OrderNotFound(order_id)
    return order
