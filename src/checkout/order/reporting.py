"""Order statistics for buyers and for the admin product view.

Computed on demand from the orders a query returns.
"""

from dataclasses import asdict, dataclass

from checkout.order.order import Order, OrderStatus
from checkout.shared.money import round_money

_OPEN_STATUSES = {OrderStatus.PENDING.value, OrderStatus.CONFIRMED.value, OrderStatus.PROCESSING.value}


@dataclass(frozen=True)
class OrderStats:
    total_orders: int = 0
    total_spent: float = 0.0
    average_order_value: float = 0.0
    completed_orders: int = 0
    pending_orders: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ProductSalesStats:
    total_quantity_sold: int = 0
    total_revenue: float = 0.0
    total_orders: int = 0
    average_order_value: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


def order_stats(orders: list[Order]) -> OrderStats:
    if not orders:
        return OrderStats()

    spent = sum(o.pricing.total for o in orders)
    return OrderStats(
        total_orders=len(orders),
        total_spent=round_money(spent),
        average_order_value=round_money(spent / len(orders)),
        completed_orders=sum(1 for o in orders if o.status == OrderStatus.DELIVERED.value),
        pending_orders=sum(1 for o in orders if o.status in _OPEN_STATUSES),
    )


def product_sales_stats(orders: list[Order], product_id) -> ProductSalesStats:
    lines = [(o, i) for o in orders for i in o.items if str(i.product_id) == str(product_id)]
    if not lines:
        return ProductSalesStats()

    return ProductSalesStats(
        total_quantity_sold=sum(i.quantity for _, i in lines),
        total_revenue=round_money(sum(i.total_price for _, i in lines)),
        total_orders=len(lines),
        average_order_value=round_money(sum(o.pricing.total for o, _ in lines) / len(lines)),
    )
