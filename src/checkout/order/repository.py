"""Repository for the Order aggregate.

Filters on nested values (payment status, customer, line items, creation
window) are applied to the loaded orders rather than pushed to the provider.
"""

from datetime import datetime

from checkout.domain import checkout
from checkout.order.order import Order
from checkout.shared.clock import as_utc


def _newest_first(orders) -> list[Order]:
    return sorted(orders, key=lambda o: as_utc(o.created_at), reverse=True)


def _within(order: Order, start: datetime | None, end: datetime | None) -> bool:
    created = as_utc(order.created_at)
    if start is not None and created < as_utc(start):
        return False
    if end is not None and created > as_utc(end):
        return False
    return True


def _matches(order: Order, term: str) -> bool:
    term = term.lower()
    candidates = [order.order_number]
    if order.customer:
        candidates += [order.customer.name, order.customer.email]
    return any(term in (value or "").lower() for value in candidates)


@checkout.repository(part_of=Order)
class OrderRepository:
    def find_for_owner(self, owner, status: str | None = None, start=None, end=None) -> list[Order]:
        """Orders of ``owner``, newest first."""
        criteria = {"owner_kind": owner.kind, "owner_id": owner.id}
        if status:
            criteria["status"] = status
        orders = self._dao.query.filter(**criteria).all().items
        return _newest_first(o for o in orders if _within(o, start, end))

    def search(
        self,
        status: str | None = None,
        payment_status: str | None = None,
        term: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        product_id=None,
    ) -> list[Order]:
        """Orders across all owners, newest first. ``"all"`` disables a status filter."""
        if status and status != "all":
            orders = self._dao.query.filter(status=status).all().items
        else:
            orders = self._dao.query.all().items

        if payment_status and payment_status != "all":
            orders = [o for o in orders if o.payment_info and o.payment_info.status == payment_status]
        if term and term.strip():
            orders = [o for o in orders if _matches(o, term.strip())]
        if product_id is not None:
            orders = [o for o in orders if any(str(i.product_id) == str(product_id) for i in o.items)]
        return _newest_first(o for o in orders if _within(o, start, end))
