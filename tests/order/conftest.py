import pytest
from checkout.order.order import CustomerInfo, Order, OrderItem, OrderPricing, PostalAddress
from checkout.shared.owner import Owner


def _address(**overrides):
    values = {
        "full_name": "Asha Rao",
        "email": "asha@example.com",
        "phone": "9800000000",
        "street": "12 MG Road",
        "city": "Bengaluru",
        "state": "Karnataka",
        "postal_code": "560001",
        "country": "India",
    }
    values.update(overrides)
    return PostalAddress(**values)


@pytest.fixture()
def make_order():
    """Build an unsaved pending order with one line per ``(product_id, qty, price)``."""

    def _make(lines=(("prod-001", 2, 100.0),), total=None, owner=None, **overrides):
        items = [
            OrderItem(product_id=pid, quantity=qty, unit_price=price, total_price=qty * price, name=f"Item {pid}")
            for pid, qty, price in lines
        ]
        subtotal = sum(i.total_price for i in items)
        pricing = OrderPricing(
            subtotal=subtotal,
            tax=round(subtotal * 0.1, 2),
            total=total if total is not None else round(subtotal * 1.1, 2),
        )
        defaults = {
            "customer": CustomerInfo(name="Asha Rao", email="asha@example.com"),
            "billing_address": _address(),
            "shipping_address": _address(),
            "gateway_order_id": "order_gw_001",
        }
        defaults.update(overrides)
        return Order.place(owner or Owner.user("user-001"), items=items, pricing=pricing, **defaults)

    return _make
