"""Application tests for settling, releasing and restoring an order's stock."""

import pytest
from checkout.cart.cart import ShoppingCart
from checkout.inventory.ledger import InventoryLedger
from checkout.inventory.product import Product
from checkout.order.order import Order
from checkout.order.settlement import release_cart, restore_stock, settle_stock
from protean import current_domain


def _product(product):
    return current_domain.repository_for(Product).get(product.id)


def _order(order_id):
    return current_domain.repository_for(Order).get(str(order_id))


@pytest.fixture()
def placed(owner, fill_cart, services, shipping_address, make_product):
    """A pending gateway order for 2 notebooks and 1 pen."""
    notebook = make_product(name="Notebook", price=100.0, stock=10)
    pen = make_product(name="Pen", price=20.0, stock=5)
    fill_cart(owner, (notebook, 2), (pen, 1))
    result = services.orchestrator.checkout(owner, shipping_address=shipping_address)
    return _order(result.order_id), notebook, pen


class TestSettleStock:
    def test_settles_every_line(self, placed):
        order, notebook, pen = placed
        settle_stock(order)

        assert _product(notebook).stock == 8
        assert _product(notebook).sales == 2
        assert _product(pen).stock == 4

        stored = _order(order.id)
        assert stored.stock_settled
        assert sorted(stored.settled_product_ids) == sorted([str(notebook.id), str(pen.id)])
        assert stored.shortfall_lines == []

    def test_settling_twice_moves_stock_once(self, placed):
        order, notebook, _ = placed
        settle_stock(order)
        settle_stock(_order(order.id))

        assert _product(notebook).stock == 8

    def test_resumes_after_partial_settlement(self, placed):
        order, notebook, pen = placed
        # Simulate a crash after the notebook line was recorded
        InventoryLedger().decrement(notebook.id, 2)
        order.mark_line_settled(notebook.id)
        current_domain.repository_for(Order).add(order)

        settle_stock(_order(order.id))

        assert _product(notebook).stock == 8
        assert _product(pen).stock == 4
        assert _order(order.id).stock_settled

    def test_shortfall_is_recorded_not_forced(self, placed):
        order, notebook, pen = placed
        InventoryLedger().decrement(notebook.id, 9)

        settle_stock(order)

        assert _product(notebook).stock == 1
        assert _product(pen).stock == 4

        stored = _order(order.id)
        assert stored.stock_settled
        assert stored.settled_product_ids == [str(pen.id)]
        assert stored.shortfall_lines == [
            {"product_id": str(notebook.id), "name": "Notebook", "requested": 2, "available": 1}
        ]
        assert stored.timeline[-1].message == "Stock could not be settled for: Notebook"

    def test_missing_product_is_a_shortfall(self, placed):
        order, notebook, _ = placed
        current_domain.repository_for(Product)._dao.delete(_product(notebook))

        settle_stock(order)

        shortfall = _order(order.id).shortfall_lines
        assert shortfall[0]["product_id"] == str(notebook.id)
        assert shortfall[0]["available"] == 0

    def test_cancelled_order_takes_no_stock(self, placed):
        order, notebook, _ = placed
        order.approve_cancellation()
        current_domain.repository_for(Order).add(order)

        settle_stock(_order(order.id))

        stored = _order(order.id)
        assert stored.stock_settled
        assert stored.stock_restored
        assert _product(notebook).stock == 10

    def test_cancelled_mid_settlement_returns_taken_lines(self, placed):
        order, notebook, pen = placed
        InventoryLedger().decrement(notebook.id, 2)
        order.mark_line_settled(notebook.id)
        order.approve_cancellation()
        current_domain.repository_for(Order).add(order)

        settle_stock(_order(order.id))

        assert _product(notebook).stock == 10
        assert _product(notebook).sales == 0
        assert _product(pen).stock == 5
        stored = _order(order.id)
        assert stored.stock_settled
        assert stored.stock_restored


class TestReleaseCart:
    def test_source_cart_deactivated(self, placed, owner):
        order, _, _ = placed
        release_cart(order)

        cart = current_domain.repository_for(ShoppingCart).get(order.source_cart_id)
        assert not cart.is_active
        assert cart.deactivation_reason == "checked_out"
        assert _order(order.id).cart_released

    def test_missing_cart_still_marks_release(self, placed):
        order, _, _ = placed
        carts = current_domain.repository_for(ShoppingCart)
        carts._dao.delete(carts.get(order.source_cart_id))

        release_cart(order)
        assert _order(order.id).cart_released


class TestRestoreStock:
    def test_restores_only_settled_lines(self, placed):
        order, notebook, pen = placed
        InventoryLedger().decrement(notebook.id, 9)
        settle_stock(order)

        order = _order(order.id)
        restore_stock(order)

        assert _product(pen).stock == 5
        assert _product(pen).sales == 0
        assert _product(notebook).stock == 1
        assert _order(order.id).stock_restored

    def test_restore_happens_once(self, placed):
        order, notebook, _ = placed
        settle_stock(order)
        restore_stock(_order(order.id))
        restore_stock(_order(order.id))

        assert _product(notebook).stock == 10

    def test_unsettled_order_restores_nothing(self, placed):
        order, notebook, _ = placed
        restore_stock(order)

        assert _product(notebook).stock == 10
        assert not _order(order.id).stock_restored

    def test_partially_settled_order_is_restored(self, placed):
        order, notebook, pen = placed
        InventoryLedger().decrement(notebook.id, 2)
        order.mark_line_settled(notebook.id)
        current_domain.repository_for(Order).add(order)

        restore_stock(_order(order.id))

        assert _product(notebook).stock == 10
        assert _product(notebook).sales == 0
        assert _product(pen).stock == 5
        assert _order(order.id).stock_restored
