"""InventoryLedger: the only code path that writes product stock and sales.

Stock moves when a payment is confirmed (or a cancellation of a settled order
is approved), never when an item is added to a cart or an order is created.
Holding stock for unpaid orders would let abandoned checkouts starve
availability; the price is a narrow race between buyers confirming the last
unit at the same time. That race is resolved here: every write re-reads the
product, refuses to go below zero, and saves through the revision check.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from checkout.exceptions import ProductNotFound
from checkout.inventory.product import Product
from checkout.shared.revision import save_revisioned

logger = structlog.get_logger(__name__)


class InventoryLedger:
    def _repo(self):
        return current_domain.repository_for(Product)

    def get(self, product_id) -> Product:
        try:
            return self._repo().get(str(product_id))
        except ObjectNotFoundError as exc:
            raise ProductNotFound(product_id) from exc

    def check(self, product_id, quantity: int) -> Product:
        """Return the current product after asserting ``quantity`` can be bought."""
        product = self.get(product_id)
        product.ensure_purchasable(quantity)
        return product

    def decrement(self, product_id, quantity: int, reference: str | None = None) -> Product:
        """Settle a sale: add to sales and, for finite stock, take from stock.

        Raises InsufficientStock rather than letting stock go negative.
        """
        product = self.get(product_id)
        product.record_sale(quantity, reference=reference)
        save_revisioned(self._repo(), product)

        logger.info(
            "Stock decremented",
            product_id=str(product_id),
            quantity=quantity,
            stock=product.stock,
            sales=product.sales,
            reference=reference,
        )
        return product

    def increment(self, product_id, quantity: int, reverse_sale: bool = False, reference: str | None = None) -> Product:
        """Return stock, either as a plain restock or by undoing a settled sale."""
        product = self.get(product_id)
        if reverse_sale:
            product.reverse_sale(quantity, reference=reference)
        else:
            product.restock(quantity, reason=reference)
        save_revisioned(self._repo(), product)

        logger.info(
            "Stock incremented",
            product_id=str(product_id),
            quantity=quantity,
            stock=product.stock,
            reverse_sale=reverse_sale,
            reference=reference,
        )
        return product
