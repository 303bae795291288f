"""Domain events for the Product aggregate."""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String

from checkout.domain import checkout


@checkout.event(part_of="Product")
class ProductRegistered:
    """A product was added to the catalogue."""

    __version__ = 1

    product_id = Identifier(required=True)
    name = String(required=True)
    price = Float(required=True)
    stock = Integer(required=True)
    is_unlimited = Boolean(default=False)
    registered_at = DateTime(required=True)


@checkout.event(part_of="Product")
class ProductRestocked:
    """Stock was added to a finite-stock product."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    new_stock = Integer(required=True)
    reason = String()


@checkout.event(part_of="Product")
class SaleRecorded:
    """A paid order line was settled against the product's stock and sales."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    new_stock = Integer()
    new_sales = Integer(required=True)
    reference = String()


@checkout.event(part_of="Product")
class SaleReversed:
    """A settled sale was undone, returning its quantity to stock."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    new_stock = Integer()
    new_sales = Integer(required=True)
    reference = String()
