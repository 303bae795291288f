"""Catalogue seeding: register products and restock them."""

from protean import handle
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.inventory.ledger import InventoryLedger
from checkout.inventory.product import Product, ProductDiscount, ProductType


@checkout.command(part_of="Product")
class RegisterProduct:
    name = String(required=True, max_length=200)
    price = Float(required=True, min_value=0.0)
    description = Text()
    category = String(max_length=100)
    image = String(max_length=500)
    sku = String(max_length=100)
    product_type = String(choices=ProductType, default=ProductType.PHYSICAL.value)
    currency = String(max_length=3, default="INR")
    stock = Integer(default=0, min_value=0)
    is_unlimited = Boolean(default=False)
    discount_kind = String(max_length=20)
    discount_value = Float(min_value=0.0)
    discount_starts_at = DateTime()
    discount_ends_at = DateTime()


@checkout.command(part_of="Product")
class RestockProduct:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    reason = String(max_length=255)


@checkout.command_handler(part_of=Product)
class CatalogueHandler:
    @handle(RegisterProduct)
    def register_product(self, command):
        discount = None
        if command.discount_kind:
            discount = ProductDiscount(
                kind=command.discount_kind,
                value=command.discount_value or 0.0,
                starts_at=command.discount_starts_at,
                ends_at=command.discount_ends_at,
            )

        product = Product.register(
            name=command.name,
            price=command.price,
            stock=command.stock,
            is_unlimited=command.is_unlimited,
            product_type=command.product_type,
            discount=discount,
            description=command.description,
            category=command.category,
            image=command.image,
            sku=command.sku,
            currency=command.currency,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)

    @handle(RestockProduct)
    def restock_product(self, command):
        product = InventoryLedger().increment(command.product_id, command.quantity, reference=command.reason)
        return product.stock
