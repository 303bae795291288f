"""Product aggregate: price, discount rule, and the stock the ledger settles.

Only the fields checkout needs are modelled here; catalogue browsing and
administration live elsewhere.

Availability is derived, never stored:

    active  AND  visible  AND  (unlimited OR stock > 0)  AND  not soft-deleted
"""

from datetime import datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String, Text, ValueObject

from checkout.domain import checkout
from checkout.exceptions import InsufficientStock, ProductUnavailable
from checkout.inventory.events import ProductRegistered, ProductRestocked, SaleRecorded, SaleReversed
from checkout.shared.clock import as_utc, utcnow
from checkout.shared.money import round_money


class ProductStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DRAFT = "draft"
    ARCHIVED = "archived"


class ProductType(Enum):
    PHYSICAL = "physical"
    DIGITAL = "digital"
    SERVICE = "service"


class DiscountKind(Enum):
    PERCENTAGE = "percentage"
    AMOUNT = "amount"


@checkout.value_object(part_of="Product")
class ProductDiscount:
    """A price reduction, optionally limited to a validity window."""

    kind = String(required=True, choices=DiscountKind)
    value = Float(required=True, min_value=0.0)
    starts_at = DateTime()
    ends_at = DateTime()

    @invariant.post
    def percentage_cannot_exceed_one_hundred(self):
        if self.kind == DiscountKind.PERCENTAGE.value and self.value > 100:
            raise ValidationError({"discount": ["Percentage discount cannot exceed 100"]})

    @invariant.post
    def window_must_end_after_it_starts(self):
        if self.starts_at and self.ends_at and as_utc(self.ends_at) <= as_utc(self.starts_at):
            raise ValidationError({"discount": ["Discount window must end after it starts"]})

    def is_active_at(self, moment: datetime) -> bool:
        moment = as_utc(moment)
        if self.starts_at and moment < as_utc(self.starts_at):
            return False
        if self.ends_at and moment > as_utc(self.ends_at):
            return False
        return True

    def apply_to(self, price: float) -> float:
        if self.kind == DiscountKind.PERCENTAGE.value:
            return round_money(price * (1 - self.value / 100))
        return round_money(max(0.0, price - self.value))


@checkout.aggregate
class Product:
    name = String(required=True, max_length=200)
    description = Text()
    category = String(max_length=100)
    image = String(max_length=500)
    sku = String(max_length=100)
    product_type = String(choices=ProductType, default=ProductType.PHYSICAL.value)
    price = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default="INR")
    discount = ValueObject(ProductDiscount)
    stock = Integer(default=0, min_value=0)
    is_unlimited = Boolean(default=False)
    sales = Integer(default=0, min_value=0)
    status = String(choices=ProductStatus, default=ProductStatus.ACTIVE.value)
    is_visible = Boolean(default=True)
    deleted_at = DateTime()
    revision = Integer(default=0)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def register(
        cls,
        name,
        price,
        stock=0,
        is_unlimited=False,
        product_type=ProductType.PHYSICAL.value,
        discount=None,
        **details,
    ):
        now = utcnow()
        product = cls(
            name=name,
            price=price,
            stock=0 if is_unlimited else stock,
            is_unlimited=is_unlimited,
            product_type=product_type,
            discount=discount,
            created_at=now,
            updated_at=now,
            **details,
        )
        product.raise_(
            ProductRegistered(
                product_id=str(product.id),
                name=name,
                price=price,
                stock=product.stock,
                is_unlimited=is_unlimited,
                registered_at=now,
            )
        )
        return product

    # -------------------------------------------------------------------
    # Pricing
    # -------------------------------------------------------------------
    def discounted_price_at(self, moment: datetime | None = None) -> float | None:
        """Price after the discount rule, or None when no discount applies."""
        if self.discount is None:
            return None
        if not self.discount.is_active_at(moment or utcnow()):
            return None
        return self.discount.apply_to(self.price)

    def effective_price(self, moment: datetime | None = None) -> float:
        discounted = self.discounted_price_at(moment)
        return self.price if discounted is None else discounted

    # -------------------------------------------------------------------
    # Availability
    # -------------------------------------------------------------------
    @property
    def is_available(self) -> bool:
        return (
            self.status == ProductStatus.ACTIVE.value
            and bool(self.is_visible)
            and (bool(self.is_unlimited) or (self.stock or 0) > 0)
            and self.deleted_at is None
        )

    def ensure_purchasable(self, quantity: int) -> None:
        """Raise unless ``quantity`` units can be bought right now."""
        if not self.is_available:
            raise ProductUnavailable(self.id, self.name)
        if not self.is_unlimited and self.stock < quantity:
            raise InsufficientStock(self.id, requested=quantity, available=self.stock, name=self.name)

    # -------------------------------------------------------------------
    # Ledger operations (called through InventoryLedger only)
    # -------------------------------------------------------------------
    def record_sale(self, quantity: int, reference: str | None = None) -> None:
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})
        if not self.is_unlimited:
            if self.stock < quantity:
                raise InsufficientStock(self.id, requested=quantity, available=self.stock, name=self.name)
            self.stock -= quantity
        self.sales = (self.sales or 0) + quantity
        self.updated_at = utcnow()

        self.raise_(
            SaleRecorded(
                product_id=str(self.id),
                quantity=quantity,
                new_stock=None if self.is_unlimited else self.stock,
                new_sales=self.sales,
                reference=reference,
            )
        )

    def reverse_sale(self, quantity: int, reference: str | None = None) -> None:
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})
        if not self.is_unlimited:
            self.stock += quantity
        self.sales = max(0, (self.sales or 0) - quantity)
        self.updated_at = utcnow()

        self.raise_(
            SaleReversed(
                product_id=str(self.id),
                quantity=quantity,
                new_stock=None if self.is_unlimited else self.stock,
                new_sales=self.sales,
                reference=reference,
            )
        )

    def restock(self, quantity: int, reason: str | None = None) -> None:
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})
        if self.is_unlimited:
            raise ValidationError({"stock": ["Unlimited products do not track stock"]})
        self.stock += quantity
        self.updated_at = utcnow()

        self.raise_(
            ProductRestocked(
                product_id=str(self.id),
                quantity=quantity,
                new_stock=self.stock,
                reason=reason,
            )
        )
