"""Domain events for the ShoppingCart aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from checkout.domain import checkout


@checkout.event(part_of="ShoppingCart")
class CartItemAdded:
    """A product was added to the cart, or its quantity merged into an existing line."""

    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    line_quantity = Integer(required=True)
    unit_price = Float(required=True)


@checkout.event(part_of="ShoppingCart")
class CartQuantityUpdated:
    """The quantity of a cart line was set to a new value."""

    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@checkout.event(part_of="ShoppingCart")
class CartItemRemoved:
    """A line was removed from the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)


@checkout.event(part_of="ShoppingCart")
class CartCleared:
    """All lines and coupons were removed from the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    items_removed = Integer(required=True)


@checkout.event(part_of="ShoppingCart")
class CartCouponApplied:
    """A coupon was applied, replacing any earlier entry with the same code."""

    __version__ = 1

    cart_id = Identifier(required=True)
    code = String(required=True)
    coupon_type = String(required=True)
    discount = Float(required=True)


@checkout.event(part_of="ShoppingCart")
class CartCouponRemoved:
    """A coupon was removed from the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    code = String(required=True)


@checkout.event(part_of="ShoppingCart")
class CartShippingSelected:
    """A shipping method was chosen for the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    method = String(required=True)
    cost = Float(required=True)


@checkout.event(part_of="ShoppingCart")
class CartDeactivated:
    """The cart stopped being the owner's active cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    reason = String(required=True)
    order_id = Identifier()
    deactivated_at = DateTime(required=True)
