"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from checkout.domain import checkout


@checkout.event(part_of="Order")
class OrderPlaced:
    """A checkout produced a pending order awaiting payment."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    owner_kind = String(required=True)
    owner_id = Identifier(required=True)
    item_count = Integer(required=True)
    total = Float(required=True)
    currency = String(required=True)
    payment_method = String(required=True)
    gateway_order_id = String()
    source_cart_id = Identifier()
    placed_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderPaymentConfirmed:
    """The gateway confirmed payment and the order was marked paid."""

    __version__ = 1

    order_id = Identifier(required=True)
    gateway_order_id = String()
    gateway_payment_id = String(required=True)
    amount = Float(required=True)
    paid_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderStatusChanged:
    """The order moved to a new status."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    updated_by = String()
    updated_by_type = String()
    changed_at = DateTime(required=True)


@checkout.event(part_of="Order")
class TrackingInfoAdded:
    """A tracking number was attached to the order's shipment."""

    __version__ = 1

    order_id = Identifier(required=True)
    tracking_number = String(required=True)
    provider = String()


@checkout.event(part_of="Order")
class CancellationRequested:
    """The buyer asked for the order to be cancelled."""

    __version__ = 1

    order_id = Identifier(required=True)
    reason = String(required=True)
    requested_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderCancelled:
    """A cancellation was approved and the order moved to cancelled."""

    __version__ = 1

    order_id = Identifier(required=True)
    refund_amount = Float(required=True)
    approved_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderRefunded:
    """Money was returned to the buyer, fully or in part."""

    __version__ = 1

    order_id = Identifier(required=True)
    amount = Float(required=True)
    refunded_total = Float(required=True)
    payment_status = String(required=True)
    refunded_at = DateTime(required=True)


@checkout.event(part_of="Order")
class StockShortfallRecorded:
    """Some paid lines could not be settled against stock."""

    __version__ = 1

    order_id = Identifier(required=True)
    lines = Text(required=True)  # JSON array of {product_id, requested, available}
