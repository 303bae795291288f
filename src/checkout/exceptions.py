"""Error taxonomy for the checkout engine.

Validation and state errors extend Protean's ``ValidationError`` so that
aggregates and handlers keep raising the ``{"field": ["message"]}`` shape.
Missing resources extend ``ObjectNotFoundError``. Everything else derives from
``CheckoutError``. Each class carries the machine-readable ``code`` and the
HTTP status the API maps it to.
"""

from protean.exceptions import ObjectNotFoundError, ValidationError


class CheckoutError(Exception):
    """Base class for checkout errors that are not field or state validation."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, **context):
        self.message = message
        self.context = context
        super().__init__(message)


class AuthenticationRequired(CheckoutError):
    code = "AUTHENTICATION_REQUIRED"
    status_code = 401


class SignatureMismatch(CheckoutError):
    """The gateway callback signature did not match the locally computed one."""

    code = "SIGNATURE_MISMATCH"
    status_code = 400


class GatewayError(CheckoutError):
    """The payment provider rejected the request or could not be reached.

    ``detail`` holds whatever the provider reported; it is logged but never
    returned to the caller.
    """

    code = "GATEWAY_ERROR"
    status_code = 502

    def __init__(self, message: str, detail: str | None = None, **context):
        self.detail = detail
        super().__init__(message, **context)


# ---------------------------------------------------------------------------
# Validation (400, field-level detail)
# ---------------------------------------------------------------------------
class ValidationFailed(ValidationError):
    code = "VALIDATION_FAILED"
    status_code = 400

    def __init__(self, messages: dict[str, list[str]]):
        super().__init__(messages)
        self.messages = messages


# ---------------------------------------------------------------------------
# State conflicts (400, actionable detail)
# ---------------------------------------------------------------------------
class StateConflict(ValidationError):
    code = "STATE_CONFLICT"
    status_code = 400

    def __init__(self, message: str, field: str = "state", **context):
        messages = {field: [message]}
        super().__init__(messages)
        self.messages = messages
        self.message = message
        self.context = context


class ProductUnavailable(StateConflict):
    code = "PRODUCT_UNAVAILABLE"

    def __init__(self, product_id, name: str | None = None):
        label = f"'{name}'" if name else "Product"
        super().__init__(f"{label} is not available", field="product_id", product_id=str(product_id))
        self.product_id = str(product_id)


class InsufficientStock(StateConflict):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, product_id, requested: int, available: int, name: str | None = None):
        if name:
            message = f"Only {available} items of '{name}' available in stock"
        else:
            message = f"Only {available} items available in stock"
        super().__init__(
            message,
            field="quantity",
            product_id=str(product_id),
            requested=requested,
            available=available,
        )
        self.product_id = str(product_id)
        self.requested = requested
        self.available = available


class EmptyCart(StateConflict):
    code = "EMPTY_CART"

    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message, field="cart")


class CancellationNotAllowed(StateConflict):
    code = "CANCELLATION_NOT_ALLOWED"

    def __init__(self, status: str, reason: str | None = None):
        super().__init__(reason or f"Order cannot be cancelled in status '{status}'", field="status", status=status)


class InvalidTransition(StateConflict):
    code = "INVALID_TRANSITION"

    def __init__(self, current: str, target: str):
        super().__init__(
            f"Cannot transition from {current} to {target}",
            field="status",
            current=current,
            target=target,
        )


class ConcurrentModification(StateConflict):
    code = "CONCURRENT_MODIFICATION"

    def __init__(self, resource: str, identifier, expected: int, found: int):
        super().__init__(
            f"{resource} {identifier} was modified concurrently (expected revision {expected}, found {found})",
            field="revision",
            resource=resource,
            identifier=str(identifier),
        )


class PaymentAlreadyVerified(StateConflict):
    code = "PAYMENT_ALREADY_VERIFIED"

    def __init__(self, order_id):
        super().__init__(
            "Payment for this order was already verified with a different payment",
            field="payment",
            order_id=str(order_id),
        )


# ---------------------------------------------------------------------------
# Missing resources (404)
# ---------------------------------------------------------------------------
class ResourceNotFound(ObjectNotFoundError):
    code = "RESOURCE_NOT_FOUND"
    status_code = 404
    resource = "Resource"

    def __init__(self, identifier=None, message: str | None = None):
        self.identifier = str(identifier) if identifier is not None else None
        self.message = message or (
            f"{self.resource} {self.identifier} not found" if self.identifier else f"{self.resource} not found"
        )
        super().__init__(self.message)


class CartNotFound(ResourceNotFound):
    resource = "Cart"


class OrderNotFound(ResourceNotFound):
    resource = "Order"


class ProductNotFound(ResourceNotFound):
    resource = "Product"


class ItemNotInCart(ResourceNotFound):
    code = "ITEM_NOT_IN_CART"
    resource = "Item"

    def __init__(self, product_id):
        super().__init__(product_id, message="Item not found in cart")
