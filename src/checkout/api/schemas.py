"""Pydantic request/response schemas for the checkout API.

These are external contracts, kept apart from the Protean commands they are
translated into. Address payloads are accepted loosely (flat or the older
nested shape) and normalised by the placement layer.
"""

from datetime import datetime
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    full_name: str | None = Field(default=None, validation_alias=AliasChoices("full_name", "fullName", "name"))
    email: str | None = None
    phone: str | None = None
    street: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = Field(
        default=None,
        validation_alias=AliasChoices("postal_code", "pincode", "zipCode"),
    )
    country: str | None = None
    landmark: str | None = None
    address: dict | None = None  # Older nested shape


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------
class CheckoutRequest(BaseModel):
    shipping_address: AddressSchema | None = Field(
        default=None,
        validation_alias=AliasChoices("shipping_address", "shippingAddress"),
    )
    billing_address: AddressSchema | None = Field(
        default=None,
        validation_alias=AliasChoices("billing_address", "billingAddress"),
    )
    order_notes: str | None = Field(default=None, validation_alias=AliasChoices("order_notes", "orderNotes"))
    payment_method: Literal["gateway", "cash_on_delivery", "bank_transfer"] = "gateway"

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "examples": [
                {
                    "shipping_address": {
                        "full_name": "Asha Rao",
                        "phone": "9800000000",
                        "street": "12 MG Road",
                        "city": "Bengaluru",
                        "state": "Karnataka",
                        "postal_code": "560001",
                        "country": "India",
                    },
                    "payment_method": "gateway",
                }
            ]
        },
    }


class SingleCheckoutRequest(CheckoutRequest):
    product_id: str = Field(validation_alias=AliasChoices("product_id", "productId"))
    quantity: int = Field(default=1, ge=1)


class CheckoutItemResponse(BaseModel):
    product_id: str
    name: str
    quantity: int
    unit_price: float
    total_price: float


class CheckoutResponse(BaseModel):
    order_id: str
    order_number: str
    status: str
    payment_method: str
    subtotal: float
    discount: float
    tax: float
    shipping_cost: float
    total: float
    currency: str
    amount_minor: int | None = None
    gateway: str | None = None
    gateway_order_id: str | None = None
    client_token: str | None = None
    key_id: str | None = None
    items: list[CheckoutItemResponse] = []


class VerifyPaymentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    gateway_order_id: str = Field(validation_alias=AliasChoices("gateway_order_id", "razorpay_order_id"))
    gateway_payment_id: str = Field(validation_alias=AliasChoices("gateway_payment_id", "razorpay_payment_id"))
    signature: str = Field(validation_alias=AliasChoices("signature", "razorpay_signature"))
    order_id: str = Field(validation_alias=AliasChoices("order_id", "orderId"))


class VerifyPaymentResponse(BaseModel):
    order_id: str
    order_number: str
    order_status: str
    payment_status: str
    already_verified: bool
    shortfalls: list[dict] = []


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = Field(ge=1, default=1)


class UpdateCartQuantityRequest(BaseModel):
    quantity: int = Field(ge=0)


class ApplyCouponRequest(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    discount: float = Field(ge=0)
    coupon_type: Literal["percentage", "fixed"]


class UpdateShippingRequest(BaseModel):
    method: Literal["standard", "express", "digital", "pickup"]
    cost: float = Field(ge=0, default=0.0)


class CartItemResponse(BaseModel):
    product_id: str
    name: str | None = None
    image: str | None = None
    category: str | None = None
    product_type: str | None = None
    quantity: int
    unit_price: float
    discounted_price: float | None = None
    line_total: float


class CartCouponResponse(BaseModel):
    code: str
    discount: float
    coupon_type: str


class CartResponse(BaseModel):
    cart_id: str | None = None
    items: list[CartItemResponse]
    coupons: list[CartCouponResponse]
    shipping_method: str | None = None
    shipping_cost: float
    subtotal: float
    discount: float
    tax: float
    total: float
    currency: str
    item_count: int
    expires_at: datetime | None = None


class CartSummaryResponse(BaseModel):
    item_count: int
    product_count: int
    total: float
    currency: str


class ReclaimCartsRequest(BaseModel):
    as_of: datetime | None = None


class ReclaimCartsResponse(BaseModel):
    reclaimed: int


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class CancelOrderRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


class UpdateOrderStatusRequest(BaseModel):
    status: Literal["pending", "confirmed", "processing", "shipped", "delivered", "cancelled"]
    message: str | None = None
    tracking_number: str | None = None
    carrier: str | None = None
    actor_id: str | None = None


class AddTrackingRequest(BaseModel):
    tracking_number: str = Field(min_length=1)
    carrier: str | None = None
    actor_id: str | None = None


class ApproveCancellationRequest(BaseModel):
    refund_amount: float | None = Field(default=None, ge=0)
    notes: str | None = None
    actor_id: str | None = None


class RefundRequest(BaseModel):
    amount: float = Field(gt=0)
    actor_id: str | None = None


class OrderListResponse(BaseModel):
    orders: list[dict]
    total: int
    page: int
    page_size: int
    has_next: bool = False
    has_prev: bool = False


class OrderStatsResponse(BaseModel):
    total_orders: int
    total_spent: float
    average_order_value: float
    completed_orders: int
    pending_orders: int


class ProductSalesStatsResponse(BaseModel):
    total_quantity_sold: int
    total_revenue: float
    total_orders: int
    average_order_value: float


class ProductPurchasesResponse(OrderListResponse):
    product: dict | None = None
    stats: ProductSalesStatsResponse


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------
class RegisterProductRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    price: float = Field(ge=0)
    description: str | None = None
    category: str | None = None
    image: str | None = None
    sku: str | None = None
    product_type: Literal["physical", "digital", "service"] = "physical"
    stock: int = Field(default=0, ge=0)
    is_unlimited: bool = False
    discount_kind: Literal["percentage", "amount"] | None = None
    discount_value: float | None = Field(default=None, ge=0)
    discount_starts_at: datetime | None = None
    discount_ends_at: datetime | None = None


class RestockRequest(BaseModel):
    quantity: int = Field(ge=1)
    reason: str | None = None


class ProductIdResponse(BaseModel):
    product_id: str


class StockResponse(BaseModel):
    product_id: str
    stock: int
