"""FastAPI routes for checkout: cart, checkout, verification, orders, admin.

Buyer-facing routes act on behalf of the identity in the request headers and
only ever see that identity's cart and orders.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from protean.utils.globals import current_domain
from starlette.concurrency import run_in_threadpool

from checkout.api.dependencies import current_admin, current_owner, get_services
from checkout.api.schemas import (
    AddToCartRequest,
    AddTrackingRequest,
    ApplyCouponRequest,
    ApproveCancellationRequest,
    CancelOrderRequest,
    CartResponse,
    CartSummaryResponse,
    CheckoutRequest,
    CheckoutResponse,
    OrderListResponse,
    OrderStatsResponse,
    ProductIdResponse,
    ProductPurchasesResponse,
    ReclaimCartsRequest,
    ReclaimCartsResponse,
    RefundRequest,
    RegisterProductRequest,
    RestockRequest,
    SingleCheckoutRequest,
    StockResponse,
    UpdateCartQuantityRequest,
    UpdateOrderStatusRequest,
    UpdateShippingRequest,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from checkout.cart.cart import ShoppingCart
from checkout.cart.coupons import ApplyCoupon, RemoveCoupon
from checkout.cart.expiry import ReclaimExpiredCarts
from checkout.cart.items import AddToCart, ClearCart, RefreshCart, RemoveFromCart, UpdateCartQuantity
from checkout.cart.lookup import find_active_cart
from checkout.cart.shipping import UpdateCartShipping
from checkout.domain import checkout as checkout_domain
from checkout.exceptions import ProductNotFound
from checkout.inventory.catalogue import RegisterProduct, RestockProduct
from checkout.inventory.ledger import InventoryLedger
from checkout.order.lifecycle import (
    AddTrackingInfo,
    ApproveCancellation,
    ProcessRefund,
    RequestCancellation,
    UpdateOrderStatus,
)
from checkout.order.lookup import load_order
from checkout.order.order import Order
from checkout.order.reporting import order_stats, product_sales_stats
from checkout.services import Services
from checkout.shared.owner import Owner


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------
def cart_view(cart: ShoppingCart) -> CartResponse:
    return CartResponse(
        cart_id=str(cart.id),
        items=[
            {
                "product_id": str(item.product_id),
                "name": item.name,
                "image": item.image,
                "category": item.category,
                "product_type": item.product_type,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "discounted_price": item.discounted_price,
                "line_total": round(item.line_total, 2),
            }
            for item in cart.items
        ],
        coupons=[{"code": c.code, "discount": c.discount, "coupon_type": c.coupon_type} for c in cart.coupons],
        shipping_method=cart.shipping.method if cart.shipping else None,
        shipping_cost=cart.shipping_cost,
        subtotal=cart.subtotal,
        discount=cart.discount,
        tax=cart.tax,
        total=cart.total,
        currency=cart.currency,
        item_count=cart.item_count,
        expires_at=cart.expires_at,
    )


def order_view(order: Order) -> dict:
    data = order.to_dict()
    data["applied_coupons"] = order.coupons
    data["stock_shortfall"] = order.shortfall_lines
    data.pop("settled_products", None)
    data["is_paid"] = order.is_paid
    data["can_cancel"] = order.can_cancel
    data["can_return"] = order.can_return
    return data


def empty_cart_view(currency: str) -> CartResponse:
    return CartResponse(
        items=[],
        coupons=[],
        shipping_cost=0.0,
        subtotal=0.0,
        discount=0.0,
        tax=0.0,
        total=0.0,
        currency=currency,
        item_count=0,
    )


def _product_view(product) -> dict:
    return {
        "product_id": str(product.id),
        "name": product.name,
        "sku": product.sku,
        "price": product.price,
        "stock": product.stock,
        "sales": product.sales,
    }


def _cart_response(cart_id) -> CartResponse:
    return cart_view(current_domain.repository_for(ShoppingCart).get(cart_id))


def _page(items: list, page: int, page_size: int) -> dict:
    start = (page - 1) * page_size
    return {
        "items": items[start : start + page_size],
        "total": len(items),
        "page": page,
        "page_size": page_size,
        "has_next": start + page_size < len(items),
        "has_prev": page > 1,
    }


def _order_page(orders: list[Order], page: int, page_size: int) -> dict:
    paged = _page(orders, page, page_size)
    paged["orders"] = [order_view(o) for o in paged.pop("items")]
    return paged


async def _off_loop(func, *args, **kwargs):
    """Run blocking work (gateway calls) in the threadpool, inside the domain context."""

    def run():
        with checkout_domain.domain_context():
            return func(*args, **kwargs)

    return await run_in_threadpool(run)


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=CartResponse)
async def get_cart(owner: Owner = Depends(current_owner), services: Services = Depends(get_services)) -> CartResponse:
    """The active cart, with lines for products no longer on sale dropped."""
    cart_id = current_domain.process(RefreshCart(owner_kind=owner.kind, owner_id=owner.id), asynchronous=False)
    if cart_id is None:
        return empty_cart_view(services.settings.currency)
    return _cart_response(cart_id)


@cart_router.get("/summary", response_model=CartSummaryResponse)
async def get_cart_summary(owner: Owner = Depends(current_owner), services: Services = Depends(get_services)):
    cart = find_active_cart(owner)
    if cart is None:
        return CartSummaryResponse(item_count=0, product_count=0, total=0.0, currency=services.settings.currency)
    return CartSummaryResponse(
        item_count=cart.item_count,
        product_count=cart.product_count,
        total=cart.total,
        currency=cart.currency,
    )


@cart_router.post("/items", status_code=201, response_model=CartResponse)
async def add_cart_item(body: AddToCartRequest, owner: Owner = Depends(current_owner)) -> CartResponse:
    command = AddToCart(
        owner_kind=owner.kind,
        owner_id=owner.id,
        product_id=body.product_id,
        quantity=body.quantity,
    )
    cart_id = current_domain.process(command, asynchronous=False)
    return _cart_response(cart_id)


@cart_router.put("/items/{product_id}", response_model=CartResponse)
async def update_cart_item(
    product_id: str, body: UpdateCartQuantityRequest, owner: Owner = Depends(current_owner)
) -> CartResponse:
    command = UpdateCartQuantity(
        owner_kind=owner.kind,
        owner_id=owner.id,
        product_id=product_id,
        quantity=body.quantity,
    )
    cart_id = current_domain.process(command, asynchronous=False)
    return _cart_response(cart_id)


@cart_router.delete("/items/{product_id}", response_model=CartResponse)
async def remove_cart_item(product_id: str, owner: Owner = Depends(current_owner)) -> CartResponse:
    command = RemoveFromCart(owner_kind=owner.kind, owner_id=owner.id, product_id=product_id)
    cart_id = current_domain.process(command, asynchronous=False)
    return _cart_response(cart_id)


@cart_router.delete("", response_model=CartResponse)
async def clear_cart(owner: Owner = Depends(current_owner)) -> CartResponse:
    cart_id = current_domain.process(ClearCart(owner_kind=owner.kind, owner_id=owner.id), asynchronous=False)
    return _cart_response(cart_id)


@cart_router.post("/coupons", response_model=CartResponse)
async def apply_coupon(body: ApplyCouponRequest, owner: Owner = Depends(current_owner)) -> CartResponse:
    command = ApplyCoupon(
        owner_kind=owner.kind,
        owner_id=owner.id,
        code=body.code,
        discount=body.discount,
        coupon_type=body.coupon_type,
    )
    cart_id = current_domain.process(command, asynchronous=False)
    return _cart_response(cart_id)


@cart_router.delete("/coupons/{code}", response_model=CartResponse)
async def remove_coupon(code: str, owner: Owner = Depends(current_owner)) -> CartResponse:
    command = RemoveCoupon(owner_kind=owner.kind, owner_id=owner.id, code=code)
    cart_id = current_domain.process(command, asynchronous=False)
    return _cart_response(cart_id)


@cart_router.put("/shipping", response_model=CartResponse)
async def update_shipping(body: UpdateShippingRequest, owner: Owner = Depends(current_owner)) -> CartResponse:
    command = UpdateCartShipping(owner_kind=owner.kind, owner_id=owner.id, method=body.method, cost=body.cost)
    cart_id = current_domain.process(command, asynchronous=False)
    return _cart_response(cart_id)


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


def _address(schema):
    return schema.model_dump(exclude_none=True) if schema is not None else None


def _checkout_response(result) -> CheckoutResponse:
    return CheckoutResponse(
        order_id=result.order_id,
        order_number=result.order_number,
        status=result.status,
        payment_method=result.payment_method,
        subtotal=result.subtotal,
        discount=result.discount,
        tax=result.tax,
        shipping_cost=result.shipping_cost,
        total=result.total,
        currency=result.currency,
        amount_minor=result.amount_minor,
        gateway=result.gateway,
        gateway_order_id=result.gateway_order_id,
        client_token=result.client_token,
        key_id=result.public_key,
        items=result.items,
    )


@checkout_router.post("", status_code=201, response_model=CheckoutResponse)
async def checkout(
    body: CheckoutRequest,
    owner: Owner = Depends(current_owner),
    services: Services = Depends(get_services),
) -> CheckoutResponse:
    """Place a pending order for the active cart and open a payment intent.

    The cart stays active until the payment is verified.
    """
    result = await _off_loop(
        services.orchestrator.checkout,
        owner,
        shipping_address=_address(body.shipping_address),
        billing_address=_address(body.billing_address),
        order_notes=body.order_notes,
        payment_method=body.payment_method,
    )
    return _checkout_response(result)


@checkout_router.post("/single", status_code=201, response_model=CheckoutResponse)
async def checkout_single(
    body: SingleCheckoutRequest,
    owner: Owner = Depends(current_owner),
    services: Services = Depends(get_services),
) -> CheckoutResponse:
    result = await _off_loop(
        services.orchestrator.checkout_single,
        owner,
        body.product_id,
        quantity=body.quantity,
        shipping_address=_address(body.shipping_address),
        billing_address=_address(body.billing_address),
        order_notes=body.order_notes,
        payment_method=body.payment_method,
    )
    return _checkout_response(result)


@checkout_router.post("/verify", response_model=VerifyPaymentResponse)
async def verify_payment(
    body: VerifyPaymentRequest,
    owner: Owner = Depends(current_owner),
    services: Services = Depends(get_services),
) -> VerifyPaymentResponse:
    result = await _off_loop(
        services.verifier.verify,
        body.gateway_order_id,
        body.gateway_payment_id,
        body.signature,
        body.order_id,
        owner,
    )
    return VerifyPaymentResponse(
        order_id=result.order_id,
        order_number=result.order_number,
        order_status=result.order_status,
        payment_status=result.payment_status,
        already_verified=result.already_verified,
        shortfalls=result.shortfalls,
    )


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("", response_model=OrderListResponse)
async def list_orders(
    status: str | None = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    owner: Owner = Depends(current_owner),
) -> OrderListResponse:
    orders = current_domain.repository_for(Order).find_for_owner(owner, status=status)
    return OrderListResponse(**_order_page(orders, page, page_size))


@order_router.get("/stats", response_model=OrderStatsResponse)
async def get_order_stats(
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    owner: Owner = Depends(current_owner),
) -> OrderStatsResponse:
    orders = current_domain.repository_for(Order).find_for_owner(owner, start=start_date, end=end_date)
    return OrderStatsResponse(**order_stats(orders).to_dict())


@order_router.get("/{order_id}")
async def get_order(order_id: str, owner: Owner = Depends(current_owner)) -> dict:
    return order_view(load_order(order_id, owner=owner))


@order_router.post("/{order_id}/cancel")
async def cancel_order(order_id: str, body: CancelOrderRequest, owner: Owner = Depends(current_owner)) -> dict:
    command = RequestCancellation(
        order_id=order_id,
        owner_kind=owner.kind,
        owner_id=owner.id,
        reason=body.reason,
    )
    current_domain.process(command, asynchronous=False)
    return order_view(load_order(order_id, owner=owner))


# ---------------------------------------------------------------------------
# Admin Router
# ---------------------------------------------------------------------------
admin_router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(current_admin)])


@admin_router.get("/orders", response_model=OrderListResponse)
async def list_all_orders(
    status: str | None = None,
    payment_status: str | None = None,
    search: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> OrderListResponse:
    orders = current_domain.repository_for(Order).search(
        status=status,
        payment_status=payment_status,
        term=search,
        start=start_date,
        end=end_date,
    )
    return OrderListResponse(**_order_page(orders, page, page_size))


@admin_router.get("/products/{product_id}/purchases", response_model=ProductPurchasesResponse)
async def list_product_purchases(
    product_id: str,
    status: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> ProductPurchasesResponse:
    """Orders containing ``product_id``, with sales figures over all of them."""
    try:
        product = InventoryLedger().get(product_id)
    except ProductNotFound:
        # Orders outlive the products they sold
        product = None

    orders = current_domain.repository_for(Order).search(
        status=status,
        start=start_date,
        end=end_date,
        product_id=product_id,
    )
    return ProductPurchasesResponse(
        **_order_page(orders, page, page_size),
        product=_product_view(product) if product is not None else None,
        stats=product_sales_stats(orders, product_id).to_dict(),
    )


@admin_router.put("/orders/{order_id}/status")
async def update_order_status(
    order_id: str, body: UpdateOrderStatusRequest, admin_id: str = Depends(current_admin)
) -> dict:
    command = UpdateOrderStatus(
        order_id=order_id,
        status=body.status,
        message=body.message,
        actor_id=body.actor_id or admin_id,
        tracking_number=body.tracking_number,
        carrier=body.carrier,
    )
    current_domain.process(command, asynchronous=False)
    return order_view(load_order(order_id))


@admin_router.put("/orders/{order_id}/tracking")
async def add_tracking(order_id: str, body: AddTrackingRequest, admin_id: str = Depends(current_admin)) -> dict:
    command = AddTrackingInfo(
        order_id=order_id,
        tracking_number=body.tracking_number,
        carrier=body.carrier,
        actor_id=body.actor_id or admin_id,
    )
    current_domain.process(command, asynchronous=False)
    return order_view(load_order(order_id))


@admin_router.post("/orders/{order_id}/cancellation/approve")
async def approve_cancellation(
    order_id: str, body: ApproveCancellationRequest, admin_id: str = Depends(current_admin)
) -> dict:
    command = ApproveCancellation(
        order_id=order_id,
        refund_amount=body.refund_amount,
        notes=body.notes,
        actor_id=body.actor_id or admin_id,
    )
    current_domain.process(command, asynchronous=False)
    return order_view(load_order(order_id))


@admin_router.post("/orders/{order_id}/refund")
async def refund_order(order_id: str, body: RefundRequest, admin_id: str = Depends(current_admin)) -> dict:
    command = ProcessRefund(order_id=order_id, amount=body.amount, actor_id=body.actor_id or admin_id)
    current_domain.process(command, asynchronous=False)
    return order_view(load_order(order_id))


@admin_router.post("/carts/reclaim", response_model=ReclaimCartsResponse)
async def reclaim_carts(body: ReclaimCartsRequest) -> ReclaimCartsResponse:
    reclaimed = current_domain.process(ReclaimExpiredCarts(as_of=body.as_of), asynchronous=False)
    return ReclaimCartsResponse(reclaimed=reclaimed)


# ---------------------------------------------------------------------------
# Product Router
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"], dependencies=[Depends(current_admin)])


@product_router.post("", status_code=201, response_model=ProductIdResponse)
async def register_product(body: RegisterProductRequest) -> ProductIdResponse:
    command = RegisterProduct(**body.model_dump(exclude_none=True))
    product_id = current_domain.process(command, asynchronous=False)
    return ProductIdResponse(product_id=product_id)


@product_router.post("/{product_id}/restock", response_model=StockResponse)
async def restock_product(product_id: str, body: RestockRequest) -> StockResponse:
    command = RestockProduct(product_id=product_id, quantity=body.quantity, reason=body.reason)
    stock = current_domain.process(command, asynchronous=False)
    return StockResponse(product_id=product_id, stock=stock)
