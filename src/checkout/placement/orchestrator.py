"""CheckoutOrchestrator: turn an owner's cart (or a single product) into a
pending order backed by a gateway payment intent.

Placement never moves stock. Stock is re-checked so a buyer is not sent to
pay for something that is gone, but it is only taken once payment is
verified. The payment audit is written before the order: if the order write
fails, the gateway order id still leads back to what was attempted.

Orders paid outside the gateway (cash on delivery, bank transfer) are settled
at placement, since no gateway callback will ever arrive for them.
"""

from dataclasses import dataclass, field

import structlog
from protean.utils.globals import current_domain

from checkout.cart.lookup import find_active_cart
from checkout.cart.pricing import compute_totals
from checkout.exceptions import EmptyCart, ProductNotFound, ProductUnavailable, ValidationFailed
from checkout.inventory.ledger import InventoryLedger
from checkout.order.order import (
    CustomerInfo,
    Order,
    OrderItem,
    OrderPricing,
    PaymentMethod,
    generate_order_number,
)
from checkout.order.settlement import release_cart, settle_stock
from checkout.payment.audit import PaymentAudit
from checkout.placement.addresses import resolve_addresses
from checkout.shared.money import round_money, to_minor_units
from checkout.shared.owner import OwnerKind
from checkout.shared.revision import save_revisioned

logger = structlog.get_logger(__name__)

UNKNOWN_CUSTOMER_NAMES = {
    OwnerKind.USER.value: "Unknown User",
    OwnerKind.EMPLOYER.value: "Unknown Employer",
}


@dataclass
class CheckoutResult:
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
    public_key: str | None = None
    items: list[dict] = field(default_factory=list)


class CheckoutOrchestrator:
    def __init__(self, gateway, address_book, directory, settings, ledger=None):
        self._gateway = gateway
        self._address_book = address_book
        self._directory = directory
        self._settings = settings
        self._ledger = ledger or InventoryLedger()

    # -------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------
    def checkout(
        self,
        owner,
        shipping_address=None,
        billing_address=None,
        order_notes=None,
        payment_method=PaymentMethod.GATEWAY.value,
    ) -> CheckoutResult:
        """Place an order for everything in the owner's active cart."""
        profile = self._directory.get_profile(owner)
        addresses = resolve_addresses(
            owner,
            shipping=shipping_address,
            billing=billing_address,
            address_book=self._address_book,
            fallback_email=profile.email if profile else None,
        )

        cart = find_active_cart(owner)
        if cart is None or not cart.items:
            raise EmptyCart()

        lines = []
        for item in cart.items:
            product = self._current_product(item.product_id, item.quantity, item.name)
            lines.append(self._line(product, item.quantity, item.effective_price))

        pricing = OrderPricing(
            subtotal=cart.subtotal,
            discount=cart.discount,
            tax=cart.tax,
            shipping_cost=cart.shipping_cost,
            total=cart.total,
            currency=cart.currency,
        )
        coupons = [{"code": c.code, "discount": c.discount, "coupon_type": c.coupon_type} for c in cart.coupons]

        return self._place(
            owner,
            profile,
            addresses,
            lines,
            pricing,
            payment_method,
            coupons=coupons,
            shipping_method=cart.shipping.method if cart.shipping else None,
            source_cart_id=cart.id,
            order_notes=order_notes,
        )

    def checkout_single(
        self,
        owner,
        product_id,
        quantity=1,
        shipping_address=None,
        billing_address=None,
        order_notes=None,
        payment_method=PaymentMethod.GATEWAY.value,
    ) -> CheckoutResult:
        """Buy one product directly, leaving the cart alone."""
        if quantity is None or quantity < 1:
            raise ValidationFailed({"quantity": ["Quantity must be at least 1"]})

        profile = self._directory.get_profile(owner)
        addresses = resolve_addresses(
            owner,
            shipping=shipping_address,
            billing=billing_address,
            address_book=self._address_book,
            fallback_email=profile.email if profile else None,
        )

        product = self._current_product(product_id, quantity)
        unit_price = product.effective_price()
        totals = compute_totals([(unit_price, quantity)], tax_rate=self._settings.tax_rate)
        pricing = OrderPricing(
            subtotal=totals.subtotal,
            discount=totals.discount,
            tax=totals.tax,
            shipping_cost=totals.shipping_cost,
            total=totals.total,
            currency=self._settings.currency,
        )

        return self._place(
            owner,
            profile,
            addresses,
            [self._line(product, quantity, unit_price)],
            pricing,
            payment_method,
            order_notes=order_notes,
        )

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    def _current_product(self, product_id, quantity, name=None):
        try:
            return self._ledger.check(product_id, quantity)
        except ProductNotFound as exc:
            raise ProductUnavailable(product_id, name) from exc

    @staticmethod
    def _line(product, quantity, unit_price) -> OrderItem:
        return OrderItem(
            product_id=str(product.id),
            quantity=quantity,
            unit_price=round_money(unit_price),
            total_price=round_money(unit_price * quantity),
            name=product.name,
            description=product.description,
            image=product.image,
            category=product.category,
            sku=product.sku,
            product_type=product.product_type,
            is_unlimited=product.is_unlimited,
        )

    def _customer(self, owner, profile, billing) -> CustomerInfo:
        if profile is None:
            return CustomerInfo(
                name=UNKNOWN_CUSTOMER_NAMES[owner.kind],
                email=billing.email,
                phone=billing.phone,
            )
        return CustomerInfo(
            name=profile.name,
            email=profile.email or billing.email,
            phone=profile.phone or billing.phone,
        )

    def _place(
        self,
        owner,
        profile,
        addresses,
        lines,
        pricing,
        payment_method,
        coupons=None,
        shipping_method=None,
        source_cart_id=None,
        order_notes=None,
    ) -> CheckoutResult:
        payment_method = payment_method or PaymentMethod.GATEWAY.value
        order_number = generate_order_number()
        uses_gateway = payment_method == PaymentMethod.GATEWAY.value

        intent = None
        amount_minor = None
        if uses_gateway:
            amount_minor = to_minor_units(pricing.total)
            # Raises GatewayError; nothing has been written yet
            intent = self._gateway.create_intent(
                amount_minor,
                pricing.currency,
                receipt=order_number,
                metadata={
                    "order_number": order_number,
                    "owner_kind": owner.kind,
                    "owner_id": owner.id,
                },
            )

        order = Order.place(
            owner,
            customer=self._customer(owner, profile, addresses.billing),
            items=lines,
            pricing=pricing,
            billing_address=addresses.billing,
            shipping_address=addresses.shipping,
            coupons=coupons,
            payment_method=payment_method,
            gateway_order_id=intent.gateway_order_id if intent else None,
            shipping_method=shipping_method,
            source_cart_id=source_cart_id,
            order_notes=order_notes,
            order_number=order_number,
        )

        if intent is not None:
            self._persist_with_audit(owner, order, intent, pricing)
        else:
            save_revisioned(current_domain.repository_for(Order), order)
            settle_stock(order, self._ledger)
            release_cart(order)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order.order_number,
            owner_kind=owner.kind,
            owner_id=owner.id,
            total=pricing.total,
            payment_method=payment_method,
            gateway_order_id=intent.gateway_order_id if intent else None,
        )

        return CheckoutResult(
            order_id=str(order.id),
            order_number=order.order_number,
            status=order.status,
            payment_method=payment_method,
            subtotal=pricing.subtotal,
            discount=pricing.discount,
            tax=pricing.tax,
            shipping_cost=pricing.shipping_cost,
            total=pricing.total,
            currency=pricing.currency,
            amount_minor=amount_minor,
            gateway=self._gateway.name if intent else None,
            gateway_order_id=intent.gateway_order_id if intent else None,
            client_token=intent.client_token if intent else None,
            public_key=self._gateway.public_key if intent else None,
            items=[
                {
                    "product_id": str(line.product_id),
                    "name": line.name,
                    "quantity": line.quantity,
                    "unit_price": line.unit_price,
                    "total_price": line.total_price,
                }
                for line in lines
            ],
        )

    def _persist_with_audit(self, owner, order, intent, pricing):
        audits = current_domain.repository_for(PaymentAudit)
        audit = PaymentAudit.initiate(
            owner,
            gateway=self._gateway.name,
            gateway_order_id=intent.gateway_order_id,
            amount=pricing.total,
            amount_minor=intent.amount_minor,
            currency=intent.currency,
            notes={"order_number": order.order_number},
        )
        save_revisioned(audits, audit)

        try:
            save_revisioned(current_domain.repository_for(Order), order)
        except Exception as exc:
            logger.exception(
                "Order write failed after payment intent",
                gateway_order_id=intent.gateway_order_id,
                order_number=order.order_number,
            )
            audit.annotate(order_write_failed=str(exc))
            save_revisioned(audits, audit)
            raise

        audit.link_order(order.id, order.order_number)
        save_revisioned(audits, audit)
