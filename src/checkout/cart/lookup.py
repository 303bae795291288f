"""Locating an owner's active cart.

An owner has at most one active cart. Expired carts met on the way are
reclaimed, so they are never handed out as the active one.
"""

import structlog
from protean.utils.globals import current_domain

from checkout.cart.cart import DeactivationReason, ShoppingCart
from checkout.config import get_settings
from checkout.exceptions import CartNotFound
from checkout.shared.revision import save_revisioned

logger = structlog.get_logger(__name__)


def find_active_cart(owner) -> ShoppingCart | None:
    repo = current_domain.repository_for(ShoppingCart)
    active = None
    for cart in repo.find_active_for(owner):
        if cart.is_expired():
            cart.deactivate(DeactivationReason.EXPIRED.value)
            save_revisioned(repo, cart)
            logger.info("Expired cart reclaimed", cart_id=str(cart.id), owner_kind=owner.kind, owner_id=owner.id)
        elif active is None:
            active = cart
    return active


def get_active_cart(owner) -> ShoppingCart:
    cart = find_active_cart(owner)
    if cart is None:
        raise CartNotFound(message="No active cart found")
    return cart


def get_or_create_active_cart(owner) -> ShoppingCart:
    cart = find_active_cart(owner)
    if cart is None:
        settings = get_settings()
        cart = ShoppingCart.create(
            owner,
            currency=settings.currency,
            tax_rate=settings.tax_rate,
            ttl_days=settings.cart_ttl_days,
        )
        logger.debug("Created cart", cart_id=str(cart.id), owner_kind=owner.kind, owner_id=owner.id)
    return cart
