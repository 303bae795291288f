"""Cart expiry: reclaim carts left untouched past their expiry.

Triggered by an external scheduler, the same way abandonment sweeps are.
Reclaimed carts are deactivated, never deleted.
"""

import structlog
from protean import handle
from protean.fields import DateTime
from protean.utils.globals import current_domain

from checkout.cart.cart import DeactivationReason, ShoppingCart
from checkout.domain import checkout
from checkout.shared.clock import utcnow
from checkout.shared.revision import save_revisioned

logger = structlog.get_logger(__name__)


@checkout.command(part_of="ShoppingCart")
class ReclaimExpiredCarts:
    as_of = DateTime()  # Optional: defaults to now


@checkout.command_handler(part_of=ShoppingCart)
class ReclaimExpiredCartsHandler:
    @handle(ReclaimExpiredCarts)
    def reclaim_expired_carts(self, command):
        as_of = command.as_of or utcnow()
        repo = current_domain.repository_for(ShoppingCart)

        expired = repo.find_expired(as_of)
        if not expired:
            logger.info("No expired carts found", as_of=as_of.isoformat())
            return 0

        for cart in expired:
            cart.deactivate(DeactivationReason.EXPIRED.value)
            save_revisioned(repo, cart)
            logger.info("Expired cart reclaimed", cart_id=str(cart.id), expires_at=str(cart.expires_at))

        return len(expired)
