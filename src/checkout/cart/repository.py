"""Repository for the ShoppingCart aggregate."""

from checkout.cart.cart import ShoppingCart
from checkout.domain import checkout
from checkout.shared.clock import as_utc


@checkout.repository(part_of=ShoppingCart)
class ShoppingCartRepository:
    def find_active_for(self, owner) -> list[ShoppingCart]:
        """Active carts of ``owner``, most recently touched first."""
        carts = self._dao.query.filter(owner_kind=owner.kind, owner_id=owner.id, is_active=True).all().items
        return sorted(carts, key=lambda c: as_utc(c.updated_at or c.created_at), reverse=True)

    def find_expired(self, as_of) -> list[ShoppingCart]:
        carts = self._dao.query.filter(is_active=True).all().items
        return [c for c in carts if c.is_expired(as_of)]
