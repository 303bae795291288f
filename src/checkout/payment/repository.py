"""Repository for the PaymentAudit aggregate."""

from checkout.domain import checkout
from checkout.payment.audit import PaymentAudit


@checkout.repository(part_of=PaymentAudit)
class PaymentAuditRepository:
    def find_by_gateway_order(self, gateway_order_id: str) -> PaymentAudit | None:
        results = self._dao.query.filter(gateway_order_id=gateway_order_id).all().items
        return results[0] if results else None
