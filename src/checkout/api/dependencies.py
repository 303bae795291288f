"""FastAPI dependencies: caller identity and application services.

Authentication happens upstream. The gateway in front of this service
forwards the authenticated buyer as ``X-Owner-Kind`` / ``X-Owner-Id`` and an
authenticated administrator as ``X-Admin-Id``; a request without the identity
a route needs is unauthenticated.
"""

from fastapi import Header, Request
from protean.exceptions import ValidationError

from checkout.exceptions import AuthenticationRequired
from checkout.services import Services
from checkout.shared.owner import Owner
from checkout.utils.logging import bind_caller


async def current_owner(
    x_owner_kind: str | None = Header(None),
    x_owner_id: str | None = Header(None),
) -> Owner:
    if not x_owner_kind or not x_owner_id:
        raise AuthenticationRequired("Authentication required")
    try:
        owner = Owner.parse(x_owner_kind, x_owner_id)
    except ValidationError as exc:
        raise AuthenticationRequired("Unrecognised identity") from exc
    bind_caller(owner=owner)
    return owner


async def current_admin(x_admin_id: str | None = Header(None)) -> str:
    """The administrator acting on this request."""
    if not x_admin_id or not x_admin_id.strip():
        raise AuthenticationRequired("Admin authentication required")
    admin_id = x_admin_id.strip()
    bind_caller(admin_id=admin_id)
    return admin_id


def get_services(request: Request) -> Services:
    return request.app.state.services
