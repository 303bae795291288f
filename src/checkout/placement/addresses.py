"""Address resolution for checkout.

Addresses reach checkout in two shapes: the flat one
(``fullName``/``full_name``, ``street``, ``city``, ``pincode``...) and an older
nested one (``{"name", "phone", "address": {"street", "city", "zipCode"...}}``).
Both are normalised to the same keys before validation. An address missing
from the request falls back to the owner's default address; the billing
address also needs an email, which falls back to the customer's profile.
"""

from dataclasses import dataclass

from checkout.customers.port import Address
from checkout.exceptions import ValidationFailed
from checkout.order.order import PostalAddress

REQUIRED_FIELDS = ("full_name", "phone", "street", "city", "state", "postal_code", "country")

_ALIASES = {
    "full_name": ("full_name", "fullName", "name"),
    "email": ("email",),
    "phone": ("phone", "phoneNumber", "phone_number"),
    "street": ("street", "addressLine1", "line1"),
    "city": ("city",),
    "state": ("state",),
    "postal_code": ("postal_code", "pincode", "zipCode", "zip_code", "zip"),
    "country": ("country",),
    "landmark": ("landmark",),
}


def _pick(source: dict, keys) -> str | None:
    for key in keys:
        value = source.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


def normalize_address(raw) -> dict | None:
    """Map any accepted address shape onto canonical keys, or None."""
    if raw is None:
        return None
    if isinstance(raw, Address):
        raw = raw.to_dict()
    elif hasattr(raw, "model_dump"):
        raw = raw.model_dump(exclude_none=True)
    if not isinstance(raw, dict) or not raw:
        return None

    nested = raw.get("address")
    source = dict(nested) if isinstance(nested, dict) else {}
    # Top-level name/email/phone win over anything inside the nested block
    for key, value in raw.items():
        if key != "address" and value is not None:
            source[key] = value

    normalized = {field: _pick(source, aliases) for field, aliases in _ALIASES.items()}
    if normalized["country"] is None:
        normalized["country"] = "India"
    return normalized


def missing_fields(address: dict, require_email: bool = False) -> list[str]:
    required = REQUIRED_FIELDS + (("email",) if require_email else ())
    return [field for field in required if not address.get(field)]


@dataclass(frozen=True)
class ResolvedAddresses:
    billing: PostalAddress
    shipping: PostalAddress


def resolve_addresses(owner, shipping=None, billing=None, address_book=None, fallback_email=None) -> ResolvedAddresses:
    """Resolve and validate both addresses for ``owner``.

    Raises ValidationFailed with one entry per incomplete field.
    """
    default = None
    shipping_data = normalize_address(shipping)
    billing_data = normalize_address(billing)
    if (shipping_data is None or billing_data is None) and address_book is not None:
        default = normalize_address(address_book.get_default_address(owner))

    shipping_data = shipping_data or default
    if billing_data is None and default is not None:
        billing_data = dict(default)
        # The profile email wins over the one saved with the address
        if fallback_email:
            billing_data["email"] = fallback_email
    billing_data = billing_data or (dict(shipping_data) if shipping_data else None)

    errors: dict[str, list[str]] = {}
    if shipping_data is None:
        errors["shipping_address"] = ["Shipping address is required"]
    else:
        for field in missing_fields(shipping_data):
            errors[f"shipping_address.{field}"] = ["This field is required"]

    if billing_data is None:
        errors["billing_address"] = ["Billing address is required"]
    else:
        if not billing_data.get("email") and fallback_email:
            billing_data = {**billing_data, "email": fallback_email}
        for field in missing_fields(billing_data, require_email=True):
            errors[f"billing_address.{field}"] = ["This field is required"]

    if errors:
        raise ValidationFailed(errors)

    return ResolvedAddresses(
        billing=PostalAddress(**billing_data),
        shipping=PostalAddress(**shipping_data),
    )
