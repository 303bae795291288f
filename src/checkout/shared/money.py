"""Rounding helpers for monetary amounts."""

from decimal import ROUND_HALF_UP, Decimal


def round_money(amount) -> float:
    """Round to two decimal places, half away from zero."""
    return float(Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def to_minor_units(amount) -> int:
    """Convert a major-unit amount into minor units, never less than one."""
    minor = int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return max(1, minor)
