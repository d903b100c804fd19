"""
Storefront Core Primitives — Money
====================================
Amounts are Decimal with two fractional digits, rounded half-up.
The payment gateway speaks minor units (amount × 100, integer).
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

CENT = Decimal("0.01")
UNIT = Decimal("1")
ZERO = Decimal("0.00")


def to_money(value: Any) -> Decimal:
    """Coerce int/str/Decimal into a two-place Decimal."""
    if isinstance(value, float):
        value = repr(value)
    try:
        amount = Decimal(value)
    except Exception as exc:
        raise ValueError(f"Invalid money amount: {value!r}.") from exc
    if not amount.is_finite():
        raise ValueError(f"Invalid money amount: {value!r}.")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Any) -> int:
    return int((to_money(amount) * 100).quantize(UNIT, rounding=ROUND_HALF_UP))


def clamp_non_negative(amount: Decimal) -> Decimal:
    return amount if amount > ZERO else ZERO
