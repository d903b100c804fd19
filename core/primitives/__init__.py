"""
Storefront Core Primitives
============================
Pure Python building blocks shared by every engine.

Primitives:
    money — Decimal amounts and gateway minor-unit conversion
"""

from core.primitives.money import (
    CENT,
    ZERO,
    clamp_non_negative,
    to_minor_units,
    to_money,
)

__all__ = [
    "CENT",
    "ZERO",
    "clamp_non_negative",
    "to_minor_units",
    "to_money",
]
