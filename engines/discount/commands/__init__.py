"""
Storefront Discount Ledger — Request Commands
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from core.primitives.money import to_money

VALID_DISCOUNT_TYPES = frozenset({"percentage", "fixed"})


def normalize_code(code: str) -> str:
    if not isinstance(code, str) or not code.strip():
        raise ValueError("discount code must be non-empty.")
    return code.strip().upper()


@dataclass(frozen=True)
class DiscountApplyRequest:
    code: str
    cart_subtotal: Decimal

    def __post_init__(self):
        object.__setattr__(self, "code", normalize_code(self.code))
        subtotal = to_money(self.cart_subtotal)
        if subtotal < 0:
            raise ValueError("cart_subtotal must be >= 0.")
        object.__setattr__(self, "cart_subtotal", subtotal)


@dataclass(frozen=True)
class DiscountCreateRequest:
    code: str
    discount_type: str
    discount_value: Decimal
    start_date: datetime
    end_date: datetime
    min_order_value: Decimal = Decimal("0")
    max_discount: Optional[Decimal] = None
    usage_limit: Optional[int] = None
    description: str = ""

    def __post_init__(self):
        object.__setattr__(self, "code", normalize_code(self.code))
        if self.discount_type not in VALID_DISCOUNT_TYPES:
            raise ValueError(f"discount_type '{self.discount_type}' not valid.")

        value = to_money(self.discount_value)
        if value <= 0:
            raise ValueError("discount_value must be positive.")
        if self.discount_type == "percentage" and value > 100:
            raise ValueError("percentage discount_value must be <= 100.")
        object.__setattr__(self, "discount_value", value)

        min_order = to_money(self.min_order_value)
        if min_order < 0:
            raise ValueError("min_order_value must be >= 0.")
        object.__setattr__(self, "min_order_value", min_order)

        if self.max_discount is not None:
            cap = to_money(self.max_discount)
            if cap <= 0:
                raise ValueError("max_discount must be positive when set.")
            object.__setattr__(self, "max_discount", cap)

        if self.usage_limit is not None:
            if not isinstance(self.usage_limit, int) or self.usage_limit < 1:
                raise ValueError("usage_limit must be a positive integer when set.")

        if not isinstance(self.start_date, datetime) or not isinstance(self.end_date, datetime):
            raise ValueError("start_date and end_date must be datetimes.")
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date.")
