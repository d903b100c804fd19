"""
Storefront Discount Ledger — Policies
=======================================
Each policy inspects one rule and either passes (None) or explains
the rejection. Evaluated in order; the first rejection wins.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from core.commands.rejection import ReasonCode, RejectionReason
from core.time.temporal import TimeWindow
from engines.discount.models import Discount


def discount_must_exist_policy(
    discount: Optional[Discount], *, code: str,
) -> Optional[RejectionReason]:
    if discount is None or not discount.is_active:
        return RejectionReason(
            code=ReasonCode.DISCOUNT_NOT_FOUND,
            message=f"Discount code '{code}' is not valid.",
            policy_name="discount_must_exist_policy",
        )
    return None


def discount_window_policy(
    discount: Discount, *, now: datetime,
) -> Optional[RejectionReason]:
    if discount.end_date < discount.start_date or not TimeWindow(
        start=discount.start_date, end=discount.end_date,
    ).contains(now):
        return RejectionReason(
            code=ReasonCode.DISCOUNT_EXPIRED,
            message=f"Discount code '{discount.code}' is outside its validity period.",
            policy_name="discount_window_policy",
        )
    return None


def discount_usage_limit_policy(discount: Discount) -> Optional[RejectionReason]:
    if discount.usage_limit is not None and discount.used_count >= discount.usage_limit:
        return RejectionReason(
            code=ReasonCode.DISCOUNT_EXHAUSTED,
            message=f"Discount code '{discount.code}' has no uses left.",
            policy_name="discount_usage_limit_policy",
        )
    return None


def discount_min_order_policy(
    discount: Discount, *, subtotal: Decimal,
) -> Optional[RejectionReason]:
    if subtotal < discount.min_order_value:
        return RejectionReason(
            code=ReasonCode.DISCOUNT_MIN_ORDER_NOT_MET,
            message=(
                f"Order subtotal must be at least {discount.min_order_value} "
                f"to use '{discount.code}'."
            ),
            policy_name="discount_min_order_policy",
        )
    return None


def evaluate_discount_policies(
    discount: Optional[Discount],
    *,
    code: str,
    subtotal: Decimal,
    now: datetime,
) -> Optional[RejectionReason]:
    reason = discount_must_exist_policy(discount, code=code)
    if reason is not None:
        return reason
    return (
        discount_window_policy(discount, now=now)
        or discount_usage_limit_policy(discount)
        or discount_min_order_policy(discount, subtotal=subtotal)
    )
