"""
Storefront Discount Ledger — Application Service
==================================================
apply() validates a code against the live ledger and stores an
advisory descriptor in the session. It never touches used_count:
the counter moves only through increment_usage(), called once per
settled order by the finalization engine.

Checkout recomputes the amount from the descriptor against a fresh
subtotal; the preview returned here is display-only.
"""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from django.db import IntegrityError, transaction
from django.db.models import F

from core.commands.rejection import ReasonCode, RejectedError, RejectionReason
from core.primitives.money import ZERO, to_money
from core.time.clock import Clock, SystemClock
from engines.catalog.services import parse_uuid
from engines.discount.commands import (
    DiscountApplyRequest,
    DiscountCreateRequest,
    normalize_code,
)
from engines.discount.models import Discount, DiscountType
from engines.discount.policies import evaluate_discount_policies

logger = logging.getLogger("bakery.discounts")

SESSION_APPLIED_DISCOUNT_KEY = "applied_discount"


class UnknownDiscountCodeError(Exception):
    """An order names a discount code the ledger no longer holds."""

    def __init__(self, code: str):
        super().__init__(f"Discount code {code} is not in the ledger.")
        self.code = code


@dataclass(frozen=True)
class AppliedDiscount:
    """Session-held descriptor of the code a visitor applied."""

    code: str
    discount_type: str
    value: Decimal
    max_discount: Optional[Decimal] = None

    def to_session(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "type": self.discount_type,
            "value": str(self.value),
            "max_discount": None if self.max_discount is None else str(self.max_discount),
        }

    @classmethod
    def from_session(cls, raw: Any) -> Optional["AppliedDiscount"]:
        if not isinstance(raw, dict) or not raw.get("code"):
            return None
        try:
            return cls(
                code=normalize_code(raw["code"]),
                discount_type=str(raw.get("type", "")),
                value=to_money(raw.get("value", "0")),
                max_discount=(
                    None if raw.get("max_discount") in (None, "")
                    else to_money(raw["max_discount"])
                ),
            )
        except ValueError:
            logger.warning("Discarding malformed applied-discount descriptor: %r", raw)
            return None

    @classmethod
    def from_discount(cls, discount: Discount) -> "AppliedDiscount":
        return cls(
            code=discount.code,
            discount_type=discount.discount_type,
            value=to_money(discount.discount_value),
            max_discount=(
                None if discount.max_discount is None else to_money(discount.max_discount)
            ),
        )


@dataclass(frozen=True)
class DiscountPreview:
    applied: AppliedDiscount
    subtotal: Decimal
    discount_amount: Decimal
    min_order_value: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.applied.code,
            "type": self.applied.discount_type,
            "value": str(self.applied.value),
            "max_discount": (
                None if self.applied.max_discount is None else str(self.applied.max_discount)
            ),
            "subtotal": str(self.subtotal),
            "discount_amount": str(self.discount_amount),
            "min_order_value": str(self.min_order_value),
        }


def compute_discount_amount(applied: AppliedDiscount, subtotal: Decimal) -> Decimal:
    """percentage → subtotal × value / 100, fixed → value; both capped."""
    subtotal = to_money(subtotal)
    if applied.discount_type == DiscountType.PERCENTAGE:
        amount = to_money(subtotal * applied.value / Decimal(100))
    elif applied.discount_type == DiscountType.FIXED:
        amount = to_money(applied.value)
    else:
        return ZERO
    if applied.max_discount is not None and amount > applied.max_discount:
        amount = applied.max_discount
    return amount


def get_applied_discount(session: MutableMapping[str, Any]) -> Optional[AppliedDiscount]:
    return AppliedDiscount.from_session(session.get(SESSION_APPLIED_DISCOUNT_KEY))


def clear_applied_discount(session: MutableMapping[str, Any]) -> None:
    session.pop(SESSION_APPLIED_DISCOUNT_KEY, None)


def increment_usage(code: str) -> bool:
    """
    used_count += 1 for the code. The usage limit is not re-checked
    here; it is enforced when the code is applied.
    """
    updated = Discount.objects.filter(code=normalize_code(code)).update(
        used_count=F("used_count") + 1
    )
    if not updated:
        logger.warning("Usage increment for unknown discount code %s", code)
    return updated == 1


def serialize_discount(discount: Discount) -> dict[str, Any]:
    return {
        "id": str(discount.pk),
        "code": discount.code,
        "description": discount.description,
        "discount_type": discount.discount_type,
        "discount_value": str(discount.discount_value),
        "min_order_value": str(discount.min_order_value),
        "max_discount": None if discount.max_discount is None else str(discount.max_discount),
        "usage_limit": discount.usage_limit,
        "used_count": discount.used_count,
        "start_date": discount.start_date.isoformat(),
        "end_date": discount.end_date.isoformat(),
        "is_active": discount.is_active,
    }


def _code_taken(code: str) -> RejectedError:
    return RejectedError(
        RejectionReason(
            code=ReasonCode.DISCOUNT_CODE_TAKEN,
            message=f"Discount code '{code}' already exists.",
            policy_name="discount_code_unique_policy",
        )
    )


class DiscountLedger:
    def __init__(self, *, clock: Clock | None = None):
        self._clock = clock or SystemClock()

    def apply(
        self,
        request: DiscountApplyRequest,
        session: MutableMapping[str, Any],
    ) -> DiscountPreview:
        discount = Discount.objects.filter(code=request.code, is_active=True).first()
        reason = evaluate_discount_policies(
            discount,
            code=request.code,
            subtotal=request.cart_subtotal,
            now=self._clock.now_utc(),
        )
        if reason is not None:
            logger.info("Discount %s rejected: %s", request.code, reason.code)
            raise RejectedError(reason)

        applied = AppliedDiscount.from_discount(discount)
        session[SESSION_APPLIED_DISCOUNT_KEY] = applied.to_session()
        return DiscountPreview(
            applied=applied,
            subtotal=request.cart_subtotal,
            discount_amount=compute_discount_amount(applied, request.cart_subtotal),
            min_order_value=to_money(discount.min_order_value),
        )

    def remove(self, session: MutableMapping[str, Any]) -> None:
        clear_applied_discount(session)

    # ── Back office ───────────────────────────────────────────

    def create(self, request: DiscountCreateRequest) -> Discount:
        if Discount.objects.filter(code=request.code).exists():
            raise _code_taken(request.code)
        try:
            with transaction.atomic():
                discount = Discount.objects.create(
                    code=request.code,
                    description=request.description.strip(),
                    discount_type=request.discount_type,
                    discount_value=request.discount_value,
                    min_order_value=request.min_order_value,
                    max_discount=request.max_discount,
                    usage_limit=request.usage_limit,
                    start_date=request.start_date,
                    end_date=request.end_date,
                )
        except IntegrityError as exc:
            raise _code_taken(request.code) from exc
        logger.info("Discount %s created", discount.code)
        return discount

    def update(
        self,
        discount_id: Any,
        request: DiscountCreateRequest,
        *,
        is_active: bool = True,
    ) -> Discount:
        discount = self._get(discount_id)
        if Discount.objects.filter(code=request.code).exclude(pk=discount.pk).exists():
            raise _code_taken(request.code)
        discount.code = request.code
        discount.description = request.description.strip()
        discount.discount_type = request.discount_type
        discount.discount_value = request.discount_value
        discount.min_order_value = request.min_order_value
        discount.max_discount = request.max_discount
        discount.usage_limit = request.usage_limit
        discount.start_date = request.start_date
        discount.end_date = request.end_date
        discount.is_active = is_active
        try:
            with transaction.atomic():
                # used_count belongs to order settlement
                discount.save(update_fields=[
                    "code", "description", "discount_type", "discount_value",
                    "min_order_value", "max_discount", "usage_limit",
                    "start_date", "end_date", "is_active",
                ])
        except IntegrityError as exc:
            raise _code_taken(request.code) from exc
        return discount

    def deactivate(self, discount_id: Any) -> Discount:
        discount = self._get(discount_id)
        Discount.objects.filter(pk=discount.pk).update(is_active=False)
        discount.refresh_from_db()
        logger.info("Discount %s deactivated", discount.code)
        return discount

    def list_all(self) -> tuple[Discount, ...]:
        return tuple(Discount.objects.order_by("-created_at"))

    def _get(self, discount_id: Any) -> Discount:
        pk = parse_uuid(discount_id)
        discount = None if pk is None else Discount.objects.filter(pk=pk).first()
        if discount is None:
            raise RejectedError(
                RejectionReason(
                    code=ReasonCode.DISCOUNT_NOT_FOUND,
                    message=f"Discount '{discount_id}' not found.",
                    policy_name="discount_must_exist_policy",
                )
            )
        return discount
