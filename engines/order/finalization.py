"""
Storefront Orders — Finalization Engine
========================================
The only path by which an order becomes paid, and the only caller of
the two settlement side effects (stock deduction, discount usage).

Every check-then-write here is one conditional UPDATE, so concurrent
callers (browser return racing the gateway notification, duplicate
notifications) settle an order exactly once:

    payment_status != paid  → paid       (the idempotency gate)
    stock_deducted = False  → True       (fence, then per-line decrement)
    discount_used  = False  → True       (fence, then used_count + 1)

Fences are claimed inside the same transaction as the side effect
they guard; a failed side effect releases its fence on rollback.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from django.db import transaction
from django.db.models import Case, F, Value, When

from core.time.clock import now_utc
from engines.catalog.services import (
    InsufficientStockError,
    decrement_stock_if_available,
)
from engines.discount.services import UnknownDiscountCodeError, increment_usage
from engines.order.models import Order, OrderItem, OrderStatus, PaymentStatus

logger = logging.getLogger("bakery.orders")

# A refunded order was paid once; late callbacks must not reopen it.
SETTLED_PAYMENT_STATUSES = (PaymentStatus.PAID, PaymentStatus.REFUNDED)


# ══════════════════════════════════════════════════════════════
# FENCED SIDE EFFECTS
# ══════════════════════════════════════════════════════════════

def deduct_stock_if_needed(order: Order) -> Order:
    """
    Decrement stock for every line, at most once per order.

    Raises InsufficientStockError if any product lacks the units; the
    fence claim and every decrement already made are rolled back.
    """
    if order.stock_deducted:
        return order

    with transaction.atomic():
        claimed = Order.objects.filter(pk=order.pk, stock_deducted=False).update(
            stock_deducted=True
        )
        if claimed:
            lines = OrderItem.objects.filter(order_id=order.pk).order_by("position")
            for line in lines:
                if not decrement_stock_if_available(line.product_id, line.quantity):
                    raise InsufficientStockError(line.product_id, line.quantity)
            logger.info("Stock deducted for order %s", order.pk)

    order.refresh_from_db()
    return order


def mark_discount_used_if_needed(order: Order) -> Order:
    """
    Count one use of the order's discount code, at most once per order.

    Raises UnknownDiscountCodeError if the code is gone from the ledger;
    the fence claim is rolled back so a later settle can count it.
    """
    if not order.discount_code or order.discount_used:
        return order

    with transaction.atomic():
        claimed = (
            Order.objects.filter(pk=order.pk, discount_used=False)
            .exclude(discount_code__isnull=True)
            .exclude(discount_code="")
            .update(discount_used=True)
        )
        if claimed:
            if not increment_usage(order.discount_code):
                raise UnknownDiscountCodeError(order.discount_code)
            logger.info(
                "Discount %s usage counted for order %s", order.discount_code, order.pk
            )

    order.refresh_from_db()
    return order


def _run_settlement(order: Order) -> Order:
    try:
        order = deduct_stock_if_needed(order)
    except InsufficientStockError as exc:
        order.refresh_from_db()
        logger.error(
            "Order %s is paid but stock could not be deducted: %s",
            order.pk,
            exc,
        )
    try:
        order = mark_discount_used_if_needed(order)
    except UnknownDiscountCodeError as exc:
        order.refresh_from_db()
        logger.error(
            "Order %s is paid but discount usage could not be counted: %s",
            order.pk,
            exc,
        )
    return order


# ══════════════════════════════════════════════════════════════
# PAYMENT TRANSITIONS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class FinalizeResult:
    order: Order
    transitioned: bool


def finalize_payment(
    order: Order,
    *,
    payment_ref: Optional[str] = None,
    payment_message: Optional[str] = None,
    paid_at: Optional[datetime] = None,
    status: Optional[str] = None,
) -> FinalizeResult:
    """
    Mark the order paid and run settlement. Calling this for an order
    that is already paid changes nothing and reports transitioned=False,
    including when `order` is a stale copy that still says pending.

    Fulfillment status moves to `status` (default confirmed) from any
    state except cancelled; a cancelled order stays cancelled.
    """
    target_status = status or OrderStatus.CONFIRMED
    with transaction.atomic():
        updated = (
            Order.objects.filter(pk=order.pk)
            .exclude(payment_status__in=SETTLED_PAYMENT_STATUSES)
            .update(
                payment_status=PaymentStatus.PAID,
                status=Case(
                    When(status=OrderStatus.CANCELLED, then=F("status")),
                    default=Value(target_status),
                ),
                payment_ref=payment_ref if payment_ref is not None else F("payment_ref"),
                payment_message=(
                    payment_message if payment_message is not None
                    else F("payment_message")
                ),
                paid_at=paid_at or now_utc(),
            )
        )
        order.refresh_from_db()
        if not updated:
            logger.info("Order %s already paid; finalize is a no-op", order.pk)
            return FinalizeResult(order=order, transitioned=False)

        logger.info("Order %s marked paid (ref=%s)", order.pk, order.payment_ref)
        order = _run_settlement(order)

    return FinalizeResult(order=order, transitioned=True)


def finalize_paid_order(
    order: Order,
    *,
    payment_ref: Optional[str] = None,
    payment_message: Optional[str] = None,
    paid_at: Optional[datetime] = None,
    status: Optional[str] = None,
) -> Order:
    """Idempotent: returns the stored order whether or not this call paid it."""
    return finalize_payment(
        order,
        payment_ref=payment_ref,
        payment_message=payment_message,
        paid_at=paid_at,
        status=status,
    ).order


def settle_paid_order(order: Order) -> Order:
    """Re-run settlement for a paid order whose side effects did not complete."""
    order.refresh_from_db()
    if order.payment_status != PaymentStatus.PAID:
        raise ValueError(f"Order {order.pk} is not paid.")
    with transaction.atomic():
        order = _run_settlement(order)
    return order


def mark_payment_failed(order: Order, message: str) -> bool:
    """
    Record a failed payment attempt. Never downgrades a paid order;
    returns False when the order was already paid.
    """
    updated = (
        Order.objects.filter(pk=order.pk)
        .exclude(payment_status__in=SETTLED_PAYMENT_STATUSES)
        .update(payment_status=PaymentStatus.FAILED, payment_message=message)
    )
    order.refresh_from_db()
    if updated:
        logger.info("Order %s payment failed: %s", order.pk, message)
    return updated == 1
