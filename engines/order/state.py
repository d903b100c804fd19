"""
Storefront Orders — State Machine
==================================
Two independent axes per order:

Fulfillment:  pending → confirmed → shipped → delivered
              any non-terminal state → cancelled
Payment:      pending → paid | failed, failed → paid,
              paid → refunded (back office only)

finalize_paid_order() is the only writer of payment_status=paid;
it does not consult PAYMENT_WORKFLOW because its conditional UPDATE
already encodes "anything but paid → paid".
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from core.primitives.workflow import WorkflowDefinition
from core.time.temporal import within_days
from engines.order.models import Order, OrderStatus, PaymentStatus

REVIEW_WINDOW_DAYS = 7

FULFILLMENT_WORKFLOW = WorkflowDefinition(
    name="OrderFulfillment",
    initial_state=OrderStatus.PENDING,
    terminal_states=frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    transitions={
        OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
        OrderStatus.CONFIRMED: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
        OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
        OrderStatus.DELIVERED: frozenset(),
        OrderStatus.CANCELLED: frozenset(),
    },
)

PAYMENT_WORKFLOW = WorkflowDefinition(
    name="OrderPayment",
    initial_state=PaymentStatus.PENDING,
    terminal_states=frozenset({PaymentStatus.REFUNDED}),
    transitions={
        PaymentStatus.PENDING: frozenset({PaymentStatus.PAID, PaymentStatus.FAILED}),
        PaymentStatus.FAILED: frozenset({PaymentStatus.PAID}),
        PaymentStatus.PAID: frozenset({PaymentStatus.REFUNDED}),
        PaymentStatus.REFUNDED: frozenset(),
    },
)


def can_transition(from_status: str, to_status: str) -> bool:
    return FULFILLMENT_WORKFLOW.is_valid_transition(from_status, to_status)


def can_refund(order: Order) -> bool:
    return PAYMENT_WORKFLOW.is_valid_transition(
        order.payment_status, PaymentStatus.REFUNDED
    )


def review_window_open(order: Order, now: datetime) -> bool:
    return within_days(order.created_at, now, REVIEW_WINDOW_DAYS)


def review_block_reason(
    order: Order, now: datetime, *, already_reviewed: bool,
) -> Optional[str]:
    """None when the order's items can be reviewed, else why not."""
    if order.status != OrderStatus.DELIVERED:
        return "Order has not been delivered yet."
    if already_reviewed:
        return "You have already reviewed this product for this order."
    if not review_window_open(order, now):
        return f"Reviews close {REVIEW_WINDOW_DAYS} days after the order date."
    return None
