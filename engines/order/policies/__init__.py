"""
Storefront Orders — Policies
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from core.commands.rejection import ReasonCode, RejectionReason
from engines.catalog.models import Product
from engines.order.models import Order, PaymentMethod, PaymentStatus
from engines.order.state import FULFILLMENT_WORKFLOW


def line_product_available_policy(
    product: Optional[Product], *, product_id: str, quantity: int,
) -> Optional[RejectionReason]:
    if product is None:
        return RejectionReason(
            code=ReasonCode.PRODUCT_NOT_FOUND,
            message=f"Product {product_id} is no longer available.",
            policy_name="line_product_available_policy",
        )
    if product.stock < quantity:
        return RejectionReason(
            code=ReasonCode.INSUFFICIENT_STOCK,
            message=(
                f"Only {product.stock} of '{product.name}' left, "
                f"{quantity} requested."
            ),
            policy_name="line_product_available_policy",
        )
    return None


def order_must_exist_policy(
    order: Optional[Order], *, order_id: object, customer_id: Optional[UUID] = None,
) -> Optional[RejectionReason]:
    """Another customer's order is reported as missing."""
    if order is None or (customer_id is not None and order.customer_id != customer_id):
        return RejectionReason(
            code=ReasonCode.ORDER_NOT_FOUND,
            message=f"Order {order_id} not found.",
            policy_name="order_must_exist_policy",
        )
    return None


def status_transition_policy(order: Order, new_status: str) -> Optional[RejectionReason]:
    if not FULFILLMENT_WORKFLOW.is_valid_transition(order.status, new_status):
        return RejectionReason(
            code=ReasonCode.INVALID_STATUS_TRANSITION,
            message=f"Cannot move order from {order.status} to {new_status}.",
            policy_name="status_transition_policy",
        )
    return None


def gateway_payable_policy(order: Order) -> Optional[RejectionReason]:
    if order.payment_method != PaymentMethod.GATEWAY:
        return RejectionReason(
            code=ReasonCode.WRONG_PAYMENT_METHOD,
            message="Order is not paid through the online gateway.",
            policy_name="gateway_payable_policy",
        )
    if order.payment_status in (PaymentStatus.PAID, PaymentStatus.REFUNDED):
        return RejectionReason(
            code=ReasonCode.ORDER_ALREADY_PAID,
            message="Order is already paid.",
            policy_name="gateway_payable_policy",
        )
    return None


def order_paid_policy(order: Order) -> Optional[RejectionReason]:
    if order.payment_status != PaymentStatus.PAID:
        return RejectionReason(
            code=ReasonCode.ORDER_NOT_PAID,
            message=f"Order {order.pk} is not paid.",
            policy_name="order_paid_policy",
        )
    return None
