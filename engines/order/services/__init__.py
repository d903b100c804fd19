"""
Storefront Orders — Application Service
=========================================
Checkout turns the session cart into an Order:

    validate cart + shipping → price from catalog → apply discount
    → persist order + items → (cash on delivery) finalize immediately

The discount amount is always recomputed here from the session
descriptor and the fresh subtotal; the client never supplies it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple
from uuid import UUID

from django.db import transaction

from core.commands.rejection import RejectedError
from core.context.request_context import RequestContext
from core.primitives.money import ZERO, clamp_non_negative, to_money
from core.time.clock import Clock, SystemClock
from engines.cart import SessionCart, cart_not_empty_policy
from engines.catalog.services import get_products_by_ids, parse_uuid
from engines.customer.services import save_shipping_info
from engines.discount.services import (
    clear_applied_discount,
    compute_discount_amount,
    get_applied_discount,
)
from engines.order.commands import CheckoutRequest
from engines.order.finalization import finalize_paid_order
from engines.order.models import Order, OrderItem, PaymentMethod
from engines.order.policies import (
    line_product_available_policy,
    order_must_exist_policy,
)
from engines.order.state import FULFILLMENT_WORKFLOW, PAYMENT_WORKFLOW

logger = logging.getLogger("bakery.orders")

COD_PAYMENT_MESSAGE = "Cash on delivery"


@dataclass(frozen=True)
class CheckoutResult:
    order: Order

    @property
    def requires_payment_redirect(self) -> bool:
        return self.order.payment_method == PaymentMethod.GATEWAY


class CheckoutService:
    def __init__(self, *, clock: Clock | None = None):
        self._clock = clock or SystemClock()

    def checkout(self, context: RequestContext, request: CheckoutRequest) -> CheckoutResult:
        customer_id = context.require_customer()
        cart = SessionCart(context.session)
        lines = cart.lines()

        reason = cart_not_empty_policy(lines)
        if reason is not None:
            raise RejectedError(reason)

        products = get_products_by_ids(line.product_id for line in lines)
        for line in lines:
            reason = line_product_available_policy(
                products.get(line.product_id),
                product_id=line.product_id,
                quantity=line.quantity,
            )
            if reason is not None:
                raise RejectedError(reason)

        priced = cart.priced_lines(products)
        total_price = to_money(sum((line.subtotal for line in priced), ZERO))

        applied = get_applied_discount(context.session)
        discount_amount = ZERO
        if applied is not None:
            discount_amount = compute_discount_amount(applied, total_price)
        final_price = clamp_non_negative(total_price - discount_amount)

        with transaction.atomic():
            order = Order.objects.create(
                customer_id=customer_id,
                total_price=total_price,
                discount_code=applied.code if applied is not None else None,
                discount_amount=discount_amount,
                final_price=final_price,
                payment_method=request.payment_method,
                status=FULFILLMENT_WORKFLOW.initial_state,
                payment_status=PAYMENT_WORKFLOW.initial_state,
                shipping_name=request.name,
                shipping_phone=request.phone,
                shipping_address=request.address,
                created_at=self._clock.now_utc(),
            )
            OrderItem.objects.bulk_create([
                OrderItem(
                    order=order,
                    position=position,
                    product=line.product,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                )
                for position, line in enumerate(priced)
            ])
            save_shipping_info(
                customer_id,
                name=request.name,
                phone=request.phone,
                address=request.address,
            )

        logger.info(
            "Order %s created: total=%s discount=%s final=%s method=%s",
            order.pk, total_price, discount_amount, final_price, order.payment_method,
        )

        if order.payment_method == PaymentMethod.COD:
            order = finalize_paid_order(
                order,
                payment_message=COD_PAYMENT_MESSAGE,
                paid_at=self._clock.now_utc(),
            )
            cart.clear()
            clear_applied_discount(context.session)

        return CheckoutResult(order=order)


# ══════════════════════════════════════════════════════════════
# QUERIES
# ══════════════════════════════════════════════════════════════

def get_order(order_id: Any) -> Optional[Order]:
    pk = parse_uuid(order_id)
    if pk is None:
        return None
    return Order.objects.select_related("customer").filter(pk=pk).first()


def get_order_for_customer(customer_id: UUID, order_id: Any) -> Order:
    order = get_order(order_id)
    reason = order_must_exist_policy(order, order_id=order_id, customer_id=customer_id)
    if reason is not None:
        raise RejectedError(reason)
    return order


def list_orders_for_customer(customer_id: UUID) -> Tuple[Order, ...]:
    return tuple(
        Order.objects.filter(customer_id=customer_id)
        .prefetch_related("items__product")
        .order_by("-created_at")
    )


def serialize_order_item(item: OrderItem) -> dict:
    return {
        "product_id": str(item.product_id),
        "name": item.product.name,
        "quantity": item.quantity,
        "unit_price": str(item.unit_price),
        "subtotal": str(to_money(item.subtotal)),
    }


def serialize_order(order: Order, *, include_items: bool = True) -> dict:
    data = {
        "id": str(order.pk),
        "status": order.status,
        "payment_method": order.payment_method,
        "payment_status": order.payment_status,
        "payment_ref": order.payment_ref,
        "payment_message": order.payment_message,
        "paid_at": order.paid_at.isoformat() if order.paid_at else None,
        "total_price": str(order.total_price),
        "discount_code": order.discount_code,
        "discount_amount": str(order.discount_amount),
        "final_price": str(order.final_price),
        "shipping": {
            "name": order.shipping_name,
            "phone": order.shipping_phone,
            "address": order.shipping_address,
        },
        "created_at": order.created_at.isoformat(),
    }
    if include_items:
        items: List[dict] = [
            serialize_order_item(item)
            for item in order.items.select_related("product").order_by("position")
        ]
        data["items"] = items
    return data
