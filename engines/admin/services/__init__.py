"""
Storefront Back Office — Application Service
==============================================
Admin-only operations. Every public method starts by asserting
context.require_admin(); nothing here is reachable by customers.

Order status and refunds move through conditional UPDATEs keyed on
the state that was validated, so two admins acting at once cannot
both win.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional, Tuple

from django.db import transaction
from django.db.models import ProtectedError, Sum

from core.commands.rejection import ReasonCode, RejectedError, RejectionReason
from core.context.request_context import RequestContext
from core.primitives.money import ZERO, to_money
from core.time.clock import Clock, SystemClock
from engines.catalog.commands import CategoryCreateRequest, ProductUpsertRequest
from engines.catalog.models import Category, Product
from engines.catalog.services import (
    create_category,
    create_product,
    get_category,
    get_product,
    list_categories_with_counts,
    restock,
    update_category,
    update_product,
)
from engines.customer.models import Customer
from engines.customer.services import get_customer, list_customers, set_admin_flag
from engines.discount.commands import DiscountCreateRequest
from engines.discount.models import Discount
from engines.discount.services import DiscountLedger
from engines.order.commands import OrderStatusUpdateRequest
from engines.order.finalization import settle_paid_order
from engines.order.models import Order, OrderStatus, PaymentStatus
from engines.order.policies import (
    order_must_exist_policy,
    order_paid_policy,
    status_transition_policy,
)
from engines.order.services import get_order, list_orders_for_customer, serialize_order
from engines.order.state import can_refund

logger = logging.getLogger("bakery.admin")

RECENT_ORDER_COUNT = 5


@dataclass(frozen=True)
class DashboardFigures:
    product_count: int
    customer_count: int
    order_count: int
    revenue: Decimal
    recent_orders: Tuple[Order, ...]

    def to_dict(self) -> dict:
        return {
            "product_count": self.product_count,
            "customer_count": self.customer_count,
            "order_count": self.order_count,
            "revenue": str(self.revenue),
            "recent_orders": [
                serialize_order(order, include_items=False) for order in self.recent_orders
            ],
        }


@dataclass(frozen=True)
class CustomerDetail:
    customer: Customer
    orders: Tuple[Order, ...]


def _reject(code: str, message: str, policy_name: str) -> RejectedError:
    return RejectedError(
        RejectionReason(code=code, message=message, policy_name=policy_name)
    )


class BackOfficeService:
    def __init__(
        self,
        *,
        ledger: Optional[DiscountLedger] = None,
        clock: Clock | None = None,
    ):
        self._clock = clock or SystemClock()
        self._ledger = ledger or DiscountLedger(clock=self._clock)

    # ── Orders ────────────────────────────────────────────────

    def _load_order(self, order_id: Any) -> Order:
        order = get_order(order_id)
        reason = order_must_exist_policy(order, order_id=order_id)
        if reason is not None:
            raise RejectedError(reason)
        return order

    def list_orders(self, context: RequestContext) -> Tuple[Order, ...]:
        context.require_admin()
        return tuple(Order.objects.select_related("customer").order_by("-created_at"))

    def get_order(self, context: RequestContext, order_id: Any) -> Order:
        context.require_admin()
        return self._load_order(order_id)

    def update_order_status(
        self,
        context: RequestContext,
        order_id: Any,
        request: OrderStatusUpdateRequest,
    ) -> Order:
        admin_id = context.require_admin()
        order = self._load_order(order_id)
        reason = status_transition_policy(order, request.new_status)
        if reason is not None:
            raise RejectedError(reason)

        updated = Order.objects.filter(pk=order.pk, status=order.status).update(
            status=request.new_status
        )
        if not updated:
            order.refresh_from_db()
            raise _reject(
                ReasonCode.INVALID_STATUS_TRANSITION,
                f"Order {order.pk} changed while updating; now {order.status}.",
                "status_transition_policy",
            )
        logger.info(
            "Order %s status %s → %s by %s",
            order.pk, order.status, request.new_status, admin_id,
        )
        order.refresh_from_db()
        return order

    def refund_order(self, context: RequestContext, order_id: Any) -> Order:
        admin_id = context.require_admin()
        order = self._load_order(order_id)
        if not can_refund(order):
            raise _reject(
                ReasonCode.ORDER_NOT_PAID,
                f"Only paid orders can be refunded; order {order.pk} is {order.payment_status}.",
                "order_refundable_policy",
            )
        updated = Order.objects.filter(
            pk=order.pk, payment_status=PaymentStatus.PAID,
        ).update(payment_status=PaymentStatus.REFUNDED)
        order.refresh_from_db()
        if not updated:
            raise _reject(
                ReasonCode.ORDER_NOT_PAID,
                f"Order {order.pk} is no longer paid.",
                "order_paid_policy",
            )
        logger.info("Order %s refunded by %s", order.pk, admin_id)
        return order

    def settle_order(self, context: RequestContext, order_id: Any) -> Order:
        """Retry stock and discount settlement for a paid order, e.g. after restocking."""
        admin_id = context.require_admin()
        order = self._load_order(order_id)
        reason = order_paid_policy(order)
        if reason is not None:
            raise RejectedError(reason)
        order = settle_paid_order(order)
        logger.info(
            "Order %s settlement retried by %s (stock_deducted=%s, discount_used=%s)",
            order.pk, admin_id, order.stock_deducted, order.discount_used,
        )
        return order

    # ── Catalog ───────────────────────────────────────────────

    def _load_product(self, product_id: Any) -> Product:
        product = get_product(product_id)
        if product is None:
            raise _reject(
                ReasonCode.PRODUCT_NOT_FOUND,
                f"Product {product_id} not found.",
                "product_must_exist_policy",
            )
        return product

    def create_product(self, context: RequestContext, request: ProductUpsertRequest) -> Product:
        context.require_admin()
        product = create_product(request)
        logger.info("Product %s created", product.pk)
        return product

    def update_product(
        self, context: RequestContext, product_id: Any, request: ProductUpsertRequest,
    ) -> Product:
        context.require_admin()
        return update_product(self._load_product(product_id), request)

    def restock_product(self, context: RequestContext, product_id: Any, quantity: int) -> int:
        context.require_admin()
        product = self._load_product(product_id)
        stock = restock(product.pk, quantity)
        logger.info("Product %s restocked by %s (now %s)", product.pk, quantity, stock)
        return stock

    def delete_product(self, context: RequestContext, product_id: Any) -> None:
        """Refused while any order line references the product."""
        admin_id = context.require_admin()
        product = self._load_product(product_id)
        try:
            with transaction.atomic():
                product.delete()
        except ProtectedError as exc:
            raise _reject(
                ReasonCode.PRODUCT_IN_USE,
                f"Product {product.pk} appears on existing orders.",
                "product_not_ordered_policy",
            ) from exc
        logger.info("Product %s deleted by %s", product_id, admin_id)

    def _load_category(self, category_id: Any) -> Category:
        category = get_category(category_id)
        if category is None:
            raise _reject(
                ReasonCode.CATEGORY_NOT_FOUND,
                f"Category {category_id} not found.",
                "category_must_exist_policy",
            )
        return category

    def list_categories(self, context: RequestContext) -> Tuple[Category, ...]:
        context.require_admin()
        return list_categories_with_counts()

    def create_category(self, context: RequestContext, request: CategoryCreateRequest) -> Category:
        context.require_admin()
        return create_category(request)

    def update_category(
        self, context: RequestContext, category_id: Any, request: CategoryCreateRequest,
    ) -> Category:
        context.require_admin()
        return update_category(self._load_category(category_id), request)

    def delete_category(self, context: RequestContext, category_id: Any) -> None:
        admin_id = context.require_admin()
        category = self._load_category(category_id)
        in_use = category.products.count()
        if in_use:
            raise _reject(
                ReasonCode.CATEGORY_IN_USE,
                f"Category '{category.name}' is still used by {in_use} products.",
                "category_unused_policy",
            )
        category.delete()
        logger.info("Category %s deleted by %s", category_id, admin_id)

    # ── Customers ─────────────────────────────────────────────

    def _load_customer(self, customer_id: Any) -> Customer:
        customer = get_customer(customer_id)
        if customer is None:
            raise _reject(
                ReasonCode.CUSTOMER_NOT_FOUND,
                f"Customer {customer_id} not found.",
                "customer_must_exist_policy",
            )
        return customer

    def list_customers(self, context: RequestContext) -> Tuple[Customer, ...]:
        context.require_admin()
        return list_customers()

    def customer_detail(self, context: RequestContext, customer_id: Any) -> CustomerDetail:
        context.require_admin()
        customer = self._load_customer(customer_id)
        return CustomerDetail(customer=customer, orders=list_orders_for_customer(customer.pk))

    def set_customer_role(
        self, context: RequestContext, customer_id: Any, *, is_admin: bool,
    ) -> Customer:
        admin_id = context.require_admin()
        customer = self._load_customer(customer_id)
        if str(customer.pk) == str(admin_id) and not is_admin:
            raise _reject(
                ReasonCode.OWN_ACCOUNT_PROTECTED,
                "You cannot remove your own admin role.",
                "own_account_policy",
            )
        set_admin_flag(customer, is_admin)
        logger.info("Customer %s admin=%s set by %s", customer.pk, customer.is_admin, admin_id)
        return customer

    def delete_customer(self, context: RequestContext, customer_id: Any) -> None:
        admin_id = context.require_admin()
        customer = self._load_customer(customer_id)
        if str(customer.pk) == str(admin_id):
            raise _reject(
                ReasonCode.OWN_ACCOUNT_PROTECTED,
                "You cannot delete your own account.",
                "own_account_policy",
            )
        try:
            with transaction.atomic():
                customer.delete()
        except ProtectedError as exc:
            raise _reject(
                ReasonCode.CUSTOMER_HAS_ORDERS,
                f"Customer {customer.pk} has orders on record.",
                "customer_without_orders_policy",
            ) from exc
        logger.info("Customer %s deleted by %s", customer_id, admin_id)

    # ── Discounts ─────────────────────────────────────────────

    def list_discounts(self, context: RequestContext) -> Tuple[Discount, ...]:
        context.require_admin()
        return self._ledger.list_all()

    def create_discount(self, context: RequestContext, request: DiscountCreateRequest) -> Discount:
        context.require_admin()
        return self._ledger.create(request)

    def update_discount(
        self,
        context: RequestContext,
        discount_id: Any,
        request: DiscountCreateRequest,
        *,
        is_active: bool = True,
    ) -> Discount:
        context.require_admin()
        return self._ledger.update(discount_id, request, is_active=is_active)

    def deactivate_discount(self, context: RequestContext, discount_id: Any) -> Discount:
        context.require_admin()
        return self._ledger.deactivate(discount_id)

    # ── Dashboard ─────────────────────────────────────────────

    def dashboard(self, context: RequestContext) -> DashboardFigures:
        context.require_admin()
        revenue = (
            Order.objects.exclude(status=OrderStatus.CANCELLED)
            .aggregate(total=Sum("final_price"))["total"]
        )
        return DashboardFigures(
            product_count=Product.objects.count(),
            customer_count=Customer.objects.count(),
            order_count=Order.objects.count(),
            revenue=to_money(revenue) if revenue is not None else ZERO,
            recent_orders=tuple(
                Order.objects.select_related("customer")
                .order_by("-created_at")[:RECENT_ORDER_COUNT]
            ),
        )
