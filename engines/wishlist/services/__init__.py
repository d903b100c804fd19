"""
Storefront Wishlist — Application Service
"""

from __future__ import annotations

from typing import Any, Tuple

from django.db import IntegrityError, transaction

from core.commands.rejection import ReasonCode, RejectedError, RejectionReason
from core.context.request_context import RequestContext
from engines.catalog.models import Product
from engines.catalog.services import get_product
from engines.wishlist.models import WishlistEntry


class WishlistService:
    def add(self, context: RequestContext, product_id: Any) -> bool:
        """Returns True if the product was newly added."""
        customer_id = context.require_customer()
        product = get_product(product_id)
        if product is None:
            raise RejectedError(
                RejectionReason(
                    code=ReasonCode.PRODUCT_NOT_FOUND,
                    message=f"Product {product_id} not found.",
                    policy_name="wishlist_product_must_exist_policy",
                )
            )
        try:
            with transaction.atomic():
                _, created = WishlistEntry.objects.get_or_create(
                    customer_id=customer_id, product=product,
                )
        except IntegrityError:
            created = False
        return created

    def remove(self, context: RequestContext, product_id: Any) -> bool:
        customer_id = context.require_customer()
        product = get_product(product_id)
        if product is None:
            return False
        deleted, _ = WishlistEntry.objects.filter(
            customer_id=customer_id, product=product,
        ).delete()
        return deleted > 0

    def contains(self, context: RequestContext, product_id: Any) -> bool:
        if not context.is_authenticated:
            return False
        product = get_product(product_id)
        return product is not None and WishlistEntry.objects.filter(
            customer_id=context.customer_id, product=product,
        ).exists()

    def list_products(self, context: RequestContext) -> Tuple[Product, ...]:
        customer_id = context.require_customer()
        return tuple(
            entry.product
            for entry in WishlistEntry.objects.filter(customer_id=customer_id)
            .select_related("product__category")
            .order_by("-created_at", "-id")
        )
