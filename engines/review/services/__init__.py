"""
Storefront Reviews — Application Service
==========================================
Only verified purchases are reviewable: the order must belong to the
reviewer, contain the product, be delivered, and be at most seven
whole days old. Each (customer, product, order) triple is reviewed
once. Every accepted review recomputes the product's rating and
review_count from the stored reviews.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple
from uuid import UUID

from django.db import IntegrityError, transaction
from django.db.models import Avg, Count

from core.commands.rejection import ReasonCode, RejectedError, RejectionReason
from core.context.request_context import RequestContext
from core.time.clock import Clock, SystemClock
from engines.catalog.models import Product
from engines.catalog.services import get_product, parse_uuid
from engines.order.models import Order, OrderStatus
from engines.order.state import review_block_reason
from engines.review.commands import ReviewSubmitRequest
from engines.review.models import Review

logger = logging.getLogger("bakery.reviews")

NOT_PURCHASED_MESSAGE = (
    "You can review this product once an order containing it has been delivered."
)


@dataclass(frozen=True)
class ReviewEligibility:
    can_review: bool
    reviewable_order_ids: Tuple[str, ...] = ()
    message: str = ""

    def to_dict(self) -> dict:
        return {
            "can_review": self.can_review,
            "reviewable_order_ids": list(self.reviewable_order_ids),
            "message": self.message or None,
        }


@dataclass(frozen=True)
class ItemReviewStatus:
    can_review: bool
    reason: Optional[str] = None


def _reject(code: str, message: str, policy_name: str) -> RejectedError:
    return RejectedError(
        RejectionReason(code=code, message=message, policy_name=policy_name)
    )


def recompute_product_rating(product_id: Any) -> Product:
    stats = Review.objects.filter(product_id=product_id).aggregate(
        average=Avg("rating"), count=Count("id"),
    )
    Product.objects.filter(pk=product_id).update(
        rating=float(stats["average"] or 0.0),
        review_count=stats["count"],
    )
    return Product.objects.get(pk=product_id)


def serialize_review(review: Review) -> dict:
    return {
        "id": review.pk,
        "customer_name": review.customer.name,
        "rating": review.rating,
        "comment": review.comment,
        "order_id": str(review.order_id),
        "created_at": review.created_at.isoformat(),
    }


class ReviewService:
    def __init__(self, *, clock: Clock | None = None):
        self._clock = clock or SystemClock()

    def list_reviews(self, product_id: Any) -> Tuple[Review, ...]:
        return tuple(
            Review.objects.filter(product_id=product_id)
            .select_related("customer")
            .order_by("-created_at", "-id")
        )

    def _already_reviewed(self, customer_id: UUID, product_id: Any, order_id: Any) -> bool:
        return Review.objects.filter(
            customer_id=customer_id, product_id=product_id, order_id=order_id,
        ).exists()

    def eligibility(self, customer_id: Optional[UUID], product_id: Any) -> ReviewEligibility:
        if customer_id is None:
            return ReviewEligibility(can_review=False)

        delivered = Order.objects.filter(
            customer_id=customer_id,
            status=OrderStatus.DELIVERED,
            items__product_id=product_id,
        ).distinct().order_by("-created_at")
        if not delivered:
            return ReviewEligibility(can_review=False, message=NOT_PURCHASED_MESSAGE)

        now = self._clock.now_utc()
        reviewable = []
        first_block = None
        for order in delivered:
            reason = review_block_reason(
                order, now,
                already_reviewed=self._already_reviewed(customer_id, product_id, order.pk),
            )
            if reason is None:
                reviewable.append(str(order.pk))
            elif first_block is None:
                first_block = reason

        if reviewable:
            return ReviewEligibility(can_review=True, reviewable_order_ids=tuple(reviewable))
        return ReviewEligibility(can_review=False, message=first_block or "")

    def order_review_status(self, customer_id: UUID, order: Order) -> Dict[str, ItemReviewStatus]:
        """Per-product review status for an order detail page."""
        if order.status != OrderStatus.DELIVERED:
            return {}
        now = self._clock.now_utc()
        statuses = {}
        for item in order.items.all():
            reason = review_block_reason(
                order, now,
                already_reviewed=self._already_reviewed(customer_id, item.product_id, order.pk),
            )
            statuses[str(item.product_id)] = ItemReviewStatus(
                can_review=reason is None, reason=reason,
            )
        return statuses

    def submit(
        self,
        context: RequestContext,
        product_id: Any,
        request: ReviewSubmitRequest,
    ) -> Review:
        customer_id = context.require_customer()
        product = get_product(product_id)
        if product is None:
            raise _reject(
                ReasonCode.PRODUCT_NOT_FOUND,
                f"Product {product_id} not found.",
                "review_product_must_exist_policy",
            )

        order_pk = parse_uuid(request.order_id)
        order = None
        if order_pk is not None:
            order = Order.objects.filter(
                pk=order_pk,
                customer_id=customer_id,
                status=OrderStatus.DELIVERED,
                items__product_id=product.pk,
            ).first()
        if order is None:
            raise _reject(
                ReasonCode.REVIEW_NOT_ALLOWED,
                "You are not allowed to review this product for that order.",
                "review_verified_purchase_policy",
            )

        if self._already_reviewed(customer_id, product.pk, order.pk):
            raise _reject(
                ReasonCode.REVIEW_DUPLICATE,
                "You have already reviewed this product for this order.",
                "review_once_per_order_policy",
            )

        if review_block_reason(order, self._clock.now_utc(), already_reviewed=False):
            raise _reject(
                ReasonCode.REVIEW_WINDOW_CLOSED,
                "The review period for this order has ended.",
                "review_window_policy",
            )

        try:
            with transaction.atomic():
                review = Review.objects.create(
                    customer_id=customer_id,
                    product=product,
                    order=order,
                    rating=request.rating,
                    comment=request.comment,
                    created_at=self._clock.now_utc(),
                )
                recompute_product_rating(product.pk)
        except IntegrityError as exc:
            raise _reject(
                ReasonCode.REVIEW_DUPLICATE,
                "You have already reviewed this product for this order.",
                "review_once_per_order_policy",
            ) from exc

        logger.info("Review %s added for product %s", review.pk, product.pk)
        return review
