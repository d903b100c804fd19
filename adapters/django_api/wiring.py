"""
Storefront Django Adapter Wiring
=================================
Constructs the service graph the views dispatch into, and resolves
the per-request context from the Django request.

This module is adapter-only glue:
- no business rules
- services are built once per process and shared
- tests swap the clock through reset_dependencies(), which also
  becomes the default clock for module-level now_utc() calls
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

from django.http import HttpRequest

from core.context.request_context import RequestContext
from core.time.clock import Clock, SystemClock, get_default_clock, set_default_clock
from engines.admin.services import BackOfficeService
from engines.customer.services import get_customer
from engines.discount.services import DiscountLedger
from engines.order.services import CheckoutService
from engines.review.services import ReviewService
from engines.wishlist.services import WishlistService

SESSION_CUSTOMER_KEY = "customer_id"


@dataclass(frozen=True)
class StorefrontDependencies:
    clock: Clock
    checkout: CheckoutService
    discounts: DiscountLedger
    reviews: ReviewService
    wishlist: WishlistService
    back_office: BackOfficeService


_DEPENDENCIES_LOCK = threading.Lock()
_DEPENDENCIES: StorefrontDependencies | None = None


def _build(clock: Clock) -> StorefrontDependencies:
    ledger = DiscountLedger(clock=clock)
    return StorefrontDependencies(
        clock=clock,
        checkout=CheckoutService(clock=clock),
        discounts=ledger,
        reviews=ReviewService(clock=clock),
        wishlist=WishlistService(),
        back_office=BackOfficeService(ledger=ledger, clock=clock),
    )


def build_dependencies() -> StorefrontDependencies:
    global _DEPENDENCIES
    with _DEPENDENCIES_LOCK:
        if _DEPENDENCIES is None:
            _DEPENDENCIES = _build(get_default_clock())
        return _DEPENDENCIES


def reset_dependencies(clock: Clock | None = None) -> StorefrontDependencies:
    global _DEPENDENCIES
    with _DEPENDENCIES_LOCK:
        clock = clock or SystemClock()
        set_default_clock(clock)
        _DEPENDENCIES = _build(clock)
        return _DEPENDENCIES


def client_ip_for(request: HttpRequest) -> str:
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR") or "127.0.0.1"


def build_request_context(request: HttpRequest) -> RequestContext:
    """
    The acting customer is whoever the session says; a stale id for a
    deleted customer is dropped from the session.
    """
    customer = None
    raw_id = request.session.get(SESSION_CUSTOMER_KEY)
    if raw_id:
        customer = get_customer(raw_id)
        if customer is None:
            request.session.pop(SESSION_CUSTOMER_KEY, None)
    return RequestContext(
        customer_id=customer.pk if customer is not None else None,
        is_admin=bool(customer is not None and customer.is_admin),
        session=request.session,
        client_ip=client_ip_for(request),
    )
