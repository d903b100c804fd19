"""
Storefront Django Adapter Views
================================
Thin JSON views over the engine services. Views parse input, build
the request context, call one service, and map the outcome onto the
shared response envelope. No business rules live here.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from django.http import HttpRequest, HttpResponse, HttpResponseRedirect, JsonResponse
from django.urls import reverse
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from django.views.decorators.csrf import csrf_exempt

from adapters.django_api.wiring import build_dependencies, build_request_context
from core.commands.rejection import RejectedError
from core.context.request_context import RequestContext
from core.http_api.errors import (
    error_response,
    http_status_for,
    rejection_response,
    success_response,
)
from engines.cart import SessionCart
from engines.catalog.commands import CategoryCreateRequest, ProductUpsertRequest
from engines.catalog.services import (
    get_product,
    list_categories,
    list_products,
    serialize_category,
    serialize_product,
)
from engines.customer.services import (
    get_customer,
    profile_summary,
    serialize_customer,
    update_profile,
)
from engines.discount.commands import DiscountApplyRequest, DiscountCreateRequest
from engines.discount.services import (
    clear_applied_discount,
    compute_discount_amount,
    get_applied_discount,
    serialize_discount,
)
from engines.order.commands import CheckoutRequest, OrderStatusUpdateRequest
from engines.order.services import (
    get_order_for_customer,
    list_orders_for_customer,
    serialize_order,
)
from engines.review.commands import ReviewSubmitRequest
from engines.review.services import serialize_review
from integration.adapters import ConfigurationError
from integration.payment_gateway import (
    CallbackOutcome,
    GatewayConfig,
    PaymentCallbackProcessor,
    ipn_response,
    start_payment,
)

logger = logging.getLogger("bakery.payments")


# ══════════════════════════════════════════════════════════════
# HELPERS
# ══════════════════════════════════════════════════════════════

def _json_error(code: str, message: str, status: int = 400, details=None) -> JsonResponse:
    return JsonResponse(
        error_response(code=code, message=message, details=details or {}),
        status=status,
    )


def _json_ok(data: Any, status: int = 200) -> JsonResponse:
    return JsonResponse(success_response(data), status=status)


def _method_not_allowed() -> JsonResponse:
    return _json_error(
        "METHOD_NOT_ALLOWED",
        "Method not allowed for this endpoint.",
        status=405,
    )


def _parse_json_body(request: HttpRequest) -> dict[str, Any]:
    if not request.body:
        return {}
    try:
        parsed = json.loads(request.body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValueError("Request body must be valid JSON.") from exc
    if not isinstance(parsed, dict):
        raise ValueError("Request body must be a JSON object.")
    return parsed


def _parse_datetime(value: Any, field_name: str) -> datetime:
    parsed = parse_datetime(str(value)) if value else None
    if parsed is None:
        raise ValueError(f"{field_name} must be an ISO-8601 datetime.")
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def _dispatch(
    request: HttpRequest,
    method: str,
    handler: Callable[[RequestContext, dict[str, Any]], HttpResponse],
) -> HttpResponse:
    """
    Shared envelope handling: method check, context, body parsing,
    and the mapping of ValueError / RejectedError onto 4xx responses.
    """
    if request.method != method:
        return _method_not_allowed()
    context = build_request_context(request)
    try:
        body = _parse_json_body(request) if method == "POST" else {}
        return handler(context, body)
    except RejectedError as exc:
        return JsonResponse(rejection_response(exc.reason), status=http_status_for(exc.reason))
    except (ValueError, KeyError) as exc:
        return _json_error("INVALID_REQUEST", str(exc), status=400)


def _gateway_config(request: HttpRequest) -> GatewayConfig:
    return GatewayConfig.from_settings(
        return_url=request.build_absolute_uri(reverse("payment-gateway-return")),
        ipn_url=request.build_absolute_uri(reverse("payment-gateway-ipn")),
    )


def _cart_summary(context: RequestContext) -> dict[str, Any]:
    cart = SessionCart(context.session)
    lines = cart.priced_lines()
    subtotal = cart.subtotal()
    applied = get_applied_discount(context.session)
    discount_amount = compute_discount_amount(applied, subtotal) if applied else None
    return {
        "lines": [line.to_dict() for line in lines],
        "item_count": cart.item_count(),
        "subtotal": str(subtotal),
        "discount": None if applied is None else {
            "code": applied.code,
            "type": applied.discount_type,
            "value": str(applied.value),
            "discount_amount": str(discount_amount),
        },
    }


# ══════════════════════════════════════════════════════════════
# CATALOG
# ══════════════════════════════════════════════════════════════

@csrf_exempt
def products_list_view(request: HttpRequest) -> HttpResponse:
    def handle(context, body):
        page = list_products(
            search=request.GET.get("search", ""),
            category_id=request.GET.get("category"),
            page=int(request.GET.get("page", 1) or 1),
        )
        return _json_ok({
            "products": [serialize_product(product) for product in page.products],
            "page": page.page,
            "pages": page.pages,
            "total": page.total,
            "categories": [
                {"id": str(category.pk), "name": category.name}
                for category in list_categories()
            ],
        })

    return _dispatch(request, "GET", handle)


@csrf_exempt
def product_detail_view(request: HttpRequest, product_id: str) -> HttpResponse:
    def handle(context, body):
        product = get_product(product_id)
        if product is None:
            return _json_error("PRODUCT_NOT_FOUND", f"Product {product_id} not found.", 404)
        deps = build_dependencies()
        return _json_ok({
            "product": serialize_product(product),
            "reviews": [
                serialize_review(review) for review in deps.reviews.list_reviews(product.pk)
            ],
            "review_eligibility": deps.reviews.eligibility(
                context.customer_id, product.pk,
            ).to_dict(),
            "in_wishlist": deps.wishlist.contains(context, product.pk),
        })

    return _dispatch(request, "GET", handle)


# ══════════════════════════════════════════════════════════════
# CART + DISCOUNT
# ══════════════════════════════════════════════════════════════

@csrf_exempt
def cart_view(request: HttpRequest) -> HttpResponse:
    return _dispatch(request, "GET", lambda context, body: _json_ok(_cart_summary(context)))


@csrf_exempt
def cart_add_view(request: HttpRequest) -> HttpResponse:
    def handle(context, body):
        SessionCart(context.session).add(body["product_id"], body.get("quantity", 1))
        return _json_ok(_cart_summary(context))

    return _dispatch(request, "POST", handle)


@csrf_exempt
def cart_update_view(request: HttpRequest) -> HttpResponse:
    def handle(context, body):
        SessionCart(context.session).update(body["product_id"], body.get("quantity", 0))
        return _json_ok(_cart_summary(context))

    return _dispatch(request, "POST", handle)


@csrf_exempt
def cart_remove_view(request: HttpRequest) -> HttpResponse:
    def handle(context, body):
        SessionCart(context.session).remove(body["product_id"])
        return _json_ok(_cart_summary(context))

    return _dispatch(request, "POST", handle)


@csrf_exempt
def discount_apply_view(request: HttpRequest) -> HttpResponse:
    def handle(context, body):
        context.require_customer()
        preview = build_dependencies().discounts.apply(
            DiscountApplyRequest(
                code=body.get("code", ""),
                cart_subtotal=SessionCart(context.session).subtotal(),
            ),
            context.session,
        )
        return _json_ok(preview.to_dict())

    return _dispatch(request, "POST", handle)


@csrf_exempt
def discount_remove_view(request: HttpRequest) -> HttpResponse:
    def handle(context, body):
        build_dependencies().discounts.remove(context.session)
        return _json_ok(_cart_summary(context))

    return _dispatch(request, "POST", handle)


# ══════════════════════════════════════════════════════════════
# CHECKOUT + ORDERS
# ══════════════════════════════════════════════════════════════

@csrf_exempt
def checkout_view(request: HttpRequest) -> HttpResponse:
    def handle(context, body):
        result = build_dependencies().checkout.checkout(
            context,
            CheckoutRequest(
                name=body.get("name"),
                phone=body.get("phone"),
                address=body.get("address"),
                payment_method=body.get("payment_method") or "cod",
            ),
        )
        data = {"order": serialize_order(result.order), "payment_url": None}
        if result.requires_payment_redirect:
            data["payment_url"] = reverse(
                "payment-gateway-start", kwargs={"order_id": str(result.order.pk)},
            )
        return _json_ok(data, status=201)

    return _dispatch(request, "POST", handle)


@csrf_exempt
def orders_list_view(request: HttpRequest) -> HttpResponse:
    def handle(context, body):
        customer_id = context.require_customer()
        return _json_ok({
            "orders": [
                serialize_order(order) for order in list_orders_for_customer(customer_id)
            ],
        })

    return _dispatch(request, "GET", handle)


@csrf_exempt
def order_detail_view(request: HttpRequest, order_id: str) -> HttpResponse:
    def handle(context, body):
        customer_id = context.require_customer()
        order = get_order_for_customer(customer_id, order_id)
        review_status = build_dependencies().reviews.order_review_status(customer_id, order)
        data = serialize_order(order)
        data["review_status"] = {
            product_id: {"can_review": status.can_review, "reason": status.reason}
            for product_id, status in review_status.items()
        }
        return _json_ok(data)

    return _dispatch(request, "GET", handle)


# ══════════════════════════════════════════════════════════════
# PAYMENT GATEWAY
# ══════════════════════════════════════════════════════════════

_RETURN_FAILURE_STATUS = {
    CallbackOutcome.INVALID_SIGNATURE: ("INVALID_SIGNATURE", 400),
    CallbackOutcome.WRONG_PAYMENT_METHOD: ("WRONG_PAYMENT_METHOD", 400),
    CallbackOutcome.WRONG_AMOUNT: ("WRONG_AMOUNT", 400),
    CallbackOutcome.ORDER_NOT_FOUND: ("ORDER_NOT_FOUND", 404),
}


@csrf_exempt
def payment_start_view(request: HttpRequest, order_id: str) -> HttpResponse:
    def handle(context, body):
        customer_id = context.require_customer()
        try:
            started = start_payment(
                order_id,
                _gateway_config(request),
                client_ip=context.client_ip,
                customer_id=customer_id,
                bank_code=request.GET.get("bank_code") or None,
                now=build_dependencies().clock.now_utc(),
            )
        except ConfigurationError as exc:
            logger.error("Cannot start payment for %s: %s", order_id, exc)
            return _json_error("GATEWAY_NOT_CONFIGURED", str(exc), status=503)
        if started.already_paid:
            return HttpResponseRedirect(
                reverse("order-detail", kwargs={"order_id": str(started.order.pk)})
            )
        return HttpResponseRedirect(started.redirect_url)

    return _dispatch(request, "GET", handle)


@csrf_exempt
def payment_return_view(request: HttpRequest) -> HttpResponse:
    def handle(context, body):
        processor = PaymentCallbackProcessor(
            _gateway_config(request), clock=build_dependencies().clock,
        )
        result = processor.process(request.GET)
        failure = _RETURN_FAILURE_STATUS.get(result.outcome)
        if failure is not None:
            code, status = failure
            return _json_error(code, f"Payment callback rejected: {result.outcome.value}.", status)

        if result.gateway_reported_success and result.outcome in (
            CallbackOutcome.SUCCESS, CallbackOutcome.ALREADY_PAID,
        ):
            SessionCart(context.session).clear()
            clear_applied_discount(context.session)

        return _json_ok({
            "order_id": str(result.order.pk),
            "outcome": result.outcome.value,
            "payment_status": result.order.payment_status,
            "payment_message": result.order.payment_message,
        })

    return _dispatch(request, "GET", handle)


@csrf_exempt
def payment_ipn_view(request: HttpRequest) -> JsonResponse:
    """Server-to-server notification: always HTTP 200 in the gateway's format."""
    try:
        params = request.GET if request.method == "GET" else request.POST
        processor = PaymentCallbackProcessor(
            _gateway_config(request), clock=build_dependencies().clock,
        )
        result = processor.process(params)
        return JsonResponse(ipn_response(result.outcome))
    except Exception:
        logger.exception("Gateway notification handling failed")
        return JsonResponse(ipn_response(None))


# ══════════════════════════════════════════════════════════════
# REVIEWS + WISHLIST + PROFILE
# ══════════════════════════════════════════════════════════════

@csrf_exempt
def review_submit_view(request: HttpRequest, product_id: str) -> HttpResponse:
    def handle(context, body):
        review = build_dependencies().reviews.submit(
            context,
            product_id,
            ReviewSubmitRequest(
                order_id=body.get("order_id"),
                rating=body.get("rating"),
                comment=body.get("comment", ""),
            ),
        )
        return _json_ok(serialize_review(review), status=201)

    return _dispatch(request, "POST", handle)


@csrf_exempt
def wishlist_view(request: HttpRequest) -> HttpResponse:
    def handle(context, body):
        products = build_dependencies().wishlist.list_products(context)
        return _json_ok({"products": [serialize_product(product) for product in products]})

    return _dispatch(request, "GET", handle)


@csrf_exempt
def wishlist_add_view(request: HttpRequest) -> HttpResponse:
    def handle(context, body):
        added = build_dependencies().wishlist.add(context, body["product_id"])
        return _json_ok({"product_id": str(body["product_id"]), "added": added})

    return _dispatch(request, "POST", handle)


@csrf_exempt
def wishlist_remove_view(request: HttpRequest) -> HttpResponse:
    def handle(context, body):
        removed = build_dependencies().wishlist.remove(context, body["product_id"])
        return _json_ok({"product_id": str(body["product_id"]), "removed": removed})

    return _dispatch(request, "POST", handle)


@csrf_exempt
def profile_view(request: HttpRequest) -> HttpResponse:
    def show(context, body):
        customer = get_customer(context.require_customer())
        return _json_ok(profile_summary(customer).to_dict())

    def edit(context, body):
        customer = get_customer(context.require_customer())
        update_profile(
            customer,
            email=body.get("email", customer.email),
            name=body.get("name", customer.name),
            phone=body.get("phone", customer.phone),
            address=body.get("address", customer.address),
        )
        return _json_ok(profile_summary(customer).to_dict())

    if request.method == "POST":
        return _dispatch(request, "POST", edit)
    return _dispatch(request, "GET", show)


# ══════════════════════════════════════════════════════════════
# BACK OFFICE
# ══════════════════════════════════════════════════════════════

def _discount_request(body: dict[str, Any]) -> DiscountCreateRequest:
    usage_limit = body.get("usage_limit")
    return DiscountCreateRequest(
        code=body.get("code", ""),
        discount_type=body.get("discount_type", ""),
        discount_value=body.get("discount_value"),
        start_date=_parse_datetime(body.get("start_date"), "start_date"),
        end_date=_parse_datetime(body.get("end_date"), "end_date"),
        min_order_value=body.get("min_order_value") or 0,
        max_discount=body.get("max_discount") or None,
        usage_limit=int(usage_limit) if usage_limit not in (None, "") else None,
        description=body.get("description", ""),
    )


def _product_request(body: dict[str, Any]) -> ProductUpsertRequest:
    return ProductUpsertRequest(
        name=body.get("name"),
        price=body.get("price"),
        category_id=body.get("category_id"),
        description=body.get("description", ""),
        image_url=body.get("image_url", ""),
        stock=body.get("stock", 0),
    )


@csrf_exempt
def admin_dashboard_view(request: HttpRequest) -> HttpResponse:
    def handle(context, body):
        return _json_ok(build_dependencies().back_office.dashboard(context).to_dict())

    return _dispatch(request, "GET", handle)


@csrf_exempt
def admin_orders_view(request: HttpRequest) -> HttpResponse:
    def handle(context, body):
        orders = build_dependencies().back_office.list_orders(context)
        return _json_ok({"orders": [serialize_order(order, include_items=False) for order in orders]})

    return _dispatch(request, "GET", handle)


@csrf_exempt
def admin_order_detail_view(request: HttpRequest, order_id: str) -> HttpResponse:
    def handle(context, body):
        order = build_dependencies().back_office.get_order(context, order_id)
        return _json_ok(serialize_order(order))

    return _dispatch(request, "GET", handle)


@csrf_exempt
def admin_order_status_view(request: HttpRequest, order_id: str) -> HttpResponse:
    def handle(context, body):
        order = build_dependencies().back_office.update_order_status(
            context, order_id, OrderStatusUpdateRequest(new_status=body.get("status")),
        )
        return _json_ok(serialize_order(order, include_items=False))

    return _dispatch(request, "POST", handle)


@csrf_exempt
def admin_order_settle_view(request: HttpRequest, order_id: str) -> HttpResponse:
    def handle(context, body):
        order = build_dependencies().back_office.settle_order(context, order_id)
        data = serialize_order(order, include_items=False)
        data["stock_deducted"] = order.stock_deducted
        data["discount_used"] = order.discount_used
        return _json_ok(data)

    return _dispatch(request, "POST", handle)


@csrf_exempt
def admin_order_refund_view(request: HttpRequest, order_id: str) -> HttpResponse:
    def handle(context, body):
        order = build_dependencies().back_office.refund_order(context, order_id)
        return _json_ok(serialize_order(order, include_items=False))

    return _dispatch(request, "POST", handle)


@csrf_exempt
def admin_discounts_view(request: HttpRequest) -> HttpResponse:
    def show(context, body):
        discounts = build_dependencies().back_office.list_discounts(context)
        return _json_ok({"discounts": [serialize_discount(discount) for discount in discounts]})

    def create(context, body):
        discount = build_dependencies().back_office.create_discount(
            context, _discount_request(body),
        )
        return _json_ok(serialize_discount(discount), status=201)

    if request.method == "POST":
        return _dispatch(request, "POST", create)
    return _dispatch(request, "GET", show)


@csrf_exempt
def admin_discount_update_view(request: HttpRequest, discount_id: str) -> HttpResponse:
    def handle(context, body):
        discount = build_dependencies().back_office.update_discount(
            context,
            discount_id,
            _discount_request(body),
            is_active=bool(body.get("is_active", True)),
        )
        return _json_ok(serialize_discount(discount))

    return _dispatch(request, "POST", handle)


@csrf_exempt
def admin_discount_deactivate_view(request: HttpRequest, discount_id: str) -> HttpResponse:
    def handle(context, body):
        discount = build_dependencies().back_office.deactivate_discount(context, discount_id)
        return _json_ok(serialize_discount(discount))

    return _dispatch(request, "POST", handle)


@csrf_exempt
def admin_products_create_view(request: HttpRequest) -> HttpResponse:
    def handle(context, body):
        product = build_dependencies().back_office.create_product(
            context, _product_request(body),
        )
        return _json_ok(serialize_product(product), status=201)

    return _dispatch(request, "POST", handle)


@csrf_exempt
def admin_product_update_view(request: HttpRequest, product_id: str) -> HttpResponse:
    def handle(context, body):
        product = build_dependencies().back_office.update_product(
            context, product_id, _product_request(body),
        )
        return _json_ok(serialize_product(product))

    return _dispatch(request, "POST", handle)


@csrf_exempt
def admin_product_restock_view(request: HttpRequest, product_id: str) -> HttpResponse:
    def handle(context, body):
        stock = build_dependencies().back_office.restock_product(
            context, product_id, int(body.get("quantity", 0)),
        )
        return _json_ok({"product_id": product_id, "stock": stock})

    return _dispatch(request, "POST", handle)


@csrf_exempt
def admin_product_delete_view(request: HttpRequest, product_id: str) -> HttpResponse:
    def handle(context, body):
        build_dependencies().back_office.delete_product(context, product_id)
        return _json_ok({"product_id": product_id, "deleted": True})

    return _dispatch(request, "POST", handle)


def _category_request(body: dict[str, Any]) -> CategoryCreateRequest:
    return CategoryCreateRequest(
        name=body.get("name"), description=body.get("description", ""),
    )


@csrf_exempt
def admin_categories_view(request: HttpRequest) -> HttpResponse:
    def show(context, body):
        categories = build_dependencies().back_office.list_categories(context)
        return _json_ok({"categories": [serialize_category(category) for category in categories]})

    def create(context, body):
        category = build_dependencies().back_office.create_category(
            context, _category_request(body),
        )
        return _json_ok(serialize_category(category), status=201)

    if request.method == "POST":
        return _dispatch(request, "POST", create)
    return _dispatch(request, "GET", show)


@csrf_exempt
def admin_category_update_view(request: HttpRequest, category_id: str) -> HttpResponse:
    def handle(context, body):
        category = build_dependencies().back_office.update_category(
            context, category_id, _category_request(body),
        )
        return _json_ok(serialize_category(category))

    return _dispatch(request, "POST", handle)


@csrf_exempt
def admin_category_delete_view(request: HttpRequest, category_id: str) -> HttpResponse:
    def handle(context, body):
        build_dependencies().back_office.delete_category(context, category_id)
        return _json_ok({"category_id": category_id, "deleted": True})

    return _dispatch(request, "POST", handle)


@csrf_exempt
def admin_customers_view(request: HttpRequest) -> HttpResponse:
    def handle(context, body):
        customers = build_dependencies().back_office.list_customers(context)
        return _json_ok({"customers": [serialize_customer(customer) for customer in customers]})

    return _dispatch(request, "GET", handle)


@csrf_exempt
def admin_customer_detail_view(request: HttpRequest, customer_id: str) -> HttpResponse:
    def handle(context, body):
        detail = build_dependencies().back_office.customer_detail(context, customer_id)
        return _json_ok({
            **serialize_customer(detail.customer),
            "orders": [serialize_order(order) for order in detail.orders],
        })

    return _dispatch(request, "GET", handle)


@csrf_exempt
def admin_customer_role_view(request: HttpRequest, customer_id: str) -> HttpResponse:
    def handle(context, body):
        if not isinstance(body.get("is_admin"), bool):
            raise ValueError("is_admin must be true or false.")
        customer = build_dependencies().back_office.set_customer_role(
            context, customer_id, is_admin=body["is_admin"],
        )
        return _json_ok(serialize_customer(customer))

    return _dispatch(request, "POST", handle)


@csrf_exempt
def admin_customer_delete_view(request: HttpRequest, customer_id: str) -> HttpResponse:
    def handle(context, body):
        build_dependencies().back_office.delete_customer(context, customer_id)
        return _json_ok({"customer_id": customer_id, "deleted": True})

    return _dispatch(request, "POST", handle)
