"""
Tests — Storefront HTTP API
=============================
Django test client against the JSON views: envelope shape, status
codes, session handling and the two gateway callback endpoints.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from django.test import Client
from django.urls import reverse

from adapters.django_api.wiring import SESSION_CUSTOMER_KEY, build_dependencies, client_ip_for
from core.time.clock import get_default_clock
from engines.catalog.models import Product
from engines.discount.models import Discount
from engines.order.models import Order, OrderStatus, PaymentStatus

pytestmark = [pytest.mark.django_db, pytest.mark.usefixtures("deps")]


def _login(client: Client, customer) -> Client:
    session = client.session
    session[SESSION_CUSTOMER_KEY] = str(customer.pk)
    session.save()
    return client


def _post(client: Client, url: str, data=None):
    return client.post(url, data=json.dumps(data or {}), content_type="application/json")


def _error_code(response) -> str:
    return response.json()["error"]["code"]


@pytest.fixture
def shopper(client, customer):
    return _login(client, customer)


@pytest.fixture
def back_office(admin):
    return _login(Client(), admin)


# ══════════════════════════════════════════════════════════════
# CATALOG
# ══════════════════════════════════════════════════════════════


class TestCatalogEndpoints:
    def test_product_list(self, client, croissant, baguette):
        response = client.get("/v1/products", {"search": "crois"})
        body = response.json()
        assert response.status_code == 200
        assert body["ok"] is True
        assert [p["name"] for p in body["data"]["products"]] == ["Croissant"]
        assert body["data"]["categories"] == [{"id": str(croissant.category_id), "name": "Bread"}]

    def test_bad_page_number(self, client):
        response = client.get("/v1/products", {"page": "two"})
        assert response.status_code == 400
        assert _error_code(response) == "INVALID_REQUEST"

    def test_product_detail_for_shopper(self, shopper, croissant, customer, make_order):
        make_order(customer, [(croissant, 1)], status=OrderStatus.DELIVERED)
        _post(shopper, "/v1/wishlist/add", {"product_id": str(croissant.pk)})

        data = shopper.get(f"/v1/products/{croissant.pk}").json()["data"]

        assert data["product"]["name"] == "Croissant"
        assert data["in_wishlist"] is True
        assert data["review_eligibility"]["can_review"] is True
        assert data["reviews"] == []

    def test_unknown_product(self, client):
        response = client.get("/v1/products/nope")
        assert response.status_code == 404
        assert _error_code(response) == "PRODUCT_NOT_FOUND"


# ══════════════════════════════════════════════════════════════
# CART + DISCOUNT
# ══════════════════════════════════════════════════════════════


class TestCartEndpoints:
    def test_anonymous_cart_round_trip(self, client, croissant, baguette):
        _post(client, "/v1/cart/add", {"product_id": str(croissant.pk), "quantity": 2})
        _post(client, "/v1/cart/add", {"product_id": str(baguette.pk)})
        _post(client, "/v1/cart/update", {"product_id": str(baguette.pk), "quantity": 3})
        data = client.get("/v1/cart").json()["data"]

        assert data["item_count"] == 5
        assert data["subtotal"] == "170000.00"
        assert data["discount"] is None

        _post(client, "/v1/cart/remove", {"product_id": str(croissant.pk)})
        assert client.get("/v1/cart").json()["data"]["subtotal"] == "120000.00"

    def test_wrong_method(self, client):
        response = client.get("/v1/cart/add")
        assert response.status_code == 405
        assert _error_code(response) == "METHOD_NOT_ALLOWED"

    def test_malformed_json(self, client):
        response = client.post("/v1/cart/add", data="{nope", content_type="application/json")
        assert response.status_code == 400
        assert _error_code(response) == "INVALID_REQUEST"

    def test_missing_product_id(self, client):
        response = _post(client, "/v1/cart/add", {"quantity": 1})
        assert response.status_code == 400

    def test_out_of_stock(self, client):
        sold_out = Product.objects.create(name="Macaron", price=Decimal("15000"), stock=0)
        response = _post(client, "/v1/cart/add", {"product_id": str(sold_out.pk)})
        assert response.status_code == 400
        assert _error_code(response) == "OUT_OF_STOCK"


class TestDiscountEndpoints:
    def test_requires_sign_in(self, client, save10):
        response = _post(client, "/v1/discount/apply", {"code": "SAVE10"})
        assert response.status_code == 401

    def test_apply_and_remove(self, shopper, croissant, baguette, save10):
        _post(shopper, "/v1/cart/add", {"product_id": str(croissant.pk), "quantity": 2})
        _post(shopper, "/v1/cart/add", {"product_id": str(baguette.pk), "quantity": 2})

        applied = _post(shopper, "/v1/discount/apply", {"code": "save10"}).json()["data"]
        assert applied["discount_amount"] == "13000.00"
        cart = shopper.get("/v1/cart").json()["data"]
        assert cart["discount"]["code"] == "SAVE10"

        _post(shopper, "/v1/discount/remove")
        assert shopper.get("/v1/cart").json()["data"]["discount"] is None

    def test_minimum_order_rejection(self, shopper, croissant):
        Discount.objects.create(
            code="MIN150",
            discount_type="percentage",
            discount_value=Decimal("10"),
            min_order_value=Decimal("150000"),
            start_date=datetime(2026, 1, 1, tzinfo=timezone.utc),
            end_date=datetime(2026, 12, 31, tzinfo=timezone.utc),
        )
        _post(shopper, "/v1/cart/add", {"product_id": str(croissant.pk), "quantity": 4})
        response = _post(shopper, "/v1/discount/apply", {"code": "MIN150"})
        assert response.status_code == 400
        assert _error_code(response) == "DISCOUNT_MIN_ORDER_NOT_MET"


# ══════════════════════════════════════════════════════════════
# CHECKOUT + ORDERS
# ══════════════════════════════════════════════════════════════

SHIPPING = {"name": "Lan", "phone": "0901000001", "address": "12 Hang Bac"}


class TestCheckoutEndpoints:
    def test_cash_on_delivery_with_save10(self, shopper, croissant, baguette, save10):
        _post(shopper, "/v1/cart/add", {"product_id": str(croissant.pk), "quantity": 2})
        _post(shopper, "/v1/cart/add", {"product_id": str(baguette.pk), "quantity": 2})
        _post(shopper, "/v1/discount/apply", {"code": "SAVE10"})

        response = _post(shopper, "/v1/checkout", SHIPPING)

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["payment_url"] is None
        assert data["order"]["total_price"] == "130000.00"
        assert data["order"]["discount_amount"] == "13000.00"
        assert data["order"]["final_price"] == "117000.00"
        assert data["order"]["payment_status"] == "paid"
        assert Discount.objects.get(pk=save10.pk).used_count == 1
        assert shopper.get("/v1/cart").json()["data"]["item_count"] == 0

    def test_gateway_checkout_returns_start_url(self, shopper, croissant):
        _post(shopper, "/v1/cart/add", {"product_id": str(croissant.pk)})
        data = _post(
            shopper, "/v1/checkout", {**SHIPPING, "payment_method": "gateway"},
        ).json()["data"]
        assert data["payment_url"] == f"/v1/payment/gateway/{data['order']['id']}/start"
        assert data["order"]["payment_status"] == "pending"

    def test_empty_cart(self, shopper):
        response = _post(shopper, "/v1/checkout", SHIPPING)
        assert response.status_code == 400
        assert _error_code(response) == "CART_EMPTY"

    def test_missing_shipping_field(self, shopper, croissant):
        _post(shopper, "/v1/cart/add", {"product_id": str(croissant.pk)})
        response = _post(shopper, "/v1/checkout", {"name": "Lan", "phone": "0901"})
        assert response.status_code == 400
        assert _error_code(response) == "INVALID_REQUEST"

    def test_order_history_and_detail(self, shopper, customer, croissant, make_order):
        order = make_order(customer, [(croissant, 1)], status=OrderStatus.DELIVERED)

        orders = shopper.get("/v1/orders").json()["data"]["orders"]
        assert [o["id"] for o in orders] == [str(order.pk)]

        detail = shopper.get(f"/v1/orders/{order.pk}").json()["data"]
        assert detail["items"][0]["name"] == "Croissant"
        assert detail["review_status"][str(croissant.pk)] == {"can_review": True, "reason": None}

    def test_someone_elses_order(self, shopper, other_customer, croissant, make_order):
        order = make_order(other_customer, [(croissant, 1)])
        response = shopper.get(f"/v1/orders/{order.pk}")
        assert response.status_code == 404

    def test_orders_require_sign_in(self, client):
        assert client.get("/v1/orders").status_code == 401


# ══════════════════════════════════════════════════════════════
# PAYMENT GATEWAY
# ══════════════════════════════════════════════════════════════


@pytest.fixture
def gateway_order(customer, croissant, make_order):
    return make_order(customer, [(croissant, 2)], payment_method="gateway")


class TestPaymentStart:
    def test_redirects_to_signed_gateway_url(self, shopper, gateway_order, gateway_settings):
        response = shopper.get(reverse("payment-gateway-start", args=[gateway_order.pk]))
        assert response.status_code == 302
        location = response["Location"]
        assert location.startswith("https://sandbox.vnpayment.vn/paymentv2/vpcpay.html?")
        assert "vnp_SecureHash=" in location
        assert "vnp_ReturnUrl=http%3A%2F%2Ftestserver%2Fv1%2Fpayment%2Fgateway%2Freturn" in location

    def test_paid_order_redirects_to_order(self, shopper, gateway_order, gateway_settings):
        Order.objects.filter(pk=gateway_order.pk).update(payment_status=PaymentStatus.PAID)
        response = shopper.get(reverse("payment-gateway-start", args=[gateway_order.pk]))
        assert response.status_code == 302
        assert response["Location"] == f"/v1/orders/{gateway_order.pk}"

    def test_unconfigured_gateway(self, shopper, gateway_order, settings):
        settings.VNPAY_TMN_CODE = ""
        settings.VNPAY_HASH_SECRET = ""
        response = shopper.get(reverse("payment-gateway-start", args=[gateway_order.pk]))
        assert response.status_code == 503
        assert _error_code(response) == "GATEWAY_NOT_CONFIGURED"


class TestPaymentReturn:
    def test_success_clears_cart(
        self, shopper, croissant, gateway_order, gateway_settings, signed_callback,
    ):
        _post(shopper, "/v1/cart/add", {"product_id": str(croissant.pk)})

        response = shopper.get("/v1/payment/gateway/return", signed_callback(gateway_order))

        data = response.json()["data"]
        assert response.status_code == 200
        assert data["outcome"] == "success"
        assert data["payment_status"] == "paid"
        assert shopper.get("/v1/cart").json()["data"]["item_count"] == 0

    def test_failure_keeps_cart(
        self, shopper, croissant, gateway_order, gateway_settings, signed_callback,
    ):
        _post(shopper, "/v1/cart/add", {"product_id": str(croissant.pk)})

        response = shopper.get(
            "/v1/payment/gateway/return", signed_callback(gateway_order, response_code="24"),
        )

        assert response.status_code == 200
        assert response.json()["data"]["outcome"] == "payment_failed"
        assert shopper.get("/v1/cart").json()["data"]["item_count"] == 1

    def test_bad_signature(self, client, gateway_order, gateway_settings, signed_callback):
        params = signed_callback(gateway_order, secret="OTHER")
        response = client.get("/v1/payment/gateway/return", params)
        assert response.status_code == 400
        assert _error_code(response) == "INVALID_SIGNATURE"

    def test_amount_mismatch(self, client, gateway_order, gateway_settings, signed_callback):
        response = client.get(
            "/v1/payment/gateway/return", signed_callback(gateway_order, amount=1),
        )
        assert response.status_code == 400
        assert _error_code(response) == "WRONG_AMOUNT"


class TestPaymentNotification:
    def _ipn(self, client, params):
        response = client.get("/v1/payment/gateway/ipn", params)
        assert response.status_code == 200
        return response.json()

    def test_confirms_once(self, client, gateway_order, croissant, gateway_settings, signed_callback):
        params = signed_callback(gateway_order)
        assert self._ipn(client, params) == {"RspCode": "00", "Message": "Confirm Success"}
        assert self._ipn(client, params)["RspCode"] == "02"
        assert Product.objects.get(pk=croissant.pk).stock == 8

    def test_after_browser_return(self, client, gateway_order, gateway_settings, signed_callback):
        params = signed_callback(gateway_order)
        client.get("/v1/payment/gateway/return", params)
        assert self._ipn(client, params)["RspCode"] == "02"

    def test_integrity_codes(self, client, gateway_order, gateway_settings, signed_callback):
        assert self._ipn(client, signed_callback(gateway_order, secret="OTHER"))["RspCode"] == "97"
        assert self._ipn(client, signed_callback(gateway_order, amount=1))["RspCode"] == "04"
        assert Order.objects.get(pk=gateway_order.pk).payment_status == PaymentStatus.PENDING

    def test_crash_answers_unknown_error(
        self, client, gateway_order, gateway_settings, signed_callback, monkeypatch,
    ):
        class ExplodingProcessor:
            def __init__(self, *args, **kwargs):
                pass

            def process(self, params):
                raise RuntimeError("database unavailable")

        monkeypatch.setattr(
            "adapters.django_api.views.PaymentCallbackProcessor", ExplodingProcessor,
        )
        assert self._ipn(client, signed_callback(gateway_order)) == {
            "RspCode": "99", "Message": "Unknown error",
        }


# ══════════════════════════════════════════════════════════════
# REVIEWS + WISHLIST + PROFILE
# ══════════════════════════════════════════════════════════════


class TestAccountEndpoints:
    def test_submit_review(self, shopper, customer, croissant, make_order):
        order = make_order(customer, [(croissant, 1)], status=OrderStatus.DELIVERED)
        response = _post(
            shopper, f"/v1/products/{croissant.pk}/reviews",
            {"order_id": str(order.pk), "rating": 5, "comment": "Buttery"},
        )
        assert response.status_code == 201
        assert response.json()["data"]["customer_name"] == "Lan"
        assert Product.objects.get(pk=croissant.pk).review_count == 1

    def test_review_without_purchase(self, shopper, croissant, other_customer, make_order):
        order = make_order(other_customer, [(croissant, 1)], status=OrderStatus.DELIVERED)
        response = _post(
            shopper, f"/v1/products/{croissant.pk}/reviews",
            {"order_id": str(order.pk), "rating": 5},
        )
        assert response.status_code == 403
        assert _error_code(response) == "REVIEW_NOT_ALLOWED"

    def test_wishlist(self, shopper, croissant):
        added = _post(shopper, "/v1/wishlist/add", {"product_id": str(croissant.pk)}).json()
        assert added["data"]["added"] is True
        products = shopper.get("/v1/wishlist").json()["data"]["products"]
        assert [p["id"] for p in products] == [str(croissant.pk)]
        removed = _post(shopper, "/v1/wishlist/remove", {"product_id": str(croissant.pk)}).json()
        assert removed["data"]["removed"] is True

    def test_profile(self, shopper, customer, croissant, make_order):
        make_order(customer, [(croissant, 2)])
        data = shopper.get("/v1/profile").json()["data"]
        assert data["order_count"] == 1
        assert data["total_spent"] == "50000.00"

        updated = _post(shopper, "/v1/profile", {"name": "Lan Tran"}).json()["data"]
        assert updated["name"] == "Lan Tran"
        assert updated["email"] == "lan@example.com"

    def test_stale_session_customer_is_dropped(self, client, customer):
        _login(client, customer)
        customer.delete()
        assert client.get("/v1/profile").status_code == 401


# ══════════════════════════════════════════════════════════════
# BACK OFFICE
# ══════════════════════════════════════════════════════════════


class TestAdminEndpoints:
    def test_customers_are_forbidden(self, shopper):
        response = shopper.get("/v1/admin/dashboard")
        assert response.status_code == 403
        assert _error_code(response) == "PERMISSION_DENIED"

    def test_dashboard(self, back_office, customer, croissant, make_order):
        make_order(customer, [(croissant, 2)])
        data = back_office.get("/v1/admin/dashboard").json()["data"]
        assert data["order_count"] == 1
        assert data["revenue"] == "50000.00"

    def test_status_transitions(self, back_office, customer, croissant, make_order):
        order = make_order(customer, [(croissant, 1)])
        ok = _post(back_office, f"/v1/admin/orders/{order.pk}/status", {"status": "confirmed"})
        assert ok.json()["data"]["status"] == "confirmed"

        bad = _post(back_office, f"/v1/admin/orders/{order.pk}/status", {"status": "delivered"})
        assert bad.status_code == 400
        assert _error_code(bad) == "INVALID_STATUS_TRANSITION"

    def test_refund_and_settle(self, back_office, customer, croissant, make_order):
        order = make_order(customer, [(croissant, 1)], payment_status=PaymentStatus.PAID)
        settled = _post(back_office, f"/v1/admin/orders/{order.pk}/settle").json()["data"]
        assert settled["stock_deducted"] is True
        refunded = _post(back_office, f"/v1/admin/orders/{order.pk}/refund").json()["data"]
        assert refunded["payment_status"] == "refunded"

    def test_discount_lifecycle(self, back_office):
        body = {
            "code": "tet",
            "discount_type": "percentage",
            "discount_value": "15",
            "start_date": "2026-01-01T00:00:00",
            "end_date": "2026-02-01T00:00:00",
            "usage_limit": "100",
        }
        created = _post(back_office, "/v1/admin/discounts", body)
        assert created.status_code == 201
        discount_id = created.json()["data"]["id"]
        assert created.json()["data"]["usage_limit"] == 100

        duplicate = _post(back_office, "/v1/admin/discounts", body)
        assert _error_code(duplicate) == "DISCOUNT_CODE_TAKEN"

        updated = _post(
            back_office, f"/v1/admin/discounts/{discount_id}",
            {**body, "discount_value": "20"},
        ).json()["data"]
        assert updated["discount_value"] == "20.00"

        listed = back_office.get("/v1/admin/discounts").json()["data"]["discounts"]
        assert [d["code"] for d in listed] == ["TET"]

        deactivated = _post(back_office, f"/v1/admin/discounts/{discount_id}/deactivate")
        assert deactivated.json()["data"]["is_active"] is False

    def test_discount_bad_dates(self, back_office):
        response = _post(back_office, "/v1/admin/discounts", {
            "code": "X", "discount_type": "fixed", "discount_value": "1",
            "start_date": "soon", "end_date": "later",
        })
        assert response.status_code == 400
        assert _error_code(response) == "INVALID_REQUEST"

    def test_catalog_management(self, back_office, category, croissant):
        created = _post(back_office, "/v1/admin/products", {
            "name": "Banh mi", "price": "15000", "stock": 5, "category_id": str(category.pk),
        })
        assert created.status_code == 201
        assert created.json()["data"]["stock"] == 5

        restocked = _post(
            back_office, f"/v1/admin/products/{croissant.pk}/restock", {"quantity": 3},
        ).json()["data"]
        assert restocked["stock"] == 13

        category_response = _post(back_office, "/v1/admin/categories", {"name": "Cakes"})
        assert category_response.status_code == 201

    def test_category_edit_and_delete(self, back_office, category, croissant):
        listed = back_office.get("/v1/admin/categories").json()["data"]["categories"]
        assert [(c["name"], c["product_count"]) for c in listed] == [("Bread", 1)]

        renamed = _post(
            back_office, f"/v1/admin/categories/{category.pk}", {"name": "Breads"},
        )
        assert renamed.json()["data"]["name"] == "Breads"

        blocked = _post(back_office, f"/v1/admin/categories/{category.pk}/delete")
        assert blocked.status_code == 409
        assert _error_code(blocked) == "CATEGORY_IN_USE"

        missing = _post(back_office, "/v1/admin/categories/nope/delete")
        assert missing.status_code == 404

    def test_product_delete(self, back_office, customer, croissant, baguette, make_order):
        make_order(customer, [(croissant, 1)])

        ordered = _post(back_office, f"/v1/admin/products/{croissant.pk}/delete")
        assert ordered.status_code == 409
        assert _error_code(ordered) == "PRODUCT_IN_USE"

        deleted = _post(back_office, f"/v1/admin/products/{baguette.pk}/delete")
        assert deleted.json()["data"]["deleted"] is True
        assert not Product.objects.filter(pk=baguette.pk).exists()

    def test_customer_management(self, back_office, admin, customer, croissant, make_order):
        make_order(customer, [(croissant, 1)])

        listed = back_office.get("/v1/admin/customers").json()["data"]["customers"]
        assert {c["email"] for c in listed} == {admin.email, customer.email}

        detail = back_office.get(f"/v1/admin/customers/{customer.pk}").json()["data"]
        assert len(detail["orders"]) == 1

        promoted = _post(
            back_office, f"/v1/admin/customers/{customer.pk}/role", {"is_admin": True},
        )
        assert promoted.json()["data"]["is_admin"] is True

        not_bool = _post(
            back_office, f"/v1/admin/customers/{customer.pk}/role", {"is_admin": "yes"},
        )
        assert not_bool.status_code == 400

        has_orders = _post(back_office, f"/v1/admin/customers/{customer.pk}/delete")
        assert has_orders.status_code == 409

        own = _post(back_office, f"/v1/admin/customers/{admin.pk}/delete")
        assert own.status_code == 403
        assert _error_code(own) == "OWN_ACCOUNT_PROTECTED"


# ══════════════════════════════════════════════════════════════
# WIRING
# ══════════════════════════════════════════════════════════════


class TestWiring:
    def test_injected_clock_is_shared(self, clock):
        assert build_dependencies().clock is clock
        assert get_default_clock() is clock

    def test_client_ip_prefers_forwarded_header(self, rf):
        request = rf.get("/", HTTP_X_FORWARDED_FOR="203.0.113.9, 10.0.0.1")
        assert client_ip_for(request) == "203.0.113.9"
        assert client_ip_for(rf.get("/")) == "127.0.0.1"
