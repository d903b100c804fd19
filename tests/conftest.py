"""
Shared fixtures — customers, catalog, discount codes, orders and
signed gateway callbacks on a fixed clock.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from adapters.django_api.wiring import reset_dependencies
from core.context.request_context import RequestContext
from core.primitives.money import to_minor_units
from core.time.clock import FixedClock
from engines.catalog.models import Category, Product
from engines.customer.services import register_customer
from engines.discount.models import Discount
from engines.order.models import Order, OrderItem, OrderStatus, PaymentStatus
from integration.payment_gateway import GatewayConfig, sign_params

NOW = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)
TMN_CODE = "BAKERY01"
HASH_SECRET = "BAKERYSECRETKEY"


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def deps(clock):
    """Rebuild the view-layer service graph on the fixed clock."""
    built = reset_dependencies(clock)
    yield built
    reset_dependencies()


@pytest.fixture
def gateway_config():
    return GatewayConfig(
        tmn_code=TMN_CODE,
        secret_key=HASH_SECRET,
        return_url="http://testserver/v1/payment/gateway/return",
        ipn_url="http://testserver/v1/payment/gateway/ipn",
    )


@pytest.fixture
def gateway_settings(settings):
    settings.VNPAY_TMN_CODE = TMN_CODE
    settings.VNPAY_HASH_SECRET = HASH_SECRET
    settings.VNPAY_RETURN_URL = ""
    settings.VNPAY_IPN_URL = ""
    return settings


# ── Records ───────────────────────────────────────────────────

@pytest.fixture
def customer(db):
    return register_customer(
        email="lan@example.com", name="Lan", phone="0901000001", address="12 Hang Bac",
    )


@pytest.fixture
def other_customer(db):
    return register_customer(email="minh@example.com", name="Minh")


@pytest.fixture
def admin(db):
    return register_customer(email="admin@example.com", name="Admin", is_admin=True)


@pytest.fixture
def category(db):
    return Category.objects.create(name="Bread")


@pytest.fixture
def croissant(category):
    return Product.objects.create(
        name="Croissant", price=Decimal("25000"), stock=10, category=category,
    )


@pytest.fixture
def baguette(category):
    return Product.objects.create(
        name="Baguette", price=Decimal("40000"), stock=5, category=category,
    )


@pytest.fixture
def save10(db):
    return Discount.objects.create(
        code="SAVE10",
        discount_type="percentage",
        discount_value=Decimal("10"),
        start_date=datetime(2026, 1, 1, tzinfo=timezone.utc),
        end_date=datetime(2026, 12, 31, tzinfo=timezone.utc),
    )


# ── Contexts ──────────────────────────────────────────────────

@pytest.fixture
def customer_context(customer):
    return RequestContext(customer_id=customer.pk, session={})


@pytest.fixture
def admin_context(admin):
    return RequestContext(customer_id=admin.pk, is_admin=True, session={})


# ── Factories ─────────────────────────────────────────────────

@pytest.fixture
def make_order():
    def _make(
        customer,
        lines,
        *,
        payment_method="cod",
        discount_code=None,
        discount_amount=Decimal("0"),
        final_price=None,
        status=OrderStatus.PENDING,
        payment_status=PaymentStatus.PENDING,
        created_at=NOW,
    ):
        total = sum((product.price * quantity for product, quantity in lines), Decimal("0"))
        order = Order.objects.create(
            customer=customer,
            total_price=total,
            discount_code=discount_code,
            discount_amount=discount_amount,
            final_price=final_price if final_price is not None else total - discount_amount,
            payment_method=payment_method,
            payment_status=payment_status,
            status=status,
            shipping_name="Lan",
            shipping_phone="0901000001",
            shipping_address="12 Hang Bac",
            created_at=created_at,
        )
        for position, (product, quantity) in enumerate(lines):
            OrderItem.objects.create(
                order=order,
                position=position,
                product=product,
                quantity=quantity,
                unit_price=product.price,
            )
        return order

    return _make


@pytest.fixture
def signed_callback():
    def _sign(
        order,
        *,
        amount=None,
        response_code="00",
        transaction_no="14012345",
        secret=HASH_SECRET,
    ):
        params = {
            "vnp_TmnCode": TMN_CODE,
            "vnp_TxnRef": str(order.pk),
            "vnp_Amount": str(
                amount if amount is not None else to_minor_units(order.final_price)
            ),
            "vnp_OrderInfo": f"Thanh toan don hang {order.pk}",
            "vnp_ResponseCode": response_code,
            "vnp_TransactionNo": transaction_no,
            "vnp_BankCode": "NCB",
            "vnp_PayDate": "20260301170500",
        }
        params["vnp_SecureHash"] = sign_params(secret, params)
        return params

    return _sign
