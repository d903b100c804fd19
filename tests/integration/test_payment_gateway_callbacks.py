"""
Tests — Payment Gateway Callbacks
===================================
Return and notification callbacks in any order, any number of times:
integrity failures never touch the order, success settles exactly once.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

import pytest

from core.commands.rejection import ReasonCode, RejectedError
from engines.catalog.models import Product
from engines.order.models import Order, OrderStatus, PaymentStatus
from integration.adapters import ConfigurationError
from integration.payment_gateway import (
    CallbackOutcome,
    GatewayConfig,
    PaymentCallbackProcessor,
    ipn_response,
    sign_params,
    start_payment,
)

pytestmark = pytest.mark.django_db


@pytest.fixture
def processor(gateway_config, clock):
    return PaymentCallbackProcessor(gateway_config, clock=clock)


@pytest.fixture
def gateway_order(customer, croissant, make_order):
    return make_order(customer, [(croissant, 2)], payment_method="gateway")


def _stored(order) -> Order:
    return Order.objects.get(pk=order.pk)


# ══════════════════════════════════════════════════════════════
# SUCCESS PATH
# ══════════════════════════════════════════════════════════════


class TestSuccessfulPayment:
    def test_first_callback_finalizes(
        self, processor, gateway_order, croissant, signed_callback, clock,
    ):
        result = processor.process(signed_callback(gateway_order, transaction_no="14099001"))

        assert result.outcome is CallbackOutcome.SUCCESS
        assert result.gateway_reported_success
        stored = _stored(gateway_order)
        assert stored.payment_status == PaymentStatus.PAID
        assert stored.status == OrderStatus.CONFIRMED
        assert stored.payment_ref == "14099001"
        assert stored.payment_message == "Online payment successful"
        assert stored.paid_at == clock.now_utc()
        assert Product.objects.get(pk=croissant.pk).stock == 8

    def test_return_and_notification_settle_once(
        self, processor, gateway_order, croissant, signed_callback,
    ):
        params = signed_callback(gateway_order)

        outcomes = [processor.process(params).outcome for _ in range(3)]

        assert outcomes == [
            CallbackOutcome.SUCCESS, CallbackOutcome.ALREADY_PAID, CallbackOutcome.ALREADY_PAID,
        ]
        assert Product.objects.get(pk=croissant.pk).stock == 8

    def test_duplicate_with_other_transaction_keeps_first_ref(
        self, processor, gateway_order, signed_callback,
    ):
        processor.process(signed_callback(gateway_order, transaction_no="FIRST"))
        processor.process(signed_callback(gateway_order, transaction_no="SECOND"))
        assert _stored(gateway_order).payment_ref == "FIRST"


# ══════════════════════════════════════════════════════════════
# FAILURES
# ══════════════════════════════════════════════════════════════


class TestFailedPayment:
    def test_gateway_failure_code(self, processor, gateway_order, signed_callback):
        result = processor.process(signed_callback(gateway_order, response_code="24"))

        assert result.outcome is CallbackOutcome.PAYMENT_FAILED
        assert not result.gateway_reported_success
        stored = _stored(gateway_order)
        assert stored.payment_status == PaymentStatus.FAILED
        assert stored.payment_message == "Payment failed: gateway response 24"
        assert not stored.stock_deducted

    def test_retry_after_failure_succeeds(self, processor, gateway_order, signed_callback):
        processor.process(signed_callback(gateway_order, response_code="24"))
        result = processor.process(signed_callback(gateway_order, transaction_no="RETRY"))
        assert result.outcome is CallbackOutcome.SUCCESS
        assert _stored(gateway_order).payment_status == PaymentStatus.PAID

    def test_late_failure_never_downgrades(self, processor, gateway_order, signed_callback):
        processor.process(signed_callback(gateway_order))
        result = processor.process(signed_callback(gateway_order, response_code="24"))
        assert result.outcome is CallbackOutcome.ALREADY_PAID
        assert _stored(gateway_order).payment_status == PaymentStatus.PAID

    def test_refunded_order_ignores_callbacks(
        self, processor, customer, croissant, make_order, signed_callback,
    ):
        order = make_order(
            customer, [(croissant, 1)],
            payment_method="gateway", payment_status=PaymentStatus.REFUNDED,
        )
        result = processor.process(signed_callback(order))
        assert result.outcome is CallbackOutcome.ALREADY_PAID
        assert _stored(order).payment_status == PaymentStatus.REFUNDED


class TestIntegrityFailures:
    def test_bad_signature(self, processor, gateway_order, signed_callback):
        params = signed_callback(gateway_order, secret="WRONGSECRET")
        result = processor.process(params)
        assert result.outcome is CallbackOutcome.INVALID_SIGNATURE
        assert result.is_integrity_failure
        assert _stored(gateway_order).payment_status == PaymentStatus.PENDING

    def test_unknown_order(self, processor, gateway_config):
        params = {"vnp_TxnRef": str(uuid.uuid4()), "vnp_Amount": "100", "vnp_ResponseCode": "00"}
        params["vnp_SecureHash"] = sign_params(gateway_config.secret_key, params)
        assert processor.process(params).outcome is CallbackOutcome.ORDER_NOT_FOUND

    def test_cash_on_delivery_order(
        self, processor, customer, croissant, make_order, signed_callback,
    ):
        order = make_order(customer, [(croissant, 1)], payment_method="cod")
        result = processor.process(signed_callback(order))
        assert result.outcome is CallbackOutcome.WRONG_PAYMENT_METHOD
        assert _stored(order).payment_status == PaymentStatus.PENDING

    def test_amount_mismatch_by_one_unit(
        self, processor, customer, croissant, make_order, signed_callback,
    ):
        order = make_order(
            customer, [(croissant, 8)],
            payment_method="gateway", final_price=Decimal("199999"),
        )
        result = processor.process(signed_callback(order, amount=20000000))

        assert result.outcome is CallbackOutcome.WRONG_AMOUNT
        stored = _stored(order)
        assert stored.payment_status == PaymentStatus.PENDING
        assert stored.payment_ref is None
        assert Product.objects.get(pk=croissant.pk).stock == 10

    def test_non_numeric_amount(self, processor, gateway_order, signed_callback):
        result = processor.process(signed_callback(gateway_order, amount="lots"))
        assert result.outcome is CallbackOutcome.WRONG_AMOUNT


class TestIpnResponses:
    @pytest.mark.parametrize(
        "outcome,code",
        [
            (CallbackOutcome.SUCCESS, "00"),
            (CallbackOutcome.ORDER_NOT_FOUND, "01"),
            (CallbackOutcome.ALREADY_PAID, "02"),
            (CallbackOutcome.WRONG_PAYMENT_METHOD, "03"),
            (CallbackOutcome.WRONG_AMOUNT, "04"),
            (CallbackOutcome.PAYMENT_FAILED, "05"),
            (CallbackOutcome.INVALID_SIGNATURE, "97"),
            (None, "99"),
        ],
    )
    def test_codes(self, outcome, code):
        assert ipn_response(outcome)["RspCode"] == code

    def test_success_message(self):
        assert ipn_response(CallbackOutcome.SUCCESS) == {
            "RspCode": "00", "Message": "Confirm Success",
        }


# ══════════════════════════════════════════════════════════════
# PAYMENT START
# ══════════════════════════════════════════════════════════════


class TestStartPayment:
    def test_builds_redirect(self, gateway_config, gateway_order, customer, clock):
        started = start_payment(
            gateway_order.pk, gateway_config,
            client_ip="10.0.0.7", customer_id=customer.pk, now=clock.now_utc(),
        )
        assert not started.already_paid
        assert "vnp_TmnCode=BAKERY01" in started.redirect_url
        assert "vnp_Amount=5000000" in started.redirect_url

    def test_paid_order_needs_no_redirect(self, gateway_config, gateway_order, processor, signed_callback):
        processor.process(signed_callback(gateway_order))
        started = start_payment(gateway_order.pk, gateway_config, client_ip="10.0.0.7")
        assert started.already_paid
        assert started.redirect_url is None

    def test_cash_on_delivery_order_rejected(self, gateway_config, customer, croissant, make_order):
        order = make_order(customer, [(croissant, 1)])
        with pytest.raises(RejectedError) as exc:
            start_payment(order.pk, gateway_config, client_ip="10.0.0.7")
        assert exc.value.code == ReasonCode.WRONG_PAYMENT_METHOD

    def test_other_customers_order(self, gateway_config, gateway_order, other_customer):
        with pytest.raises(RejectedError) as exc:
            start_payment(
                gateway_order.pk, gateway_config,
                client_ip="10.0.0.7", customer_id=other_customer.pk,
            )
        assert exc.value.code == ReasonCode.ORDER_NOT_FOUND

    def test_missing_credentials(self, gateway_order):
        config = GatewayConfig(tmn_code="", secret_key="", return_url="http://x/r")
        with pytest.raises(ConfigurationError):
            start_payment(gateway_order.pk, config, client_ip="10.0.0.7")

    def test_fixed_clock_in_create_date(self, gateway_config, gateway_order):
        started = start_payment(
            gateway_order.pk, gateway_config,
            client_ip="10.0.0.7", now=gateway_order.created_at,
        )
        assert "vnp_CreateDate=20260301170000" in started.redirect_url
