"""
Storefront Payment Gateway — Callback Processing
==================================================
The gateway reports a payment twice: the customer's browser is
redirected to the return URL, and the gateway server calls the
notification (IPN) URL. The two arrive in any order, possibly more
than once, so both go through one processor:

    verify signature → find order → check method → check amount
    → already settled? → response code "00" ? finalize : mark failed

Integrity failures (bad signature, unknown order, wrong method, wrong
amount) never touch the order. Repeated success callbacks are absorbed
by finalize_payment's conditional update.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple
from uuid import UUID

from core.commands.rejection import RejectedError
from core.primitives.money import to_minor_units
from core.time.clock import Clock, SystemClock
from engines.order.finalization import finalize_payment, mark_payment_failed
from engines.order.models import Order, PaymentMethod, PaymentStatus
from engines.order.policies import gateway_payable_policy, order_must_exist_policy
from engines.order.services import get_order
from integration.adapters import AuthenticationError
from integration.payment_gateway.config import (
    SUCCESS_RESPONSE_CODE,
    SYSTEM_ID,
    GatewayConfig,
)
from integration.payment_gateway.payment_request import build_payment_url
from integration.payment_gateway.signing import verify_callback

logger = logging.getLogger("bakery.payments")

SUCCESS_PAYMENT_MESSAGE = "Online payment successful"


class CallbackOutcome(Enum):
    SUCCESS = "success"
    ALREADY_PAID = "already_paid"
    PAYMENT_FAILED = "payment_failed"
    INVALID_SIGNATURE = "invalid_signature"
    ORDER_NOT_FOUND = "order_not_found"
    WRONG_PAYMENT_METHOD = "wrong_payment_method"
    WRONG_AMOUNT = "wrong_amount"


INTEGRITY_FAILURES = frozenset({
    CallbackOutcome.INVALID_SIGNATURE,
    CallbackOutcome.ORDER_NOT_FOUND,
    CallbackOutcome.WRONG_PAYMENT_METHOD,
    CallbackOutcome.WRONG_AMOUNT,
})

# Notification acknowledgements: (RspCode, Message).
IPN_UNKNOWN_ERROR = ("99", "Unknown error")
IPN_RESPONSES: Dict[CallbackOutcome, Tuple[str, str]] = {
    CallbackOutcome.SUCCESS: ("00", "Confirm Success"),
    CallbackOutcome.ORDER_NOT_FOUND: ("01", "Order not found"),
    CallbackOutcome.ALREADY_PAID: ("02", "Order already confirmed"),
    CallbackOutcome.WRONG_PAYMENT_METHOD: ("03", "Invalid payment method"),
    CallbackOutcome.WRONG_AMOUNT: ("04", "Invalid amount"),
    CallbackOutcome.PAYMENT_FAILED: ("05", "Payment failed"),
    CallbackOutcome.INVALID_SIGNATURE: ("97", "Invalid signature"),
}


def ipn_response(outcome: Optional[CallbackOutcome]) -> Dict[str, str]:
    code, message = IPN_RESPONSES.get(outcome, IPN_UNKNOWN_ERROR)
    return {"RspCode": code, "Message": message}


@dataclass(frozen=True)
class CallbackResult:
    outcome: CallbackOutcome
    order: Optional[Order] = None
    response_code: Optional[str] = None

    @property
    def is_integrity_failure(self) -> bool:
        return self.outcome in INTEGRITY_FAILURES

    @property
    def gateway_reported_success(self) -> bool:
        return self.response_code == SUCCESS_RESPONSE_CODE


def _amount_matches(order: Order, raw_amount: Any) -> bool:
    try:
        received = int(str(raw_amount).strip())
    except (TypeError, ValueError):
        return False
    return received == to_minor_units(order.final_price)


class PaymentCallbackProcessor:
    """Shared by the browser-return and server-notification endpoints."""

    system_id = SYSTEM_ID

    def __init__(self, config: GatewayConfig, *, clock: Clock | None = None):
        self._config = config
        self._clock = clock or SystemClock()

    def _reject(
        self, outcome: CallbackOutcome, detail: str, order: Optional[Order] = None,
    ) -> CallbackResult:
        logger.warning("Gateway callback rejected (%s): %s", outcome.value, detail)
        return CallbackResult(outcome=outcome, order=order)

    def process(self, params: Mapping[str, Any]) -> CallbackResult:
        try:
            fields = verify_callback(params, self._config.secret_key)
        except AuthenticationError as exc:
            return self._reject(CallbackOutcome.INVALID_SIGNATURE, str(exc))

        txn_ref = fields.get("vnp_TxnRef", "")
        order = get_order(txn_ref)
        if order is None:
            return self._reject(CallbackOutcome.ORDER_NOT_FOUND, f"txn_ref={txn_ref!r}")

        if order.payment_method != PaymentMethod.GATEWAY:
            return self._reject(
                CallbackOutcome.WRONG_PAYMENT_METHOD,
                f"order {order.pk} uses {order.payment_method}",
                order,
            )

        if not _amount_matches(order, fields.get("vnp_Amount")):
            return self._reject(
                CallbackOutcome.WRONG_AMOUNT,
                f"order {order.pk} expects {to_minor_units(order.final_price)}, "
                f"got {fields.get('vnp_Amount')!r}",
                order,
            )

        response_code = fields.get("vnp_ResponseCode", "")
        if order.payment_status in (PaymentStatus.PAID, PaymentStatus.REFUNDED):
            logger.info("Gateway callback for settled order %s ignored", order.pk)
            return CallbackResult(
                outcome=CallbackOutcome.ALREADY_PAID, order=order, response_code=response_code,
            )

        if response_code == SUCCESS_RESPONSE_CODE:
            result = finalize_payment(
                order,
                payment_ref=fields.get("vnp_TransactionNo") or None,
                payment_message=SUCCESS_PAYMENT_MESSAGE,
                paid_at=self._clock.now_utc(),
            )
            outcome = (
                CallbackOutcome.SUCCESS if result.transitioned
                else CallbackOutcome.ALREADY_PAID
            )
            return CallbackResult(
                outcome=outcome, order=result.order, response_code=response_code,
            )

        if not mark_payment_failed(order, f"Payment failed: gateway response {response_code}"):
            return CallbackResult(
                outcome=CallbackOutcome.ALREADY_PAID, order=order, response_code=response_code,
            )
        return CallbackResult(
            outcome=CallbackOutcome.PAYMENT_FAILED, order=order, response_code=response_code,
        )


# ══════════════════════════════════════════════════════════════
# PAYMENT START
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PaymentStart:
    order: Order
    redirect_url: Optional[str]

    @property
    def already_paid(self) -> bool:
        return self.redirect_url is None


def start_payment(
    order_id: Any,
    config: GatewayConfig,
    *,
    client_ip: str,
    customer_id: Optional[UUID] = None,
    bank_code: Optional[str] = None,
    now: Optional[datetime] = None,
) -> PaymentStart:
    """
    Build the gateway redirect for an unpaid gateway order. A paid
    order needs no redirect and yields redirect_url=None.

    Raises RejectedError for a missing order or one that is not paid
    online, and ConfigurationError when credentials are absent.
    """
    order = get_order(order_id)
    reason = order_must_exist_policy(order, order_id=order_id, customer_id=customer_id)
    if reason is not None:
        raise RejectedError(reason)

    reason = gateway_payable_policy(order)
    if reason is not None:
        if order.payment_status == PaymentStatus.PAID:
            return PaymentStart(order=order, redirect_url=None)
        raise RejectedError(reason)

    config.require_complete()
    url = build_payment_url(order, config, client_ip, bank_code, now=now)
    logger.info("Payment redirect built for order %s", order.pk)
    return PaymentStart(order=order, redirect_url=url)
