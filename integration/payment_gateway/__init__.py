"""
Storefront Payment Gateway Adapter
====================================
VNPAY-style hosted payment page: signed redirect out, signed
callbacks (browser return + server notification) back in.
"""

from integration.payment_gateway.callbacks import (
    CallbackOutcome,
    CallbackResult,
    PaymentCallbackProcessor,
    PaymentStart,
    ipn_response,
    start_payment,
)
from integration.payment_gateway.config import GatewayConfig
from integration.payment_gateway.payment_request import (
    build_payment_params,
    build_payment_url,
)
from integration.payment_gateway.signing import (
    build_sign_data,
    sign_params,
    verify_callback,
)

__all__ = [
    "CallbackOutcome",
    "CallbackResult",
    "GatewayConfig",
    "PaymentCallbackProcessor",
    "PaymentStart",
    "build_payment_params",
    "build_payment_url",
    "build_sign_data",
    "ipn_response",
    "sign_params",
    "start_payment",
    "verify_callback",
]
