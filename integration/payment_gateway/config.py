"""
Storefront Payment Gateway — Configuration
============================================
Merchant credentials and endpoints for the VNPAY-style gateway.
Protocol constants are fixed by the gateway; the rest comes from
Django settings (VNPAY_* values, themselves read from VNP_* env vars).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from django.conf import settings

from integration.adapters import ConfigurationError

SYSTEM_ID = "vnpay"

PROTOCOL_VERSION = "2.1.0"
COMMAND_PAY = "pay"
CURRENCY_CODE = "VND"
DEFAULT_LOCALE = "vn"
ORDER_TYPE = "other"
SUCCESS_RESPONSE_CODE = "00"
DEFAULT_GATEWAY_URL = "https://sandbox.vnpayment.vn/paymentv2/vpcpay.html"


@dataclass(frozen=True)
class GatewayConfig:
    tmn_code: str
    secret_key: str
    gateway_url: str = DEFAULT_GATEWAY_URL
    return_url: str = ""
    ipn_url: str = ""
    version: str = PROTOCOL_VERSION
    command: str = COMMAND_PAY
    currency: str = CURRENCY_CODE
    locale: str = DEFAULT_LOCALE
    order_type: str = ORDER_TYPE

    @classmethod
    def from_settings(
        cls,
        *,
        return_url: Optional[str] = None,
        ipn_url: Optional[str] = None,
    ) -> "GatewayConfig":
        """
        return_url / ipn_url are fallbacks used when the settings leave
        them blank (the HTTP layer derives them from the request host).
        """
        return cls(
            tmn_code=getattr(settings, "VNPAY_TMN_CODE", "") or "",
            secret_key=getattr(settings, "VNPAY_HASH_SECRET", "") or "",
            gateway_url=getattr(settings, "VNPAY_URL", "") or DEFAULT_GATEWAY_URL,
            return_url=getattr(settings, "VNPAY_RETURN_URL", "") or return_url or "",
            ipn_url=getattr(settings, "VNPAY_IPN_URL", "") or ipn_url or "",
        )

    @property
    def is_complete(self) -> bool:
        return bool(self.tmn_code and self.secret_key and self.return_url)

    def require_complete(self) -> "GatewayConfig":
        if not self.tmn_code or not self.secret_key:
            raise ConfigurationError(
                "Payment gateway credentials are not configured.", system_id=SYSTEM_ID,
            )
        if not self.return_url:
            raise ConfigurationError(
                "Payment gateway return URL is not configured.", system_id=SYSTEM_ID,
            )
        return self
