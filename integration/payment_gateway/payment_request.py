"""
Storefront Payment Gateway — Payment Request
==============================================
Builds the signed redirect that sends a customer to the gateway.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional
from urllib.parse import urlencode

from django.utils import timezone

from core.primitives.money import to_minor_units
from core.time.clock import now_utc
from engines.order.models import Order
from integration.payment_gateway.config import GatewayConfig
from integration.payment_gateway.signing import SECURE_HASH_FIELD, sign_params

CREATE_DATE_FORMAT = "%Y%m%d%H%M%S"


def format_create_date(moment: datetime) -> str:
    """Gateway timestamps are local wall-clock time (settings.TIME_ZONE)."""
    return timezone.localtime(moment).strftime(CREATE_DATE_FORMAT)


def build_payment_params(
    order: Order,
    config: GatewayConfig,
    client_ip: str,
    bank_code: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> Dict[str, str]:
    params = {
        "vnp_Version": config.version,
        "vnp_Command": config.command,
        "vnp_TmnCode": config.tmn_code,
        "vnp_Locale": config.locale,
        "vnp_CurrCode": config.currency,
        "vnp_TxnRef": str(order.pk),
        "vnp_OrderInfo": f"Thanh toan don hang {order.pk}",
        "vnp_OrderType": config.order_type,
        "vnp_Amount": str(to_minor_units(order.final_price)),
        "vnp_ReturnUrl": config.return_url,
        "vnp_IpAddr": client_ip,
        "vnp_CreateDate": format_create_date(now or now_utc()),
        "vnp_BankCode": bank_code,
    }
    return {key: str(value) for key, value in params.items() if value not in (None, "")}


def build_payment_url(
    order: Order,
    config: GatewayConfig,
    client_ip: str,
    bank_code: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> str:
    params = build_payment_params(order, config, client_ip, bank_code, now=now)
    ordered = [(key, params[key]) for key in sorted(params)]
    ordered.append((SECURE_HASH_FIELD, sign_params(config.secret_key, params)))
    return f"{config.gateway_url}?{urlencode(ordered)}"
