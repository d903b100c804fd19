"""
Storefront Payment Gateway — Request Signing
==============================================
Sign data is built from the parameters sorted by key, each key and
value form-encoded (space → "+"), joined as key=value with "&".
The signature is the lowercase hex HMAC-SHA512 of that string keyed
with the merchant secret.

The hash fields themselves are never part of the sign data.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Dict
from urllib.parse import quote_plus

from integration.adapters import (
    AuthenticationError,
    compute_hmac_signature,
    verify_hmac_signature,
)
from integration.payment_gateway.config import SYSTEM_ID

SECURE_HASH_FIELD = "vnp_SecureHash"
SECURE_HASH_TYPE_FIELD = "vnp_SecureHashType"
HASH_ALGORITHM = "sha512"


def strip_hash_fields(params: Mapping[str, Any]) -> Dict[str, str]:
    return {
        str(key): str(value)
        for key, value in params.items()
        if key not in (SECURE_HASH_FIELD, SECURE_HASH_TYPE_FIELD)
    }


def build_sign_data(params: Mapping[str, Any]) -> str:
    return "&".join(
        f"{quote_plus(str(key))}={quote_plus(str(params[key]))}"
        for key in sorted(params)
    )


def sign_params(secret: str, params: Mapping[str, Any]) -> str:
    return compute_hmac_signature(
        build_sign_data(params).encode("utf-8"), secret, HASH_ALGORITHM,
    )


def verify_callback(params: Mapping[str, Any], secret: str) -> Dict[str, str]:
    """
    Check the callback signature and return the signed fields.

    Raises AuthenticationError when the hash is missing or wrong.
    """
    if not secret:
        raise AuthenticationError("No merchant secret to verify against.", system_id=SYSTEM_ID)
    received = params.get(SECURE_HASH_FIELD)
    if not received:
        raise AuthenticationError("Callback carries no secure hash.", system_id=SYSTEM_ID)
    fields = strip_hash_fields(params)
    payload = build_sign_data(fields).encode("utf-8")
    if not verify_hmac_signature(payload, str(received), secret, HASH_ALGORITHM):
        raise AuthenticationError("Callback signature mismatch.", system_id=SYSTEM_ID)
    return fields
