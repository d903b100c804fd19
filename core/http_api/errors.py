"""
Storefront HTTP API — Error Mapping
======================================
Stable transport error mapping for rejections and handler failures.
"""

from __future__ import annotations

from typing import Any, Optional

from core.commands.rejection import ReasonCode, RejectionReason
from core.http_api.contracts import HttpApiErrorBody, HttpApiResponse

_STATUS_BY_CODE = {
    ReasonCode.AUTHENTICATION_REQUIRED: 401,
    ReasonCode.PERMISSION_DENIED: 403,
    ReasonCode.PRODUCT_NOT_FOUND: 404,
    ReasonCode.ORDER_NOT_FOUND: 404,
    ReasonCode.CATEGORY_NOT_FOUND: 404,
    ReasonCode.CUSTOMER_NOT_FOUND: 404,
    ReasonCode.PRODUCT_IN_USE: 409,
    ReasonCode.CATEGORY_IN_USE: 409,
    ReasonCode.CUSTOMER_HAS_ORDERS: 409,
    ReasonCode.OWN_ACCOUNT_PROTECTED: 403,
    ReasonCode.REVIEW_NOT_ALLOWED: 403,
}


def error_response(
    *,
    code: str,
    message: str,
    details: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    return HttpApiResponse(
        ok=False,
        error=HttpApiErrorBody(
            code=code,
            message=message,
            details=details or {},
        ),
    ).to_dict()


def success_response(
    data: Any,
    *,
    meta: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    return HttpApiResponse(ok=True, data=data, meta=meta).to_dict()


def rejection_response(reason: RejectionReason) -> dict[str, Any]:
    return error_response(
        code=reason.code,
        message=reason.message,
        details={"policy_name": reason.policy_name},
    )


def http_status_for(reason: RejectionReason) -> int:
    return _STATUS_BY_CODE.get(reason.code, 400)
