"""
Storefront Command Layer — Rejection Model
============================================
Structured rejection reasons for denied requests.

Every rejection must be:
- Deterministic (same input → same rejection)
- Machine-readable (code)
- Human-readable (message)
- Traceable to the policy that produced it (policy_name)

Rejections never mutate state. A service that meets one raises
RejectedError so the caller sees exactly why nothing happened.
"""

from __future__ import annotations

from dataclasses import dataclass


# ══════════════════════════════════════════════════════════════
# REJECTION REASON (frozen explanation structure)
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RejectionReason:
    """
    Structured reason for a rejected request.

    Fields:
        code:        Machine-readable rejection code (e.g. 'DISCOUNT_EXPIRED').
        message:     Human-readable explanation.
        policy_name: Name of the policy that caused rejection.
    """

    code: str
    message: str
    policy_name: str

    def __post_init__(self):
        if not self.code or not isinstance(self.code, str):
            raise ValueError("code must be a non-empty string.")

        if not self.message or not isinstance(self.message, str):
            raise ValueError("message must be a non-empty string.")

        if not self.policy_name or not isinstance(self.policy_name, str):
            raise ValueError("policy_name must be a non-empty string.")

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "policy_name": self.policy_name,
        }


class RejectedError(Exception):
    """Raised by services when a policy rejects the request."""

    def __init__(self, reason: RejectionReason):
        super().__init__(reason.message)
        self.reason = reason

    @property
    def code(self) -> str:
        return self.reason.code


# ══════════════════════════════════════════════════════════════
# STANDARD REJECTION CODES
# ══════════════════════════════════════════════════════════════

class ReasonCode:
    """
    Known rejection codes. Extensible by engines.

    Convention: SCREAMING_SNAKE_CASE.
    """

    # ── Context / authorization ───────────────────────────────
    AUTHENTICATION_REQUIRED = "AUTHENTICATION_REQUIRED"
    PERMISSION_DENIED = "PERMISSION_DENIED"

    # ── Catalog / cart ────────────────────────────────────────
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    OUT_OF_STOCK = "OUT_OF_STOCK"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    CART_EMPTY = "CART_EMPTY"
    PRODUCT_IN_USE = "PRODUCT_IN_USE"
    CATEGORY_NOT_FOUND = "CATEGORY_NOT_FOUND"
    CATEGORY_IN_USE = "CATEGORY_IN_USE"

    # ── Discount ledger ───────────────────────────────────────
    DISCOUNT_NOT_FOUND = "DISCOUNT_NOT_FOUND"
    DISCOUNT_EXPIRED = "DISCOUNT_EXPIRED"
    DISCOUNT_EXHAUSTED = "DISCOUNT_EXHAUSTED"
    DISCOUNT_MIN_ORDER_NOT_MET = "DISCOUNT_MIN_ORDER_NOT_MET"
    DISCOUNT_CODE_TAKEN = "DISCOUNT_CODE_TAKEN"

    # ── Orders ────────────────────────────────────────────────
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    ORDER_NOT_PAID = "ORDER_NOT_PAID"

    # ── Customers ─────────────────────────────────────────────
    CUSTOMER_NOT_FOUND = "CUSTOMER_NOT_FOUND"
    CUSTOMER_HAS_ORDERS = "CUSTOMER_HAS_ORDERS"
    OWN_ACCOUNT_PROTECTED = "OWN_ACCOUNT_PROTECTED"

    # ── Payment ───────────────────────────────────────────────
    WRONG_PAYMENT_METHOD = "WRONG_PAYMENT_METHOD"
    ORDER_ALREADY_PAID = "ORDER_ALREADY_PAID"

    # ── Reviews ───────────────────────────────────────────────
    REVIEW_NOT_ALLOWED = "REVIEW_NOT_ALLOWED"
    REVIEW_DUPLICATE = "REVIEW_DUPLICATE"
    REVIEW_WINDOW_CLOSED = "REVIEW_WINDOW_CLOSED"
