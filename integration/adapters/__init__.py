"""
Storefront Integration — Adapter Utilities
============================================
Shared infrastructure for external-system adapters.

Doctrine: Adapters are stateless translators.
External callbacks NEVER write order data directly; they are verified
here and then handed to the order finalization engine.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Callable, Dict


# ══════════════════════════════════════════════════════════════
# ERROR HIERARCHY
# ══════════════════════════════════════════════════════════════

class IntegrationError(Exception):
    """Base error for all integration failures."""

    def __init__(self, message: str, system_id: str = "", retryable: bool = False):
        super().__init__(message)
        self.system_id = system_id
        self.retryable = retryable


class AuthenticationError(IntegrationError):
    """Signature verification failed."""

    def __init__(self, message: str, system_id: str = ""):
        super().__init__(message, system_id=system_id, retryable=False)


class ConfigurationError(IntegrationError):
    """Adapter is missing credentials or endpoints."""

    def __init__(self, message: str, system_id: str = ""):
        super().__init__(message, system_id=system_id, retryable=False)


# ══════════════════════════════════════════════════════════════
# HMAC SIGNATURES
# ══════════════════════════════════════════════════════════════

_DIGESTS: Dict[str, Callable] = {
    "sha256": hashlib.sha256,
    "sha512": hashlib.sha512,
}


def compute_hmac_signature(
    payload_bytes: bytes,
    secret: str,
    algorithm: str = "sha256",
) -> str:
    """Lowercase hex HMAC of payload_bytes keyed with secret."""
    digest = _DIGESTS.get(algorithm)
    if digest is None:
        raise ValueError(f"Unsupported HMAC algorithm '{algorithm}'.")
    return hmac.new(secret.encode("utf-8"), payload_bytes, digest).hexdigest()


def verify_hmac_signature(
    payload_bytes: bytes,
    signature: str,
    secret: str,
    algorithm: str = "sha256",
) -> bool:
    """
    Verify an HMAC signature in constant time.

    Returns True if signature matches, False otherwise. Hex case is
    ignored.
    """
    if algorithm not in _DIGESTS or not isinstance(signature, str):
        return False
    expected = compute_hmac_signature(payload_bytes, secret, algorithm)
    return hmac.compare_digest(
        expected.encode("ascii"), signature.lower().encode("utf-8"),
    )
