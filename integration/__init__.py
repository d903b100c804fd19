"""
Storefront Integration Layer — Public API
==========================================
Controlled gateway for external system communication.

Doctrine: External systems NEVER write directly to order data.
Inbound callbacks: verify → translate → order finalization engine.
"""

from integration.adapters import (
    AuthenticationError,
    ConfigurationError,
    IntegrationError,
    compute_hmac_signature,
    verify_hmac_signature,
)

__all__ = [
    "AuthenticationError",
    "ConfigurationError",
    "IntegrationError",
    "compute_hmac_signature",
    "verify_hmac_signature",
]
