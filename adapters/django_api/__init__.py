"""
Storefront Django HTTP adapter.
Thin framework glue over the engine services.
"""

from adapters.django_api.wiring import (
    SESSION_CUSTOMER_KEY,
    build_dependencies,
    build_request_context,
    reset_dependencies,
)

__all__ = [
    "SESSION_CUSTOMER_KEY",
    "build_dependencies",
    "build_request_context",
    "reset_dependencies",
]
