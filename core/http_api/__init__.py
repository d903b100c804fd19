"""
Storefront HTTP API
===================
Transport contracts and error mapping shared by the Django adapter.
"""

from core.http_api.contracts import HttpApiErrorBody, HttpApiResponse
from core.http_api.errors import (
    error_response,
    http_status_for,
    rejection_response,
    success_response,
)

__all__ = [
    "HttpApiErrorBody",
    "HttpApiResponse",
    "error_response",
    "http_status_for",
    "rejection_response",
    "success_response",
]
