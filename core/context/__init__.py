"""
Storefront Context — Public API
"""

from core.context.request_context import RequestContext

__all__ = ["RequestContext"]
