"""
Storefront Context — RequestContext
====================================
Request-scoped identity and session handle, populated once by the
HTTP adapter and passed explicitly into services.

Services never reach into the framework request to find the acting
customer; they receive this context instead.
"""

from __future__ import annotations

import uuid
from collections.abc import MutableMapping
from dataclasses import dataclass, field
from typing import Any, Optional

from core.commands.rejection import ReasonCode, RejectedError, RejectionReason


@dataclass(frozen=True)
class RequestContext:
    """
    Immutable per-request context.

    customer_id is None for anonymous visitors. session is the
    mutable key-value store that holds the cart and applied discount.
    """

    customer_id: Optional[uuid.UUID] = None
    is_admin: bool = False
    session: MutableMapping[str, Any] = field(default_factory=dict)
    client_ip: str = "127.0.0.1"

    def __post_init__(self):
        if self.customer_id is not None and not isinstance(self.customer_id, uuid.UUID):
            raise ValueError("customer_id must be UUID or None.")
        if self.is_admin and self.customer_id is None:
            raise ValueError("is_admin requires a customer_id.")

    @property
    def is_authenticated(self) -> bool:
        return self.customer_id is not None

    def require_customer(self) -> uuid.UUID:
        if self.customer_id is None:
            raise RejectedError(
                RejectionReason(
                    code=ReasonCode.AUTHENTICATION_REQUIRED,
                    message="Please sign in to continue.",
                    policy_name="require_customer",
                )
            )
        return self.customer_id

    def require_admin(self) -> uuid.UUID:
        customer_id = self.require_customer()
        if not self.is_admin:
            raise RejectedError(
                RejectionReason(
                    code=ReasonCode.PERMISSION_DENIED,
                    message="Admin access required.",
                    policy_name="require_admin",
                )
            )
        return customer_id
