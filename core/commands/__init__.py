"""
Storefront Command Layer
==========================
Requests are frozen dataclasses validated at construction.
Policies judge them and either pass or return a RejectionReason.
"""

from core.commands.rejection import (
    ReasonCode,
    RejectedError,
    RejectionReason,
)

__all__ = [
    "ReasonCode",
    "RejectedError",
    "RejectionReason",
]
