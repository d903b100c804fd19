"""
Storefront Orders — Request Commands
"""

from __future__ import annotations

from dataclasses import dataclass

from engines.order.models import OrderStatus, PaymentMethod

VALID_PAYMENT_METHODS = frozenset(PaymentMethod.values)
VALID_ORDER_STATUSES = frozenset(OrderStatus.values)


def _required(value: str, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field_name} is required.")
    return value.strip()


@dataclass(frozen=True)
class CheckoutRequest:
    name: str
    phone: str
    address: str
    payment_method: str = PaymentMethod.COD

    def __post_init__(self):
        object.__setattr__(self, "name", _required(self.name, "name"))
        object.__setattr__(self, "phone", _required(self.phone, "phone"))
        object.__setattr__(self, "address", _required(self.address, "address"))
        method = (self.payment_method or PaymentMethod.COD).strip().lower()
        if method not in VALID_PAYMENT_METHODS:
            raise ValueError(f"payment_method '{self.payment_method}' not valid.")
        object.__setattr__(self, "payment_method", method)


@dataclass(frozen=True)
class OrderStatusUpdateRequest:
    new_status: str

    def __post_init__(self):
        status = (self.new_status or "").strip().lower()
        if status not in VALID_ORDER_STATUSES:
            raise ValueError(f"status '{self.new_status}' not valid.")
        object.__setattr__(self, "new_status", status)
