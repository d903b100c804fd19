"""
Storefront Customer — Service Layer
=====================================
Customer lookup, profile edits and the shipping details saved at checkout.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from django.db import IntegrityError, transaction
from django.db.models import Count, Sum

from core.primitives.money import to_money
from engines.catalog.services import parse_uuid
from engines.customer.models import Customer


def _clean_string(value: Any, *, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field_name} must be a non-empty string.")
    return value.strip()


def normalize_email(email: str) -> str:
    return _clean_string(email, field_name="email").lower()


def get_customer(customer_id: Any) -> Optional[Customer]:
    pk = parse_uuid(customer_id)
    if pk is None:
        return None
    return Customer.objects.filter(pk=pk).first()


def list_customers() -> tuple[Customer, ...]:
    return tuple(Customer.objects.order_by("-created_at", "id"))


def set_admin_flag(customer: Customer, is_admin: bool) -> Customer:
    customer.is_admin = bool(is_admin)
    customer.save(update_fields=["is_admin"])
    return customer


def register_customer(
    *,
    email: str,
    name: str = "",
    phone: str = "",
    address: str = "",
    is_admin: bool = False,
) -> Customer:
    try:
        with transaction.atomic():
            return Customer.objects.create(
                email=normalize_email(email),
                name=name.strip(),
                phone=phone.strip(),
                address=address.strip(),
                is_admin=is_admin,
            )
    except IntegrityError as exc:
        raise ValueError(f"Email '{email}' is already registered.") from exc


def save_shipping_info(customer_id: Any, *, name: str, phone: str, address: str) -> None:
    Customer.objects.filter(pk=customer_id).update(
        name=_clean_string(name, field_name="name"),
        phone=_clean_string(phone, field_name="phone"),
        address=_clean_string(address, field_name="address"),
    )


def serialize_customer(customer: Customer) -> dict[str, Any]:
    return {
        "id": str(customer.pk),
        "email": customer.email,
        "name": customer.name,
        "phone": customer.phone,
        "address": customer.address,
        "is_admin": customer.is_admin,
    }


# ── Profile ───────────────────────────────────────────────────

@dataclass(frozen=True)
class ProfileSummary:
    customer: Customer
    order_count: int
    total_spent: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            **serialize_customer(self.customer),
            "order_count": self.order_count,
            "total_spent": str(self.total_spent),
        }


def profile_summary(customer: Customer) -> ProfileSummary:
    """Order count and lifetime spend (sum of final prices, any status)."""
    figures = customer.orders.aggregate(count=Count("id"), spent=Sum("final_price"))
    return ProfileSummary(
        customer=customer,
        order_count=figures["count"] or 0,
        total_spent=to_money(figures["spent"] or 0),
    )


def update_profile(
    customer: Customer,
    *,
    email: str,
    name: str,
    phone: str = "",
    address: str = "",
) -> Customer:
    email = normalize_email(email)
    if Customer.objects.filter(email=email).exclude(pk=customer.pk).exists():
        raise ValueError(f"Email '{email}' is already in use.")
    customer.email = email
    customer.name = _clean_string(name, field_name="name")
    customer.phone = (phone or "").strip()
    customer.address = (address or "").strip()
    try:
        with transaction.atomic():
            customer.save(update_fields=["email", "name", "phone", "address"])
    except IntegrityError as exc:
        raise ValueError(f"Email '{email}' is already in use.") from exc
    return customer
