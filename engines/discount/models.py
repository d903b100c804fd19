"""
Storefront Discount Ledger — Discount Codes
==============================================
Codes are stored uppercase and are unique (explicit constraint).

used_count is only ever incremented by order settlement, once per
order carrying the code. usage_limit is checked when a code is applied,
not when the counter moves.
"""

from __future__ import annotations

import uuid

from django.db import models


class DiscountType(models.TextChoices):
    PERCENTAGE = "percentage", "Percentage"
    FIXED = "fixed", "Fixed amount"


class Discount(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    code = models.CharField(max_length=40)
    description = models.CharField(max_length=255, blank=True, default="")
    discount_type = models.CharField(max_length=20, choices=DiscountType.choices)
    discount_value = models.DecimalField(max_digits=12, decimal_places=2)
    min_order_value = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    max_discount = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True
    )
    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    used_count = models.PositiveIntegerField(default=0)
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "bakery_discounts"
        ordering = ["-created_at", "id"]
        constraints = [
            models.UniqueConstraint(fields=["code"], name="uq_discount_code"),
        ]

    def __str__(self) -> str:
        return f"{self.code} ({self.used_count}/{self.usage_limit or '∞'})"
