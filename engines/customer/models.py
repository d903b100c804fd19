"""
Storefront Customer — Customer Records
=========================================
Email uniqueness is an explicit database constraint.
"""

from __future__ import annotations

import uuid

from django.db import models


class Customer(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(max_length=254)
    name = models.CharField(max_length=200, blank=True, default="")
    phone = models.CharField(max_length=32, blank=True, default="")
    address = models.CharField(max_length=500, blank=True, default="")
    is_admin = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "bakery_customers"
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(fields=["email"], name="uq_customer_email"),
        ]

    def __str__(self) -> str:
        return self.email
