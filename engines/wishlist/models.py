from __future__ import annotations

from django.db import models
from django.utils import timezone


class WishlistEntry(models.Model):
    customer = models.ForeignKey(
        "customer.Customer",
        on_delete=models.CASCADE,
        related_name="wishlist_entries",
    )
    product = models.ForeignKey(
        "catalog.Product",
        on_delete=models.CASCADE,
        related_name="wishlist_entries",
    )
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "bakery_wishlist_entries"
        ordering = ["-created_at", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["customer", "product"], name="uq_wishlist_customer_product"
            ),
        ]
