"""
Storefront Orders — Order Aggregate
===================================
An order is owned by the purchasing customer, created at checkout and
never deleted. Prices are snapshots taken at creation time.

stock_deducted and discount_used are idempotency fences: each side
effect runs at most once per order, however many times settlement is
invoked. Both are only flipped through conditional UPDATEs.
"""

from __future__ import annotations

import uuid

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone


class PaymentMethod(models.TextChoices):
    COD = "cod", "Cash on delivery"
    GATEWAY = "gateway", "Online payment gateway"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"


class Order(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    customer = models.ForeignKey(
        "customer.Customer",
        on_delete=models.PROTECT,
        related_name="orders",
    )
    total_price = models.DecimalField(max_digits=12, decimal_places=2)
    discount_code = models.CharField(max_length=40, null=True, blank=True)
    discount_amount = models.DecimalField(
        max_digits=12, decimal_places=2, default=0, validators=[MinValueValidator(0)]
    )
    final_price = models.DecimalField(max_digits=12, decimal_places=2)
    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        default=PaymentMethod.COD,
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    payment_ref = models.CharField(max_length=120, null=True, blank=True)
    payment_message = models.CharField(max_length=255, null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    stock_deducted = models.BooleanField(default=False)
    discount_used = models.BooleanField(default=False)
    shipping_name = models.CharField(max_length=200)
    shipping_phone = models.CharField(max_length=32)
    shipping_address = models.CharField(max_length=500)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "bakery_orders"
        ordering = ["-created_at", "id"]
        indexes = [
            models.Index(fields=["customer", "created_at"], name="idx_order_customer_created"),
            models.Index(fields=["payment_status"], name="idx_order_payment_status"),
        ]

    def __str__(self) -> str:
        return f"{self.id} ({self.payment_status}/{self.status})"


class OrderItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    position = models.PositiveIntegerField()
    product = models.ForeignKey(
        "catalog.Product",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        db_table = "bakery_order_items"
        ordering = ["order", "position"]
        constraints = [
            models.UniqueConstraint(
                fields=["order", "position"], name="uq_order_item_position"
            ),
        ]

    @property
    def subtotal(self):
        return self.unit_price * self.quantity

    def __str__(self) -> str:
        return f"{self.quantity} × {self.product_id} @ {self.unit_price}"
