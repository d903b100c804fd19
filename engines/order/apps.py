"""
Storefront Orders — App Configuration
======================================
Order aggregate, fulfillment state machine and payment settlement.
"""

from django.apps import AppConfig


class OrderConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "engines.order"
    label = "order"
    verbose_name = "Bakery Orders"
