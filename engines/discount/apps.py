"""
Storefront Discount Ledger — App Configuration
=================================================
Discount codes, validity windows and usage counters.
"""

from django.apps import AppConfig


class DiscountConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "engines.discount"
    label = "discount"
    verbose_name = "Bakery Discount Ledger"
