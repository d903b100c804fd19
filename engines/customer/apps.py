"""
Storefront Customer — App Configuration
==========================================
Customer records and their saved shipping details.
"""

from django.apps import AppConfig


class CustomerConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "engines.customer"
    label = "customer"
    verbose_name = "Bakery Customers"
