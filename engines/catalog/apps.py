"""
Storefront Catalog — App Configuration
=========================================
Products, categories and stock counts.
"""

from django.apps import AppConfig


class CatalogConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "engines.catalog"
    label = "catalog"
    verbose_name = "Bakery Catalog"
