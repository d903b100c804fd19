"""
Storefront Wishlist — App Configuration
==========================================
"""

from django.apps import AppConfig


class WishlistConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "engines.wishlist"
    label = "wishlist"
    verbose_name = "Bakery Wishlist"
