"""
Storefront Reviews — App Configuration
=========================================
Verified-purchase product reviews.
"""

from django.apps import AppConfig


class ReviewConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "engines.review"
    label = "review"
    verbose_name = "Bakery Reviews"
