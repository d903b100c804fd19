"""
Bakery Storefront – Django Settings (Infrastructure Only)
==========================================================
Django serves as the framework container for the storefront.
Engines own the business rules — Django supplies ORM, sessions and routing.

Every engine that persists records is registered in INSTALLED_APPS
and ships explicit migrations.
"""

import os
from pathlib import Path

# ── Paths ─────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent

# ── Security ──────────────────────────────────────────────────
SECRET_KEY = os.environ.get(
    "BAKERY_SECRET_KEY", "bakery-dev-key-replace-before-deployment"
)

DEBUG = os.environ.get("BAKERY_DEBUG", "1") == "1"

ALLOWED_HOSTS = [
    host.strip()
    for host in os.environ.get("BAKERY_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",")
    if host.strip()
]

# ── Installed Apps ────────────────────────────────────────────
INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    # ── Storefront engines (leaves first) ─────────────────
    "engines.catalog",
    "engines.customer",
    "engines.discount",
    "engines.order",
    "engines.review",
    "engines.wishlist",
]

# ── Middleware ────────────────────────────────────────────────
MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
]

# ── URL & WSGI ────────────────────────────────────────────────
ROOT_URLCONF = "config.urls"

# ── Database ──────────────────────────────────────────────────
# SQLite for development. Production DB configured through env.
DATABASES = {
    "default": {
        "ENGINE": os.environ.get("BAKERY_DB_ENGINE", "django.db.backends.sqlite3"),
        "NAME": os.environ.get("BAKERY_DB_NAME", str(BASE_DIR / "db.sqlite3")),
        "USER": os.environ.get("BAKERY_DB_USER", ""),
        "PASSWORD": os.environ.get("BAKERY_DB_PASSWORD", ""),
        "HOST": os.environ.get("BAKERY_DB_HOST", ""),
        "PORT": os.environ.get("BAKERY_DB_PORT", ""),
    }
}

# ── Sessions ──────────────────────────────────────────────────
# Cart and applied discount live in the session store.
SESSION_ENGINE = "django.contrib.sessions.backends.db"
SESSION_COOKIE_AGE = 24 * 60 * 60
SESSION_COOKIE_HTTPONLY = True

# ── Internationalization ──────────────────────────────────────
LANGUAGE_CODE = "vi"
TIME_ZONE = "Asia/Ho_Chi_Minh"
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ── Payment Gateway (VNPAY) ───────────────────────────────────
VNPAY_TMN_CODE = os.environ.get("VNP_TMN_CODE", "")
VNPAY_HASH_SECRET = os.environ.get("VNP_HASH_SECRET", "")
VNPAY_URL = os.environ.get(
    "VNP_URL", "https://sandbox.vnpayment.vn/paymentv2/vpcpay.html"
)
VNPAY_RETURN_URL = os.environ.get("VNP_RETURN_URL", "")
VNPAY_IPN_URL = os.environ.get("VNP_IPN_URL", "")

# ── Logging ───────────────────────────────────────────────────
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "plain",
        },
    },
    "loggers": {
        "bakery": {
            "handlers": ["console"],
            "level": os.environ.get("BAKERY_LOG_LEVEL", "INFO"),
            "propagate": True,
        },
    },
}
