# backend/retail/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: str = "") -> list[str]:
    raw = os.environ.get(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/retail.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///retail.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Catalog prices, costs and expenses are stored in the base currency.
    BASE_CURRENCY = "UGX"
    SUPPORTED_CURRENCIES = ("UGX", "USD")

    # Current rate: snapshotted onto new orders/invoices, re-applied by reporting.
    EXCHANGE_RATE_UGX_PER_USD = int(os.environ.get("EXCHANGE_RATE_UGX_PER_USD", "3700"))

    DEFAULT_LOW_STOCK_THRESHOLD = 10

    # Edit history rows retained per order (oldest pruned first)
    ORDER_EDIT_HISTORY_LIMIT = int(os.environ.get("ORDER_EDIT_HISTORY_LIMIT", "50"))

    # Off: editing order items leaves stock untouched (historical behaviour)
    RECONCILE_STOCK_ON_ORDER_EDIT = _env_bool("RECONCILE_STOCK_ON_ORDER_EDIT", False)

    # Accounts that can never be demoted or deleted through the API
    PROTECTED_ADMIN_EMAILS = _env_list("PROTECTED_ADMIN_EMAILS")

    CORS_ALLOWED_ORIGINS = _env_list(
        "CORS_ALLOWED_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
    )
