# backend/shopstock/config.py
from __future__ import annotations
import os
from decimal import Decimal


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/shopstock.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location (e.g. postgresql://...)
        "sqlite:///shopstock.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Sale price fallback chain: request price -> item price -> this default.
    # Set SALE_REQUIRE_UNIT_PRICE=true to reject sales without a valid price instead.
    SALE_DEFAULT_UNIT_PRICE = Decimal(os.environ.get("SALE_DEFAULT_UNIT_PRICE", "29.99"))
    SALE_REQUIRE_UNIT_PRICE = _env_bool("SALE_REQUIRE_UNIT_PRICE", False)

    SALES_LIST_DEFAULT_LIMIT = int(os.environ.get("SALES_LIST_DEFAULT_LIMIT", "50"))
    SALES_LIST_MAX_LIMIT = int(os.environ.get("SALES_LIST_MAX_LIMIT", "10000"))

    SESSION_IDLE_TIMEOUT_MINUTES = int(os.environ.get("SESSION_IDLE_TIMEOUT_MINUTES", "120"))

    # bcrypt cost factor; tests lower it to keep hashing fast
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    CORS_ALLOWED_ORIGINS = {
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000",
        ).split(",")
        if origin.strip()
    }
