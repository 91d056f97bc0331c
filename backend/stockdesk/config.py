# backend/stockdesk/config.py
from __future__ import annotations
import os


def _int_env(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    return int(value)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stockdesk.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///stockdesk.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:8080",
        ).split(",")
        if origin.strip()
    ]

    # Soft-deleted rows stay restorable for this many days
    RECYCLE_BIN_RETENTION_DAYS = _int_env("RECYCLE_BIN_RETENTION_DAYS", 30)

    NOTIFICATION_CHECK_INTERVAL_MINUTES = _int_env("NOTIFICATION_CHECK_INTERVAL_MINUTES", 30)
    LOW_STOCK_NOTIFICATION_TTL_DAYS = _int_env("LOW_STOCK_NOTIFICATION_TTL_DAYS", 7)
    OVERDUE_ORDER_NOTIFICATION_TTL_DAYS = _int_env("OVERDUE_ORDER_NOTIFICATION_TTL_DAYS", 3)
