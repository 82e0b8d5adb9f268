# backend/erp/config.py
from __future__ import annotations
import os


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/erp.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///erp.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # bcrypt cost factor
    BCRYPT_ROUNDS = _int_env("BCRYPT_ROUNDS", 12)

    SESSION_ABSOLUTE_TIMEOUT_HOURS = _int_env("SESSION_ABSOLUTE_TIMEOUT_HOURS", 24)
    SESSION_IDLE_TIMEOUT_HOURS = _int_env("SESSION_IDLE_TIMEOUT_HOURS", 2)

    # Ledger history reads are always capped
    TRANSACTION_HISTORY_DEFAULT_LIMIT = _int_env("TRANSACTION_HISTORY_DEFAULT_LIMIT", 100)
    TRANSACTION_HISTORY_MAX_LIMIT = _int_env("TRANSACTION_HISTORY_MAX_LIMIT", 500)

    # "replace": a custom role discards system-role defaults; "union": merge both
    PERMISSION_MERGE_STRATEGY = os.environ.get("PERMISSION_MERGE_STRATEGY", "replace")

    DEFAULT_PAGE_SIZE = _int_env("DEFAULT_PAGE_SIZE", 50)
    MAX_PAGE_SIZE = _int_env("MAX_PAGE_SIZE", 100)

    CORS_ALLOWED_ORIGINS = {
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000",
        ).split(",")
        if origin.strip()
    }


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    LOG_LEVEL = "WARNING"
    BCRYPT_ROUNDS = 4
