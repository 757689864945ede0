# backend/shopledger/config.py
from __future__ import annotations
import os


def _store_engine_options(database_uri: str, timeout_seconds: float) -> dict:
    """
    Bound every store round-trip by STORE_TIMEOUT_SECONDS.

    SQLite: busy timeout on lock acquisition.
    PostgreSQL: server-side statement_timeout.
    """
    if database_uri.startswith("sqlite"):
        return {"connect_args": {"timeout": timeout_seconds}}
    if database_uri.startswith("postgresql"):
        return {
            "pool_pre_ping": True,
            "connect_args": {"options": f"-c statement_timeout={int(timeout_seconds * 1000)}"},
        }
    return {"pool_pre_ping": True}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/shopledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///shopledger.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    STORE_TIMEOUT_SECONDS = float(os.environ.get("STORE_TIMEOUT_SECONDS", "5"))
    SQLALCHEMY_ENGINE_OPTIONS = _store_engine_options(SQLALCHEMY_DATABASE_URI, STORE_TIMEOUT_SECONDS)

    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "12"))
    RECENT_ORDERS_LIMIT = int(os.environ.get("RECENT_ORDERS_LIMIT", "5"))
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    LOG_LEVEL = "DEBUG"
