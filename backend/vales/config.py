# backend/vales/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    return int(value)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/vales.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location (Postgres in production)
        "sqlite:///vales.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # bcrypt work factor; never below 10 outside of tests
    BCRYPT_ROUNDS = _env_int("BCRYPT_ROUNDS", 12)

    SESSION_ABSOLUTE_TIMEOUT_HOURS = _env_int("SESSION_ABSOLUTE_TIMEOUT_HOURS", 24)
    SESSION_IDLE_TIMEOUT_HOURS = _env_int("SESSION_IDLE_TIMEOUT_HOURS", 12)

    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    ]

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
