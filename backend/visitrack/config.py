# backend/visitrack/config.py
from __future__ import annotations
import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/visitrack.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///visitrack.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Token signing. The secret is captured once in create_app and never
    # re-read, so changing it requires a restart (and invalidates all tokens).
    JWT_SECRET_KEY = os.environ.get(
        "JWT_SECRET",
        "dev-jwt-secret-change-me-0123456789abcdef0123456789abcdef",
    )
    JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
    JWT_EXPIRATION_SECONDS = int(os.environ.get("JWT_EXPIRATION", "86400"))

    PASSWORD_MIN_LENGTH = 6
    PASSWORD_MAX_LENGTH = 20
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Browser origins allowed to call the API (comma separated).
    CORS_ALLOWED_ORIGINS = tuple(
        o.strip()
        for o in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if o.strip()
    )
