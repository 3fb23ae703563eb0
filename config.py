"""
Application configuration.
This module defines the configuration settings for the Flask application, including database connection, secret key,
short-code settings and logging. It uses environment variables for sensitive information and defaults for development.
In production, make sure to set SECRET_KEY, DATABASE_URL and PUBLIC_BASE_URL.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    """Base configuration shared by all environments."""

    # IMPORTANT: change this in production
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-change-me-please")

    # Database: SQLite for development (simple file in project folder)
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        f"sqlite:///{BASE_DIR / 'infosheet.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # CSRF protection for forms
    WTF_CSRF_ENABLED = True

    # Session cookies
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = _env_bool("SESSION_COOKIE_SECURE", False)
    REMEMBER_COOKIE_HTTPONLY = True

    # App UI name (used in templates)
    APP_NAME = "InfoSheet"

    # Public short codes
    SHORT_CODE_LENGTH = int(os.environ.get("SHORT_CODE_LENGTH", "6"))
    SHORT_CODE_MAX_ATTEMPTS = int(os.environ.get("SHORT_CODE_MAX_ATTEMPTS", "10"))

    # Base used for the URL encoded in QR codes, e.g. "https://infosheet.example.org".
    # Empty means "derive from the incoming request".
    PUBLIC_BASE_URL = os.environ.get("PUBLIC_BASE_URL", "")

    PASSWORD_MIN_LENGTH = 8

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestingConfig(Config):
    """Configuration used by the test-suite."""

    TESTING = True
    SECRET_KEY = "testing"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    WTF_CSRF_ENABLED = False
    PUBLIC_BASE_URL = ""
    LOG_LEVEL = "WARNING"
