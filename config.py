"""
Application Configuration
=========================

Settings are plain class attributes loaded into ``app.config`` with
``from_object``. Every value can be overridden through the environment so the
tracker starts with safe defaults and no extra configuration.
"""

import os


def _database_url() -> str:
    url = os.environ.get("DATABASE_URL", "sqlite:///rememorium.db")
    # Heroku-style URLs use a scheme SQLAlchemy no longer accepts
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return url


TIMEZONE = os.environ.get("REMEMORIUM_TIMEZONE", "America/Sao_Paulo")
LOG_LEVEL = os.environ.get("REMEMORIUM_LOG_LEVEL", "INFO")


class Config:
    SQLALCHEMY_DATABASE_URI = _database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SECRET_KEY = os.environ.get("SECRET_KEY", "change-me")

    TIMEZONE = TIMEZONE
    HEATMAP_DAYS = int(os.environ.get("REMEMORIUM_HEATMAP_DAYS", "60"))
    FOCUS_LIMIT = int(os.environ.get("REMEMORIUM_FOCUS_LIMIT", "5"))
    DEFAULT_OWNER = os.environ.get("REMEMORIUM_DEFAULT_OWNER", "local")


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    DEFAULT_OWNER = "tester"
