import os
from datetime import timedelta
from typing import Any, Dict, Mapping, Optional

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

OMDB_BASE = "http://www.omdbapi.com/"
SUPPORTED_DATABASES = ("postgresql", "sqlite")  # the store's upserts need ON CONFLICT


class ConfigError(RuntimeError):
    """Raised at startup when a required setting is missing."""


def _database_url(env: Mapping[str, str]) -> Optional[str]:
    url = env.get("DATABASE_URL")
    if url:
        # SQLAlchemy only understands the "postgresql" scheme
        if url.startswith("postgres://"):
            url = "postgresql://" + url[len("postgres://"):]
        return url

    user = env.get("POSTGRES_USER")
    password = env.get("POSTGRES_PASSWORD")
    host = env.get("POSTGRES_HOST")
    name = env.get("POSTGRES_DB")
    if not (user and password and host and name):
        return None
    port = env.get("POSTGRES_PORT") or "5432"
    return f"postgresql://{user}:{password}@{host}:{port}/{name}"


def load_settings(env: Optional[Mapping[str, str]] = None,
                  overrides: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """
    Build the Flask config dict from environment variables.
    Values in `overrides` win over the environment (tests use this).
    Missing session secret or database settings are fatal.
    """
    env = os.environ if env is None else env
    overrides = dict(overrides or {})

    try:
        timeout = float(env.get("OMDB_TIMEOUT", 5))
    except ValueError:
        raise ConfigError("OMDB_TIMEOUT must be a number of seconds")

    settings = {
        "SECRET_KEY": env.get("SESSION_SECRET") or env.get("SECRET_KEY"),
        "SQLALCHEMY_DATABASE_URI": _database_url(env),
        "SQLALCHEMY_TRACK_MODIFICATIONS": False,
        "OMDB_API_KEY": env.get("OMDB_API_KEY") or env.get("API_KEY"),
        "OMDB_BASE_URL": env.get("OMDB_BASE_URL", OMDB_BASE),
        "OMDB_TIMEOUT": timeout,
        "LOG_LEVEL": env.get("LOG_LEVEL", "INFO").upper(),
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "PERMANENT_SESSION_LIFETIME": timedelta(days=1),
    }
    settings.update(overrides)

    if not settings.get("SECRET_KEY"):
        raise ConfigError("SESSION_SECRET (or SECRET_KEY) is not set")
    if not settings.get("SQLALCHEMY_DATABASE_URI"):
        raise ConfigError(
            "Database settings are missing: set DATABASE_URL or "
            "POSTGRES_USER/POSTGRES_PASSWORD/POSTGRES_HOST/POSTGRES_DB"
        )
    try:
        backend = make_url(settings["SQLALCHEMY_DATABASE_URI"]).get_backend_name()
    except ArgumentError:
        raise ConfigError("DATABASE_URL is not a valid database URL")
    if backend not in SUPPORTED_DATABASES:
        raise ConfigError(f"Unsupported database {backend!r}: use PostgreSQL or SQLite")
    return settings
