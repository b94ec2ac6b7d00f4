"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any, Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

# Refresh-token store backends understood by ``tokenvault.services.wiring``
STORE_BACKENDS: Final[tuple[str, ...]] = ("sqlalchemy", "redis", "memory")


# Load .env in development (no-op when the file is missing)
load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    """Parse an integer from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: int
        Value returned when the variable is unset or blank.

    Raises
    ------
    ValueError
        If the variable is set to something that is not an integer.
    """
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    try:
        return int(val.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {val!r}") from exc


def engine_options(database_uri: str, timeout_seconds: int) -> dict[str, Any]:
    """Return SQLAlchemy engine options bounding every wait by ``timeout_seconds``.

    Parameters
    ----------
    database_uri: str
        Connection URL; the dialect decides which driver arguments apply.
    timeout_seconds: int
        Store timeout (``STORE_TIMEOUT_SECONDS``).

    Returns
    -------
    dict
        Options for ``SQLALCHEMY_ENGINE_OPTIONS``. SQLite gets a lock-wait
        ``timeout``; PostgreSQL gets ``pool_timeout``, ``connect_timeout`` and a
        server-side ``statement_timeout`` so a blocked row lock surfaces as
        ``OperationalError``.
    """
    if database_uri.startswith("sqlite"):
        return {"connect_args": {"timeout": timeout_seconds}}
    options: dict[str, Any] = {"pool_timeout": timeout_seconds}
    if database_uri.startswith(("postgresql", "postgres:")):
        options["connect_args"] = {
            "connect_timeout": timeout_seconds,
            "options": f"-c statement_timeout={timeout_seconds * 1000}",
        }
    return options


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    SECRET_KEY: str
        Flask secret used for session signing.
    JWT_SECRET_KEY: str | None
        HMAC key used by ``flask-jwt-extended`` to sign access tokens. No
        default: startup fails with a configuration error when it is missing.
    JWT_ISSUER / JWT_AUDIENCE: str
        ``iss``/``aud`` claims written into and required from access tokens.
    ACCESS_TOKEN_TTL_MINUTES: int
        Access token lifetime (60 minutes by default).
    REFRESH_TOKEN_TTL_DAYS: int
        Refresh token lifetime (7 days by default).
    REFRESH_STORE_BACKEND: str
        ``sqlalchemy`` (default), ``redis`` or ``memory``.
    REDIS_URL: str | None
        Redis connection URL; required by the ``redis`` backend.
    STORE_TIMEOUT_SECONDS: int
        Upper bound for a single store round-trip (Redis socket timeouts,
        SQLAlchemy pool checkout).
    REFRESH_REUSE_DETECTION: bool
        Revoke all of a subject's refresh tokens when a rotated token is
        presented again.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = os.getenv("API_BASE_PREFIX", "/api")

    # Secrets / security
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    JWT_SECRET_KEY: str | None = os.getenv("JWT_SECRET_KEY")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "tokenvault")
    JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "tokenvault-clients")

    # Token lifetimes
    ACCESS_TOKEN_TTL_MINUTES = env_int("ACCESS_TOKEN_TTL_MINUTES", 60)
    REFRESH_TOKEN_TTL_DAYS = env_int("REFRESH_TOKEN_TTL_DAYS", 7)
    REFRESH_REUSE_DETECTION = env_bool("REFRESH_REUSE_DETECTION", True)

    # Refresh-token store
    REFRESH_STORE_BACKEND = os.getenv("REFRESH_STORE_BACKEND", "sqlalchemy").strip().lower()
    REDIS_URL = os.getenv("REDIS_URL") or None
    STORE_TIMEOUT_SECONDS = env_int("STORE_TIMEOUT_SECONDS", 5)

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging & CORS
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")

    # Flask built-ins
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Notes
    -----
    Enables debug mode by default and ships a placeholder signing key so the
    server boots without a ``.env`` file.
    """

    DEBUG = env_bool("FLASK_DEBUG", True)
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-only-jwt-secret-change-me-0123456789")
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    CORS_MAX_AGE = 600  # 10 minutes


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Uses the relational refresh-token store regardless of the environment.
    - Propagates exceptions so pytest can surface tracebacks directly.
    """

    TESTING = True
    DEBUG = False
    JWT_SECRET_KEY = "test-jwt-secret-key-with-enough-entropy-0123456789"
    JWT_ISSUER = "tokenvault-test"
    JWT_AUDIENCE = "tokenvault-test-clients"
    ACCESS_TOKEN_TTL_MINUTES = 60
    REFRESH_TOKEN_TTL_DAYS = 7
    REFRESH_REUSE_DETECTION = True
    REFRESH_STORE_BACKEND = "sqlalchemy"
    REDIS_URL = None
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    PROPAGATE_EXCEPTIONS = True
    LOG_LEVEL = "WARNING"


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Notes
    -----
    Keeps debug and SQL echoing disabled; ``JWT_SECRET_KEY`` must come from
    the environment. Pool checkout, connect and statement waits are bounded by
    the store timeout (see :func:`engine_options`).
    """

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Returns
    -------
    type[BaseConfig]
        Class to pass to :meth:`flask.Config.from_object`.

    Notes
    -----
    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)
