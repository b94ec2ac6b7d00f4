"""Composition root: build the token services once per Flask app."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from flask import Flask, current_app

from tokenvault.core.config import STORE_BACKENDS
from tokenvault.core.extensions import get_redis
from tokenvault.infra.jwt.flask_jwt_token_provider import JWTTokenProvider
from tokenvault.infra.redis.redis_refresh_token_store import RedisRefreshTokenStore
from tokenvault.infra.sqlalchemy.sqlalchemy_refresh_token_store import (
    SQLAlchemyRefreshTokenStore,
)
from tokenvault.services._shared.base import ServiceContext
from tokenvault.services._shared.errors import ConfigurationError
from tokenvault.services._shared.ports import InMemoryRefreshTokenStore, RefreshTokenStore
from tokenvault.services.auth.service import AuthService
from tokenvault.services.tokens import (
    AccessTokenIssuer,
    AccessTokenSettings,
    RefreshTokenLifecycleManager,
    RefreshTokenPolicy,
)

log = logging.getLogger(__name__)

EXTENSION_KEY = "tokenvault"


@dataclass(slots=True)
class TokenServices:
    """Process-wide token collaborators registered on the app."""

    backend: str
    store: RefreshTokenStore
    issuer: AccessTokenIssuer
    manager: RefreshTokenLifecycleManager
    reuse_detection: bool


def build_store(app: Flask) -> RefreshTokenStore:
    """
    Instantiate the refresh-token store named by ``REFRESH_STORE_BACKEND``.

    :raises ConfigurationError: Unknown backend, or ``redis`` without ``REDIS_URL``.
    """
    backend = app.config.get("REFRESH_STORE_BACKEND", "sqlalchemy")
    if backend not in STORE_BACKENDS:
        raise ConfigurationError(
            f"Unknown REFRESH_STORE_BACKEND {backend!r}; expected one of {STORE_BACKENDS}"
        )
    if backend == "redis":
        if not app.config.get("REDIS_URL"):
            raise ConfigurationError("REFRESH_STORE_BACKEND=redis requires REDIS_URL")
        return RedisRefreshTokenStore(get_redis())
    if backend == "memory":
        return InMemoryRefreshTokenStore()
    return SQLAlchemyRefreshTokenStore()


def init_app(app: Flask) -> None:
    """
    Build the issuer, store and lifecycle manager and register them.

    Missing signing settings fail here, at startup, with
    :class:`ConfigurationError`.
    """
    issuer = AccessTokenIssuer(JWTTokenProvider(), AccessTokenSettings.from_mapping(app.config))
    store = build_store(app)
    manager = RefreshTokenLifecycleManager(
        store,
        issuer=issuer,
        policy=RefreshTokenPolicy.from_mapping(app.config),
    )
    services = TokenServices(
        backend=app.config.get("REFRESH_STORE_BACKEND", "sqlalchemy"),
        store=store,
        issuer=issuer,
        manager=manager,
        reuse_detection=bool(app.config.get("REFRESH_REUSE_DETECTION", True)),
    )
    app.extensions[EXTENSION_KEY] = services
    log.info("wiring.ready", extra={"backend": services.backend})


def get_services() -> TokenServices:
    """Return the collaborators registered on the current app."""
    try:
        return current_app.extensions[EXTENSION_KEY]
    except KeyError as exc:
        raise RuntimeError("Token services are not initialized. Call init_app() first.") from exc


def get_lifecycle_manager() -> RefreshTokenLifecycleManager:
    return get_services().manager


def get_auth_service(ctx: ServiceContext | None = None) -> AuthService:
    """Build a request-scoped :class:`AuthService` over the shared manager."""
    services = get_services()
    return AuthService(
        manager=services.manager,
        reuse_detection=services.reuse_detection,
        ctx=ctx,
    )
