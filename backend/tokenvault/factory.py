"""Application factory wiring Flask extensions and blueprints."""

from __future__ import annotations

from datetime import timedelta

from flask import Flask

from tokenvault.core.config import BaseConfig, engine_options, get_config
from tokenvault.core.logger import configure_logging, init_app as init_logging


def _derive_jwt_settings(app: Flask) -> None:
    """Map the token settings onto the keys flask-jwt-extended reads.

    Encoding and decoding share one issuer/audience pair, so a token minted
    for another audience or by another issuer is rejected on the way in.
    """
    cfg = app.config
    cfg["JWT_ALGORITHM"] = "HS256"
    cfg["JWT_TOKEN_LOCATION"] = ["headers"]
    cfg["JWT_ACCESS_TOKEN_EXPIRES"] = timedelta(minutes=int(cfg["ACCESS_TOKEN_TTL_MINUTES"]))
    cfg["JWT_ENCODE_ISSUER"] = cfg.get("JWT_ISSUER")
    cfg["JWT_DECODE_ISSUER"] = cfg.get("JWT_ISSUER")
    cfg["JWT_ENCODE_AUDIENCE"] = cfg.get("JWT_AUDIENCE")
    cfg["JWT_DECODE_AUDIENCE"] = cfg.get("JWT_AUDIENCE")


def _derive_engine_options(app: Flask) -> None:
    """Bound database waits by ``STORE_TIMEOUT_SECONDS``; explicit options win."""
    cfg = app.config
    derived = engine_options(
        str(cfg["SQLALCHEMY_DATABASE_URI"]), int(cfg.get("STORE_TIMEOUT_SECONDS", 5))
    )
    explicit = dict(cfg.get("SQLALCHEMY_ENGINE_OPTIONS") or {})
    connect_args = {**derived.pop("connect_args", {}), **explicit.pop("connect_args", {})}
    options = {**derived, **explicit}
    if connect_args:
        options["connect_args"] = connect_args
    cfg["SQLALCHEMY_ENGINE_OPTIONS"] = options


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
) -> Flask:
    """Build and configure the Flask application.

    :raises ConfigurationError: If signing settings are missing or the
        refresh-store backend is unknown.
    """

    app = Flask(__name__, instance_relative_config=instance_relative_config)

    app.config.from_object(get_config() if config is None else config)
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))
    _derive_jwt_settings(app)
    _derive_engine_options(app)

    from tokenvault.core import extensions

    extensions.init_app(app)

    init_logging(app)

    from tokenvault.core import cors

    cors.init_app(app)

    from tokenvault.services import wiring

    wiring.init_app(app)

    from tokenvault.api import init_app as init_api

    init_api(app)

    from tokenvault.core import errors

    errors.init_app(app)
    errors.register_jwt_handlers(extensions.jwt)

    from tokenvault import cli as app_cli

    app_cli.init_app(app)

    return app
