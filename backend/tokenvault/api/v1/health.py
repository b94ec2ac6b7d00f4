"""Health check endpoint."""

from __future__ import annotations

from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from tokenvault.api.deps import json_response, timing
from tokenvault.core.extensions import db

bp = Blueprint("health", __name__)


@bp.get("/health")
@timing
def healthcheck():
    """Return application and database health plus the refresh-store backend."""

    db_status = "ok"
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:  # pragma: no cover - depends on DB backend
        current_app.logger.exception("healthcheck.db_error")
        db_status = "fail"
    payload = {
        "status": "ok",
        "db": db_status,
        "refresh_store": current_app.config.get("REFRESH_STORE_BACKEND", "sqlalchemy"),
        "version": current_app.config.get("APP_VERSION", "dev"),
    }
    return json_response(payload)
