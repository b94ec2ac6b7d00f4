"""Pytest fixtures building an isolated application per test.

Each test gets a fresh app bound to an in-memory SQLite database whose schema
is created on entry and dropped on exit, so committed rows (the relational
refresh-token store commits every call) never leak between cases.
"""

from __future__ import annotations

import os
from datetime import UTC, datetime

import pytest
from freezegun import freeze_time

from tokenvault.core.config import TestingConfig
from tokenvault.core.extensions import db as _db  # Flask-SQLAlchemy instance
from tokenvault.factory import create_app  # application factory under test

FROZEN_START = datetime(2024, 1, 15, 12, 0, tzinfo=UTC)


class TestConfig(TestingConfig):
    """Testing configuration for creating the Flask app.

    Notes
    -----
    - Uses an in-memory SQLite database for speed.
    - Avoids hitting external services (no Redis URL).
    """

    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    REFRESH_STORE_BACKEND = "sqlalchemy"
    REDIS_URL = None


@pytest.fixture()
def app():
    """Create a Flask application configured for testing.

    Yields
    ------
    flask.Flask
        Application with :class:`TestConfig` applied, an active app context
        and a freshly created schema.
    """
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    app = create_app(TestConfig)
    app.logger.setLevel("WARNING")
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture()
def db(app):
    """Database extension bound to the testing application."""
    return _db


@pytest.fixture()
def session(db):
    """Provide the Flask-scoped session and wire Factory Boy to it."""
    from tests.factories import SQLAlchemySession

    SQLAlchemySession.set(db.session)
    yield db.session
    SQLAlchemySession.set(None)


@pytest.fixture()
def client(app):
    """Flask test client sharing the fixture's app context."""
    return app.test_client()


@pytest.fixture()
def frozen_clock():
    """Freeze time at :data:`FROZEN_START`; tests move it with ``tick``/``move_to``."""
    with freeze_time(FROZEN_START) as frozen:
        yield frozen


@pytest.fixture(scope="session")
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk
