"""Tests for the ``flask tokens`` and schema CLI commands."""

from __future__ import annotations

from datetime import timedelta

from tests.factories.user import UserFactory
from tokenvault.models import User
from tokenvault.services.wiring import get_lifecycle_manager, get_services


def test_sweep_deletes_expired_tokens(app, session, frozen_clock):
    manager = get_lifecycle_manager()
    stale = manager.create_for_subject("S1")
    frozen_clock.tick(timedelta(days=8))
    fresh = manager.create_for_subject("S1")

    result = app.test_cli_runner().invoke(args=["tokens", "sweep"])

    assert result.exit_code == 0, result.output
    assert "Deleted 1 expired refresh token(s)." in result.output
    store = get_services().store
    assert store.find_by_value(stale.value) is None
    assert store.find_by_value(fresh.value) is not None


def test_revoke_all_for_subject(app, session):
    user = UserFactory()
    manager = get_lifecycle_manager()
    manager.create_for_subject(user.id)
    manager.create_for_subject(user.id)

    result = app.test_cli_runner().invoke(
        args=["tokens", "revoke-all", user.id, "--reason", "admin-revoked"]
    )

    assert result.exit_code == 0, result.output
    assert f"Revoked 2 refresh token(s) for subject {user.id}." in result.output


def test_create_user_and_duplicate(app, db):
    runner = app.test_cli_runner()
    args = ["create-user", "--email", "New@Example.com", "--name", "New", "--password", "pw"]

    result = runner.invoke(args=args)

    assert result.exit_code == 0, result.output
    user = db.session.query(User).filter_by(email="new@example.com").one()
    assert user.verify_password("pw")

    duplicate = runner.invoke(args=args)
    assert duplicate.exit_code != 0
    assert "already exists" in duplicate.output


def test_init_db_is_idempotent(app):
    result = app.test_cli_runner().invoke(args=["init-db"])
    assert result.exit_code == 0
    assert "Database schema is up to date." in result.output


def test_revoke_all_accepts_free_text_reason(app, session):
    user = UserFactory()
    manager = get_lifecycle_manager()
    token = manager.create_for_subject(user.id)
    reason = "account compromised per incident 2024-113"

    result = app.test_cli_runner().invoke(
        args=["tokens", "revoke-all", user.id, "--reason", reason]
    )

    assert result.exit_code == 0, result.output
    assert manager.lookup(token.value).revoked_reason == reason


def test_revoke_all_rejects_oversized_reason(app, session):
    user = UserFactory()
    manager = get_lifecycle_manager()
    token = manager.create_for_subject(user.id)

    result = app.test_cli_runner().invoke(
        args=["tokens", "revoke-all", user.id, "--reason", "x" * 256]
    )

    assert result.exit_code != 0
    assert "--reason" in result.output
    assert manager.lookup(token.value).revoked is False
