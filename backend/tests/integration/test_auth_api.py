"""End-to-end tests for the /api/v1/auth endpoints."""

from __future__ import annotations

import logging
from datetime import timedelta

import pytest
from flask_jwt_extended import decode_token

from tests.factories.user import DEFAULT_PASSWORD, UserFactory
from tests.helpers.utils import auth_header
from tokenvault.services.tokens import reasons
from tokenvault.services.wiring import get_services

BASE = "/api/v1/auth"


@pytest.fixture()
def user(session):
    return UserFactory(email="ann@example.com", name="Ann")


def _login(client, email="ann@example.com", password=DEFAULT_PASSWORD):
    return client.post(f"{BASE}/login", json={"email": email, "password": password})


def _tokens(response) -> dict:
    assert response.status_code == 200, response.get_json()
    return response.get_json()["data"]


# ------------------------------- Login ------------------------------------ #
def test_login_returns_token_pair(client, user):
    data = _tokens(_login(client))

    assert data["token_type"] == "bearer"
    assert data["expires_in"] == 3600
    assert data["access_token"].count(".") == 2
    assert len(data["refresh_token"]) == 86
    assert data["refresh_expires_at"].endswith("+00:00")
    assert data["user"] == {"id": user.id, "name": "Ann", "email": "ann@example.com"}


def test_access_token_is_not_valid_before_issue(client, user):
    claims = decode_token(_tokens(_login(client))["access_token"])

    assert claims["nbf"] == claims["iat"]
    assert claims["sub"] == user.id


def test_login_with_wrong_password(client, user):
    response = _login(client, password="nope")

    assert response.status_code == 401
    assert response.mimetype == "application/problem+json"
    assert response.get_json()["code"] == "invalid_credentials"


def test_login_validation_error(client):
    response = client.post(f"{BASE}/login", json={"email": "not-an-email"})

    body = response.get_json()
    assert response.status_code == 422
    assert body["code"] == "validation_error"
    assert set(body["details"]["errors"]) == {"email", "password"}


# ------------------------------ Refresh ----------------------------------- #
def test_refresh_rotates_the_pair(client, user):
    first = _tokens(_login(client))

    second = _tokens(client.post(f"{BASE}/refresh", json={"refresh_token": first["refresh_token"]}))

    assert second["refresh_token"] != first["refresh_token"]
    assert second["user"]["id"] == user.id
    me = client.get(f"{BASE}/me", headers=auth_header(second["access_token"]))
    assert me.status_code == 200


def test_refresh_with_unknown_value(client, user):
    response = client.post(f"{BASE}/refresh", json={"refresh_token": "forged-value"})

    assert response.status_code == 401
    assert response.get_json()["code"] == "reauthentication_required"


def test_replayed_refresh_token_revokes_the_whole_family(client, user, caplog):
    first = _tokens(_login(client))
    other_device = _tokens(_login(client))
    rotated = _tokens(
        client.post(f"{BASE}/refresh", json={"refresh_token": first["refresh_token"]})
    )

    with caplog.at_level(logging.WARNING):
        replay = client.post(f"{BASE}/refresh", json={"refresh_token": first["refresh_token"]})

    assert replay.status_code == 401
    assert replay.get_json()["code"] == "reauthentication_required"
    assert any(r.getMessage() == "refresh_token.reuse_detected" for r in caplog.records)
    store = get_services().store
    for value in (rotated["refresh_token"], other_device["refresh_token"]):
        assert store.find_by_value(value).revoked_reason == reasons.REUSE_DETECTED
        response = client.post(f"{BASE}/refresh", json={"refresh_token": value})
        assert response.status_code == 401


def test_refresh_for_deactivated_identity(client, user, session):
    pair = _tokens(_login(client))
    user.is_active = False
    session.commit()

    response = client.post(f"{BASE}/refresh", json={"refresh_token": pair["refresh_token"]})

    assert response.status_code == 401
    stored = get_services().store.find_by_value(pair["refresh_token"])
    assert stored.revoked_reason == reasons.IDENTITY_INACTIVE


def test_expired_refresh_token_is_rejected(client, user, frozen_clock):
    pair = _tokens(_login(client))
    frozen_clock.tick(timedelta(days=7, seconds=1))

    response = client.post(f"{BASE}/refresh", json={"refresh_token": pair["refresh_token"]})

    assert response.status_code == 401
    assert response.get_json()["code"] == "reauthentication_required"


# ------------------------------ Logout ------------------------------------ #
def test_logout_single_session(client, user):
    a = _tokens(_login(client))
    b = _tokens(_login(client))

    response = client.post(
        f"{BASE}/logout",
        json={"refresh_token": a["refresh_token"]},
        headers=auth_header(a["access_token"]),
    )

    assert response.status_code == 200
    assert response.get_json() == {"data": {"revoked": 1}}
    assert client.post(f"{BASE}/refresh", json={"refresh_token": a["refresh_token"]}).status_code == 401
    assert client.post(f"{BASE}/refresh", json={"refresh_token": b["refresh_token"]}).status_code == 200


def test_logout_everywhere(client, user):
    a = _tokens(_login(client))
    _tokens(_login(client))

    response = client.post(f"{BASE}/logout", json={}, headers=auth_header(a["access_token"]))

    assert response.get_json() == {"data": {"revoked": 2}}


def test_logout_requires_access_token(client):
    response = client.post(f"{BASE}/logout", json={})

    assert response.status_code == 401
    assert response.get_json()["code"] == "unauthorized"


def test_revoke_token_of_another_user_looks_missing(client, user, session):
    mine = _tokens(_login(client))
    UserFactory(email="bob@example.com")
    theirs = _tokens(_login(client, email="bob@example.com"))

    forbidden = client.post(
        f"{BASE}/revoke-token",
        json={"refresh_token": theirs["refresh_token"]},
        headers=auth_header(mine["access_token"]),
    )
    missing = client.post(
        f"{BASE}/revoke-token",
        json={"refresh_token": "missing"},
        headers=auth_header(mine["access_token"]),
    )

    assert forbidden.status_code == missing.status_code == 404
    assert forbidden.get_json()["detail"] == missing.get_json()["detail"]
    assert get_services().store.find_by_value(theirs["refresh_token"]).revoked is False


def test_revoke_own_token(client, user):
    pair = _tokens(_login(client))

    response = client.post(
        f"{BASE}/revoke-token",
        json={"refresh_token": pair["refresh_token"]},
        headers=auth_header(pair["access_token"]),
    )

    assert response.get_json() == {"data": {"revoked": 1}}
    stored = get_services().store.find_by_value(pair["refresh_token"])
    assert stored.revoked_reason == reasons.REVOKED_BY_USER


# ------------------------------- Me --------------------------------------- #
def test_me_returns_identity(client, user):
    pair = _tokens(_login(client))

    response = client.get(f"{BASE}/me", headers=auth_header(pair["access_token"]))

    assert response.get_json() == {
        "data": {"id": user.id, "name": "Ann", "email": "ann@example.com"}
    }


def test_expired_access_token_sets_header(client, user, frozen_clock):
    pair = _tokens(_login(client))
    frozen_clock.tick(timedelta(minutes=61))

    response = client.get(f"{BASE}/me", headers=auth_header(pair["access_token"]))

    assert response.status_code == 401
    assert response.headers["Token-Expired"] == "true"
    assert response.get_json()["code"] == "token_expired"


def test_garbage_access_token(client):
    response = client.get(f"{BASE}/me", headers=auth_header("not.a.jwt"))

    assert response.status_code == 401
    assert response.get_json()["code"] == "invalid_token"
