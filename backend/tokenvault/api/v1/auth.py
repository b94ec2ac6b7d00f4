"""Authentication endpoints using the service layer."""

from __future__ import annotations

from flask import Blueprint, request

from tokenvault.api.deps import (
    json_response,
    require_auth,
    service_context,
    timing,
    translate_service_errors,
)
from tokenvault.schemas import (
    LoginSchema,
    LogoutSchema,
    RefreshSchema,
    RevokedSchema,
    RevokeTokenSchema,
    TokenPairSchema,
    WhoAmISchema,
)
from tokenvault.services.auth.dto import LoginIn, LogoutIn, RefreshIn, RevokeIn, SessionOut
from tokenvault.services.wiring import get_auth_service

bp = Blueprint("auth", __name__, url_prefix="/auth")

login_schema = LoginSchema()
refresh_schema = RefreshSchema()
logout_schema = LogoutSchema()
revoke_schema = RevokeTokenSchema()
token_pair_schema = TokenPairSchema()
revoked_schema = RevokedSchema()
whoami_schema = WhoAmISchema()


def _session_body(session: SessionOut) -> dict:
    pair = session.tokens
    return {
        "data": token_pair_schema.dump(
            {
                "access_token": pair.access_token,
                "refresh_token": pair.refresh_token,
                "expires_in": pair.expires_in,
                "refresh_expires_at": pair.refresh_expires_at,
                "user": session.identity,
            }
        )
    }


@bp.post("/login")
@timing
@translate_service_errors
def login():
    """Authenticate credentials and issue an access/refresh pair."""

    data = login_schema.load(request.get_json(silent=True) or {})
    service = get_auth_service(service_context())
    session = service.login(LoginIn(email=data["email"], password=data["password"]))
    return json_response(_session_body(session))


@bp.post("/refresh")
@timing
@translate_service_errors
def refresh():
    """Rotate a refresh token; the presented value is single-use."""

    data = refresh_schema.load(request.get_json(silent=True) or {})
    service = get_auth_service(service_context())
    session = service.refresh(RefreshIn(refresh_token=data["refresh_token"]))
    return json_response(_session_body(session))


@bp.post("/logout")
@require_auth
@timing
@translate_service_errors
def logout():
    """Revoke one refresh token, or every session of the caller."""

    data = logout_schema.load(request.get_json(silent=True) or {})
    service = get_auth_service(service_context(authenticated=True))
    result = service.logout(
        LogoutIn(refresh_token=data["refresh_token"], all_sessions=data["all_sessions"])
    )
    return json_response({"data": revoked_schema.dump(result)})


@bp.post("/revoke-token")
@require_auth
@timing
@translate_service_errors
def revoke_token():
    """Revoke one of the caller's refresh tokens."""

    data = revoke_schema.load(request.get_json(silent=True) or {})
    service = get_auth_service(service_context(authenticated=True))
    result = service.revoke_token(RevokeIn(refresh_token=data["refresh_token"]))
    return json_response({"data": revoked_schema.dump(result)})


@bp.get("/me")
@require_auth
@timing
@translate_service_errors
def whoami():
    """Return the authenticated identity."""

    service = get_auth_service(service_context(authenticated=True))
    identity = service.whoami()
    return json_response({"data": whoami_schema.dump(identity)})
