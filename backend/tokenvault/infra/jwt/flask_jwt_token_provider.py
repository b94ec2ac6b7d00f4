# tokenvault/infra/jwt/flask_jwt_token_provider.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, cast

from tokenvault.services._shared.ports import TokenProvider


@dataclass(slots=True)
class JWTTokenProvider(TokenProvider):
    """
    Adapter for Flask-JWT-Extended.

    Signing key, algorithm, issuer and audience come from the app config
    (``JWT_SECRET_KEY``, ``JWT_ENCODE_ISSUER``, ``JWT_ENCODE_AUDIENCE``).

    .. note::
       Requires an active Flask app context with proper JWT settings.
    """

    def create_access_token(
        self,
        *,
        identity: str,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
        fresh: bool = False,
    ) -> str:
        from flask_jwt_extended import create_access_token as _create_access
        from flask_jwt_extended import decode_token as _decode

        claims = dict(additional_claims or {})
        token = cast(
            str,
            _create_access(
                identity=identity,
                additional_claims=claims,
                expires_delta=expires_delta,
                fresh=fresh,
            ),
        )

        jti = claims.get("jti")
        if jti is not None:
            # The issuer reports this jti to callers; make sure the library kept it.
            actual = cast(dict[str, Any], _decode(token, allow_expired=True))["jti"]
            if actual != jti:
                raise RuntimeError("Access token jti mismatch after creation.")

        return token

    def decode(self, token: str) -> dict[str, Any]:
        from flask_jwt_extended import decode_token

        return cast(dict[str, Any], decode_token(token))
