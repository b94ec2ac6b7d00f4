# tokenvault/services/tokens/dto.py
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from tokenvault.services._shared.errors import ConfigurationError

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class Identity:
    """
    Read-only snapshot of a verified identity.

    :param subject_id: Stable subject identifier (``sub`` claim).
    :type subject_id: str
    :param name: Display name.
    :type name: str
    :param email: Email address.
    :type email: str
    """

    subject_id: str
    name: str
    email: str


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class IssuedAccessToken:
    """
    A freshly signed access token plus the metadata embedded in it.

    :param token: Encoded JWT.
    :param jti: Unique token id.
    :param issued_at: ``iat`` instant.
    :param expires_at: ``exp`` instant.
    """

    token: str
    jti: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class TokenPair:
    """
    Access/refresh pair returned to the gateway.

    :param access_token: Encoded access JWT.
    :type access_token: str
    :param refresh_token: Opaque refresh-token value.
    :type refresh_token: str
    :param expires_in: Access token lifetime in seconds.
    :type expires_in: int
    :param refresh_expires_at: Refresh token expiration.
    :type refresh_expires_at: datetime
    :param subject_id: Owner of both tokens.
    :type subject_id: str
    """

    access_token: str
    refresh_token: str
    expires_in: int
    refresh_expires_at: datetime
    subject_id: str


# ------------------------------ Config DTOs -------------------------------- #


@dataclass(frozen=True, slots=True)
class AccessTokenSettings:
    """
    Access-token signing configuration.

    :param signing_key: HMAC secret used to sign tokens.
    :param issuer: ``iss`` claim.
    :param audience: ``aud`` claim.
    :param ttl: Access token lifetime.
    """

    signing_key: str | None
    issuer: str | None
    audience: str | None
    ttl: timedelta = timedelta(minutes=60)

    def validate(self) -> None:
        """
        Fail fast on missing signing material.

        :raises ConfigurationError: If any required setting is absent.
        """
        missing = [
            name
            for name, value in (
                ("JWT_SECRET_KEY", self.signing_key),
                ("JWT_ISSUER", self.issuer),
                ("JWT_AUDIENCE", self.audience),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(f"Missing access token settings: {', '.join(missing)}")
        if self.ttl <= timedelta(0):
            raise ConfigurationError("ACCESS_TOKEN_TTL_MINUTES must be positive")

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> AccessTokenSettings:
        return cls(
            signing_key=config.get("JWT_SECRET_KEY"),
            issuer=config.get("JWT_ISSUER"),
            audience=config.get("JWT_AUDIENCE"),
            ttl=timedelta(minutes=int(config.get("ACCESS_TOKEN_TTL_MINUTES", 60))),
        )


@dataclass(frozen=True, slots=True)
class RefreshTokenPolicy:
    """
    Refresh-token lifetime policy.

    :param ttl: Fixed refresh token lifetime (7 days by default).
    :type ttl: timedelta
    """

    ttl: timedelta = timedelta(days=7)

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> RefreshTokenPolicy:
        days = int(config.get("REFRESH_TOKEN_TTL_DAYS", 7))
        if days <= 0:
            raise ConfigurationError("REFRESH_TOKEN_TTL_DAYS must be positive")
        return cls(ttl=timedelta(days=days))
