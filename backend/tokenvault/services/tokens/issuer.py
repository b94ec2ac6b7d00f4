"""Access token issuance."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from uuid import uuid4

from tokenvault.services._shared.ports import TokenProvider
from tokenvault.services.tokens.dto import AccessTokenSettings, Identity, IssuedAccessToken


def utc_now() -> datetime:
    return datetime.now(UTC)


class AccessTokenIssuer:
    """
    Sign short-lived, self-contained access tokens.

    The issuer holds no mutable state: every token is a function of the
    identity, the clock and the configured signing settings. Access tokens
    cannot be revoked; their short TTL is the only mitigation.
    """

    def __init__(
        self,
        provider: TokenProvider,
        settings: AccessTokenSettings,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        :param provider: Signing adapter.
        :param settings: Signing key, issuer, audience and TTL.
        :param clock: UTC clock.
        :raises ConfigurationError: If any signing setting is missing.
        """
        settings.validate()
        self.provider = provider
        self.settings = settings
        self._clock = clock

    @property
    def ttl_seconds(self) -> int:
        return int(self.settings.ttl.total_seconds())

    def issue(self, identity: Identity, *, fresh: bool = False) -> IssuedAccessToken:
        """
        Sign an access token for ``identity``.

        :param identity: Fully resolved, active identity.
        :param fresh: ``True`` right after credential authentication.
        :returns: The encoded token and its embedded metadata.
        """
        issued_at = self._clock().replace(microsecond=0)
        expires_at = issued_at + self.settings.ttl
        jti = uuid4().hex
        claims = {
            "jti": jti,
            "iss": self.settings.issuer,
            "aud": self.settings.audience,
            "iat": int(issued_at.timestamp()),
            "nbf": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
            "name": identity.name,
            "email": identity.email,
        }
        token = self.provider.create_access_token(
            identity=identity.subject_id,
            additional_claims=claims,
            expires_delta=self.settings.ttl,
            fresh=fresh,
        )
        return IssuedAccessToken(token=token, jti=jti, issued_at=issued_at, expires_at=expires_at)
