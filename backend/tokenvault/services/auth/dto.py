# tokenvault/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass

from tokenvault.services.tokens.dto import Identity, TokenPair

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param email: User email (normalized).
    :type email: str
    :param password: Raw password (to be verified).
    :type password: str
    """

    email: str
    password: str


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for token refresh.

    :param refresh_token: Opaque refresh-token value.
    :type refresh_token: str
    """

    refresh_token: str


@dataclass(frozen=True, slots=True)
class LogoutIn:
    """
    Input DTO for logout.

    :param refresh_token: Token to revoke; ``None`` revokes every session.
    :type refresh_token: str | None
    :param all_sessions: If True, revoke all of the caller's refresh tokens.
    :type all_sessions: bool
    """

    refresh_token: str | None = None
    all_sessions: bool = False


@dataclass(frozen=True, slots=True)
class RevokeIn:
    """
    Input DTO for single-token revocation.

    :param refresh_token: Token to revoke; must belong to the caller.
    :type refresh_token: str
    """

    refresh_token: str


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class SessionOut:
    """
    Token pair plus the identity it was issued for.

    :param tokens: Access/refresh pair.
    :type tokens: TokenPair
    :param identity: Identity snapshot embedded in the access token.
    :type identity: Identity
    """

    tokens: TokenPair
    identity: Identity


@dataclass(frozen=True, slots=True)
class RevokedOut:
    """Number of refresh tokens revoked by a logout call."""

    revoked: int
