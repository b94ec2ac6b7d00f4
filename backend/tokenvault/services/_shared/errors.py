"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and should never import or depend
on Flask, HTTP, Redis or SQLAlchemy directly. They serve as stable contracts
between stores, the token lifecycle manager, and application services.

The translation to HTTP responses (RFC 7807) is handled by
``tokenvault/core/errors.py`` via ``BaseService.translate_exceptions()``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tokenvault.services._shared.ports.refresh_token_store import RefreshToken

# Inactive-token states carried by :class:`TokenInactiveError`
STATE_REVOKED = "revoked"
STATE_EXPIRED = "expired"


# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - They can be safely raised from stores or domain logic.
    - The API layer translates them to ``APIError`` through ``BaseService``.
    """

    pass


class ConfigurationError(ServiceError):
    """
    Raised when signing material or issuer/audience settings are missing.

    This is a startup-time failure; it is never expected per request.
    """

    pass


@dataclass(slots=True, eq=False)
class StorageError(ServiceError):
    """
    Raised when the backing store is unavailable or timed out.

    Callers may retry with backoff. The lifecycle manager itself never
    retries, so an ambiguous partial failure cannot double-issue tokens.

    :param operation: Store operation that failed (e.g. ``"replace"``).
    :type operation: str
    :param detail: Short, non-sensitive explanation.
    :type detail: str
    """

    operation: str
    detail: str = "backing store unavailable"

    def __str__(self) -> str:
        return f"Storage failure during {self.operation}: {self.detail}"


class InvalidReasonError(ServiceError):
    """Raised when a revocation reason is blank or longer than the stored column."""

    pass


class TokenValueCollisionError(ServiceError):
    """Raised by a store when an inserted refresh-token value already exists."""

    def __init__(self, message: str = "Refresh token value already exists") -> None:
        super().__init__(message)


# --------------------------------------------------------------------------- #
# Refresh-token lifecycle errors
# --------------------------------------------------------------------------- #


class TokenNotFoundError(ServiceError):
    """Raised when a presented refresh-token value has no matching record."""

    def __init__(self, message: str = "Refresh token not found") -> None:
        super().__init__(message)


@dataclass(slots=True, eq=False)
class TokenInactiveError(ServiceError):
    """
    Raised when a refresh token exists but is revoked or expired.

    :param state: ``"revoked"`` or ``"expired"``.
    :type state: str
    :param reason: Stored revocation reason, or ``"expired"``.
    :type reason: str
    :param token: Snapshot of the offending record (exposes the
        ``replaced_by_value`` chain and the owning ``subject_id``).
    :type token: RefreshToken | None
    """

    state: str
    reason: str
    token: RefreshToken | None = None

    def __str__(self) -> str:
        if self.state == STATE_EXPIRED:
            return STATE_EXPIRED
        return f"{self.state}: {self.reason}"

    @property
    def is_reuse(self) -> bool:
        """``True`` when an already-rotated token was presented again."""
        from tokenvault.services.tokens.reasons import ROTATED

        return self.state == STATE_REVOKED and self.reason == ROTATED


# --------------------------------------------------------------------------- #
# Gateway-level errors
# --------------------------------------------------------------------------- #


class InvalidCredentialsError(ServiceError):
    """Raised when login credentials do not match an active identity."""

    def __init__(self, message: str = "Invalid email or password") -> None:
        super().__init__(message)


class IdentityInactiveError(ServiceError):
    """Raised when the identity behind a refresh token is gone or deactivated."""

    def __init__(self, message: str = "Identity is no longer active") -> None:
        super().__init__(message)


@dataclass(slots=True, eq=False)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param key: Identifier or search key.
    :type key: str | int
    """

    entity: str
    key: str | int

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.entity} not found: {self.key}"


class ForbiddenError(ServiceError):
    """Raised when an actor touches a refresh token it does not own."""

    pass
