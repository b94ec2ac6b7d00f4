# tokenvault/services/_shared/base.py
from __future__ import annotations

import logging
from dataclasses import dataclass

from tokenvault.core import errors as api_errors
from tokenvault.services._shared.errors import (
    ConfigurationError,
    ForbiddenError,
    IdentityInactiveError,
    InvalidCredentialsError,
    NotFoundError,
    ServiceError,
    StorageError,
    TokenInactiveError,
    TokenNotFoundError,
)
from tokenvault.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork

log = logging.getLogger(__name__)


@dataclass(slots=True)
class ServiceContext:
    """
    Carry cross-cutting request-scoped data (auth, request ids).

    :param actor_id: Authenticated subject identifier (JWT ``sub``).
    :param request_id: Correlation id for logging/tracing.
    """

    actor_id: str | None = None
    request_id: str | None = None


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide a helper to run read-write units of work.
    * Centralize error translation to API errors.
    * Keep services thin, orchestration-only, no web/ORM leakage.

    Notes
    -----
    - Services must never touch the global session; always use a Unit of Work.
    """

    def __init__(self, *, ctx: ServiceContext | None = None) -> None:
        """
        Initialize the base service.

        :param ctx: Optional request-scoped context (auth, tracing).
        :type ctx: ServiceContext | None
        """
        self.ctx = ctx or ServiceContext()

    # -------------------------- UoW helpers ---------------------------------

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        """
        Create a read-write Unit of Work.

        :returns: Read-write UoW instance.
        :rtype: SQLAlchemyUnitOfWork
        """
        return SQLAlchemyUnitOfWork()

    # -------------------------- Error handling ------------------------------

    def translate_exceptions(self, exc: Exception) -> Exception:
        """
        Map domain/service-level errors to API-level (HTTP) errors.

        Every unusable refresh token collapses to the same 401 so that
        clients cannot tell a forged value from a revoked or expired one.

        :param exc: Exception raised within the service.
        :type exc: Exception
        :returns: Translated exception ready to be re-raised.
        :rtype: Exception
        """
        if isinstance(exc, TokenNotFoundError | TokenInactiveError | IdentityInactiveError):
            # → 401 Unauthorized, uniform message
            return api_errors.ReauthenticationRequired()

        if isinstance(exc, InvalidCredentialsError):
            return api_errors.Unauthorized(str(exc), code="invalid_credentials")

        if isinstance(exc, NotFoundError):
            return api_errors.NotFound(f"{exc.entity} not found")

        if isinstance(exc, ForbiddenError):
            # Not-owned looks exactly like not-found
            return api_errors.NotFound("Refresh token not found")

        if isinstance(exc, StorageError):
            # → 503 Service Unavailable (retryable)
            log.error("store.unavailable", extra={"reason": exc.operation})
            return api_errors.ServiceUnavailable()

        if isinstance(exc, ConfigurationError):
            log.error("service.misconfigured: %s", exc)
            return api_errors.APIError(
                message="Unexpected error",
                status_code=500,
                code="internal_server_error",
            )

        # Any other ServiceError subclass → 400 Bad Request
        if isinstance(exc, ServiceError):
            return api_errors.APIError(
                message=str(exc),
                status_code=400,
                code="bad_request",
            )

        # Fallback: return untouched (will bubble up to Flask handler)
        return exc
