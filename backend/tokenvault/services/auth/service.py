# tokenvault/services/auth/service.py
from __future__ import annotations

import logging

from tokenvault.models.user import User
from tokenvault.services._shared.base import BaseService, ServiceContext
from tokenvault.services._shared.errors import (
    ForbiddenError,
    IdentityInactiveError,
    InvalidCredentialsError,
    NotFoundError,
    ServiceError,
    TokenInactiveError,
    TokenNotFoundError,
)
from tokenvault.services.auth.dto import (
    LoginIn,
    LogoutIn,
    RefreshIn,
    RevokedOut,
    RevokeIn,
    SessionOut,
)
from tokenvault.services.tokens import reasons
from tokenvault.services.tokens.dto import Identity
from tokenvault.services.tokens.lifecycle import RefreshTokenLifecycleManager

log = logging.getLogger(__name__)


def identity_of(user: User) -> Identity:
    """Snapshot the fields of ``user`` that go into access-token claims."""
    return Identity(subject_id=user.id, name=user.name, email=user.email)


class AuthService(BaseService):
    """
    Authentication gateway (login / refresh / logout / revoke / whoami).

    Credentials and identity status are checked against the identity store
    through a Unit of Work; every token operation is delegated to the
    :class:`RefreshTokenLifecycleManager`. Lifecycle calls always run outside
    the identity-store transaction.

    Security
    --------
    - Refresh re-verifies that the owning identity still exists and is
      active; otherwise the presented token is revoked (``identity-inactive``).
    - Presenting an already-rotated token is treated as theft when
      ``reuse_detection`` is on: every token of the subject is revoked.
    - Not-owned tokens are reported exactly like unknown ones.
    """

    def __init__(
        self,
        *,
        manager: RefreshTokenLifecycleManager,
        reuse_detection: bool = True,
        ctx: ServiceContext | None = None,
    ) -> None:
        """
        :param manager: Refresh-token lifecycle manager (with an issuer).
        :param reuse_detection: Revoke a subject's tokens on rotated-token replay.
        :param ctx: Request-scoped context; protected operations need ``actor_id``.
        """
        super().__init__(ctx=ctx)
        self.manager = manager
        self.reuse_detection = reuse_detection

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> SessionOut:
        """
        Authenticate credentials and issue a fresh token pair.

        :raises InvalidCredentialsError: Unknown email, wrong password or
            deactivated identity (indistinguishable to the caller).
        """
        with self.rw_uow() as uow:
            user = uow.users.authenticate(dto.email, dto.password)
            if user is None or not user.is_active:
                raise InvalidCredentialsError()
            identity = identity_of(user)

        tokens = self.manager.start_session(identity)
        log.info("auth.login", extra={"subject_id": identity.subject_id})
        return SessionOut(tokens=tokens, identity=identity)

    # ------------------------------------------------------------------ #
    # Refresh with rotation
    # ------------------------------------------------------------------ #

    def refresh(self, dto: RefreshIn) -> SessionOut:
        """
        Rotate a refresh token and emit a new token pair.

        :raises TokenNotFoundError: Unknown value.
        :raises TokenInactiveError: Revoked, expired or lost a concurrent rotation.
        :raises IdentityInactiveError: Owner deleted or deactivated.
        """
        token = self.manager.lookup(dto.refresh_token)
        if token is None:
            raise TokenNotFoundError()

        identity = self._active_identity(token.subject_id)
        if identity is None:
            self.manager.revoke(dto.refresh_token, reasons.IDENTITY_INACTIVE)
            log.info(
                "auth.refresh_identity_inactive",
                extra={"subject_id": token.subject_id, "token_id": token.id},
            )
            raise IdentityInactiveError()

        try:
            tokens = self.manager.refresh_session(dto.refresh_token, identity)
        except TokenInactiveError as exc:
            if exc.is_reuse and self.reuse_detection:
                count = self.manager.revoke_all_for_subject(
                    token.subject_id, reasons.REUSE_DETECTED
                )
                log.warning(
                    "refresh_token.reuse_detected",
                    extra={"subject_id": token.subject_id, "token_id": token.id, "count": count},
                )
            raise
        return SessionOut(tokens=tokens, identity=identity)

    # ------------------------------------------------------------------ #
    # Logout / revoke
    # ------------------------------------------------------------------ #

    def logout(self, dto: LogoutIn) -> RevokedOut:
        """
        Revoke the presented refresh token, or every token of the caller.

        A single token is revoked only when ``refresh_token`` is given and
        ``all_sessions`` is false; it must belong to the caller.
        """
        actor_id = self._require_actor()
        if dto.refresh_token and not dto.all_sessions:
            self._ensure_owned(dto.refresh_token, actor_id)
            revoked = self.manager.revoke(dto.refresh_token, reasons.LOGOUT)
        else:
            revoked = self.manager.revoke_all_for_subject(actor_id, reasons.LOGOUT_ALL)
        log.info("auth.logout", extra={"subject_id": actor_id, "count": revoked})
        return RevokedOut(revoked=revoked)

    def revoke_token(self, dto: RevokeIn) -> RevokedOut:
        """
        Revoke one of the caller's refresh tokens (``revoked-by-user``).

        :raises NotFoundError: Unknown value.
        :raises ForbiddenError: Token owned by another subject.
        """
        actor_id = self._require_actor()
        self._ensure_owned(dto.refresh_token, actor_id)
        return RevokedOut(revoked=self.manager.revoke(dto.refresh_token, reasons.REVOKED_BY_USER))

    # ------------------------------------------------------------------ #
    # Identity
    # ------------------------------------------------------------------ #

    def whoami(self) -> Identity:
        """Return the caller's current identity snapshot."""
        actor_id = self._require_actor()
        identity = self._active_identity(actor_id)
        if identity is None:
            raise NotFoundError("User", actor_id)
        return identity

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _active_identity(self, subject_id: str) -> Identity | None:
        with self.rw_uow() as uow:
            user = uow.users.get(subject_id)
            if user is None or not user.is_active:
                return None
            return identity_of(user)

    def _ensure_owned(self, value: str, actor_id: str) -> None:
        token = self.manager.lookup(value)
        if token is None:
            raise NotFoundError("Refresh token", "presented value")
        if token.subject_id != actor_id:
            log.warning(
                "refresh_token.not_owned",
                extra={"subject_id": actor_id, "token_id": token.id},
            )
            raise ForbiddenError("Refresh token belongs to another subject")

    def _require_actor(self) -> str:
        if not self.ctx.actor_id:
            raise ServiceError("Authenticated subject required")
        return self.ctx.actor_id
