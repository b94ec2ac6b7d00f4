# tokenvault/services/tokens/lifecycle.py
from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from datetime import datetime
from uuid import uuid4

from tokenvault.services._shared.errors import (
    STATE_EXPIRED,
    STATE_REVOKED,
    ConfigurationError,
    InvalidReasonError,
    StorageError,
    TokenInactiveError,
    TokenNotFoundError,
    TokenValueCollisionError,
)
from tokenvault.services._shared.ports import RefreshToken, RefreshTokenStore
from tokenvault.services.tokens import reasons
from tokenvault.services.tokens.dto import Identity, RefreshTokenPolicy, TokenPair
from tokenvault.services.tokens.issuer import AccessTokenIssuer, utc_now

log = logging.getLogger(__name__)

# 64 random bytes -> 512 bits of entropy, url-safe encoded (86 chars)
TOKEN_VALUE_BYTES = 64


def generate_token_value() -> str:
    """Return a fresh opaque refresh-token value from the OS CSPRNG."""
    return secrets.token_urlsafe(TOKEN_VALUE_BYTES)


class RefreshTokenLifecycleManager:
    """
    Own the refresh-token state machine: creation, rotation, revocation, expiry.

    State per token is ``Active -> Revoked`` (terminal) plus the time-driven
    ``Active -> Expired``. The manager keeps no state between calls; every
    durable fact lives in the :class:`RefreshTokenStore`, and every revocation
    goes through the store's compare-and-swap on the ``revoked`` flag.

    Security
    --------
    - Rotation is single-use: a replayed value is already revoked with reason
      ``"rotated"`` and surfaces as :class:`TokenInactiveError` with
      ``is_reuse``, so the gateway can apply a reuse-detection policy.
    - Concurrent rotations of the same value are settled by the store; losers
      never leave a live replacement behind.
    """

    #: Attempts to draw a non-colliding token value before giving up.
    MAX_VALUE_ATTEMPTS = 3

    def __init__(
        self,
        store: RefreshTokenStore,
        *,
        issuer: AccessTokenIssuer | None = None,
        policy: RefreshTokenPolicy | None = None,
        clock: Callable[[], datetime] = utc_now,
        value_factory: Callable[[], str] = generate_token_value,
    ) -> None:
        """
        :param store: Refresh-token persistence contract.
        :param issuer: Access token issuer, required for session operations.
        :param policy: Refresh token lifetime policy (7 days by default).
        :param clock: UTC clock.
        :param value_factory: Source of opaque token values.
        """
        self.store = store
        self.issuer = issuer
        self.policy = policy or RefreshTokenPolicy()
        self._clock = clock
        self._value_factory = value_factory

    # ------------------------------------------------------------------ #
    # Core lifecycle
    # ------------------------------------------------------------------ #

    def create_for_subject(self, subject_id: str) -> RefreshToken:
        """
        Create and persist a new active refresh token.

        :param subject_id: Owning identity.
        :returns: The stored record.
        :raises StorageError: If the store is unavailable.
        """
        now = self._clock()
        for _ in range(self.MAX_VALUE_ATTEMPTS):
            token = self._build(subject_id, now)
            try:
                self.store.insert(token)
            except TokenValueCollisionError:
                log.warning("refresh_token.value_collision", extra={"subject_id": subject_id})
                continue
            log.info(
                "refresh_token.created",
                extra={"subject_id": subject_id, "token_id": token.id},
            )
            return token
        raise StorageError("insert", "could not generate a unique token value")

    def lookup(self, value: str) -> RefreshToken | None:
        """
        Exact-match lookup; never mutates state.

        The returned record carries ``subject_id`` so the caller can re-verify
        the owning identity.
        """
        return self.store.find_by_value(value)

    def rotate(self, old_value: str) -> RefreshToken:
        """
        Exchange an active refresh token for a new one.

        The replacement is inserted and the old token revoked (reason
        ``"rotated"``, chained through ``replaced_by_value``) in a single
        atomic store call.

        :param old_value: Presented refresh-token value.
        :returns: The replacement token.
        :raises TokenNotFoundError: If no record matches ``old_value``.
        :raises TokenInactiveError: If the token is revoked or expired, or a
            concurrent rotation won the race.
        :raises StorageError: If the store is unavailable.
        """
        now = self._clock()
        current = self.store.find_by_value(old_value)
        if current is None:
            raise TokenNotFoundError()
        self._ensure_active(current, now)

        affected = 0
        for _ in range(self.MAX_VALUE_ATTEMPTS):
            replacement = self._build(current.subject_id, now)
            try:
                affected = self.store.replace(
                    old_value, replacement, reason=reasons.ROTATED, revoked_at=now
                )
            except TokenValueCollisionError:
                log.warning(
                    "refresh_token.value_collision", extra={"subject_id": current.subject_id}
                )
                continue
            break
        else:
            raise StorageError("replace", "could not generate a unique token value")

        if affected == 0:
            # Lost the compare-and-swap: report the state the winner left behind.
            latest = self.store.find_by_value(old_value)
            if latest is None:
                raise TokenNotFoundError()
            self._ensure_active(latest, now)
            raise StorageError("replace", "conditional revoke affected no record")

        log.info(
            "refresh_token.rotated",
            extra={
                "subject_id": current.subject_id,
                "token_id": current.id,
                "reason": reasons.ROTATED,
            },
        )
        return replacement

    def revoke(self, value: str, reason: str) -> int:
        """
        Revoke a single token; idempotent.

        Revoking an already-revoked or unknown token is a no-op and keeps the
        first ``revoked_at``/``revoked_reason``.

        :returns: ``1`` when this call revoked the token, else ``0``.
        :raises InvalidReasonError: Blank reason or one longer than
            :data:`reasons.MAX_REASON_LENGTH`.
        """
        self._check_reason(reason)
        affected = self.store.conditional_revoke(value, reason=reason, revoked_at=self._clock())
        if affected:
            log.info("refresh_token.revoked", extra={"reason": reason})
        return affected

    def revoke_all_for_subject(self, subject_id: str, reason: str = reasons.LOGOUT_ALL) -> int:
        """
        Revoke every currently active token of ``subject_id``.

        :returns: Number of tokens revoked by this call.
        """
        self._check_reason(reason)
        now = self._clock()
        count = 0
        for token in self.store.find_active_by_subject(subject_id, now):
            count += self.store.conditional_revoke(token.value, reason=reason, revoked_at=now)
        log.info(
            "refresh_token.revoked_all",
            extra={"subject_id": subject_id, "reason": reason, "count": count},
        )
        return count

    def sweep_expired(self) -> int:
        """
        Delete tokens past ``expires_at``, revoked or not.

        Storage reclamation only: expired tokens are rejected whether or not
        they have been swept.
        """
        count = self.store.delete_expired(self._clock())
        log.info("refresh_token.swept", extra={"count": count})
        return count

    # ------------------------------------------------------------------ #
    # Session helpers (issuer + lifecycle)
    # ------------------------------------------------------------------ #

    def start_session(self, identity: Identity) -> TokenPair:
        """Issue a fresh access token and a new refresh token for ``identity``."""
        issuer = self._require_issuer()
        access = issuer.issue(identity, fresh=True)
        refresh = self.create_for_subject(identity.subject_id)
        return self._pair(access.token, refresh, issuer)

    def refresh_session(self, old_value: str, identity: Identity) -> TokenPair:
        """
        Rotate ``old_value`` and issue a non-fresh access token for ``identity``.

        The caller is responsible for having verified that ``identity`` owns
        ``old_value`` and is still active.
        """
        issuer = self._require_issuer()
        refresh = self.rotate(old_value)
        access = issuer.issue(identity, fresh=False)
        return self._pair(access.token, refresh, issuer)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _build(self, subject_id: str, now: datetime) -> RefreshToken:
        return RefreshToken(
            id=str(uuid4()),
            subject_id=subject_id,
            value=self._value_factory(),
            issued_at=now,
            expires_at=now + self.policy.ttl,
        )

    @staticmethod
    def _check_reason(reason: str) -> None:
        if not reason or not reason.strip():
            raise InvalidReasonError("Revocation reason must not be blank")
        if len(reason) > reasons.MAX_REASON_LENGTH:
            raise InvalidReasonError(
                f"Revocation reason exceeds {reasons.MAX_REASON_LENGTH} characters"
            )

    @staticmethod
    def _ensure_active(token: RefreshToken, now: datetime) -> None:
        if token.revoked:
            raise TokenInactiveError(
                state=STATE_REVOKED, reason=token.revoked_reason or "unspecified", token=token
            )
        if token.is_expired(now):
            raise TokenInactiveError(state=STATE_EXPIRED, reason=STATE_EXPIRED, token=token)

    def _require_issuer(self) -> AccessTokenIssuer:
        if self.issuer is None:
            raise ConfigurationError("No access token issuer configured")
        return self.issuer

    @staticmethod
    def _pair(access_token: str, refresh: RefreshToken, issuer: AccessTokenIssuer) -> TokenPair:
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh.value,
            expires_in=issuer.ttl_seconds,
            refresh_expires_at=refresh.expires_at,
            subject_id=refresh.subject_id,
        )
