from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Protocol

from tokenvault.services._shared.errors import TokenValueCollisionError


@dataclass(frozen=True, slots=True)
class RefreshToken:
    """
    Persisted refresh-token record.

    :ivar id: Immutable record identifier.
    :ivar subject_id: Owning identity; many tokens may exist per subject.
    :ivar value: High-entropy opaque secret, unique across all tokens.
    :ivar issued_at: Issuance instant (UTC).
    :ivar expires_at: Absolute expiration (UTC).
    :ivar revoked: Monotonic revocation flag.
    :ivar revoked_at: Set together with ``revoked``.
    :ivar revoked_reason: Set together with ``revoked``.
    :ivar replaced_by_value: Value of the token that superseded this one.
    """

    id: str
    subject_id: str
    value: str
    issued_at: datetime
    expires_at: datetime
    revoked: bool = False
    revoked_at: datetime | None = None
    revoked_reason: str | None = None
    replaced_by_value: str | None = None

    def is_expired(self, at: datetime) -> bool:
        return at >= self.expires_at

    def is_active(self, at: datetime) -> bool:
        return not self.revoked and not self.is_expired(at)


class RefreshTokenStore(Protocol):
    """
    Persistence contract for refresh tokens.

    Revocation is only ever applied as a compare-and-swap on ``revoked == False``;
    implementations MUST make :meth:`conditional_revoke` and :meth:`replace` atomic.
    """

    def insert(self, token: RefreshToken) -> None:
        """
        Persist a brand-new token.

        :raises TokenValueCollisionError: If ``token.value`` already exists.
        """

    def find_by_value(self, value: str) -> RefreshToken | None:
        """Exact-match lookup by token value."""

    def conditional_revoke(
        self,
        value: str,
        *,
        reason: str,
        revoked_at: datetime,
        replaced_by_value: str | None = None,
    ) -> int:
        """
        Set ``revoked=True`` where ``value`` matches and ``revoked`` is still false.

        :returns: Number of affected records (0 or 1).
        """

    def replace(
        self,
        old_value: str,
        new_token: RefreshToken,
        *,
        reason: str,
        revoked_at: datetime,
    ) -> int:
        """
        Atomically revoke ``old_value`` (chaining it to ``new_token``) and insert ``new_token``.

        Nothing is written when the compare-and-swap affects no record.

        :returns: Number of revoked records (0 or 1).
        :raises TokenValueCollisionError: If ``new_token.value`` already exists.
        """

    def find_active_by_subject(self, subject_id: str, now: datetime) -> list[RefreshToken]:
        """List tokens of ``subject_id`` that are neither revoked nor expired at ``now``."""

    def delete_expired(self, now: datetime) -> int:
        """
        Delete every token with ``expires_at < now``, revoked or not.

        :returns: Number of deleted records.
        """


class InMemoryRefreshTokenStore(RefreshTokenStore):
    """
    In-memory refresh token store.

    .. note::
       A single lock guards every operation, which gives the same atomicity
       the relational and Redis adapters provide.
    """

    def __init__(self) -> None:
        self._by_value: dict[str, RefreshToken] = {}
        self._by_subject: dict[str, set[str]] = {}
        self._lock = threading.Lock()

    # ------------------------- helpers -------------------------

    def _put(self, token: RefreshToken) -> None:
        if token.value in self._by_value:
            raise TokenValueCollisionError()
        self._by_value[token.value] = token
        self._by_subject.setdefault(token.subject_id, set()).add(token.value)

    def _revoke(
        self,
        value: str,
        *,
        reason: str,
        revoked_at: datetime,
        replaced_by_value: str | None,
    ) -> int:
        current = self._by_value.get(value)
        if current is None or current.revoked:
            return 0
        self._by_value[value] = replace(
            current,
            revoked=True,
            revoked_at=revoked_at,
            revoked_reason=reason,
            replaced_by_value=replaced_by_value,
        )
        return 1

    # -------------------------- API ----------------------------

    def insert(self, token: RefreshToken) -> None:
        with self._lock:
            self._put(token)

    def find_by_value(self, value: str) -> RefreshToken | None:
        with self._lock:
            return self._by_value.get(value)

    def conditional_revoke(
        self,
        value: str,
        *,
        reason: str,
        revoked_at: datetime,
        replaced_by_value: str | None = None,
    ) -> int:
        with self._lock:
            return self._revoke(
                value, reason=reason, revoked_at=revoked_at, replaced_by_value=replaced_by_value
            )

    def replace(
        self,
        old_value: str,
        new_token: RefreshToken,
        *,
        reason: str,
        revoked_at: datetime,
    ) -> int:
        with self._lock:
            if new_token.value in self._by_value:
                raise TokenValueCollisionError()
            affected = self._revoke(
                old_value,
                reason=reason,
                revoked_at=revoked_at,
                replaced_by_value=new_token.value,
            )
            if affected:
                self._put(new_token)
            return affected

    def find_active_by_subject(self, subject_id: str, now: datetime) -> list[RefreshToken]:
        with self._lock:
            tokens = (self._by_value.get(v) for v in self._by_subject.get(subject_id, set()))
            return sorted(
                (t for t in tokens if t is not None and t.is_active(now)),
                key=lambda t: (t.issued_at, t.id),
            )

    def delete_expired(self, now: datetime) -> int:
        with self._lock:
            expired = [t for t in self._by_value.values() if t.expires_at < now]
            for token in expired:
                del self._by_value[token.value]
                values = self._by_subject.get(token.subject_id)
                if values is not None:
                    values.discard(token.value)
                    if not values:
                        del self._by_subject[token.subject_id]
            return len(expired)
