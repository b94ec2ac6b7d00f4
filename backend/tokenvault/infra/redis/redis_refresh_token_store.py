# comments in English; reST docstrings
from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, cast

import redis  # type: ignore[import-untyped]

from tokenvault.services._shared.errors import StorageError, TokenValueCollisionError
from tokenvault.services._shared.ports import RefreshToken, RefreshTokenStore

log = logging.getLogger(__name__)

#: Optimistic-lock attempts before a contended operation gives up.
MAX_WATCH_RETRIES = 16

EXPIRY_INDEX_KEY = "rt:exp"


def _s(raw: Any, default: str = "") -> str:
    """Decode a Redis reply that may be bytes (default client) or str."""
    if raw is None:
        return default
    if isinstance(raw, bytes | bytearray):
        return raw.decode()
    return str(raw)


def _dt(raw: str) -> datetime | None:
    return datetime.fromisoformat(raw) if raw else None


@dataclass(slots=True)
class RedisRefreshTokenStore(RefreshTokenStore):
    """
    Redis-backed refresh token store.

    Layout
    ------
    - ``rt:{value}``: hash with the token record (datetimes as ISO-8601 UTC).
    - ``rt:s:{subject_id}``: set of the subject's token values.
    - ``rt:exp``: sorted set of values scored by ``expires_at`` epoch seconds.

    Keys carry no TTL: expired tokens must stay readable (and rejected as
    expired) until :meth:`delete_expired` reclaims them.

    Every compare-and-swap runs under WATCH/MULTI/EXEC; a concurrent writer
    aborts the transaction and the read is retried.

    :param r: A Redis client (already connected).
    """

    r: redis.Redis

    # -------------------- helpers --------------------

    @staticmethod
    def _k(value: str) -> str:
        return f"rt:{value}"

    @staticmethod
    def _ks(subject_id: str) -> str:
        return f"rt:s:{subject_id}"

    @staticmethod
    def _to_mapping(token: RefreshToken) -> dict[str, str]:
        return {
            "id": token.id,
            "subject_id": token.subject_id,
            "value": token.value,
            "issued_at": token.issued_at.isoformat(),
            "expires_at": token.expires_at.isoformat(),
            "revoked": "1" if token.revoked else "0",
            "revoked_at": token.revoked_at.isoformat() if token.revoked_at else "",
            "revoked_reason": token.revoked_reason or "",
            "replaced_by_value": token.replaced_by_value or "",
        }

    @staticmethod
    def _from_hash(h: Mapping[Any, Any]) -> RefreshToken:
        fields = {_s(k): _s(v) for k, v in h.items()}
        return RefreshToken(
            id=fields["id"],
            subject_id=fields["subject_id"],
            value=fields["value"],
            issued_at=cast(datetime, _dt(fields["issued_at"])),
            expires_at=cast(datetime, _dt(fields["expires_at"])),
            revoked=fields.get("revoked", "0") == "1",
            revoked_at=_dt(fields.get("revoked_at", "")),
            revoked_reason=fields.get("revoked_reason") or None,
            replaced_by_value=fields.get("replaced_by_value") or None,
        )

    @staticmethod
    def _revocation_fields(
        reason: str, revoked_at: datetime, replaced_by_value: str | None
    ) -> dict[str, str]:
        return {
            "revoked": "1",
            "revoked_at": revoked_at.isoformat(),
            "revoked_reason": reason,
            "replaced_by_value": replaced_by_value or "",
        }

    def _stage_insert(self, p: redis.client.Pipeline, token: RefreshToken) -> None:
        p.hset(self._k(token.value), mapping=self._to_mapping(token))
        p.sadd(self._ks(token.subject_id), token.value)
        p.zadd(EXPIRY_INDEX_KEY, {token.value: token.expires_at.timestamp()})

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        """Translate client/network failures into :class:`StorageError`."""
        try:
            yield
        except redis.RedisError as exc:
            log.error("refresh_store.redis_error", extra={"reason": operation}, exc_info=True)
            raise StorageError(operation) from exc

    @staticmethod
    def _contended(operation: str) -> StorageError:
        return StorageError(operation, f"gave up after {MAX_WATCH_RETRIES} contended attempts")

    # -------------------- API ------------------------

    def insert(self, token: RefreshToken) -> None:
        """
        Persist a new token.

        :raises TokenValueCollisionError: If ``rt:{value}`` already exists.
        """
        key = self._k(token.value)
        with self._guard("insert"):
            for _ in range(MAX_WATCH_RETRIES):
                try:
                    with self.r.pipeline() as p:
                        p.watch(key)
                        if p.exists(key):
                            p.unwatch()
                            raise TokenValueCollisionError()
                        p.multi()
                        self._stage_insert(p, token)
                        p.execute()
                        return
                except redis.WatchError:
                    continue
            raise self._contended("insert")

    def find_by_value(self, value: str) -> RefreshToken | None:
        with self._guard("find_by_value"):
            h = self.r.hgetall(self._k(value))
        if not h:
            return None
        return self._from_hash(h)

    def conditional_revoke(
        self,
        value: str,
        *,
        reason: str,
        revoked_at: datetime,
        replaced_by_value: str | None = None,
    ) -> int:
        key = self._k(value)
        with self._guard("conditional_revoke"):
            for _ in range(MAX_WATCH_RETRIES):
                try:
                    with self.r.pipeline() as p:
                        p.watch(key)
                        revoked = p.hget(key, "revoked")
                        if revoked is None or _s(revoked) == "1":
                            p.unwatch()
                            return 0
                        p.multi()
                        p.hset(
                            key,
                            mapping=self._revocation_fields(reason, revoked_at, replaced_by_value),
                        )
                        p.execute()
                        return 1
                except redis.WatchError:
                    continue
            raise self._contended("conditional_revoke")

    def replace(
        self,
        old_value: str,
        new_token: RefreshToken,
        *,
        reason: str,
        revoked_at: datetime,
    ) -> int:
        """
        Revoke ``old_value`` and insert ``new_token`` in one MULTI/EXEC block.

        Both keys are watched, so a concurrent rotation of the same value (or a
        concurrent insert of the same new value) aborts this transaction.
        """
        k_old = self._k(old_value)
        k_new = self._k(new_token.value)
        with self._guard("replace"):
            for _ in range(MAX_WATCH_RETRIES):
                try:
                    with self.r.pipeline() as p:
                        p.watch(k_old, k_new)
                        if p.exists(k_new):
                            p.unwatch()
                            raise TokenValueCollisionError()
                        revoked = p.hget(k_old, "revoked")
                        if revoked is None or _s(revoked) == "1":
                            p.unwatch()
                            return 0
                        p.multi()
                        p.hset(
                            k_old,
                            mapping=self._revocation_fields(reason, revoked_at, new_token.value),
                        )
                        self._stage_insert(p, new_token)
                        p.execute()
                        return 1
                except redis.WatchError:
                    continue
            raise self._contended("replace")

    def find_active_by_subject(self, subject_id: str, now: datetime) -> list[RefreshToken]:
        key_s = self._ks(subject_id)
        with self._guard("find_active_by_subject"):
            members = sorted(_s(m) for m in self.r.smembers(key_s))
            tokens: list[RefreshToken] = []
            stale: list[str] = []
            for value in members:
                token = self.find_by_value(value)
                if token is None:
                    # Underlying hash swept -> mark for cleanup
                    stale.append(value)
                elif token.is_active(now):
                    tokens.append(token)
            if stale:
                self.r.srem(key_s, *stale)
        return sorted(tokens, key=lambda t: (t.issued_at, t.id))

    def delete_expired(self, now: datetime) -> int:
        """
        Delete every token scored strictly below ``now`` in ``rt:exp``.

        :returns: Number of deleted token hashes.
        """
        with self._guard("delete_expired"):
            values = [
                _s(v)
                for v in self.r.zrangebyscore(EXPIRY_INDEX_KEY, "-inf", f"({now.timestamp()}")
            ]
            if not values:
                return 0
            subjects = [_s(self.r.hget(self._k(v), "subject_id")) for v in values]

            pipe = self.r.pipeline(transaction=True)
            for value, subject_id in zip(values, subjects, strict=True):
                pipe.delete(self._k(value))
                if subject_id:
                    pipe.srem(self._ks(subject_id), value)
            pipe.zrem(EXPIRY_INDEX_KEY, *values)
            out = pipe.execute()

        # Each token contributes DEL (+ optional SREM); only DEL replies count
        deleted = 0
        idx = 0
        for subject_id in subjects:
            deleted += int(out[idx])
            idx += 2 if subject_id else 1
        return deleted
