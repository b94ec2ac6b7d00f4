# tokenvault/infra/sqlalchemy/sqlalchemy_refresh_token_store.py
from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from tokenvault.models.refresh_token import RefreshTokenModel
from tokenvault.services._shared.errors import StorageError, TokenValueCollisionError
from tokenvault.services._shared.ports import RefreshToken, RefreshTokenStore
from tokenvault.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork

log = logging.getLogger(__name__)

VALUE_CONSTRAINT = "uq_refresh_tokens_value"


def _is_value_collision(exc: IntegrityError) -> bool:
    """Tell a duplicate ``value`` apart from any other integrity failure."""
    message = str(exc.orig)
    # PostgreSQL names the constraint; SQLite names the column
    return VALUE_CONSTRAINT in message or "refresh_tokens.value" in message


class SQLAlchemyRefreshTokenStore(RefreshTokenStore):
    """
    Relational refresh-token store.

    Each call runs in its own Unit of Work (one transaction). Revocation is a
    conditional ``UPDATE`` whose row count decides the compare-and-swap, so
    two rotations of the same value cannot both succeed under any isolation
    level: the second ``UPDATE`` blocks on, then re-evaluates, the first.

    :param uow_factory: Builds a Unit of Work; defaults to the Flask-scoped one.
    """

    def __init__(
        self, uow_factory: Callable[[], SQLAlchemyUnitOfWork] = SQLAlchemyUnitOfWork
    ) -> None:
        self._uow_factory = uow_factory

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        try:
            yield
        except IntegrityError as exc:
            if _is_value_collision(exc):
                raise TokenValueCollisionError() from exc
            log.error("refresh_store.integrity_error", extra={"reason": operation})
            raise StorageError(operation, "integrity violation") from exc
        except SQLAlchemyError as exc:
            log.error("refresh_store.db_error", extra={"reason": operation}, exc_info=True)
            raise StorageError(operation) from exc

    # -------------------------- API ----------------------------

    def insert(self, token: RefreshToken) -> None:
        with self._guard("insert"), self._uow_factory() as uow:
            uow.refresh_tokens.add(RefreshTokenModel.from_domain(token))

    def find_by_value(self, value: str) -> RefreshToken | None:
        with self._guard("find_by_value"), self._uow_factory() as uow:
            row = uow.refresh_tokens.get_by_value(value)
            return row.to_domain() if row is not None else None

    def conditional_revoke(
        self,
        value: str,
        *,
        reason: str,
        revoked_at: datetime,
        replaced_by_value: str | None = None,
    ) -> int:
        with self._guard("conditional_revoke"), self._uow_factory() as uow:
            return uow.refresh_tokens.conditional_revoke(
                value,
                reason=reason,
                revoked_at=revoked_at,
                replaced_by_value=replaced_by_value,
            )

    def replace(
        self,
        old_value: str,
        new_token: RefreshToken,
        *,
        reason: str,
        revoked_at: datetime,
    ) -> int:
        """
        Revoke ``old_value`` and insert ``new_token`` in one transaction.

        A losing compare-and-swap commits nothing; a colliding insert rolls
        the revocation back with it.
        """
        with self._guard("replace"), self._uow_factory() as uow:
            affected = uow.refresh_tokens.conditional_revoke(
                old_value,
                reason=reason,
                revoked_at=revoked_at,
                replaced_by_value=new_token.value,
            )
            if affected:
                uow.refresh_tokens.add(RefreshTokenModel.from_domain(new_token))
            return affected

    def find_active_by_subject(self, subject_id: str, now: datetime) -> list[RefreshToken]:
        with self._guard("find_active_by_subject"), self._uow_factory() as uow:
            rows = uow.refresh_tokens.list_active_by_subject(subject_id, now)
            return [row.to_domain() for row in rows]

    def delete_expired(self, now: datetime) -> int:
        with self._guard("delete_expired"), self._uow_factory() as uow:
            return uow.refresh_tokens.delete_expired(now)
