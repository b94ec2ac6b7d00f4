"""Refresh-token repository: conditional updates over ``refresh_tokens``."""

from __future__ import annotations

from datetime import datetime
from typing import cast

from sqlalchemy import CursorResult, delete, select, update

from tokenvault.models.refresh_token import RefreshTokenModel
from tokenvault.repositories.base import BaseRepository


class RefreshTokenRepository(BaseRepository[RefreshTokenModel]):
    """Persistence-only repository for :class:`RefreshTokenModel`.

    Revocation is issued as a single ``UPDATE ... WHERE revoked = false``;
    the affected row count is the compare-and-swap outcome.
    """

    model = RefreshTokenModel

    def get_by_value(self, value: str) -> RefreshTokenModel | None:
        stmt = select(RefreshTokenModel).where(RefreshTokenModel.value == value)
        return cast(RefreshTokenModel | None, self.session.execute(stmt).scalars().first())

    def conditional_revoke(
        self,
        value: str,
        *,
        reason: str,
        revoked_at: datetime,
        replaced_by_value: str | None = None,
    ) -> int:
        """Flip ``revoked`` on an active row.

        :returns: Affected rows (0 or 1).
        :rtype: int
        """
        stmt = (
            update(RefreshTokenModel)
            .where(RefreshTokenModel.value == value, RefreshTokenModel.revoked.is_(False))
            .values(
                revoked=True,
                revoked_at=revoked_at,
                revoked_reason=reason,
                replaced_by_value=replaced_by_value,
            )
            .execution_options(synchronize_session=False)
        )
        result = cast(CursorResult, self.session.execute(stmt))
        return int(result.rowcount or 0)

    def list_active_by_subject(self, subject_id: str, now: datetime) -> list[RefreshTokenModel]:
        stmt = (
            select(RefreshTokenModel)
            .where(
                RefreshTokenModel.subject_id == subject_id,
                RefreshTokenModel.revoked.is_(False),
                RefreshTokenModel.expires_at > now,
            )
            .order_by(RefreshTokenModel.issued_at.asc(), RefreshTokenModel.id.asc())
        )
        return list(self.session.execute(stmt).scalars().all())

    def delete_expired(self, now: datetime) -> int:
        """Hard-delete rows with ``expires_at < now``.

        :returns: Deleted rows.
        :rtype: int
        """
        stmt = (
            delete(RefreshTokenModel)
            .where(RefreshTokenModel.expires_at < now)
            .execution_options(synchronize_session=False)
        )
        result = cast(CursorResult, self.session.execute(stmt))
        return int(result.rowcount or 0)
