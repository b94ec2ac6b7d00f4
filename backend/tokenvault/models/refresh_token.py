"""Relational persistence for refresh tokens."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Index, String, UniqueConstraint, false
from sqlalchemy.orm import Mapped, mapped_column

from tokenvault.core.extensions import db
from tokenvault.services._shared.ports.refresh_token_store import RefreshToken

from .base import ReprMixin, UTCDateTime


class RefreshTokenModel(ReprMixin, db.Model):
    """
    Row-per-token record backing :class:`SQLAlchemyRefreshTokenStore`.

    ``subject_id`` carries no foreign key: the identity store is an external
    collaborator and tokens outlive nothing but their own ``expires_at``.
    """

    __tablename__ = "refresh_tokens"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    subject_id: Mapped[str] = mapped_column(String(64), nullable=False)
    value: Mapped[str] = mapped_column(String(128), nullable=False)
    issued_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    revoked: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    revoked_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    revoked_reason: Mapped[str | None] = mapped_column(String(255), nullable=True)
    replaced_by_value: Mapped[str | None] = mapped_column(String(128), nullable=True)

    __table_args__ = (
        UniqueConstraint("value", name="uq_refresh_tokens_value"),
        Index("ix_refresh_tokens_subject_id", "subject_id"),
        Index("ix_refresh_tokens_expires_at", "expires_at"),
    )

    def to_domain(self) -> RefreshToken:
        """Return an immutable snapshot of this row."""
        return RefreshToken(
            id=self.id,
            subject_id=self.subject_id,
            value=self.value,
            issued_at=self.issued_at,
            expires_at=self.expires_at,
            revoked=self.revoked,
            revoked_at=self.revoked_at,
            revoked_reason=self.revoked_reason,
            replaced_by_value=self.replaced_by_value,
        )

    @classmethod
    def from_domain(cls, token: RefreshToken) -> RefreshTokenModel:
        return cls(
            id=token.id,
            subject_id=token.subject_id,
            value=token.value,
            issued_at=token.issued_at,
            expires_at=token.expires_at,
            revoked=token.revoked,
            revoked_at=token.revoked_at,
            revoked_reason=token.revoked_reason,
            replaced_by_value=token.replaced_by_value,
        )
