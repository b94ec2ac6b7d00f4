"""Tests for RefreshTokenModel and the UTCDateTime column type."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError, StatementError

from tokenvault.models.refresh_token import RefreshTokenModel
from tokenvault.services._shared.ports import RefreshToken
from tokenvault.services.tokens import reasons

ISSUED = datetime(2024, 5, 1, 8, 0, tzinfo=UTC)


def _domain(value: str = "v1", **overrides) -> RefreshToken:
    fields = {
        "id": "11111111-1111-1111-1111-111111111111",
        "subject_id": "S1",
        "value": value,
        "issued_at": ISSUED,
        "expires_at": ISSUED + timedelta(days=7),
    }
    fields.update(overrides)
    return RefreshToken(**fields)


class TestRefreshTokenModel:
    def test_domain_round_trip(self, session):
        token = _domain(
            revoked=True,
            revoked_at=ISSUED + timedelta(hours=1),
            revoked_reason="rotated",
            replaced_by_value="v2",
        )
        session.add(RefreshTokenModel.from_domain(token))
        session.commit()
        session.expire_all()

        row = session.get(RefreshTokenModel, token.id)
        assert row.to_domain() == token

    def test_datetimes_come_back_utc_aware(self, session):
        offset = timezone(timedelta(hours=2))
        local = datetime(2024, 5, 1, 10, 0, tzinfo=offset)
        session.add(RefreshTokenModel.from_domain(_domain(issued_at=local)))
        session.commit()
        session.expire_all()

        row = session.get(RefreshTokenModel, "11111111-1111-1111-1111-111111111111")
        assert row.issued_at == ISSUED
        assert row.issued_at.tzinfo is not None
        assert row.issued_at.utcoffset() == timedelta(0)

    def test_naive_datetimes_are_rejected(self, session):
        session.add(RefreshTokenModel.from_domain(_domain(issued_at=datetime(2024, 5, 1))))
        with pytest.raises(StatementError):
            session.flush()
        session.rollback()

    def test_value_is_unique(self, session):
        session.add(RefreshTokenModel.from_domain(_domain("same")))
        session.commit()
        session.add(
            RefreshTokenModel.from_domain(
                _domain("same", id="22222222-2222-2222-2222-222222222222", subject_id="S2")
            )
        )
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    def test_revoked_reason_holds_free_text(self, session):
        column = RefreshTokenModel.__table__.c.revoked_reason
        assert column.type.length == reasons.MAX_REASON_LENGTH

        token = _domain(
            revoked=True,
            revoked_at=ISSUED,
            revoked_reason="account compromised per incident 2024-113",
        )
        session.add(RefreshTokenModel.from_domain(token))
        session.commit()
        session.expire_all()

        row = session.get(RefreshTokenModel, token.id)
        assert row.revoked_reason == "account compromised per incident 2024-113"

    def test_repr_includes_id(self):
        row = RefreshTokenModel.from_domain(_domain())
        assert "RefreshTokenModel" in repr(row)
