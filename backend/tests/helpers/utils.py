"""Tiny helpers shared across test modules."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta


class ManualClock:
    """Deterministic UTC clock injected into issuers and lifecycle managers."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 15, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        """Move the clock forward by ``timedelta(**kwargs)`` and return the new time."""
        self.now = self.now + timedelta(**kwargs)
        return self.now


def auth_header(access_token: str) -> dict[str, str]:
    """Build a bearer ``Authorization`` header."""
    return {"Authorization": f"Bearer {access_token}"}
