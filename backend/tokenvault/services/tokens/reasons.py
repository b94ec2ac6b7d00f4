"""Fixed revocation reasons recorded on refresh tokens."""

from __future__ import annotations

from typing import Final

ROTATED: Final[str] = "rotated"
LOGOUT: Final[str] = "logout"
LOGOUT_ALL: Final[str] = "logout-all"
REVOKED_BY_USER: Final[str] = "revoked-by-user"
IDENTITY_INACTIVE: Final[str] = "identity-inactive"
REUSE_DETECTED: Final[str] = "reuse-detected"

#: Upper bound for caller-supplied reasons; matches ``refresh_tokens.revoked_reason``.
MAX_REASON_LENGTH: Final[int] = 255
