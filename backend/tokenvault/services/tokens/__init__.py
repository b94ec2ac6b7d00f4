"""Access token issuance and refresh-token lifecycle."""

from __future__ import annotations

from .dto import AccessTokenSettings, Identity, IssuedAccessToken, RefreshTokenPolicy, TokenPair
from .issuer import AccessTokenIssuer
from .lifecycle import RefreshTokenLifecycleManager, generate_token_value

__all__ = [
    "AccessTokenIssuer",
    "AccessTokenSettings",
    "Identity",
    "IssuedAccessToken",
    "RefreshTokenLifecycleManager",
    "RefreshTokenPolicy",
    "TokenPair",
    "generate_token_value",
]
