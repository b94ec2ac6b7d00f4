"""Marshmallow schemas for request validation and response shaping."""

from __future__ import annotations

from .auth import (
    LoginSchema,
    LogoutSchema,
    RefreshSchema,
    RevokedSchema,
    RevokeTokenSchema,
    TokenPairSchema,
    WhoAmISchema,
)

__all__ = [
    "LoginSchema",
    "LogoutSchema",
    "RefreshSchema",
    "RevokedSchema",
    "RevokeTokenSchema",
    "TokenPairSchema",
    "WhoAmISchema",
]
