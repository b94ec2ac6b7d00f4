"""Repository package exposing persistence-layer access for all models."""

from __future__ import annotations

from tokenvault.repositories.base import BaseRepository
from tokenvault.repositories.refresh_token import RefreshTokenRepository
from tokenvault.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "RefreshTokenRepository",
    "UserRepository",
]
