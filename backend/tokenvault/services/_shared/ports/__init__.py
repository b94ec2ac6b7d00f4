"""
tokenvault.services._shared.ports
=================================

Collection of *ports* (hexagonal interfaces) that define the contracts
for access-token signing and refresh-token persistence.

These ports decouple the lifecycle manager and the issuer from concrete
implementations of signing and storage.

Modules
-------
- :mod:`token_provider`:
    Defines :class:`~.TokenProvider` — abstraction for JWT creation and decoding.

- :mod:`refresh_token_store`:
    Defines :class:`~.RefreshTokenStore` and :class:`~.RefreshToken` — the
    persistence contract (atomic compare-and-swap revocation) and its record type.

Design Notes
------------
Concrete adapters (Redis, SQLAlchemy) implement these interfaces under
``tokenvault.infra``. The in-memory store and the stub provider live here
because the unit tests and the ``memory`` backend use them directly.
"""

from __future__ import annotations

from .refresh_token_store import (
    InMemoryRefreshTokenStore,
    RefreshToken,
    RefreshTokenStore,
)
from .token_provider import StubTokenProvider, TokenProvider

__all__ = [
    "TokenProvider",
    "RefreshToken",
    "RefreshTokenStore",
    "InMemoryRefreshTokenStore",
    "StubTokenProvider",
]
