"""Service layer public API.

This package exposes the token lifecycle building blocks so that callers can
import from :mod:`tokenvault.services` without knowing internal structure.

Re-exports
----------
- Token lifecycle (from ``tokenvault.services.tokens``)
    * :class:`AccessTokenIssuer`
    * :class:`RefreshTokenLifecycleManager`
    * DTOs: :class:`Identity`, :class:`TokenPair`, :class:`AccessTokenSettings`,
      :class:`RefreshTokenPolicy`

Notes
-----
``BaseService`` and the gateway ``AuthService`` depend on the Unit of Work and
are imported from their own modules; models import the ports from this
package, so it must stay free of persistence imports.
"""

from __future__ import annotations

from .tokens import (
    AccessTokenIssuer,
    AccessTokenSettings,
    Identity,
    RefreshTokenLifecycleManager,
    RefreshTokenPolicy,
    TokenPair,
)

__all__ = [
    "AccessTokenIssuer",
    "AccessTokenSettings",
    "Identity",
    "RefreshTokenLifecycleManager",
    "RefreshTokenPolicy",
    "TokenPair",
]
