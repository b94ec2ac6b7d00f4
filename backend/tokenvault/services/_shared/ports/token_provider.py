from __future__ import annotations

import base64
import json
from datetime import timedelta
from typing import Any, Protocol


class TokenProvider(Protocol):
    """Port for signing and decoding access JWTs."""

    def create_access_token(
        self,
        *,
        identity: str,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
        fresh: bool = False,
    ) -> str: ...

    def decode(self, token: str) -> dict[str, Any]: ...


class StubTokenProvider(TokenProvider):
    """Deterministic, unsigned token provider used in unit tests."""

    def __init__(self) -> None:
        self._issued: dict[str, dict[str, Any]] = {}

    def create_access_token(
        self,
        *,
        identity: str,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
        fresh: bool = False,
    ) -> str:
        payload: dict[str, Any] = {"sub": identity, "type": "access", "fresh": bool(fresh)}
        if additional_claims:
            payload.update(additional_claims)
        body = base64.urlsafe_b64encode(json.dumps(payload, sort_keys=True).encode()).decode()
        token = f"stub.{body}"
        self._issued[token] = payload
        return token

    def decode(self, token: str) -> dict[str, Any]:
        return dict(self._issued[token])
