from __future__ import annotations

from datetime import timedelta

import pytest

from tests.helpers.utils import ManualClock
from tokenvault.services._shared.errors import ConfigurationError
from tokenvault.services._shared.ports import StubTokenProvider
from tokenvault.services.tokens import AccessTokenIssuer, AccessTokenSettings, Identity
from tokenvault.services.tokens.dto import RefreshTokenPolicy

IDENTITY = Identity(subject_id="subj-1", name="Ada Lovelace", email="ada@example.com")


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


def _settings(**overrides) -> AccessTokenSettings:
    base = {"signing_key": "k", "issuer": "tokenvault", "audience": "clients"}
    base.update(overrides)
    return AccessTokenSettings(**base)


def test_issue_embeds_identity_and_registered_claims(clock):
    provider = StubTokenProvider()
    issuer = AccessTokenIssuer(provider, _settings(ttl=timedelta(minutes=15)), clock=clock)

    issued = issuer.issue(IDENTITY)
    claims = provider.decode(issued.token)

    assert claims["sub"] == "subj-1"
    assert claims["name"] == "Ada Lovelace"
    assert claims["email"] == "ada@example.com"
    assert claims["iss"] == "tokenvault"
    assert claims["aud"] == "clients"
    assert claims["jti"] == issued.jti
    assert claims["iat"] == int(clock().timestamp())
    assert claims["nbf"] == claims["iat"]
    assert claims["exp"] - claims["iat"] == 15 * 60
    assert issued.expires_at - issued.issued_at == timedelta(minutes=15)
    assert issuer.ttl_seconds == 900


def test_each_token_gets_a_unique_jti(clock):
    issuer = AccessTokenIssuer(StubTokenProvider(), _settings(), clock=clock)
    jtis = {issuer.issue(IDENTITY).jti for _ in range(10)}
    assert len(jtis) == 10


def test_fresh_flag_is_forwarded(clock):
    provider = StubTokenProvider()
    issuer = AccessTokenIssuer(provider, _settings(), clock=clock)

    assert provider.decode(issuer.issue(IDENTITY, fresh=True).token)["fresh"] is True
    assert provider.decode(issuer.issue(IDENTITY).token)["fresh"] is False


@pytest.mark.parametrize(
    ("override", "missing"),
    [
        ({"signing_key": None}, "JWT_SECRET_KEY"),
        ({"issuer": ""}, "JWT_ISSUER"),
        ({"audience": None}, "JWT_AUDIENCE"),
    ],
)
def test_missing_settings_fail_at_construction(override, missing):
    with pytest.raises(ConfigurationError, match=missing):
        AccessTokenIssuer(StubTokenProvider(), _settings(**override))


def test_non_positive_ttl_is_rejected():
    with pytest.raises(ConfigurationError):
        AccessTokenIssuer(StubTokenProvider(), _settings(ttl=timedelta(0)))


def test_settings_from_mapping_reads_config_keys():
    settings = AccessTokenSettings.from_mapping(
        {
            "JWT_SECRET_KEY": "s",
            "JWT_ISSUER": "iss",
            "JWT_AUDIENCE": "aud",
            "ACCESS_TOKEN_TTL_MINUTES": "30",
        }
    )
    assert settings == AccessTokenSettings("s", "iss", "aud", timedelta(minutes=30))


def test_refresh_policy_from_mapping():
    assert RefreshTokenPolicy.from_mapping({}).ttl == timedelta(days=7)
    assert RefreshTokenPolicy.from_mapping({"REFRESH_TOKEN_TTL_DAYS": 2}).ttl == timedelta(days=2)
    with pytest.raises(ConfigurationError):
        RefreshTokenPolicy.from_mapping({"REFRESH_TOKEN_TTL_DAYS": 0})
