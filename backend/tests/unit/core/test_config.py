"""Tests for environment parsing helpers and config selection."""

from __future__ import annotations

import pytest

from tokenvault.core.config import (
    CONFIG_MAP,
    DevelopmentConfig,
    ProductionConfig,
    TestingConfig,
    engine_options,
    env_bool,
    env_int,
    get_config,
)


@pytest.mark.parametrize("raw", ["1", "true", "YES", " on ", "y"])
def test_env_bool_truthy(monkeypatch, raw):
    monkeypatch.setenv("TV_FLAG", raw)
    assert env_bool("TV_FLAG") is True


@pytest.mark.parametrize("raw", ["0", "false", "off", "nope", ""])
def test_env_bool_falsy(monkeypatch, raw):
    monkeypatch.setenv("TV_FLAG", raw)
    assert env_bool("TV_FLAG", default=True) is False


def test_env_bool_default_when_unset(monkeypatch):
    monkeypatch.delenv("TV_FLAG", raising=False)
    assert env_bool("TV_FLAG", default=True) is True


def test_env_int(monkeypatch):
    monkeypatch.setenv("TV_NUM", " 42 ")
    assert env_int("TV_NUM", 7) == 42
    monkeypatch.setenv("TV_NUM", "  ")
    assert env_int("TV_NUM", 7) == 7
    monkeypatch.delenv("TV_NUM")
    assert env_int("TV_NUM", 7) == 7


def test_env_int_rejects_garbage(monkeypatch):
    monkeypatch.setenv("TV_NUM", "seven")
    with pytest.raises(ValueError, match="TV_NUM"):
        env_int("TV_NUM", 7)


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("development", DevelopmentConfig),
        ("TESTING", TestingConfig),
        ("production", ProductionConfig),
        ("staging", DevelopmentConfig),
    ],
)
def test_get_config_follows_app_env(monkeypatch, name, expected):
    monkeypatch.setenv("APP_ENV", name)
    assert get_config() is expected


def test_get_config_defaults_to_development(monkeypatch):
    monkeypatch.delenv("APP_ENV", raising=False)
    assert get_config() is DevelopmentConfig


def test_testing_config_is_self_contained():
    assert TestingConfig.JWT_SECRET_KEY
    assert TestingConfig.REFRESH_STORE_BACKEND == "sqlalchemy"
    assert TestingConfig.REDIS_URL is None
    assert TestingConfig.ACCESS_TOKEN_TTL_MINUTES == 60
    assert TestingConfig.REFRESH_TOKEN_TTL_DAYS == 7
    assert set(CONFIG_MAP) == {"development", "testing", "production"}


def test_engine_options_bound_postgres_connect_and_statement_waits():
    opts = engine_options("postgresql+psycopg2://u:p@db/tokenvault", 5)

    assert opts["pool_timeout"] == 5
    assert opts["connect_args"]["connect_timeout"] == 5
    assert opts["connect_args"]["options"] == "-c statement_timeout=5000"


def test_engine_options_for_sqlite_only_set_lock_wait():
    assert engine_options("sqlite:///:memory:", 3) == {"connect_args": {"timeout": 3}}


def test_engine_options_for_other_dialects_bound_pool_checkout():
    assert engine_options("mysql+pymysql://u:p@db/tokenvault", 4) == {"pool_timeout": 4}


def test_create_app_applies_store_timeout_to_engine(app):
    options = app.config["SQLALCHEMY_ENGINE_OPTIONS"]

    assert options["connect_args"]["timeout"] == app.config["STORE_TIMEOUT_SECONDS"]
    assert "pool_timeout" not in options


def test_explicit_engine_options_override_derived_ones():
    from flask import Flask

    from tokenvault.factory import _derive_engine_options

    class PostgresConfig(TestingConfig):
        SQLALCHEMY_DATABASE_URI = "postgresql+psycopg2://u:p@localhost/tokenvault"
        STORE_TIMEOUT_SECONDS = 2
        SQLALCHEMY_ENGINE_OPTIONS = {
            "pool_pre_ping": True,
            "connect_args": {"application_name": "tokenvault"},
        }

    bare = Flask(__name__)
    bare.config.from_object(PostgresConfig)
    _derive_engine_options(bare)
    options = bare.config["SQLALCHEMY_ENGINE_OPTIONS"]

    assert options["pool_pre_ping"] is True
    assert options["pool_timeout"] == 2
    assert options["connect_args"] == {
        "connect_timeout": 2,
        "options": "-c statement_timeout=2000",
        "application_name": "tokenvault",
    }
    assert PostgresConfig.SQLALCHEMY_ENGINE_OPTIONS["connect_args"] == {
        "application_name": "tokenvault"
    }
