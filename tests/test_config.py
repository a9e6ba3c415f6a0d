"""Tests for configuration parsing and the signing-key guard."""

import logging

import pytest

from review_service import config


def test_explicit_secret_is_used_as_is():
    assert config.resolve_secret_key("s3cr3t", config.PRODUCTION) == "s3cr3t"


@pytest.mark.parametrize("value", [None, "", config.DEFAULT_SECRET_KEY])
def test_production_refuses_missing_or_default_secret(value):
    with pytest.raises(ValueError, match="SECRET_KEY"):
        config.resolve_secret_key(value, config.PRODUCTION)


def test_development_falls_back_loudly(caplog):
    with caplog.at_level(logging.WARNING, logger="review_service.config"):
        key = config.resolve_secret_key(None, config.DEVELOPMENT)

    assert key == config.DEFAULT_SECRET_KEY
    assert "INSECURE" in caplog.text


def test_env_int_rejects_garbage(monkeypatch):
    monkeypatch.setenv("PORT", "eighty")
    with pytest.raises(ValueError, match="PORT must be an integer"):
        config._env_int("PORT", 3000)


def test_env_helpers_fall_back_to_defaults(monkeypatch):
    monkeypatch.delenv("DB_INIT_RETRY_DELAY", raising=False)
    monkeypatch.setenv("SQL_ECHO", "")
    assert config._env_float("DB_INIT_RETRY_DELAY", 2.0) == 2.0
    assert config._env_bool("SQL_ECHO", False) is False


def test_cors_origins_are_split_and_trimmed():
    assert config._split_origins("http://a.test, http://b.test ,") == [
        "http://a.test",
        "http://b.test",
    ]


def test_token_lifetime_is_fixed_at_24_hours():
    assert config.ACCESS_TOKEN_LIFETIME.total_seconds() == 24 * 60 * 60
