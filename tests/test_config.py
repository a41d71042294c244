"""Unit tests for core/config.py -- SECRET_KEY policy and defaults."""

import pytest

from core.config import Settings


def test_production_requires_secret_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SECRET_KEY", raising=False)
    with pytest.raises(ValueError, match="SECRET_KEY is required"):
        Settings(debug=False, _env_file=None)


def test_debug_generates_random_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SECRET_KEY", raising=False)
    first = Settings(debug=True, _env_file=None)
    second = Settings(debug=True, _env_file=None)
    assert len(first.secret_key) >= 32
    assert first.secret_key != second.secret_key


def test_short_key_rejected() -> None:
    with pytest.raises(ValueError, match="at least 32 characters"):
        Settings(debug=True, secret_key="too-short", _env_file=None)


def test_auth_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("TOKEN_EXPIRE_SECONDS", "BCRYPT_ROUNDS", "MIN_PASSWORD_LENGTH"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings(secret_key="k" * 32, _env_file=None)
    assert settings.token_expire_seconds == 24 * 3600
    assert settings.bcrypt_rounds == 10
    assert settings.min_password_length == 6


def test_values_read_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SECRET_KEY", "e" * 40)
    monkeypatch.setenv("DATABASE_URL", "sqlite:///./elsewhere.db")
    monkeypatch.setenv("TOKEN_EXPIRE_SECONDS", "60")
    settings = Settings(_env_file=None)
    assert settings.secret_key == "e" * 40
    assert settings.database_url == "sqlite:///./elsewhere.db"
    assert settings.token_expire_seconds == 60
