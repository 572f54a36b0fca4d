"""Unit tests for core/config.py SECRET_KEY policy and defaults."""

import pytest
from pydantic import ValidationError

from core.config import Settings


def test_production_requires_secret_key():
    with pytest.raises(ValidationError, match="SECRET_KEY is required"):
        Settings(debug=False, secret_key="")


def test_short_secret_key_rejected():
    with pytest.raises(ValidationError, match="at least 32 characters"):
        Settings(debug=True, secret_key="too-short")


def test_debug_generates_secret_key():
    settings = Settings(debug=True, secret_key="")
    assert len(settings.secret_key) >= 32


def test_session_defaults():
    settings = Settings(debug=True, secret_key="x" * 32, session_key="passport")
    assert settings.session_key == "passport"
    assert settings.session_cookie == "gatehouse_session"
    assert settings.token_expire_seconds == 3600
