"""
core/config.py -- Centralized configuration via pydantic-settings.

Every environment variable Gatehouse reads is declared here. No other module
calls os.getenv() -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() builds Settings once and returns the
      cached instance afterwards (the FastAPI-documented config pattern).

  BaseSettings (pydantic-settings): values come from environment variables and
      an optional .env file. Field names map to upper-cased env var names
      (session_key -> SESSION_KEY). Types are coerced and validated.

  @model_validator(mode="after"): cross-field SECRET_KEY policy. Debug mode
      generates a throwaway key with a warning; production refuses to start
      without one.

Security notes:
  SECRET_KEY signs both the session cookie and the bearer tokens. Keys shorter
  than 32 characters are rejected.

Layer rule: core/ is the kernel. This module may not import from auth/ or api/.
"""

import logging
import secrets
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("gatehouse.config")


class Settings(BaseSettings):
    """Settings loaded from environment variables and .env.

    Every field has a default so tests can build Settings() without a .env
    file; the validator still enforces the SECRET_KEY rules.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # "" means "not configured"; the validator replaces or rejects it.
    secret_key: str = ""
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    # Namespace under which the serialized identity lives: session[key]["user"]
    session_key: str = "passport"
    session_cookie: str = "gatehouse_session"
    session_max_age: int = 14 * 24 * 3600
    secure_cookies: bool = False

    # ------------------------------------------------------------------
    # Tokens and users
    # ------------------------------------------------------------------

    token_expire_seconds: int = 3600
    # Empty means auth/gatehouse_auth.db next to auth/store.py
    auth_db_url: str = ""

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Debug mode: generate a key (sessions die on restart). Production: require one.

        Both modes reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("Using auto-generated SECRET_KEY. Sessions will not persist across restarts.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the Settings singleton.

    Tests that need different environment values call
    get_settings.cache_clear() first.
    """
    return Settings()
