"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the admission portal happen here. No module
should call os.getenv() or os.environ.get() directly -- import get_settings()
instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. access_token_secret -> ACCESS_TOKEN_SECRET).

  @model_validator(mode="after"): Cross-field validation once every field is
      resolved. Dev mode generates missing signing secrets with a warning,
      production mode refuses to start without them.

Security notes:
  Signing secrets shorter than 32 chars are rejected outright. HMAC-SHA256
  relies on key entropy -- a short key weakens every token.

  The access and refresh secrets must differ, otherwise an access token would
  verify as a refresh token and vice versa.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
import re
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("admission.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'auth' / 'admission_auth.db'}"

# Same grammar auth/duration.py accepts. Duplicated as a pattern because core/
# must not import from auth/. tests/test_config.py keeps the two in agreement.
_DURATION_RE = re.compile(r"\d+[smhdwy]", re.ASCII)


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file (with DEBUG=true).
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
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured".
    access_token_secret: str = ""
    refresh_token_secret: str = ""
    access_token_ttl: str = "15m"
    refresh_token_ttl: str = "7d"

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    secure_cookies: bool = False
    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_token_settings(self) -> "Settings":
        """Enforce the signing-secret and TTL policy.

        Dev mode (DEBUG=true): missing secrets are generated at random with a
            warning. Sessions will not survive a restart.

        Production mode: refuse to start if either secret is missing.

        Both modes: reject secrets shorter than 32 characters, identical
            access/refresh secrets, and TTLs that are not "<int><unit>".
        """
        for name in ("access_token_secret", "refresh_token_secret"):
            if not getattr(self, name):
                if self.debug:
                    setattr(self, name, secrets.token_hex(32))
                    logger.warning(
                        "WARNING: Using auto-generated %s. Sessions will not persist across restarts.",
                        name.upper(),
                    )
                else:
                    raise ValueError(
                        f"{name.upper()} is required in production mode. "
                        "Set it in your environment or .env file. "
                        "To run in development mode, set DEBUG=true."
                    )
            if len(getattr(self, name)) < 32:
                raise ValueError(f"{name.upper()} must be at least 32 characters.")
        if self.access_token_secret == self.refresh_token_secret:
            raise ValueError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ.")
        for name in ("access_token_ttl", "refresh_token_ttl"):
            if not _DURATION_RE.fullmatch(getattr(self, name)):
                raise ValueError(f"{name.upper()} must look like '15m' or '7d'.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
