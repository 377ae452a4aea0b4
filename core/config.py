"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the DevOps API happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. token_codec -> TOKEN_CODEC). Type coercion and validation are built in.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved. SECRET_KEY only matters when TOKEN_CODEC=signed, so the
      key policy is enforced for that codec only.

Known gaps kept by default (each has an opt-in replacement):
  TOKEN_CODEC=base64        -- unsigned tokens; "signed" switches to HS256 JWTs.
  CREDENTIAL_SCHEME=plaintext -- secrets compared as stored; "bcrypt" hashes the
                               seed secrets at startup and verifies with bcrypt.
  COUNT_SERVER_ERRORS=false -- errors_total never moves; "true" counts 5xx.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
or metrics/.
"""

import logging
import secrets
from functools import lru_cache
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("devops_api.config")


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
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
    environment: str = "development"
    app_version: str = "1.0.0"
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    token_codec: Literal["base64", "signed"] = "base64"
    # Empty string is the sentinel for "not configured". Only read by the
    # signed codec; the validator below fills or rejects it in that mode.
    secret_key: str = ""
    token_ttl_seconds: int = 3600

    credential_scheme: Literal["plaintext", "bcrypt"] = "plaintext"
    # Empty -> InMemoryCredentialStore. Any SQLAlchemy URL -> SQLCredentialStore.
    credential_db_url: str = ""

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    rate_limit_enabled: bool = True
    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------

    count_server_errors: bool = False

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost", "testserver"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("token_ttl_seconds")
    @classmethod
    def validate_token_ttl(cls, v: int) -> int:
        if v < 1 or v > 604800:
            raise ValueError("TOKEN_TTL_SECONDS must be between 1 and 604800 (1 second to 7 days)")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError("LOG_LEVEL must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL")
        return level

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the SECRET_KEY policy when tokens are signed.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Tokens will not survive restart -- acceptable for local dev.

        Production mode: refuse to start without a key, and reject keys
            shorter than 32 characters (HS256 relies on key entropy).
        """
        if self.token_codec != "signed":
            return self
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("Using auto-generated SECRET_KEY. Signed tokens will not persist across restarts.")
            else:
                raise ValueError(
                    "SECRET_KEY is required when TOKEN_CODEC=signed. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self

    @property
    def token_ttl_ms(self) -> int:
        return self.token_ttl_seconds * 1000


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
