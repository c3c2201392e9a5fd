"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for TokenGate happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY). Complex fields (demo_users,
      allowed_hosts) are parsed from JSON.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved. Dev mode generates a signing key with a warning, production
      mode refuses to start without one.

Security notes:
  [M6] SECRET_KEY shorter than 32 chars is rejected outright. JWT signing
       relies on key entropy -- a short key weakens every issued token.

  [M7] In production mode (DEBUG not set or false), a missing SECRET_KEY is a
       hard startup failure. The signing key is a startup input, never a
       literal in source.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
or files/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("tokengate.config")

# Seed credentials for the demo deployment. Override with DEMO_USERS='{"name": "secret"}'.
_DEFAULT_DEMO_USERS = {
    "admin": "admin123",
    "user": "user123",
    "test": "test123",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces
    production-safety rules at startup.
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
    log_level: str = "INFO"
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    token_expire_seconds: int = 3600
    demo_users: dict[str, str] = Field(default_factory=lambda: dict(_DEFAULT_DEMO_USERS))
    # How often the lifespan task evicts expired entries from the revocation set.
    revocation_purge_seconds: int = 600

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    rate_limit_enabled: bool = True
    login_rate_limit: str = "60/minute"

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    upload_dir: Path = Path("uploads")
    max_upload_bytes: int = 10 * 1024 * 1024

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    allowed_hosts: list[str] = Field(default_factory=lambda: ["localhost", "127.0.0.1", "*.localhost", "testserver"])
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost", "http://localhost:3000"])

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce SECRET_KEY policy [M7].

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Issued tokens will not survive restart -- acceptable for local dev.

        Production mode (DEBUG=false or not set): refuse to start if
            SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters [M6].
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("WARNING: Using auto-generated SECRET_KEY. " "Tokens will not survive a restart.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self

    @model_validator(mode="after")
    def validate_demo_users(self) -> "Settings":
        """Reject empty usernames or passwords in the credential seed."""
        for username, password in self.demo_users.items():
            if not username or not password:
                raise ValueError("DEMO_USERS entries need a non-empty username and password.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
