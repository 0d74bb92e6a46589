"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the backend happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Singleton via lru_cache: get_settings() instantiates Settings once at first
call and returns the cached instance afterwards. The values are then handed
explicitly to the token codec and the stores at startup (see api/main.py);
nothing below core/ reads settings on its own.

Security notes:
  SECRET_KEY shorter than 32 chars is rejected outright. JWT signing relies on
  key entropy -- a short key weakens every issued token.

  In production mode (DEBUG not set or false), a missing SECRET_KEY is a hard
  startup failure. JWT_SECRET is accepted as an alias for deployments that
  already export that name.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
or ledger/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("autosales.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'autosales.db'}"


class Settings(BaseSettings):
    """AutoSales settings, read from the process environment and an optional .env.

    Every field has a default, so tests construct Settings() with no .env
    present. Environment names are the upper-cased field names
    (token_expire_seconds -> TOKEN_EXPIRE_SECONDS).
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
    # Empty string is the sentinel for "not configured".
    secret_key: str = Field(default="", validation_alias=AliasChoices("SECRET_KEY", "JWT_SECRET"))
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    host: str = "127.0.0.1"
    port: int = 5000
    allowed_origins: list[str] = ["http://localhost:3000"]

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    token_expire_seconds: int = 5 * 60 * 60
    reset_token_expire_seconds: int = 60 * 60
    # Base of the password reset link written to the log.
    frontend_url: str = "http://localhost:3000"

    # ------------------------------------------------------------------
    # First admin seed (optional -- skipped when admin_email is empty)
    # ------------------------------------------------------------------

    admin_email: str = ""
    admin_password: str = ""
    admin_name: str = "Admin"
    admin_phone: str = "0000000000"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Apply the signing key rules.

        DEBUG=true with no key: generate one and warn. Issued tokens die
            with the process.
        Otherwise a missing key stops startup.
        A key under 32 characters is refused either way.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("Using auto-generated SECRET_KEY. Tokens will not persist across restarts.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY (or JWT_SECRET) in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self

    @property
    def admin_seed(self) -> Optional[dict]:
        """Return the first-admin seed values, or None when not configured."""
        if not self.admin_email or not self.admin_password:
            return None
        return {
            "name": self.admin_name,
            "email": self.admin_email,
            "password": self.admin_password,
            "phone": self.admin_phone,
        }


@lru_cache
def get_settings() -> Settings:
    """Return the cached Settings instance.

    Tests that change environment variables must call
    get_settings.cache_clear() first.
    """
    return Settings()
