"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the account service happen here. No module
should call os.getenv() or os.environ.get() directly.

Settings is read once at application assembly (api/main.py lifespan, main.py
CLI) through get_settings() and then passed explicitly into the objects that
need it: TokenIssuer, AccountStore, CloudinaryUploader. Nothing in auth/ or
media/ reads configuration on its own mid-operation.

Security notes:
  [S1] Two independent signing secrets. ACCESS_TOKEN_SECRET signs short-lived
       access tokens, REFRESH_TOKEN_SECRET signs refresh tokens. A leak of one
       cannot be used to forge the other, so the two must differ.

  [S2] Secrets shorter than 32 chars are rejected outright. HS256 signing
       relies on key entropy -- a short key weakens every token.

  [S3] In production mode (DEBUG not set or false), a missing secret is a
       hard startup failure. Debug mode generates a throwaway key with a
       warning; sessions will not survive a restart.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/ or media/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("accountservice.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'accountservice.db'}"
_DEFAULT_UPLOAD_DIR = str(Path(__file__).resolve().parent.parent / "public" / "temp")


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be built in tests without a
    real .env file (with debug=True, or with both secrets passed in).

    Environment variable name mapping: field names are uppercased
    automatically. E.g. `access_token_secret` reads ACCESS_TOKEN_SECRET.
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
    # Tokens [S1]
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured". The validator
    # below either generates a dev key or raises, so callers never see "".
    access_token_secret: str = ""
    refresh_token_secret: str = ""
    access_token_expire_seconds: int = 15 * 60
    refresh_token_expire_seconds: int = 10 * 24 * 3600

    secure_cookies: bool = False

    # ------------------------------------------------------------------
    # Media uploads (Cloudinary)
    # ------------------------------------------------------------------

    cloudinary_cloud_name: str = ""
    cloudinary_api_key: str = ""
    cloudinary_api_secret: str = ""
    upload_timeout_seconds: int = 30
    upload_dir: str = _DEFAULT_UPLOAD_DIR
    max_upload_size_mb: int = 5

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_token_secrets(self) -> "Settings":
        """Enforce the signing-secret policy [S1][S2][S3].

        Debug mode: generate any missing secret with a warning.
        Production mode: refuse to start if either secret is missing.
        Both modes: reject short secrets and identical secrets.
        """
        for field_name in ("access_token_secret", "refresh_token_secret"):
            value = getattr(self, field_name)
            env_name = field_name.upper()
            if not value:
                if self.debug:
                    setattr(self, field_name, secrets.token_hex(32))
                    logger.warning(
                        "WARNING: Using auto-generated %s. Sessions will not persist across restarts.",
                        env_name,
                    )
                    continue
                raise ValueError(
                    f"{env_name} is required in production mode. "
                    "Set it in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
            if len(value) < 32:
                raise ValueError(f"{env_name} must be at least 32 characters.")
        if self.access_token_secret == self.refresh_token_secret:
            raise ValueError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must be different.")
        if self.access_token_expire_seconds <= 0 or self.refresh_token_expire_seconds <= 0:
            raise ValueError("Token expiry durations must be positive.")
        return self

    @property
    def cloudinary_configured(self) -> bool:
        return bool(self.cloudinary_cloud_name and self.cloudinary_api_key and self.cloudinary_api_secret)


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Call this only where the application is assembled (lifespan, CLI) and
    pass the result down. In tests, build Settings(...) directly or call
    get_settings.cache_clear() after changing the environment.
    """
    return Settings()
