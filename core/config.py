"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for unidir happen here. No module should call
os.getenv() or os.environ.get() directly. api/main.py reads get_settings() at
import for middleware wiring, the lifespan and the CLI inject the same object
into every component that needs it, and route handlers read the already-built
components from app.state. The login rate limit string is resolved lazily
through api/limiter.py.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. jwt_secret -> JWT_SECRET). Type coercion and validation are built in.

  @model_validator(mode="after"): Cross-field validation of the two signing
      secrets after all fields are resolved from the environment.

Security notes:
  [S1] JWT_SECRET and JWT_REFRESH_SECRET are both mandatory. A missing secret
       is a startup failure (ConfigurationError), never a per-request 401.
       There is no dev-mode fallback: tokens signed with a random key would be
       silently invalidated on every restart.

  [S2] Secrets shorter than 32 chars are rejected. HS256 key strength is the
       key's entropy; a short key is brute-forceable offline from any token.

  [S3] The two secrets must differ. Token class separation relies on both the
       type claim and disjoint keys; identical keys reduce it to the claim alone.

  [S4] DEFAULT_USER_PASSWORD is the credential given to every account that is
       auto-provisioned by Google login. It is an explicit, auditable setting;
       set OAUTH_DEFAULT_PASSWORD_ENABLED=false to provision those accounts
       with an unusable random password instead.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
or directory/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.errors import ConfigurationError
from core.models import Campus, Role

logger = logging.getLogger("unidir.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'unidir.db'}"

_MIN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Every field except the two signing secrets has a default, so tests only
    need to export JWT_SECRET and JWT_REFRESH_SECRET before building one.
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
    app_name: str = "University Directory API"
    app_version: str = "1.0.0"

    # ------------------------------------------------------------------
    # Tokens [S1] [S2] [S3]
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured"; the validator below
    # refuses to let Settings() complete with either secret unset.
    jwt_secret: str = ""
    jwt_refresh_secret: str = ""
    jwt_access_expires_seconds: int = 15 * 60
    jwt_refresh_expires_seconds: int = 7 * 24 * 60 * 60

    # ------------------------------------------------------------------
    # Passwords
    # ------------------------------------------------------------------

    bcrypt_rounds: int = 10

    # ------------------------------------------------------------------
    # Federated account provisioning [S4]
    # ------------------------------------------------------------------

    default_user_password: str = "TempPass@123"
    default_user_role: Role = Role.OFFICE_HEAD
    default_user_campus: Campus = Campus.TALISAY
    oauth_default_password_enabled: bool = True

    # ------------------------------------------------------------------
    # Google OAuth (optional -- empty string means provider is disabled)
    # ------------------------------------------------------------------

    google_client_id: str = ""
    google_client_secret: str = ""
    google_callback_url: str = ""
    frontend_url: str = "http://localhost:4200"
    # Authlib keeps the OAuth state in the Starlette session. Empty falls back
    # to jwt_secret (see session_key).
    session_secret: str = ""

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    cors_origins: list[str] = ["http://localhost:4200", "http://localhost:3000"]
    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secrets(self) -> "Settings":
        """Enforce the signing-secret policy [S1] [S2] [S3]."""
        for env_name, value in (("JWT_SECRET", self.jwt_secret), ("JWT_REFRESH_SECRET", self.jwt_refresh_secret)):
            if not value:
                raise ValueError(f"{env_name} is not defined. Set it in your environment or .env file.")
            if len(value) < _MIN_SECRET_LENGTH:
                raise ValueError(f"{env_name} must be at least {_MIN_SECRET_LENGTH} characters.")
        if self.jwt_secret == self.jwt_refresh_secret:
            raise ValueError("JWT_SECRET and JWT_REFRESH_SECRET must be different values.")
        if not 4 <= self.bcrypt_rounds <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        if self.oauth_default_password_enabled and not 8 <= len(self.default_user_password) <= 35:
            raise ValueError("DEFAULT_USER_PASSWORD must be 8-35 characters.")
        return self

    @property
    def google_enabled(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret and self.google_callback_url)

    @property
    def session_key(self) -> str:
        return self.session_secret or self.jwt_secret


def load_settings(**overrides) -> Settings:
    """Build a Settings instance, converting validation failures to ConfigurationError.

    Keyword overrides take precedence over the environment; tests use them to
    build configurations without touching os.environ.
    """
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    Only startup code (lifespan, CLI) should call this.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    settings = load_settings()
    if settings.oauth_default_password_enabled and settings.google_enabled:
        logger.warning(
            "Google-provisioned accounts will receive DEFAULT_USER_PASSWORD as their local password "
            "(set OAUTH_DEFAULT_PASSWORD_ENABLED=false to disable)"
        )
    return settings
