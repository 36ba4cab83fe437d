"""Authentication configuration settings.

Loaded from environment variables with AUTH_ prefix.
Follows Pydantic BaseSettings pattern for type-safe configuration.

Environment Variables:
    AUTH_JWT_SECRET: Symmetric signing secret (required, never logged)
    AUTH_JWT_ALGORITHM: HMAC signing algorithm
    AUTH_TOKEN_TTL_SECONDS: Credential lifetime in seconds
    AUTH_ISSUER: Value of the ``iss`` claim
    AUTH_MAX_FAILED_ATTEMPTS: Consecutive failed logins before lockout
    AUTH_LOCKOUT_MINUTES: Lockout window length in minutes
    AUTH_RATE_LIMIT_ATTEMPTS: Register/login requests allowed per client per window
    AUTH_RATE_LIMIT_WINDOW_SECONDS: Length of the register/login throttling window
    AUTH_BCRYPT_ROUNDS: bcrypt work factor for password hashes
    AUTH_COOKIE_NAME: Cookie consulted when no Authorization header is sent
    AUTH_COOKIE_SECURE: Send the credential cookie over HTTPS only
    AUTH_BOOTSTRAP_ADMIN_EMAIL: Administrator seeded at startup (optional)
    AUTH_BOOTSTRAP_ADMIN_PASSWORD: Password for the seeded administrator
"""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AuthSettings(BaseSettings):
    """Authentication configuration loaded from environment variables.

    A missing or empty ``AUTH_JWT_SECRET`` fails validation, so the
    service refuses to start without a signing secret.

    Example:
        >>> settings = AuthSettings(jwt_secret="s3cret")
        >>> settings.max_failed_attempts
        5
        >>> settings.lockout_duration
        datetime.timedelta(seconds=1800)
    """

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    jwt_secret: str = Field(
        ...,
        min_length=1,
        repr=False,  # Security: never log the signing secret
        description="Symmetric secret used to sign and verify credentials",
    )
    jwt_algorithm: str = Field(
        default="HS256",
        pattern=r"^HS(256|384|512)$",
        description="HMAC algorithm for credential signatures",
    )
    token_ttl_seconds: int = Field(
        default=7 * 24 * 3600,
        ge=60,
        description="Credential lifetime in seconds",
    )
    issuer: str = Field(
        default="storefront",
        description="Value of the iss claim in issued credentials",
    )
    max_failed_attempts: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Consecutive failed logins before the account is locked",
    )
    lockout_minutes: int = Field(
        default=30,
        ge=1,
        description="Lockout window length in minutes",
    )
    rate_limit_attempts: int = Field(
        default=5,
        ge=1,
        description="Register/login requests accepted per client in one window",
    )
    rate_limit_window_seconds: int = Field(
        default=15 * 60,
        ge=1,
        description="Length of the register/login throttling window in seconds",
    )
    bcrypt_rounds: int = Field(
        default=12,
        ge=4,
        le=31,
        description="bcrypt work factor",
    )
    cookie_name: str = Field(
        default="token",
        description="Cookie carrying the credential when no header is sent",
    )
    cookie_secure: bool = Field(
        default=False,
        description="Mark the credential cookie Secure (HTTPS only)",
    )
    bootstrap_admin_email: str | None = Field(
        default=None,
        description="Administrator account created at startup if it does not exist",
    )
    bootstrap_admin_password: str | None = Field(
        default=None,
        repr=False,
        description="Password for the bootstrap administrator",
    )

    @property
    def token_ttl(self) -> timedelta:
        return timedelta(seconds=self.token_ttl_seconds)

    @property
    def lockout_duration(self) -> timedelta:
        return timedelta(minutes=self.lockout_minutes)


@lru_cache(maxsize=1)
def get_auth_settings() -> AuthSettings:
    """Get singleton AuthSettings instance.

    Cached for performance - settings are loaded once per application lifecycle.
    Clear cache with ``get_auth_settings.cache_clear()`` for testing.
    """
    return AuthSettings()  # type: ignore[call-arg]
