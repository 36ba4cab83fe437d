"""HTTP surface settings: OpenAPI metadata and the browser CORS policy.

Environment Variables:
    APP_TITLE, APP_DESCRIPTION, APP_VERSION: OpenAPI metadata
    APP_DOCS_URL, APP_REDOC_URL, APP_OPENAPI_URL: Empty string disables
    APP_DEBUG: Include exception details in 500 responses
    CORS_ALLOW_ORIGINS: Comma-separated origins allowed to call the API
    CORS_ALLOW_CREDENTIALS: Let browsers send the credential cookie
"""

from __future__ import annotations

from functools import lru_cache
from importlib.metadata import PackageNotFoundError, version
from typing import Annotated, Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from storefront.infra.fastapi.middleware.request_context import REQUEST_ID_HEADER

# Environment values are comma-separated, not JSON.
CsvList = Annotated[list[str], NoDecode]


def _split_csv(value: Any) -> Any:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return value


class CORSSettings(BaseSettings):
    """Cross-origin policy for browser clients of the storefront.

    The credential cookie is only sent cross-origin when
    ``allow_credentials`` is on, which in turn needs explicit origins.
    """

    model_config = SettingsConfigDict(env_prefix="CORS_", extra="ignore")

    allow_origins: CsvList = Field(default=["*"])
    allow_methods: CsvList = Field(default=["GET", "POST", "PUT", "PATCH", "DELETE"])
    allow_headers: CsvList = Field(default=["Authorization", "Content-Type", REQUEST_ID_HEADER])
    allow_credentials: bool = False

    @field_validator("allow_origins", "allow_methods", "allow_headers", mode="before")
    @classmethod
    def _parse_csv(cls, v: Any) -> Any:
        return _split_csv(v)

    @model_validator(mode="after")
    def _credentials_need_explicit_origins(self) -> CORSSettings:
        if self.allow_credentials and "*" in self.allow_origins:
            msg = "CORS_ALLOW_CREDENTIALS requires explicit CORS_ALLOW_ORIGINS, not '*'"
            raise ValueError(msg)
        return self

    def middleware_options(self) -> dict[str, Any]:
        """Keyword arguments for Starlette's ``CORSMiddleware``."""
        return {
            "allow_origins": self.allow_origins,
            "allow_methods": self.allow_methods,
            "allow_headers": self.allow_headers,
            "allow_credentials": self.allow_credentials,
            "expose_headers": [REQUEST_ID_HEADER],
        }


def _installed_version() -> str:
    try:
        return version("storefront")
    except PackageNotFoundError:
        return "0.0.0"


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="APP_", extra="ignore")

    title: str = "Storefront API"
    description: str = "Accounts, credentials and the order ledger"
    version: str = Field(default_factory=_installed_version)
    docs_url: str | None = "/docs"
    redoc_url: str | None = "/redoc"
    openapi_url: str | None = "/openapi.json"
    debug: bool = False
    cors: CORSSettings = Field(default_factory=CORSSettings)

    @field_validator("docs_url", "redoc_url", "openapi_url", mode="before")
    @classmethod
    def _empty_disables(cls, v: Any) -> Any:
        return v or None


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    """Get singleton AppSettings instance.

    Clear cache with ``get_app_settings.cache_clear()`` for testing.
    """
    return AppSettings()
