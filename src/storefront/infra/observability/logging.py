"""Structured logging configuration using structlog.

Modules log through the standard library (``logging.getLogger(__name__)``
with snake_case event names and ``extra={...}`` fields). This module
routes those records through a structlog processor chain so that every
line carries the request correlation ID, an ISO timestamp and redacted
credentials, rendered as JSON in production and as coloured console
output elsewhere.

Usage:
    from storefront.infra.observability import configure_logging
    configure_logging()

    logger = logging.getLogger(__name__)
    logger.info("order_placed", extra={"order_number": "2026-10-0001"})
"""

from __future__ import annotations

import logging
import sys
from functools import lru_cache
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from collections.abc import MutableMapping

Processor = structlog.types.Processor

# Keys whose values never reach a log sink
SENSITIVE_FIELDS: frozenset[str] = frozenset(
    {
        "password",
        "password_hash",
        "token",
        "credential",
        "authorization",
        "cookie",
        "secret",
        "jwt_secret",
        "bearer",
    }
)

REDACTED_VALUE: str = "***REDACTED***"

_VALID_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class LoggingSettings(BaseSettings):
    """Logging configuration from ``LOG_LEVEL`` and ``ENVIRONMENT``.

    Example:
        >>> LoggingSettings(log_level="debug", environment="production").use_json_logs
        True
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
        populate_by_name=True,
    )

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    environment: str = Field(default="development", alias="ENVIRONMENT")

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> str:
        level = str(v).upper()
        if level not in _VALID_LEVELS:
            msg = f"log_level must be one of {sorted(_VALID_LEVELS)}"
            raise ValueError(msg)
        return level

    @property
    def use_json_logs(self) -> bool:
        return self.environment == "production"

    @property
    def log_level_int(self) -> int:
        return getattr(logging, self.log_level, logging.INFO)


class SensitiveDataProcessor:
    """Structlog processor that masks credential-bearing keys.

    A key is sensitive when it is listed in ``SENSITIVE_FIELDS`` or
    contains ``password``, ``token`` or ``secret``.

    Example:
        >>> SensitiveDataProcessor()(None, "info", {"event": "login", "password": "x"})
        {'event': 'login', 'password': '***REDACTED***'}
    """

    def __call__(
        self,
        logger: Any,
        method_name: str,
        event_dict: MutableMapping[str, Any],
    ) -> MutableMapping[str, Any]:
        for key in list(event_dict.keys()):
            if self._is_sensitive(key):
                event_dict[key] = REDACTED_VALUE
        return event_dict

    @staticmethod
    def _is_sensitive(key: str) -> bool:
        key_lower = key.lower()
        if key_lower in SENSITIVE_FIELDS:
            return True
        return any(part in key_lower for part in ("password", "token", "secret"))


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached LoggingSettings instance.

    Clear cache with ``get_logging_settings.cache_clear()`` for testing.
    """
    return LoggingSettings()


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        SensitiveDataProcessor(),
    ]


def configure_logging(settings: LoggingSettings | None = None) -> None:
    """Configure structlog and route standard-library records through it.

    Safe to call more than once; the root handler installed by a previous
    call is replaced rather than duplicated.

    Args:
        settings: Optional LoggingSettings instance. Loaded from the
            environment when omitted.
    """
    if settings is None:
        settings = get_logging_settings()

    renderer: Processor = (
        structlog.processors.JSONRenderer()
        if settings.use_json_logs
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )

    structlog.configure(
        processors=[
            *_shared_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(settings.log_level_int),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_processors(),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    handler.set_name("storefront")

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == "storefront":
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(settings.log_level_int)

