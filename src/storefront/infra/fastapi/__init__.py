"""Storefront Infra FastAPI -- app factory, error handlers, middleware."""

from storefront.infra.fastapi.app_factory import create_app
from storefront.infra.fastapi.error_handlers import ProblemDetail, register_exception_handlers
from storefront.infra.fastapi.settings import AppSettings, CORSSettings, get_app_settings

__all__ = [
    "AppSettings",
    "CORSSettings",
    "ProblemDetail",
    "create_app",
    "get_app_settings",
    "register_exception_handlers",
]
