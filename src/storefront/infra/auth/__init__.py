"""Storefront Infra Auth -- credentials, password hashing, auth middleware.

Provides the Auth Gate (credential to principal resolution and role
checks), JWT signing, bcrypt password hashing, the bearer middleware,
register/login throttling and FastAPI dependency injection for
authentication/authorization.
"""

from storefront.infra.auth.dependencies import (
    CurrentPrincipal,
    get_current_principal,
    require_roles,
)
from storefront.infra.auth.gate import AuthGate, IssuedCredential, authorize, extract_token
from storefront.infra.auth.middleware import BearerAuthMiddleware
from storefront.infra.auth.password_hasher import BcryptPasswordHasher
from storefront.infra.auth.rate_limit import AuthRateLimiter, enforce_auth_rate_limit
from storefront.infra.auth.settings import AuthSettings, get_auth_settings
from storefront.infra.auth.token_codec import JWTTokenCodec

__all__ = [
    "AuthGate",
    "AuthRateLimiter",
    "AuthSettings",
    "BcryptPasswordHasher",
    "BearerAuthMiddleware",
    "CurrentPrincipal",
    "IssuedCredential",
    "JWTTokenCodec",
    "authorize",
    "enforce_auth_rate_limit",
    "extract_token",
    "get_auth_settings",
    "get_current_principal",
    "require_roles",
]
