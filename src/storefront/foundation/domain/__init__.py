"""Storefront Foundation Domain -- pure Python domain primitives.

This package provides the foundational domain building blocks shared by
the identity and ordering contexts: exceptions, aggregates, value objects,
the principal model and port interfaces.
"""

from storefront.foundation.domain.aggregates import BaseAggregate
from storefront.foundation.domain.exceptions import (
    AccountDisabledError,
    AccountLockedError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DomainError,
    ExpiredCredentialError,
    ForbiddenError,
    InvalidCredentialError,
    InvalidLoginError,
    InvalidStateTransitionError,
    MissingCredentialError,
    NotAuthenticatedError,
    NotFoundError,
    PrincipalNotFoundError,
    RateLimitExceededError,
    ValidationError,
)
from storefront.foundation.domain.order_value_objects import (
    LineItem,
    OrderNumber,
    OrderStatus,
    PaymentMethod,
    ShippingMethod,
    StatusHistoryEntry,
    Totals,
)
from storefront.foundation.domain.ports import (
    CatalogEntry,
    Clock,
    PasswordHasherPort,
    PrincipalStore,
    ProductCatalog,
    TokenCodecPort,
)
from storefront.foundation.domain.principal import Principal, Role
from storefront.foundation.domain.product_value_objects import ProductCategory, Sku
from storefront.foundation.domain.user_value_objects import Email, Password

__all__ = [
    "AccountDisabledError",
    "AccountLockedError",
    "AuthenticationError",
    "AuthorizationError",
    "BaseAggregate",
    "CatalogEntry",
    "Clock",
    "ConflictError",
    "DomainError",
    "Email",
    "ExpiredCredentialError",
    "ForbiddenError",
    "InvalidCredentialError",
    "InvalidLoginError",
    "InvalidStateTransitionError",
    "LineItem",
    "MissingCredentialError",
    "NotAuthenticatedError",
    "NotFoundError",
    "OrderNumber",
    "OrderStatus",
    "Password",
    "PasswordHasherPort",
    "PaymentMethod",
    "Principal",
    "PrincipalNotFoundError",
    "PrincipalStore",
    "ProductCatalog",
    "ProductCategory",
    "RateLimitExceededError",
    "Role",
    "ShippingMethod",
    "Sku",
    "StatusHistoryEntry",
    "TokenCodecPort",
    "Totals",
    "ValidationError",
]
