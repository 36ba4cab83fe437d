"""Storefront Infrastructure Persistence -- natural-key registries."""

from storefront.infra.persistence.registry import (
    InMemoryKeyRegistry,
    KeyRegistry,
    PostgresKeyRegistry,
    create_registry,
)

__all__ = [
    "InMemoryKeyRegistry",
    "KeyRegistry",
    "PostgresKeyRegistry",
    "create_registry",
]
