"""Domain port interfaces for hexagonal architecture.

Ports define abstract interfaces that the domain layer uses to interact
with external services. Implementations (adapters) live in infrastructure.
"""

from storefront.foundation.domain.ports.clock import Clock
from storefront.foundation.domain.ports.password_hasher import PasswordHasherPort
from storefront.foundation.domain.ports.principal_store import PrincipalStore
from storefront.foundation.domain.ports.product_catalog import CatalogEntry, ProductCatalog
from storefront.foundation.domain.ports.token_codec import TokenCodecPort

__all__ = [
    "CatalogEntry",
    "Clock",
    "PasswordHasherPort",
    "PrincipalStore",
    "ProductCatalog",
    "TokenCodecPort",
]
