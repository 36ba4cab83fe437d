"""Storefront Catalog -- products that orders are priced from.

Provides the Product aggregate, its event store and repository (which
also serves as the order ledger's ProductCatalog), the catalog command
handlers and the public product search.
"""

from storefront.domain.catalog.exceptions import (
    ProductDiscontinuedError,
    ProductNotFoundError,
    ProductOutOfStockError,
)
from storefront.domain.catalog.handlers import (
    DiscontinueProductHandler,
    ListProductCommand,
    ListProductHandler,
    ProductQuery,
    ProductSort,
    ReviseProductCommand,
    ReviseProductHandler,
    search_products,
)
from storefront.domain.catalog.product import Product
from storefront.domain.catalog.product_app import ProductApplication
from storefront.domain.catalog.repository import ProductRepository

__all__ = [
    "DiscontinueProductHandler",
    "ListProductCommand",
    "ListProductHandler",
    "Product",
    "ProductApplication",
    "ProductDiscontinuedError",
    "ProductNotFoundError",
    "ProductOutOfStockError",
    "ProductQuery",
    "ProductRepository",
    "ProductSort",
    "ReviseProductCommand",
    "ReviseProductHandler",
    "search_products",
]
