"""Product repository: catalog store keyed by SKU.

Combines the ProductApplication with a SKU key registry (uniqueness,
lookup and listing). Implements the ProductCatalog port the order ledger
prices its lines with.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from eventsourcing.application import AggregateNotFoundError
from eventsourcing.persistence import IntegrityError

from storefront.domain.catalog.exceptions import (
    ProductDiscontinuedError,
    ProductNotFoundError,
    ProductOutOfStockError,
)
from storefront.foundation.domain.exceptions import ConflictError

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from storefront.domain.catalog.product import Product
    from storefront.domain.catalog.product_app import ProductApplication
    from storefront.foundation.domain.ports import CatalogEntry
    from storefront.infra.persistence.registry import KeyRegistry

logger = logging.getLogger(__name__)

DEFAULT_MAX_SAVE_ATTEMPTS = 3


class ProductRepository:
    """Loads, lists, creates and updates Product aggregates."""

    def __init__(
        self,
        app: ProductApplication,
        registry: KeyRegistry,
        max_save_attempts: int = DEFAULT_MAX_SAVE_ATTEMPTS,
    ) -> None:
        self._app = app
        self._registry = registry
        self._max_save_attempts = max_save_attempts

    # -- Reads --

    def find_by_id(self, product_id: UUID) -> Product | None:
        try:
            product: Product = self._app.repository.get(product_id)
        except AggregateNotFoundError:
            return None
        return product

    def find_by_sku(self, sku: str) -> Product | None:
        aggregate_id = self._registry.lookup(sku.strip().lower())
        if aggregate_id is None:
            return None
        return self.find_by_id(aggregate_id)

    def get_by_sku(self, sku: str) -> Product:
        """Load a product by SKU, discontinued or not.

        Raises:
            ProductNotFoundError: If nothing was ever listed under ``sku``.
        """
        product = self.find_by_sku(sku)
        if product is None:
            raise ProductNotFoundError(sku)
        return product

    def list_all(self) -> list[Product]:
        """Every listed product, in SKU order."""
        products = (self.find_by_id(aggregate_id) for _, aggregate_id in self._registry.entries())
        return [product for product in products if product is not None]

    def current_entry(self, product_id: str) -> CatalogEntry:
        """Name and price to copy into an order line.

        Raises:
            ProductNotFoundError: If no product has that SKU.
            ProductDiscontinuedError: If the product was withdrawn from sale.
            ProductOutOfStockError: If no units are on hand.
        """
        product = self.get_by_sku(product_id)
        if product.is_discontinued:
            raise ProductDiscontinuedError(product.sku)
        if not product.in_stock:
            raise ProductOutOfStockError(product.sku)
        return product.catalog_entry()

    # -- Writes --

    def add(self, product: Product) -> None:
        """Persist a newly listed product, enforcing SKU uniqueness.

        Raises:
            ConflictError: If the SKU is already listed.
        """
        self._registry.reserve(product.sku)
        try:
            self._app.save(product)
            self._registry.confirm(product.sku, product.id)
        except Exception:
            self._registry.release(product.sku)
            logger.exception("product_listing_failed_releasing_sku", extra={"sku": product.sku})
            raise
        logger.info("product_listed", extra={"sku": product.sku, "price": product.price})

    def update(self, sku: str, change: Callable[[Product], None]) -> Product:
        """Apply ``change`` to the latest state of a product and save it.

        Raises:
            ProductNotFoundError: If the product does not exist.
            ConflictError: If every attempt lost a concurrent race.
        """
        for attempt in range(1, self._max_save_attempts + 1):
            product = self.get_by_sku(sku)
            change(product)
            try:
                self._app.save(product)
            except IntegrityError:
                logger.warning(
                    "product_update_conflict_retrying",
                    extra={"sku": sku, "attempt": attempt},
                )
                continue
            return product
        raise ConflictError(
            "Product update did not settle after retries",
            sku=sku,
            attempts=self._max_save_attempts,
        )
