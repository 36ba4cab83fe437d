"""Catalog commands, their handlers, and the public product search."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from storefront.domain.catalog.product import Product
from storefront.foundation.domain.exceptions import ConflictError, ValidationError

if TYPE_CHECKING:
    from collections.abc import Callable

    from storefront.domain.catalog.repository import ProductRepository

logger = logging.getLogger(__name__)


def _validated(field_name: str, build: Callable[[], Any]) -> Any:
    try:
        return build()
    except ValueError as exc:
        raise ValidationError(field_name, str(exc)) from exc


@dataclass(frozen=True)
class ListProductCommand:
    """Command to add a product to the catalog."""

    sku: str
    name: str
    description: str
    brand: str
    category: str
    price: int
    stock: int = 0


class ListProductHandler:
    def __init__(self, repository: ProductRepository) -> None:
        self._repository = repository

    def handle(self, cmd: ListProductCommand) -> Product:
        """List a new product.

        Raises:
            ValidationError: If any field is out of range.
            ConflictError: If the SKU is already taken.
        """
        product = _validated(
            "product",
            lambda: Product.list_new(
                sku=cmd.sku,
                name=cmd.name,
                description=cmd.description,
                brand=cmd.brand,
                category=cmd.category,
                price=cmd.price,
                stock=cmd.stock,
            ),
        )
        if self._repository.find_by_sku(product.sku) is not None:
            raise ConflictError(f"SKU '{product.sku}' is already listed", sku=product.sku)
        self._repository.add(product)
        return product


@dataclass(frozen=True)
class ReviseProductCommand:
    """Partial update of a listed product; only ``changes`` keys are touched."""

    sku: str
    changes: dict[str, Any] = field(default_factory=dict)


class ReviseProductHandler:
    """Revises catalog fields. Orders already placed keep their copied price."""

    def __init__(self, repository: ProductRepository) -> None:
        self._repository = repository

    def handle(self, cmd: ReviseProductCommand) -> Product:
        """Raises ValidationError, ProductNotFoundError or ProductDiscontinuedError."""
        if not cmd.changes:
            raise ValidationError("product", "Nothing to update")

        def revise(product: Product) -> None:
            _validated("product", lambda: product.request_revise(**cmd.changes))

        product = self._repository.update(cmd.sku, revise)
        logger.info(
            "product_revised",
            extra={"sku": product.sku, "fields": sorted(cmd.changes), "price": product.price},
        )
        return product


class DiscontinueProductHandler:
    def __init__(self, repository: ProductRepository) -> None:
        self._repository = repository

    def handle(self, sku: str) -> Product:
        product = self._repository.update(sku, lambda p: p.request_discontinue())
        logger.info("product_discontinued", extra={"sku": product.sku})
        return product


class ProductSort(StrEnum):
    NAME = "name"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"


_SORT_KEYS: dict[ProductSort, tuple[Callable[[Product], Any], bool]] = {
    ProductSort.NAME: (lambda p: p.name.lower(), False),
    ProductSort.PRICE_ASC: (lambda p: p.price, False),
    ProductSort.PRICE_DESC: (lambda p: p.price, True),
}


@dataclass(frozen=True)
class ProductQuery:
    """Filters for the public catalog; discontinued products never match."""

    category: str | None = None
    brand: str | None = None
    min_price: int | None = None
    max_price: int | None = None
    search: str | None = None
    in_stock: bool | None = None
    sort: ProductSort = ProductSort.NAME

    def matches(self, product: Product) -> bool:
        if product.is_discontinued:
            return False
        if self.category is not None and product.category != self.category:
            return False
        if self.brand is not None and product.brand.lower() != self.brand.lower():
            return False
        if self.min_price is not None and product.price < self.min_price:
            return False
        if self.max_price is not None and product.price > self.max_price:
            return False
        if self.in_stock is not None and product.in_stock != self.in_stock:
            return False
        if self.search:
            needle = self.search.lower()
            haystack = f"{product.name} {product.description} {product.brand}".lower()
            return needle in haystack
        return True


def search_products(repository: ProductRepository, query: ProductQuery) -> list[Product]:
    """Catalog products matching ``query``, sorted as it asks."""
    key, reverse = _SORT_KEYS[query.sort]
    matching = [product for product in repository.list_all() if query.matches(product)]
    return sorted(matching, key=key, reverse=reverse)
