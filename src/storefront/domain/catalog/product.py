"""Event-sourced Product aggregate.

A product is listed once under its SKU, revised any number of times and
eventually discontinued. Discontinuing is an event like any other, so the
listing history stays intact and orders that captured the product keep
their own copy of its name and price.
"""

from __future__ import annotations

from typing import Any

from eventsourcing.domain import event

from storefront.domain.catalog.exceptions import ProductDiscontinuedError
from storefront.foundation.domain.aggregates import BaseAggregate
from storefront.foundation.domain.ports import CatalogEntry
from storefront.foundation.domain.product_value_objects import (
    BRAND_LENGTH,
    DESCRIPTION_LENGTH,
    NAME_LENGTH,
    ProductCategory,
    Sku,
    validated_price,
    validated_stock,
    validated_text,
)

# Fields an administrator may revise after listing, with their validators.
_REVISABLE: dict[str, Any] = {
    "name": lambda value: validated_text("name", value, NAME_LENGTH),
    "description": lambda value: validated_text("description", value, DESCRIPTION_LENGTH),
    "brand": lambda value: validated_text("brand", value, BRAND_LENGTH),
    "category": lambda value: ProductCategory(value).value,
    "price": validated_price,
    "stock": validated_stock,
}


class Product(BaseAggregate):
    """Event-sourced Product aggregate.

    Attributes:
        sku: Catalog key (immutable, unique).
        name: Display name copied into order lines.
        description: Long description.
        brand: Manufacturer or label.
        category: ProductCategory value.
        price: Current unit price in the smallest currency unit.
        stock: Units on hand.
        is_discontinued: True once withdrawn from sale.
    """

    @classmethod
    def list_new(
        cls,
        *,
        sku: str,
        name: str,
        description: str,
        brand: str,
        category: ProductCategory | str,
        price: int,
        stock: int = 0,
    ) -> Product:
        """Validate and list a product.

        Raises:
            ValueError: If any field is out of range.
        """
        return cls(
            sku=Sku(sku).value,
            name=validated_text("name", name, NAME_LENGTH),
            description=validated_text("description", description, DESCRIPTION_LENGTH),
            brand=validated_text("brand", brand, BRAND_LENGTH),
            category=ProductCategory(category).value,
            price=validated_price(price),
            stock=validated_stock(stock),
        )

    @event("Listed")
    def __init__(
        self,
        *,
        sku: str,
        name: str,
        description: str,
        brand: str,
        category: str,
        price: int,
        stock: int,
    ) -> None:
        self.sku: str = sku
        self.name: str = name
        self.description: str = description
        self.brand: str = brand
        self.category: str = category
        self.price: int = price
        self.stock: int = stock
        self.is_discontinued: bool = False

    @property
    def in_stock(self) -> bool:
        return self.stock > 0

    @property
    def is_purchasable(self) -> bool:
        return self.in_stock and not self.is_discontinued

    def catalog_entry(self) -> CatalogEntry:
        return CatalogEntry(product_id=self.sku, name=self.name, unit_price=self.price)

    # -- Public command methods --

    def request_revise(self, **changes: Any) -> None:
        """Apply the given field changes; unchanged values are dropped.

        Raises:
            ProductDiscontinuedError: If the product was discontinued.
            ValueError: If a field is unknown or out of range.
        """
        if self.is_discontinued:
            raise ProductDiscontinuedError(self.sku)
        revised: dict[str, Any] = {}
        for field_name, value in changes.items():
            if field_name not in _REVISABLE:
                msg = f"Field {field_name!r} cannot be revised"
                raise ValueError(msg)
            value = _REVISABLE[field_name](value)
            if value != getattr(self, field_name):
                revised[field_name] = value
        if revised:
            self._apply_revised(changes=revised)

    def request_discontinue(self) -> None:
        """Withdraw the product from sale. Idempotent."""
        if self.is_discontinued:
            return
        self._apply_discontinued()

    # -- Private @event mutators --

    @event("Revised")
    def _apply_revised(self, changes: dict[str, Any]) -> None:
        for field_name, value in changes.items():
            setattr(self, field_name, value)

    @event("Discontinued")
    def _apply_discontinued(self) -> None:
        self.is_discontinued = True
