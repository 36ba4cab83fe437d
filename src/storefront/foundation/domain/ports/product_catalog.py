"""Port interface for pricing order lines from the product catalog.

The order ledger copies a product's name and price into a line item at
the moment of purchase; this is the only view of the catalog it needs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    """Name and unit price of a product as currently listed."""

    product_id: str
    name: str
    unit_price: int


@runtime_checkable
class ProductCatalog(Protocol):
    def current_entry(self, product_id: str) -> CatalogEntry:
        """Return the purchasable listing for ``product_id``.

        Raises:
            NotFoundError: If no product is listed under ``product_id``.
            ConflictError: If the product is discontinued or out of stock.
        """
        ...
