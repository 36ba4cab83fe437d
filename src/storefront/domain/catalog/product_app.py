"""Event store for the product catalog."""

from __future__ import annotations

from typing import ClassVar
from uuid import UUID

from eventsourcing.application import Application

from storefront.domain.catalog.product import Product


class ProductApplication(Application[UUID]):
    """Catalog persistence; PostgreSQL tables are prefixed ``products_``."""

    name = "products"
    snapshotting_intervals: ClassVar[dict[type, int]] = {Product: 50}
