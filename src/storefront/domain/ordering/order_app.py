"""Event store for orders."""

from __future__ import annotations

from typing import ClassVar
from uuid import UUID

from eventsourcing.application import Application

from storefront.domain.ordering.order import Order


class OrderApplication(Application[UUID]):
    """Order persistence; PostgreSQL tables are prefixed ``orders_``.

    Every status change and line-item edit is an event, so the stream is
    the order's full audit trail. Snapshots every 50 events.
    """

    name = "orders"
    snapshotting_intervals: ClassVar[dict[type, int]] = {Order: 50}
