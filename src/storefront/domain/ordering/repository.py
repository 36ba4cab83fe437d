"""Order repository: order store and order-number allocation.

Order numbers are allocated per month through the order-number key
registry:

1. Read the highest sequence reserved for the ``YYYY-MM`` prefix
2. Reserve ``prefix-(max+1)``; the registry's uniqueness check makes this
   the atomic step, so two concurrent placements can never share a number
3. On ConflictError (another placement won the race) read again and retry
4. Save the Order aggregate and confirm the reservation, releasing it if
   the save fails

A second registry indexes orders by owner (key ``<owner>:<number>``,
scope ``<owner>``) so a customer's orders can be listed without scanning
the whole ledger.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from eventsourcing.application import AggregateNotFoundError
from eventsourcing.persistence import IntegrityError

from storefront.domain.ordering.exceptions import OrderNotFoundError
from storefront.foundation.domain.exceptions import ConflictError
from storefront.foundation.domain.order_value_objects import OrderNumber

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime
    from uuid import UUID

    from storefront.domain.ordering.order import Order
    from storefront.domain.ordering.order_app import OrderApplication
    from storefront.infra.persistence.registry import KeyRegistry

logger = logging.getLogger(__name__)

DEFAULT_MAX_SAVE_ATTEMPTS = 3
_MAX_ALLOCATION_ATTEMPTS = 20


class OrderRepository:
    """Loads, creates and updates Order aggregates.

    Attributes:
        _app: OrderApplication for aggregate persistence.
        _registry: Order-number key registry (uniqueness, sequencing, lookup).
        _owner_index: Owner-to-order key registry (per-customer listings).
        _max_save_attempts: Reload-and-revalidate attempts per update.
    """

    def __init__(
        self,
        app: OrderApplication,
        registry: KeyRegistry,
        owner_index: KeyRegistry,
        max_save_attempts: int = DEFAULT_MAX_SAVE_ATTEMPTS,
    ) -> None:
        self._app = app
        self._registry = registry
        self._owner_index = owner_index
        self._max_save_attempts = max_save_attempts

    # -- Reads --

    def find_by_id(self, order_id: UUID) -> Order | None:
        try:
            order: Order = self._app.repository.get(order_id)
        except AggregateNotFoundError:
            return None
        return order

    def find_by_number(self, order_number: str) -> Order | None:
        order_id = self._registry.lookup(order_number)
        if order_id is None:
            return None
        return self.find_by_id(order_id)

    def get_by_number(self, order_number: str) -> Order:
        """Load an order by its number.

        Raises:
            OrderNotFoundError: If no order has that number.
        """
        order = self.find_by_number(order_number)
        if order is None:
            raise OrderNotFoundError(order_number)
        return order

    def max_sequence_for_prefix(self, prefix: str) -> int:
        return self._registry.max_sequence(prefix)

    def list_all(self) -> list[Order]:
        """Every order in the ledger, newest number first."""
        return self._load_entries(self._registry.entries())

    def list_for_owner(self, owner_id: UUID) -> list[Order]:
        """Orders placed by ``owner_id``, newest number first."""
        return self._load_entries(self._owner_index.entries(scope=str(owner_id)))

    def _load_entries(self, entries: list[tuple[str, UUID]]) -> list[Order]:
        orders = (self.find_by_id(aggregate_id) for _, aggregate_id in entries)
        loaded = [order for order in orders if order is not None]
        return sorted(loaded, key=lambda order: order.order_number, reverse=True)

    # -- Writes --

    def allocate_number(self, now: datetime) -> OrderNumber:
        """Reserve the next order number for the month of ``now``.

        Raises:
            ConflictError: If allocation keeps losing races.
        """
        prefix = OrderNumber.prefix_for(now.year, now.month)
        for attempt in range(1, _MAX_ALLOCATION_ATTEMPTS + 1):
            sequence = self.max_sequence_for_prefix(prefix) + 1
            number = OrderNumber.build(now.year, now.month, sequence)
            try:
                self._registry.reserve(number.value, scope=prefix, sequence=sequence)
            except ConflictError:
                logger.warning(
                    "order_number_race_condition",
                    extra={"order_number": number.value, "attempt": attempt},
                )
                continue
            return number
        raise ConflictError(
            "Could not allocate an order number",
            prefix=prefix,
            attempts=_MAX_ALLOCATION_ATTEMPTS,
        )

    def add(self, now: datetime, build: Callable[[str], Order]) -> Order:
        """Allocate a number, build the order with it, and persist it.

        ``build`` receives the allocated order number. The number and the
        owner-index reservations are released if building or saving fails.
        """
        number = self.allocate_number(now)
        owner_key: str | None = None
        try:
            order = build(number.value)
            owner_key = f"{order.owner_id}:{number.value}"
            self._owner_index.reserve(owner_key, scope=str(order.owner_id))
            self._app.save(order)
            self._registry.confirm(number.value, order.id)
            self._owner_index.confirm(owner_key, order.id)
        except Exception:
            self._registry.release(number.value)
            if owner_key is not None:
                self._owner_index.release(owner_key)
            logger.exception(
                "order_placement_failed_releasing_reservation",
                extra={"order_number": number.value},
            )
            raise
        return order

    def save(self, order: Order) -> None:
        """Persist pending events of a loaded order.

        Raises:
            ConflictError: If another writer saved the order first.
        """
        try:
            self._app.save(order)
        except IntegrityError as err:
            raise ConflictError(
                "Order was modified concurrently",
                order_number=order.order_number,
            ) from err

    def update(self, order_number: str, change: Callable[[Order], None]) -> Order:
        """Apply ``change`` to the latest state of an order and save it.

        A version conflict means another writer got there first; ``change``
        is then re-applied (and so re-validated) against the newer state.
        Business-rule errors raised by ``change`` propagate immediately.

        Raises:
            OrderNotFoundError: If the order does not exist.
            ConflictError: If every attempt lost a concurrent race.
        """
        for attempt in range(1, self._max_save_attempts + 1):
            order = self.get_by_number(order_number)
            change(order)
            try:
                self.save(order)
            except ConflictError:
                logger.warning(
                    "order_update_conflict_retrying",
                    extra={"order_number": order_number, "attempt": attempt},
                )
                continue
            return order
        raise ConflictError(
            "Order update did not settle after retries",
            order_number=order_number,
            attempts=self._max_save_attempts,
        )
