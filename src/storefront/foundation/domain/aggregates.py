"""Base aggregate class for event-sourced domain models.

BaseAggregate extends the eventsourcing library's Aggregate class. Every
state change is recorded as an event, so aggregate history is append-only
and every save is checked against the aggregate version (optimistic
concurrency).

Example:
    >>> from storefront.foundation.domain.aggregates import BaseAggregate
    >>> from eventsourcing.domain import event
    >>>
    >>> class Basket(BaseAggregate):
    ...     @event('Created')
    ...     def __init__(self, *, owner: str):
    ...         self.owner = owner
"""

from __future__ import annotations

from eventsourcing.domain import Aggregate


class BaseAggregate(Aggregate):
    """Base class for all domain aggregates.

    Inherited from Aggregate (eventsourcing library):
        id: Aggregate identifier (UUID, auto-generated)
        version: Current version for optimistic concurrency
        created_on: Timestamp of first event
        modified_on: Timestamp of last event

    Usage Pattern:
        Subclasses must:
        1. Decorate __init__ with @event('<Created>')
        2. Use @event decorator for all state-changing methods
        3. Keep state changes within decorated methods only

    Command Pattern (with validation):
        Public command methods validate business rules and raise domain
        errors; private ``@event`` mutators only apply state. A rejected
        command therefore records no event and leaves state untouched.

        >>> class Shelf(BaseAggregate):
        ...     def request_add(self, sku: str) -> None:
        ...         '''Public command with validation.'''
        ...         if sku in self.skus:
        ...             raise ValueError("SKU already shelved")
        ...         self._apply_added(sku=sku)
        ...
        ...     @event('SkuAdded')
        ...     def _apply_added(self, sku: str) -> None:
        ...         '''Private mutator that triggers event.'''
        ...         self.skus.append(sku)

    Timestamps that carry business meaning (history entries, lockout
    windows) are passed into commands by the caller from an injected
    Clock rather than read from the system clock.
    """
