"""Unique-key reservation registries.

A key registry enforces uniqueness of a natural key (an email address, an
order number) across aggregates of one event-sourced application, and maps
the key back to the aggregate UUID for lookups.

Three-operation lifecycle:
1. reserve(key)  -- Record the key; a second reservation raises ConflictError
2. confirm(key, aggregate_id) -- Attach the saved aggregate UUID
3. release(key) -- Drop an unconfirmed reservation (compensating action)

Additional operations:
4. lookup(key) -- Confirmed aggregate UUID for a key, or None
5. max_sequence(scope) -- Highest sequence number reserved within a scope,
   used to allocate per-month order numbers
6. entries(scope) -- Confirmed (key, aggregate UUID) pairs, optionally within
   one scope, ordered by key; backs catalog listings and per-owner indexes

Two backends share the interface: PostgresKeyRegistry uses the event
store's datastore connection, InMemoryKeyRegistry serves the POPO
(in-memory) persistence module used in development and tests.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from storefront.foundation.domain.exceptions import ConflictError

if TYPE_CHECKING:
    from uuid import UUID

    from eventsourcing.application import Application

logger = logging.getLogger(__name__)

_TABLE_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_]{0,62}$")

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS {table} (
    key VARCHAR(255) PRIMARY KEY,
    scope VARCHAR(63),
    sequence INTEGER,
    aggregate_id UUID,
    reserved_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
    confirmed BOOLEAN NOT NULL DEFAULT FALSE
);

CREATE INDEX IF NOT EXISTS idx_{table}_scope
    ON {table} (scope, sequence);
"""

_RESERVE_SQL = """
INSERT INTO {table} (key, scope, sequence, confirmed)
VALUES (%s, %s, %s, FALSE)
"""

_CONFIRM_SQL = """
UPDATE {table}
SET aggregate_id = %s, confirmed = TRUE
WHERE key = %s
"""

_RELEASE_SQL = """
DELETE FROM {table}
WHERE key = %s AND confirmed = FALSE
"""

_LOOKUP_SQL = """
SELECT aggregate_id FROM {table}
WHERE key = %s AND confirmed = TRUE
"""

_MAX_SEQUENCE_SQL = """
SELECT COALESCE(MAX(sequence), 0) AS max_sequence FROM {table}
WHERE scope = %s
"""

_ENTRIES_SQL = """
SELECT key, aggregate_id FROM {table}
WHERE confirmed = TRUE
ORDER BY key
"""

_SCOPED_ENTRIES_SQL = """
SELECT key, aggregate_id FROM {table}
WHERE confirmed = TRUE AND scope = %s
ORDER BY key
"""


@runtime_checkable
class KeyRegistry(Protocol):
    """Reservation table for one natural key of one aggregate type."""

    def reserve(self, key: str, *, scope: str | None = None, sequence: int | None = None) -> None:
        """Reserve ``key``. Raises ConflictError if already reserved or confirmed."""
        ...

    def confirm(self, key: str, aggregate_id: UUID) -> None:
        """Attach ``aggregate_id`` to a previously reserved key."""
        ...

    def release(self, key: str) -> None:
        """Drop an unconfirmed reservation. Idempotent."""
        ...

    def lookup(self, key: str) -> UUID | None:
        """Return the confirmed aggregate UUID for ``key``, or None."""
        ...

    def max_sequence(self, scope: str) -> int:
        """Return the highest sequence reserved within ``scope`` (0 if none)."""
        ...

    def entries(self, scope: str | None = None) -> list[tuple[str, UUID]]:
        """Return confirmed ``(key, aggregate_id)`` pairs ordered by key."""
        ...


@dataclass
class _Reservation:
    scope: str | None
    sequence: int | None
    aggregate_id: UUID | None = None
    confirmed: bool = False


class InMemoryKeyRegistry:
    """Process-local key registry for POPO persistence.

    A single lock serializes every operation, so reserve() is atomic in
    the same way as the PRIMARY KEY insert of the PostgreSQL backend.
    """

    def __init__(self, name: str = "registry") -> None:
        self._name = name
        self._entries: dict[str, _Reservation] = {}
        self._lock = threading.Lock()

    def reserve(self, key: str, *, scope: str | None = None, sequence: int | None = None) -> None:
        with self._lock:
            if key in self._entries:
                raise ConflictError(
                    f"Key '{key}' is already taken",
                    key=key,
                    registry=self._name,
                )
            self._entries[key] = _Reservation(scope=scope, sequence=sequence)

    def confirm(self, key: str, aggregate_id: UUID) -> None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return
            entry.aggregate_id = aggregate_id
            entry.confirmed = True

    def release(self, key: str) -> None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and not entry.confirmed:
                del self._entries[key]

    def lookup(self, key: str) -> UUID | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or not entry.confirmed:
                return None
            return entry.aggregate_id

    def max_sequence(self, scope: str) -> int:
        with self._lock:
            sequences = [
                entry.sequence
                for entry in self._entries.values()
                if entry.scope == scope and entry.sequence is not None
            ]
        return max(sequences, default=0)

    def entries(self, scope: str | None = None) -> list[tuple[str, UUID]]:
        with self._lock:
            pairs = [
                (key, entry.aggregate_id)
                for key, entry in self._entries.items()
                if entry.confirmed
                and entry.aggregate_id is not None
                and (scope is None or entry.scope == scope)
            ]
        return sorted(pairs)


class PostgresKeyRegistry:
    """Key registry stored in a table of the event store database.

    The registry shares the same PostgreSQL connection as the event store
    (accessed via the application's factory datastore). This avoids
    requiring a separate database connection pool.

    Attributes:
        _app: The owning Application (provides access to datastore).
        _table: Reservation table name.
    """

    def __init__(self, app: Application[UUID], table: str) -> None:
        if not _TABLE_NAME_PATTERN.match(table):
            msg = f"Invalid registry table name: {table!r}"
            raise ValueError(msg)
        self._app = app
        self._table = table

    def _sql(self, template: str) -> str:
        return template.format(table=self._table)

    def ensure_table_exists(self) -> None:
        """Create the reservation table if it does not exist.

        Called during application startup. Uses CREATE TABLE IF NOT EXISTS
        for idempotency.
        """
        datastore = self._app.factory.datastore  # type: ignore[attr-defined]
        with datastore.transaction(commit=True) as cursor:
            cursor.execute(self._sql(_CREATE_TABLE_SQL))
        logger.info("key_registry_table_ensured", extra={"table": self._table})

    def reserve(self, key: str, *, scope: str | None = None, sequence: int | None = None) -> None:
        """Reserve a key using the PRIMARY KEY constraint.

        Raises:
            ConflictError: If the key is already reserved or confirmed.
        """
        from eventsourcing.persistence import IntegrityError
        from psycopg.errors import UniqueViolation

        datastore = self._app.factory.datastore  # type: ignore[attr-defined]
        try:
            with datastore.transaction(commit=True) as cursor:
                cursor.execute(self._sql(_RESERVE_SQL), (key, scope, sequence))
        except (UniqueViolation, IntegrityError) as err:
            raise ConflictError(
                f"Key '{key}' is already taken",
                key=key,
                registry=self._table,
            ) from err

    def confirm(self, key: str, aggregate_id: UUID) -> None:
        datastore = self._app.factory.datastore  # type: ignore[attr-defined]
        with datastore.transaction(commit=True) as cursor:
            cursor.execute(self._sql(_CONFIRM_SQL), (str(aggregate_id), key))

    def release(self, key: str) -> None:
        datastore = self._app.factory.datastore  # type: ignore[attr-defined]
        with datastore.transaction(commit=True) as cursor:
            cursor.execute(self._sql(_RELEASE_SQL), (key,))

    def lookup(self, key: str) -> UUID | None:
        datastore = self._app.factory.datastore  # type: ignore[attr-defined]
        with datastore.transaction(commit=False) as cursor:
            cursor.execute(self._sql(_LOOKUP_SQL), (key,))
            row = cursor.fetchone()
            if row is None:
                return None
            aggregate_id: UUID = row["aggregate_id"]
            return aggregate_id

    def max_sequence(self, scope: str) -> int:
        datastore = self._app.factory.datastore  # type: ignore[attr-defined]
        with datastore.transaction(commit=False) as cursor:
            cursor.execute(self._sql(_MAX_SEQUENCE_SQL), (scope,))
            row = cursor.fetchone()
            return int(row["max_sequence"]) if row is not None else 0

    def entries(self, scope: str | None = None) -> list[tuple[str, UUID]]:
        datastore = self._app.factory.datastore  # type: ignore[attr-defined]
        with datastore.transaction(commit=False) as cursor:
            if scope is None:
                cursor.execute(self._sql(_ENTRIES_SQL))
            else:
                cursor.execute(self._sql(_SCOPED_ENTRIES_SQL), (scope,))
            return [(row["key"], row["aggregate_id"]) for row in cursor.fetchall()]


def create_registry(app: Application[UUID], table: str) -> KeyRegistry:
    """Build the registry matching the application's persistence module.

    PostgreSQL-backed applications get a table in the event store database
    (created on demand); POPO applications get a process-local registry.
    """
    if not hasattr(app.factory, "datastore"):
        logger.info("key_registry_in_memory", extra={"table": table})
        return InMemoryKeyRegistry(name=table)
    registry = PostgresKeyRegistry(app, table)
    registry.ensure_table_exists()
    return registry
