"""Value objects for the Order aggregate.

Immutable, validated domain primitives. All validation occurs at
construction time. All monetary values are integers in the currency's
smallest unit; there is no fractional currency in this domain.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from datetime import datetime

MAX_LINE_QUANTITY = 100
MAX_NOTE_LENGTH = 500


class OrderStatus(StrEnum):
    """Order lifecycle states.

    Uses StrEnum for native JSON serialization.
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


# Edges of the order status graph. Self-transitions are never listed.
ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.RETURNED}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.RETURNED}),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.RETURNED: frozenset(),
}

# Line items, shipping method and discount may only change in these states.
PRE_SHIPMENT_STATUSES: frozenset[OrderStatus] = frozenset(
    {OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.PROCESSING}
)

TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """Return True if ``current -> target`` is an edge of the status graph."""
    return target in ALLOWED_TRANSITIONS[current]


class ShippingMethod(StrEnum):
    """Shipping methods, each with its own fixed cost (pickup always free)."""

    STANDARD = "standard"
    EXPRESS = "express"
    OVERNIGHT = "overnight"
    PICKUP = "pickup"


ESTIMATED_DELIVERY_DAYS: dict[ShippingMethod, int] = {
    ShippingMethod.STANDARD: 5,
    ShippingMethod.EXPRESS: 3,
    ShippingMethod.OVERNIGHT: 1,
    ShippingMethod.PICKUP: 0,
}


class PaymentMethod(StrEnum):
    """Accepted payment methods."""

    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    PSE = "pse"
    CASH_ON_DELIVERY = "cash_on_delivery"
    BANK_TRANSFER = "bank_transfer"


@dataclass(frozen=True, slots=True)
class LineItem:
    """One product line of an order.

    Name and unit price are copied from the catalog at time of purchase so
    that later catalog changes never rewrite order history.

    Attributes:
        product_id: External product reference.
        name: Product name at time of purchase.
        unit_price: Unit price at time of purchase.
        quantity: Units ordered (1-100).

    Raises:
        ValueError: If quantity or unit price is out of range.
    """

    product_id: str
    name: str
    unit_price: int
    quantity: int

    def __post_init__(self) -> None:
        if not self.product_id:
            msg = "Line item product reference cannot be empty"
            raise ValueError(msg)
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            msg = f"Quantity must be an integer, got {self.quantity!r}"
            raise ValueError(msg)
        if not (1 <= self.quantity <= MAX_LINE_QUANTITY):
            msg = f"Quantity must be between 1 and {MAX_LINE_QUANTITY}, got {self.quantity}"
            raise ValueError(msg)
        if self.unit_price < 0:
            msg = f"Unit price cannot be negative, got {self.unit_price}"
            raise ValueError(msg)

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class Totals:
    """Order totals block. Every field is non-negative."""

    subtotal: int = 0
    tax: int = 0
    shipping: int = 0
    discount: int = 0
    total: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class StatusHistoryEntry:
    """One entry of an order's append-only status audit trail.

    Attributes:
        status: Status entered.
        at: When the status was entered.
        note: Free-text note (max 500 chars).
        actor_id: Principal that caused the change, None for system actions.
    """

    status: OrderStatus
    at: datetime
    note: str = ""
    actor_id: str | None = None


@dataclass(frozen=True)
class OrderNumber:
    """Human-readable, chronologically sortable order identifier.

    Format: ``<year>-<MM>-<NNNN>``; the sequence restarts every month.

    Example:
        >>> OrderNumber.build(2026, 3, 7)
        OrderNumber(value='2026-03-0007')
        >>> OrderNumber("2026-03-0007").sequence
        7
    """

    value: str

    _PATTERN: ClassVar[re.Pattern[str]] = re.compile(r"^(\d{4})-(\d{2})-(\d{4,})$")

    def __post_init__(self) -> None:
        match = self._PATTERN.match(self.value)
        if match is None or not (1 <= int(match.group(2)) <= 12):
            msg = f"Invalid order number format: {self.value!r}. Expected YYYY-MM-NNNN."
            raise ValueError(msg)

    @staticmethod
    def prefix_for(year: int, month: int) -> str:
        """Year-month prefix shared by every order number of that month."""
        return f"{year:04d}-{month:02d}"

    @classmethod
    def build(cls, year: int, month: int, sequence: int) -> OrderNumber:
        if sequence < 1:
            msg = f"Order sequence must start at 1, got {sequence}"
            raise ValueError(msg)
        return cls(f"{cls.prefix_for(year, month)}-{sequence:04d}")

    @property
    def prefix(self) -> str:
        return self.value.rsplit("-", 1)[0]

    @property
    def sequence(self) -> int:
        return int(self.value.rsplit("-", 1)[1])

    def __str__(self) -> str:
        return self.value
