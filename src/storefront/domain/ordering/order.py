"""Order aggregate with status state machine and audit trail.

Event-sourced aggregate holding the line items, the totals block and the
status of one order. Every command that changes line items, shipping
method or discount recomputes the totals with ``compute_totals`` before
recording its event, and the event carries the recomputed totals.

State machine::

    PENDING ---> CONFIRMED ---> PROCESSING ---> SHIPPED ---> DELIVERED
       |             |              |              |             |
       +-------------+--------------+--> CANCELLED +--> RETURNED <+

Self-transitions are never allowed. CANCELLED and RETURNED are terminal.
Line items, shipping method and discount may only change while the order
is PENDING, CONFIRMED or PROCESSING. An order never drops to zero
line items; removing the last one is refused in favour of cancelling.

State is stored as plain values (status strings, line-item dicts) so that
events and snapshots round-trip through the event store unchanged; typed
views are exposed as properties.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Any

from eventsourcing.domain import event

from storefront.domain.ordering.exceptions import (
    IllegalTransitionError,
    LastLineItemError,
    LineItemNotFoundError,
    OrderLockedError,
)
from storefront.domain.ordering.pricing import DEFAULT_PRICING_POLICY, compute_totals
from storefront.foundation.domain.aggregates import BaseAggregate
from storefront.foundation.domain.order_value_objects import (
    ESTIMATED_DELIVERY_DAYS,
    MAX_LINE_QUANTITY,
    MAX_NOTE_LENGTH,
    PRE_SHIPMENT_STATUSES,
    LineItem,
    OrderNumber,
    OrderStatus,
    PaymentMethod,
    ShippingMethod,
    StatusHistoryEntry,
    Totals,
    can_transition,
)

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime
    from decimal import Decimal
    from uuid import UUID

    from storefront.domain.ordering.pricing import PricingPolicy

PLACEMENT_NOTE = "Order placed"
_CLOSED_STATUSES = frozenset(
    {OrderStatus.DELIVERED.value, OrderStatus.CANCELLED.value, OrderStatus.RETURNED.value}
)


def _validated_note(note: str) -> str:
    note = note.strip()
    if len(note) > MAX_NOTE_LENGTH:
        msg = f"Note too long: {len(note)} chars (max {MAX_NOTE_LENGTH})"
        raise ValueError(msg)
    return note


def merge_line_items(items: Iterable[LineItem]) -> list[LineItem]:
    """Collapse lines referencing the same product, capping quantity.

    The first line for a product keeps its name and unit price; later
    lines only add quantity.
    """
    merged: dict[str, LineItem] = {}
    for item in items:
        existing = merged.get(item.product_id)
        if existing is None:
            merged[item.product_id] = item
            continue
        merged[item.product_id] = LineItem(
            product_id=existing.product_id,
            name=existing.name,
            unit_price=existing.unit_price,
            quantity=min(existing.quantity + item.quantity, MAX_LINE_QUANTITY),
        )
    return list(merged.values())


class Order(BaseAggregate):
    """Event-sourced Order aggregate.

    Attributes:
        order_number: Human-readable identifier (immutable).
        owner_id: Principal that placed the order (immutable).
        items: Line items as dicts (product_id, name, unit_price, quantity).
        shipping_method: ShippingMethod value.
        payment_method: PaymentMethod value.
        tax_rate: Tax rate fixed at placement.
        amounts: Totals block as a dict (see ``totals``).
        status: OrderStatus value.
        history: Append-only status audit trail as dicts.
        customer_note: Free-text note from the customer.
        placed_at: Placement timestamp.
        delivered_at: Stamped once on the transition to DELIVERED.
    """

    # -- Creation ------------------------------------------------------------

    @classmethod
    def place(
        cls,
        *,
        order_number: str,
        owner_id: UUID,
        line_items: Iterable[LineItem],
        shipping_method: ShippingMethod | str,
        payment_method: PaymentMethod | str,
        tax_rate: Decimal,
        now: datetime,
        discount: int = 0,
        note: str = "",
        policy: PricingPolicy = DEFAULT_PRICING_POLICY,
    ) -> Order:
        """Build a new PENDING order with computed totals.

        Raises:
            ValueError: If the order has no line items or any field is invalid.
        """
        items = merge_line_items(line_items)
        if not items:
            msg = "An order needs at least one line item"
            raise ValueError(msg)
        shipping = ShippingMethod(shipping_method)
        payment = PaymentMethod(payment_method)
        totals = compute_totals(items, tax_rate, shipping, discount, policy)
        return cls(
            order_number=OrderNumber(order_number).value,
            owner_id=owner_id,
            items=[item.as_dict() for item in items],
            shipping_method=shipping.value,
            payment_method=payment.value,
            tax_rate=tax_rate,
            amounts=totals.as_dict(),
            customer_note=_validated_note(note),
            placed_at=now,
        )

    @event("Placed")
    def __init__(
        self,
        *,
        order_number: str,
        owner_id: UUID,
        items: list[dict[str, Any]],
        shipping_method: str,
        payment_method: str,
        tax_rate: Decimal,
        amounts: dict[str, int],
        customer_note: str,
        placed_at: datetime,
    ) -> None:
        self.order_number: str = order_number
        self.owner_id: UUID = owner_id
        self.items: list[dict[str, Any]] = [dict(item) for item in items]
        self.shipping_method: str = shipping_method
        self.payment_method: str = payment_method
        self.tax_rate: Decimal = tax_rate
        self.amounts: dict[str, int] = amounts
        self.customer_note: str = customer_note
        self.placed_at: datetime = placed_at
        self.delivered_at: datetime | None = None
        self.status: str = OrderStatus.PENDING.value
        self.history: list[dict[str, Any]] = [
            {
                "status": OrderStatus.PENDING.value,
                "at": placed_at,
                "note": PLACEMENT_NOTE,
                "actor_id": str(owner_id),
            }
        ]

    # -- Typed views -----------------------------------------------------------

    @property
    def line_items(self) -> tuple[LineItem, ...]:
        return tuple(LineItem(**item) for item in self.items)

    @property
    def totals(self) -> Totals:
        return Totals(**self.amounts)

    @property
    def status_history(self) -> tuple[StatusHistoryEntry, ...]:
        return tuple(
            StatusHistoryEntry(
                status=OrderStatus(entry["status"]),
                at=entry["at"],
                note=entry["note"],
                actor_id=entry["actor_id"],
            )
            for entry in self.history
        )

    @property
    def total_items(self) -> int:
        return sum(int(item["quantity"]) for item in self.items)

    @property
    def unique_products(self) -> int:
        return len(self.items)

    @property
    def is_modifiable(self) -> bool:
        return OrderStatus(self.status) in PRE_SHIPMENT_STATUSES

    @property
    def can_be_cancelled(self) -> bool:
        return can_transition(OrderStatus(self.status), OrderStatus.CANCELLED)

    @property
    def estimated_delivery_days(self) -> int:
        return ESTIMATED_DELIVERY_DAYS[ShippingMethod(self.shipping_method)]

    def is_overdue(self, now: datetime) -> bool:
        """True if the estimated delivery date has passed without delivery."""
        if self.status in _CLOSED_STATUSES:
            return False
        return now > self.placed_at + timedelta(days=self.estimated_delivery_days)

    # -- Public command methods (validate then delegate) -----------------------

    def request_change_status(
        self,
        new_status: OrderStatus | str,
        *,
        now: datetime,
        note: str = "",
        actor_id: str | None = None,
    ) -> None:
        """Move the order along one edge of the status graph.

        Raises:
            ValueError: If ``new_status`` is unknown or the note is too long.
            IllegalTransitionError: If the edge is not in the graph.
        """
        target = OrderStatus(new_status)
        current = OrderStatus(self.status)
        if not can_transition(current, target):
            raise IllegalTransitionError(self.order_number, current.value, target.value)
        self._apply_status_changed(
            status=target.value,
            at=now,
            note=_validated_note(note),
            actor_id=actor_id,
        )

    def request_add_line_item(
        self,
        item: LineItem,
        policy: PricingPolicy = DEFAULT_PRICING_POLICY,
    ) -> None:
        """Add a line, or raise the quantity of the existing line (capped).

        Raises:
            OrderLockedError: If the order has left the pre-shipment states.
        """
        self._ensure_modifiable()
        items = merge_line_items([*self.line_items, item])
        line = next(i for i in items if i.product_id == item.product_id)
        totals = self._recompute(items, self.shipping_method, self.amounts["discount"], policy)
        self._apply_line_item_added(line=line.as_dict(), amounts=totals.as_dict())

    def request_remove_line_item(
        self,
        product_id: str,
        policy: PricingPolicy = DEFAULT_PRICING_POLICY,
    ) -> None:
        """Remove the line referencing ``product_id``.

        Raises:
            OrderLockedError: If the order has left the pre-shipment states.
            LineItemNotFoundError: If no line references ``product_id``.
            LastLineItemError: If it is the only line left.
        """
        self._ensure_modifiable()
        items = [i for i in self.line_items if i.product_id != product_id]
        if len(items) == len(self.items):
            raise LineItemNotFoundError(self.order_number, product_id)
        if not items:
            raise LastLineItemError(self.order_number, product_id)
        totals = self._recompute(items, self.shipping_method, self.amounts["discount"], policy)
        self._apply_line_item_removed(product_id=product_id, amounts=totals.as_dict())

    def request_change_shipping_method(
        self,
        shipping_method: ShippingMethod | str,
        policy: PricingPolicy = DEFAULT_PRICING_POLICY,
    ) -> None:
        self._ensure_modifiable()
        method = ShippingMethod(shipping_method)
        if method.value == self.shipping_method:
            return
        totals = self._recompute(self.line_items, method, self.amounts["discount"], policy)
        self._apply_shipping_method_changed(
            shipping_method=method.value,
            amounts=totals.as_dict(),
        )

    def request_apply_discount(
        self,
        discount: int,
        policy: PricingPolicy = DEFAULT_PRICING_POLICY,
    ) -> None:
        """Replace the order's discount and recompute totals.

        Raises:
            OrderLockedError: If the order has left the pre-shipment states.
            ValueError: If ``discount`` is negative.
        """
        self._ensure_modifiable()
        totals = self._recompute(self.line_items, self.shipping_method, discount, policy)
        self._apply_discount_applied(amounts=totals.as_dict())

    def _ensure_modifiable(self) -> None:
        if not self.is_modifiable:
            raise OrderLockedError(self.order_number, self.status)

    def _recompute(
        self,
        items: Iterable[LineItem],
        shipping_method: ShippingMethod | str,
        discount: int,
        policy: PricingPolicy,
    ) -> Totals:
        return compute_totals(items, self.tax_rate, shipping_method, discount, policy)

    # -- Private @event mutators -----------------------------------------------

    @event("StatusChanged")
    def _apply_status_changed(
        self,
        status: str,
        at: datetime,
        note: str,
        actor_id: str | None,
    ) -> None:
        self.status = status
        self.history = [
            *self.history,
            {"status": status, "at": at, "note": note, "actor_id": actor_id},
        ]
        if status == OrderStatus.DELIVERED.value and self.delivered_at is None:
            self.delivered_at = at

    @event("LineItemAdded")
    def _apply_line_item_added(self, line: dict[str, Any], amounts: dict[str, int]) -> None:
        if any(item["product_id"] == line["product_id"] for item in self.items):
            self.items = [
                dict(line) if item["product_id"] == line["product_id"] else item
                for item in self.items
            ]
        else:
            self.items = [*self.items, dict(line)]
        self.amounts = amounts

    @event("LineItemRemoved")
    def _apply_line_item_removed(self, product_id: str, amounts: dict[str, int]) -> None:
        self.items = [item for item in self.items if item["product_id"] != product_id]
        self.amounts = amounts

    @event("ShippingMethodChanged")
    def _apply_shipping_method_changed(
        self,
        shipping_method: str,
        amounts: dict[str, int],
    ) -> None:
        self.shipping_method = shipping_method
        self.amounts = amounts

    @event("DiscountApplied")
    def _apply_discount_applied(self, amounts: dict[str, int]) -> None:
        self.amounts = amounts
