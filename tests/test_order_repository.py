"""Unit tests for OrderRepository: numbering, persistence and conflicts."""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from uuid import uuid4

import pytest

from storefront.domain.ordering import IllegalTransitionError, Order, OrderNotFoundError
from storefront.foundation.domain.exceptions import ConflictError
from storefront.foundation.domain.order_value_objects import LineItem, OrderStatus

MARCH = datetime(2026, 3, 15, 12, 0, tzinfo=UTC)
APRIL = datetime(2026, 4, 1, 0, 0, tzinfo=UTC)


def _builder(now: datetime):  # type: ignore[no-untyped-def]
    owner = uuid4()

    def build(order_number: str) -> Order:
        return Order.place(
            order_number=order_number,
            owner_id=owner,
            line_items=[LineItem("lamp", "Desk lamp", 1_000, 1)],
            shipping_method="standard",
            payment_method="pse",
            tax_rate=Decimal("0.19"),
            now=now,
        )

    return build


@pytest.mark.unit
class TestOrderNumbering:
    def test_sequence_increments_within_month(self, order_repository) -> None:
        first = order_repository.add(MARCH, _builder(MARCH))
        second = order_repository.add(MARCH, _builder(MARCH))
        assert first.order_number == "2026-03-0001"
        assert second.order_number == "2026-03-0002"

    def test_sequence_restarts_each_month(self, order_repository) -> None:
        order_repository.add(MARCH, _builder(MARCH))
        order_repository.add(MARCH, _builder(MARCH))
        april = order_repository.add(APRIL, _builder(APRIL))
        assert april.order_number == "2026-04-0001"
        assert order_repository.max_sequence_for_prefix("2026-03") == 2

    def test_failed_build_releases_number(self, order_repository) -> None:
        def failing(order_number: str) -> Order:
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            order_repository.add(MARCH, failing)
        assert order_repository.add(MARCH, _builder(MARCH)).order_number == "2026-03-0001"


@pytest.mark.unit
class TestOrderLookup:
    def test_get_by_number_round_trip(self, order_repository) -> None:
        placed = order_repository.add(MARCH, _builder(MARCH))
        loaded = order_repository.get_by_number(placed.order_number)
        assert loaded.id == placed.id
        assert loaded.totals == placed.totals
        assert loaded.status_history == placed.status_history
        assert loaded.tax_rate == Decimal("0.19")

    def test_unknown_number(self, order_repository) -> None:
        assert order_repository.find_by_number("2026-03-0099") is None
        with pytest.raises(OrderNotFoundError):
            order_repository.get_by_number("2026-03-0099")

    def test_find_by_unknown_id(self, order_repository) -> None:
        assert order_repository.find_by_id(uuid4()) is None


@pytest.mark.unit
class TestConcurrentWrites:
    def test_stale_save_raises_conflict(self, order_repository) -> None:
        number = order_repository.add(MARCH, _builder(MARCH)).order_number
        first = order_repository.get_by_number(number)
        second = order_repository.get_by_number(number)
        first.request_change_status(OrderStatus.CONFIRMED, now=MARCH)
        order_repository.save(first)
        second.request_change_status(OrderStatus.CANCELLED, now=MARCH)
        with pytest.raises(ConflictError):
            order_repository.save(second)

    def test_update_revalidates_against_winner(self, order_repository) -> None:
        number = order_repository.add(MARCH, _builder(MARCH)).order_number
        calls = []

        def confirm(order: Order) -> None:
            calls.append(order.status)
            if len(calls) == 1:
                # A competing writer confirms the order first.
                order_repository.update(
                    number,
                    lambda o: o.request_change_status(OrderStatus.CONFIRMED, now=MARCH),
                )
            order.request_change_status(OrderStatus.CONFIRMED, now=MARCH)

        with pytest.raises(IllegalTransitionError):
            order_repository.update(number, confirm)

        assert calls == ["pending", "confirmed"]
        order = order_repository.get_by_number(number)
        assert order.status == OrderStatus.CONFIRMED
        assert len(order.status_history) == 2


@pytest.mark.unit
class TestOrderListing:
    def test_lists_by_owner_newest_first(self, order_repository) -> None:
        build = _builder(MARCH)
        first = order_repository.add(MARCH, build)
        other = order_repository.add(MARCH, _builder(MARCH))
        second = order_repository.add(APRIL, build)

        owned = order_repository.list_for_owner(first.owner_id)
        assert [o.order_number for o in owned] == [second.order_number, first.order_number]
        assert [o.order_number for o in order_repository.list_for_owner(other.owner_id)] == [
            other.order_number
        ]
        assert [o.order_number for o in order_repository.list_all()] == [
            "2026-04-0001",
            "2026-03-0002",
            "2026-03-0001",
        ]

    def test_unknown_owner_has_no_orders(self, order_repository) -> None:
        order_repository.add(MARCH, _builder(MARCH))
        assert order_repository.list_for_owner(uuid4()) == []

    def test_failed_build_leaves_no_index_entry(self, order_repository) -> None:
        def failing(order_number: str) -> Order:
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            order_repository.add(MARCH, failing)
        assert order_repository.list_all() == []
