"""Unit tests for order command handlers."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from storefront.domain.catalog import (
    Product,
    ProductDiscontinuedError,
    ProductNotFoundError,
    ProductOutOfStockError,
)
from storefront.domain.ordering import (
    AddLineItemCommand,
    ApplyDiscountCommand,
    ChangeOrderStatusCommand,
    ChangeOrderStatusHandler,
    ChangeShippingMethodCommand,
    IllegalTransitionError,
    LastLineItemError,
    LineItemNotFoundError,
    OrderContentsHandler,
    OrderLineData,
    OrderLockedError,
    OrderNotFoundError,
    PlaceOrderCommand,
    PlaceOrderHandler,
    PricingPolicy,
    RemoveLineItemCommand,
)
from storefront.domain.ordering.handlers import visible_order, visible_orders
from storefront.foundation.domain.exceptions import ForbiddenError, ValidationError
from storefront.foundation.domain.order_value_objects import OrderStatus
from storefront.foundation.domain.principal import Principal, Role

LAMP = OrderLineData(product_id="lamp", quantity=2)
PEN = OrderLineData(product_id="pen", quantity=3)


def _principal(role: Role = Role.CUSTOMER) -> Principal:
    return Principal(user_id=uuid4(), email=f"{role}@example.com", role=role)


def _stock(repository, sku: str, price: int, stock: int = 10) -> Product:
    product = Product.list_new(
        sku=sku,
        name=sku.title(),
        description=f"Catalog entry for {sku}",
        brand="Acme",
        category="equipment",
        price=price,
        stock=stock,
    )
    repository.add(product)
    return product


@pytest.fixture()
def catalog(product_repository):
    _stock(product_repository, "lamp", 50_000)
    _stock(product_repository, "pen", 1_000)
    return product_repository


@pytest.fixture()
def customer() -> Principal:
    return _principal()


@pytest.fixture()
def staff() -> Principal:
    return _principal(Role.MODERATOR)


@pytest.fixture()
def admin() -> Principal:
    return _principal(Role.ADMIN)


@pytest.fixture()
def place_handler(order_repository, catalog, clock) -> PlaceOrderHandler:
    return PlaceOrderHandler(order_repository, catalog, clock, Decimal("0.19"), PricingPolicy())


@pytest.fixture()
def status_handler(order_repository, clock) -> ChangeOrderStatusHandler:
    return ChangeOrderStatusHandler(order_repository, clock)


@pytest.fixture()
def contents_handler(order_repository, catalog) -> OrderContentsHandler:
    return OrderContentsHandler(order_repository, catalog, PricingPolicy())


@pytest.fixture()
def order_number(place_handler, customer) -> str:
    order = place_handler.handle(PlaceOrderCommand(owner_id=customer.user_id, items=(LAMP,)))
    return order.order_number


@pytest.mark.unit
class TestPlaceOrder:
    def test_places_pending_order_for_owner(self, place_handler, customer, clock) -> None:
        order = place_handler.handle(
            PlaceOrderCommand(owner_id=customer.user_id, items=(LAMP,), note="ring twice")
        )
        assert order.order_number == "2026-03-0001"
        assert order.owner_id == customer.user_id
        assert order.placed_at == clock.now()
        assert order.customer_note == "ring twice"
        assert order.totals.total == 144_000

    def test_copies_name_and_price_from_catalog(self, place_handler, customer) -> None:
        order = place_handler.handle(PlaceOrderCommand(owner_id=customer.user_id, items=(PEN,)))
        (line,) = order.line_items
        assert (line.product_id, line.name, line.unit_price, line.quantity) == (
            "pen",
            "Pen",
            1_000,
            3,
        )
        assert order.totals.discount == 0

    def test_rejects_empty_items(self, place_handler, customer) -> None:
        with pytest.raises(ValidationError) as exc_info:
            place_handler.handle(PlaceOrderCommand(owner_id=customer.user_id, items=()))
        assert exc_info.value.field == "items"

    def test_rejects_bad_quantity(self, place_handler, customer) -> None:
        bad = OrderLineData(product_id="lamp", quantity=0)
        with pytest.raises(ValidationError, match="between 1 and 100"):
            place_handler.handle(PlaceOrderCommand(owner_id=customer.user_id, items=(bad,)))

    def test_rejects_unknown_product(self, place_handler, customer) -> None:
        ghost = OrderLineData(product_id="ghost", quantity=1)
        with pytest.raises(ProductNotFoundError):
            place_handler.handle(PlaceOrderCommand(owner_id=customer.user_id, items=(ghost,)))

    def test_rejects_unavailable_products(self, place_handler, catalog, customer) -> None:
        _stock(catalog, "kite", 9_000, stock=0)
        catalog.update("pen", lambda product: product.request_discontinue())
        with pytest.raises(ProductOutOfStockError):
            place_handler.handle(
                PlaceOrderCommand(
                    owner_id=customer.user_id,
                    items=(OrderLineData(product_id="kite", quantity=1),),
                )
            )
        with pytest.raises(ProductDiscontinuedError):
            place_handler.handle(PlaceOrderCommand(owner_id=customer.user_id, items=(PEN,)))

    def test_rejects_unknown_methods(self, place_handler, customer) -> None:
        with pytest.raises(ValidationError) as exc_info:
            place_handler.handle(
                PlaceOrderCommand(owner_id=customer.user_id, items=(LAMP,), shipping_method="drone")
            )
        assert exc_info.value.field == "shipping_method"
        with pytest.raises(ValidationError) as exc_info:
            place_handler.handle(
                PlaceOrderCommand(owner_id=customer.user_id, items=(LAMP,), payment_method="iou")
            )
        assert exc_info.value.field == "payment_method"

    def test_rejected_order_does_not_consume_number(self, place_handler, customer) -> None:
        with pytest.raises(ValidationError):
            place_handler.handle(
                PlaceOrderCommand(owner_id=customer.user_id, items=(LAMP,), note="x" * 501)
            )
        order = place_handler.handle(PlaceOrderCommand(owner_id=customer.user_id, items=(LAMP,)))
        assert order.order_number == "2026-03-0001"

    def test_later_price_change_keeps_placed_price(
        self, place_handler, catalog, order_repository, customer
    ) -> None:
        order = place_handler.handle(PlaceOrderCommand(owner_id=customer.user_id, items=(LAMP,)))
        catalog.update("lamp", lambda product: product.request_revise(price=80_000))

        stored = order_repository.get_by_number(order.order_number)
        assert stored.line_items[0].unit_price == 50_000
        assert stored.totals.total == 144_000


@pytest.mark.unit
class TestChangeStatus:
    def test_appends_history_with_actor(self, status_handler, order_number, staff, clock) -> None:
        clock.advance(timedelta(hours=1))
        order = status_handler.handle(
            ChangeOrderStatusCommand(order_number, "confirmed", actor=staff, note="paid")
        )
        assert order.status == "confirmed"
        entry = order.status_history[-1]
        assert entry.at == clock.now()
        assert entry.actor_id == str(staff.user_id)
        assert entry.note == "paid"

    def test_illegal_transition(self, status_handler, order_number, staff, order_repository) -> None:
        with pytest.raises(IllegalTransitionError):
            status_handler.handle(ChangeOrderStatusCommand(order_number, "delivered", actor=staff))
        assert order_repository.get_by_number(order_number).status == "pending"

    def test_unknown_status(self, status_handler, order_number, staff) -> None:
        with pytest.raises(ValidationError) as exc_info:
            status_handler.handle(ChangeOrderStatusCommand(order_number, "lost", actor=staff))
        assert exc_info.value.field == "status"

    def test_unknown_order(self, status_handler, staff) -> None:
        with pytest.raises(OrderNotFoundError):
            status_handler.handle(ChangeOrderStatusCommand("2026-03-0404", "confirmed", actor=staff))


@pytest.mark.unit
class TestOrderContents:
    def test_owner_adds_and_removes(self, contents_handler, order_number, customer) -> None:
        order = contents_handler.add_line_item(AddLineItemCommand(order_number, PEN, customer))
        assert order.unique_products == 2
        assert order.totals.subtotal == 103_000
        order = contents_handler.remove_line_item(RemoveLineItemCommand(order_number, "pen", customer))
        assert order.unique_products == 1
        assert order.totals.subtotal == 100_000

    def test_remove_missing_line(self, contents_handler, order_number, customer) -> None:
        with pytest.raises(LineItemNotFoundError):
            contents_handler.remove_line_item(RemoveLineItemCommand(order_number, "ghost", customer))

    def test_remove_last_line_is_refused(
        self, contents_handler, order_number, customer, order_repository
    ) -> None:
        with pytest.raises(LastLineItemError):
            contents_handler.remove_line_item(RemoveLineItemCommand(order_number, "lamp", customer))
        assert order_repository.get_by_number(order_number).unique_products == 1

    def test_stranger_cannot_see_order(self, contents_handler, order_number) -> None:
        stranger = _principal()
        with pytest.raises(OrderNotFoundError):
            contents_handler.add_line_item(AddLineItemCommand(order_number, PEN, stranger))

    def test_admin_may_change_any_order(self, contents_handler, order_number, admin) -> None:
        order = contents_handler.change_shipping_method(
            ChangeShippingMethodCommand(order_number, "overnight", admin)
        )
        assert order.totals.shipping == 75_000
        order = contents_handler.apply_discount(ApplyDiscountCommand(order_number, 10_000, admin))
        assert order.totals.discount == 10_000

    @pytest.mark.parametrize("role", [Role.CUSTOMER, Role.MODERATOR])
    def test_overrides_need_admin(
        self, contents_handler, order_number, customer, role, order_repository
    ) -> None:
        actor = customer if role is Role.CUSTOMER else _principal(role)
        with pytest.raises(ForbiddenError):
            contents_handler.apply_discount(ApplyDiscountCommand(order_number, 50_000, actor))
        with pytest.raises(ForbiddenError):
            contents_handler.change_shipping_method(
                ChangeShippingMethodCommand(order_number, "pickup", actor)
            )
        stored = order_repository.get_by_number(order_number)
        assert stored.totals.discount == 0
        assert stored.shipping_method == "standard"

    def test_locked_after_shipment(
        self, contents_handler, status_handler, order_number, customer, staff
    ) -> None:
        for status in ("confirmed", "processing", "shipped"):
            status_handler.handle(ChangeOrderStatusCommand(order_number, status, actor=staff))
        with pytest.raises(OrderLockedError):
            contents_handler.add_line_item(AddLineItemCommand(order_number, LAMP, customer))

    def test_invalid_inputs(self, contents_handler, order_number, admin) -> None:
        with pytest.raises(ValidationError):
            contents_handler.apply_discount(ApplyDiscountCommand(order_number, -1, admin))
        with pytest.raises(ValidationError):
            contents_handler.change_shipping_method(
                ChangeShippingMethodCommand(order_number, "teleport", admin)
            )


@pytest.mark.unit
class TestVisibleOrder:
    def test_owner_and_staff_see_order(self, order_repository, order_number, customer) -> None:
        assert visible_order(order_repository, order_number, customer).order_number == order_number
        admin = _principal(Role.ADMIN)
        assert visible_order(order_repository, order_number, admin).order_number == order_number

    def test_other_customer_gets_not_found(self, order_repository, order_number) -> None:
        with pytest.raises(OrderNotFoundError):
            visible_order(order_repository, order_number, _principal())


@pytest.mark.unit
class TestVisibleOrders:
    def test_customers_list_only_their_own(
        self, place_handler, order_repository, customer, staff
    ) -> None:
        other = _principal()
        mine = [
            place_handler.handle(PlaceOrderCommand(owner_id=customer.user_id, items=(LAMP,)))
            for _ in range(2)
        ]
        theirs = place_handler.handle(PlaceOrderCommand(owner_id=other.user_id, items=(PEN,)))

        listed = visible_orders(order_repository, customer)
        assert [o.order_number for o in listed] == [o.order_number for o in reversed(mine)]
        assert [o.order_number for o in visible_orders(order_repository, other)] == [
            theirs.order_number
        ]
        assert len(visible_orders(order_repository, staff)) == 3

    def test_status_filter(
        self, status_handler, order_repository, order_number, place_handler, customer, staff
    ) -> None:
        second = place_handler.handle(PlaceOrderCommand(owner_id=customer.user_id, items=(PEN,)))
        status_handler.handle(ChangeOrderStatusCommand(order_number, "confirmed", actor=staff))

        pending = visible_orders(order_repository, customer, OrderStatus.PENDING)
        confirmed = visible_orders(order_repository, staff, OrderStatus.CONFIRMED)
        assert [o.order_number for o in pending] == [second.order_number]
        assert [o.order_number for o in confirmed] == [order_number]
