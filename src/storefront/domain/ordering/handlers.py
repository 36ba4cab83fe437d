"""Commands and handlers for placing and changing orders.

Every handler that changes an existing order goes through
``OrderRepository.update``: load, validate, apply, save, and on a
concurrent-write conflict reload and validate again. Two concurrent
status changes from the same state therefore never both succeed; the
loser is re-validated against the winner's state.

Lines arrive as product references and quantities only. Name and unit
price are copied from the catalog at the moment the line is added, and
discounts and shipping-method overrides are administrator decisions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from storefront.domain.ordering.exceptions import OrderNotFoundError
from storefront.domain.ordering.order import Order
from storefront.foundation.domain.exceptions import ForbiddenError, ValidationError
from storefront.foundation.domain.order_value_objects import (
    LineItem,
    OrderStatus,
    PaymentMethod,
    ShippingMethod,
)
from storefront.foundation.domain.principal import Role

if TYPE_CHECKING:
    from collections.abc import Callable
    from decimal import Decimal
    from uuid import UUID

    from storefront.domain.ordering.pricing import PricingPolicy
    from storefront.domain.ordering.repository import OrderRepository
    from storefront.foundation.domain.ports import Clock, ProductCatalog
    from storefront.foundation.domain.principal import Principal

logger = logging.getLogger(__name__)

# Roles that may read or modify any order, not only their own.
STAFF_ROLES = frozenset({Role.ADMIN, Role.MODERATOR})


def _line_item(catalog: ProductCatalog, data: OrderLineData) -> LineItem:
    entry = catalog.current_entry(data.product_id)
    try:
        return LineItem(
            product_id=entry.product_id,
            name=entry.name,
            unit_price=entry.unit_price,
            quantity=data.quantity,
        )
    except ValueError as exc:
        raise ValidationError("items", str(exc), product_id=data.product_id) from exc


def _validated(field_name: str, parse: Callable[[], object]) -> None:
    try:
        parse()
    except ValueError as exc:
        raise ValidationError(field_name, str(exc)) from exc


def _require_admin(actor: Principal) -> None:
    if actor.role is not Role.ADMIN:
        raise ForbiddenError(actor.role.value, [Role.ADMIN.value])


def visible_order(repository: OrderRepository, order_number: str, principal: Principal) -> Order:
    """Load an order the principal may see: its own, or any for staff.

    Raises:
        OrderNotFoundError: If the order does not exist or belongs to
            someone else.
    """
    order = repository.get_by_number(order_number)
    if principal.role not in STAFF_ROLES and order.owner_id != principal.user_id:
        raise OrderNotFoundError(order_number)
    return order


def visible_orders(
    repository: OrderRepository,
    principal: Principal,
    status: OrderStatus | None = None,
) -> list[Order]:
    """Orders the principal may list, newest first: its own, or all for staff."""
    if principal.role in STAFF_ROLES:
        orders = repository.list_all()
    else:
        orders = repository.list_for_owner(principal.user_id)
    if status is None:
        return orders
    return [order for order in orders if order.status == status.value]


@dataclass(frozen=True)
class OrderLineData:
    """A product reference and a quantity; the catalog supplies the rest."""

    product_id: str
    quantity: int


@dataclass(frozen=True)
class PlaceOrderCommand:
    """Command to commit a cart as a new order."""

    owner_id: UUID
    items: tuple[OrderLineData, ...]
    shipping_method: str = ShippingMethod.STANDARD.value
    payment_method: str = PaymentMethod.CREDIT_CARD.value
    note: str = ""


class PlaceOrderHandler:
    """Places an order: prices its lines from the catalog, numbers it and saves it."""

    def __init__(
        self,
        repository: OrderRepository,
        catalog: ProductCatalog,
        clock: Clock,
        tax_rate: Decimal,
        policy: PricingPolicy,
    ) -> None:
        self._repository = repository
        self._catalog = catalog
        self._clock = clock
        self._tax_rate = tax_rate
        self._policy = policy

    def handle(self, cmd: PlaceOrderCommand) -> Order:
        """Place an order.

        Raises:
            ValidationError: If items, methods or note are invalid.
            ProductNotFoundError: If a line references an unknown product.
            ConflictError: If a product is discontinued or out of stock.
        """
        items = [_line_item(self._catalog, data) for data in cmd.items]
        if not items:
            raise ValidationError("items", "An order needs at least one line item")
        _validated("shipping_method", lambda: ShippingMethod(cmd.shipping_method))
        _validated("payment_method", lambda: PaymentMethod(cmd.payment_method))

        now = self._clock.now()

        def build(order_number: str) -> Order:
            try:
                return Order.place(
                    order_number=order_number,
                    owner_id=cmd.owner_id,
                    line_items=items,
                    shipping_method=cmd.shipping_method,
                    payment_method=cmd.payment_method,
                    tax_rate=self._tax_rate,
                    now=now,
                    note=cmd.note,
                    policy=self._policy,
                )
            except ValueError as exc:
                raise ValidationError("order", str(exc)) from exc

        order = self._repository.add(now, build)
        logger.info(
            "order_placed",
            extra={
                "order_number": order.order_number,
                "owner_id": str(cmd.owner_id),
                "total": order.totals.total,
                "unique_products": order.unique_products,
            },
        )
        return order


@dataclass(frozen=True)
class ChangeOrderStatusCommand:
    """Command to move an order along the status graph."""

    order_number: str
    new_status: str
    actor: Principal
    note: str = ""


class ChangeOrderStatusHandler:
    """Changes status and appends one audit-trail entry, atomically."""

    def __init__(self, repository: OrderRepository, clock: Clock) -> None:
        self._repository = repository
        self._clock = clock

    def handle(self, cmd: ChangeOrderStatusCommand) -> Order:
        """Change the status of an order.

        Raises:
            ValidationError: If the status is unknown or the note too long.
            IllegalTransitionError: If the transition is not allowed.
            OrderNotFoundError: If the order does not exist.
        """
        _validated("status", lambda: OrderStatus(cmd.new_status))

        def change(order: Order) -> None:
            try:
                order.request_change_status(
                    cmd.new_status,
                    now=self._clock.now(),
                    note=cmd.note,
                    actor_id=str(cmd.actor.user_id),
                )
            except ValueError as exc:
                raise ValidationError("note", str(exc)) from exc

        order = self._repository.update(cmd.order_number, change)
        logger.info(
            "order_status_changed",
            extra={
                "order_number": cmd.order_number,
                "status": order.status,
                "actor_id": str(cmd.actor.user_id),
            },
        )
        return order


@dataclass(frozen=True)
class AddLineItemCommand:
    order_number: str
    item: OrderLineData
    actor: Principal


@dataclass(frozen=True)
class RemoveLineItemCommand:
    order_number: str
    product_id: str
    actor: Principal


@dataclass(frozen=True)
class ChangeShippingMethodCommand:
    order_number: str
    shipping_method: str
    actor: Principal


@dataclass(frozen=True)
class ApplyDiscountCommand:
    order_number: str
    discount: int
    actor: Principal


class OrderContentsHandler:
    """Handles line-item, shipping-method and discount changes.

    Owners may change the lines of their own orders and staff those of any
    order; shipping-method overrides and discounts are administrator-only.
    Every change recomputes totals before it is saved.
    """

    def __init__(
        self,
        repository: OrderRepository,
        catalog: ProductCatalog,
        policy: PricingPolicy,
    ) -> None:
        self._repository = repository
        self._catalog = catalog
        self._policy = policy

    def add_line_item(self, cmd: AddLineItemCommand) -> Order:
        """Raises ValidationError, OrderLockedError, OrderNotFoundError or a catalog error."""
        item = _line_item(self._catalog, cmd.item)
        return self._apply(
            cmd.order_number,
            cmd.actor,
            lambda order: order.request_add_line_item(item, self._policy),
            "order_line_item_added",
        )

    def remove_line_item(self, cmd: RemoveLineItemCommand) -> Order:
        """Raises LineItemNotFoundError, LastLineItemError, OrderLockedError
        or OrderNotFoundError.
        """
        return self._apply(
            cmd.order_number,
            cmd.actor,
            lambda order: order.request_remove_line_item(cmd.product_id, self._policy),
            "order_line_item_removed",
        )

    def change_shipping_method(self, cmd: ChangeShippingMethodCommand) -> Order:
        _require_admin(cmd.actor)
        _validated("shipping_method", lambda: ShippingMethod(cmd.shipping_method))
        return self._apply(
            cmd.order_number,
            cmd.actor,
            lambda order: order.request_change_shipping_method(cmd.shipping_method, self._policy),
            "order_shipping_method_changed",
        )

    def apply_discount(self, cmd: ApplyDiscountCommand) -> Order:
        _require_admin(cmd.actor)
        if cmd.discount < 0:
            raise ValidationError("discount", "Discount cannot be negative")
        return self._apply(
            cmd.order_number,
            cmd.actor,
            lambda order: order.request_apply_discount(cmd.discount, self._policy),
            "order_discount_applied",
        )

    def _apply(
        self,
        order_number: str,
        actor: Principal,
        change: Callable[[Order], None],
        log_event: str,
    ) -> Order:
        def guarded(order: Order) -> None:
            if actor.role not in STAFF_ROLES and order.owner_id != actor.user_id:
                raise OrderNotFoundError(order_number)
            change(order)

        order = self._repository.update(order_number, guarded)
        logger.info(
            log_event,
            extra={
                "order_number": order_number,
                "actor_id": str(actor.user_id),
                "total": order.totals.total,
            },
        )
        return order
