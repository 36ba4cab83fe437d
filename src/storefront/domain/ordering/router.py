"""Orders REST API router.

Every endpoint requires an authenticated principal. Customers list, see
and edit their own orders; status changes need an administrator or a
moderator, and shipping-method and discount changes need an administrator.
Lines name a product and a quantity; prices come from the catalog.
"""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 (pydantic resolves it at runtime)
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, ConfigDict, Field

from storefront.domain.ordering.handlers import (
    AddLineItemCommand,
    ApplyDiscountCommand,
    ChangeOrderStatusCommand,
    ChangeOrderStatusHandler,
    ChangeShippingMethodCommand,
    OrderContentsHandler,
    OrderLineData,
    PlaceOrderCommand,
    PlaceOrderHandler,
    RemoveLineItemCommand,
    visible_order,
    visible_orders,
)
from storefront.domain.ordering.order import Order
from storefront.domain.ordering.repository import OrderRepository
from storefront.foundation.domain.order_value_objects import (
    MAX_LINE_QUANTITY,
    MAX_NOTE_LENGTH,
    OrderStatus,
    PaymentMethod,
    ShippingMethod,
)
from storefront.foundation.domain.principal import Principal, Role
from storefront.infra.auth.dependencies import CurrentPrincipal, require_roles

router = APIRouter(prefix="/orders", tags=["orders"])


# -- Dependencies --------------------------------------------------------------


def get_order_repository(request: Request) -> OrderRepository:
    return request.app.state.order_repository  # type: ignore[no-any-return]


def get_place_order_handler(request: Request) -> PlaceOrderHandler:
    return request.app.state.place_order_handler  # type: ignore[no-any-return]


def get_change_status_handler(request: Request) -> ChangeOrderStatusHandler:
    return request.app.state.change_order_status_handler  # type: ignore[no-any-return]


def get_contents_handler(request: Request) -> OrderContentsHandler:
    return request.app.state.order_contents_handler  # type: ignore[no-any-return]


# -- Request / Response models ------------------------------------------------


class LineItemRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    product_id: str = Field(min_length=1, max_length=64)
    quantity: int = Field(ge=1, le=MAX_LINE_QUANTITY)

    def to_data(self) -> OrderLineData:
        return OrderLineData(product_id=self.product_id.strip().lower(), quantity=self.quantity)


class PlaceOrderRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    items: list[LineItemRequest] = Field(min_length=1)
    shipping_method: ShippingMethod = ShippingMethod.STANDARD
    payment_method: PaymentMethod
    note: str = Field(default="", max_length=MAX_NOTE_LENGTH)


class ChangeStatusRequest(BaseModel):
    status: OrderStatus
    note: str = Field(default="", max_length=MAX_NOTE_LENGTH)


class ShippingMethodRequest(BaseModel):
    shipping_method: ShippingMethod


class DiscountRequest(BaseModel):
    discount: int = Field(ge=0)


class LineItemResponse(BaseModel):
    product_id: str
    name: str
    unit_price: int
    quantity: int
    line_total: int


class TotalsResponse(BaseModel):
    subtotal: int
    tax: int
    shipping: int
    discount: int
    total: int


class StatusHistoryResponse(BaseModel):
    status: str
    at: datetime
    note: str
    actor_id: str | None


class OrderResponse(BaseModel):
    id: str
    order_number: str
    owner_id: str
    status: str
    items: list[LineItemResponse]
    totals: TotalsResponse
    shipping_method: str
    payment_method: str
    customer_note: str
    status_history: list[StatusHistoryResponse]
    placed_at: datetime
    delivered_at: datetime | None
    total_items: int
    unique_products: int
    can_be_cancelled: bool
    estimated_delivery_days: int
    version: int


class OrderPage(BaseModel):
    items: list[OrderResponse]
    total: int
    page: int
    limit: int
    has_next_page: bool


# -- Endpoints ----------------------------------------------------------------


@router.post("", status_code=201)
def place_order(
    body: PlaceOrderRequest,
    principal: CurrentPrincipal,
    handler: Annotated[PlaceOrderHandler, Depends(get_place_order_handler)],
) -> OrderResponse:
    """Commit a cart as a new order owned by the caller."""
    order = handler.handle(
        PlaceOrderCommand(
            owner_id=principal.user_id,
            items=tuple(item.to_data() for item in body.items),
            shipping_method=body.shipping_method.value,
            payment_method=body.payment_method.value,
            note=body.note,
        )
    )
    return _order_response(order)


@router.get("")
def list_orders(
    principal: CurrentPrincipal,
    repository: Annotated[OrderRepository, Depends(get_order_repository)],
    status: OrderStatus | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> OrderPage:
    """List the caller's orders, newest first (staff see every order).

    ``status`` narrows the list, e.g. ``?status=pending`` for the orders
    waiting on confirmation.
    """
    orders = visible_orders(repository, principal, status)
    start = (page - 1) * limit
    return OrderPage(
        items=[_order_response(order) for order in orders[start : start + limit]],
        total=len(orders),
        page=page,
        limit=limit,
        has_next_page=start + limit < len(orders),
    )


@router.get("/{order_number}")
def get_order(
    order_number: str,
    principal: CurrentPrincipal,
    repository: Annotated[OrderRepository, Depends(get_order_repository)],
) -> OrderResponse:
    """Retrieve an order owned by the caller (staff may read any order)."""
    return _order_response(visible_order(repository, order_number, principal))


@router.post("/{order_number}/status")
def change_status(
    order_number: str,
    body: ChangeStatusRequest,
    principal: Annotated[Principal, Depends(require_roles(Role.ADMIN, Role.MODERATOR))],
    handler: Annotated[ChangeOrderStatusHandler, Depends(get_change_status_handler)],
) -> OrderResponse:
    """Move an order along the status graph and record it in the history."""
    order = handler.handle(
        ChangeOrderStatusCommand(
            order_number=order_number,
            new_status=body.status.value,
            actor=principal,
            note=body.note,
        )
    )
    return _order_response(order)


@router.post("/{order_number}/items")
def add_line_item(
    order_number: str,
    body: LineItemRequest,
    principal: CurrentPrincipal,
    handler: Annotated[OrderContentsHandler, Depends(get_contents_handler)],
) -> OrderResponse:
    """Add a product line, merging with an existing line for the same product."""
    order = handler.add_line_item(
        AddLineItemCommand(order_number=order_number, item=body.to_data(), actor=principal)
    )
    return _order_response(order)


@router.delete("/{order_number}/items/{product_id}")
def remove_line_item(
    order_number: str,
    product_id: str,
    principal: CurrentPrincipal,
    handler: Annotated[OrderContentsHandler, Depends(get_contents_handler)],
) -> OrderResponse:
    """Remove the line for a product."""
    order = handler.remove_line_item(
        RemoveLineItemCommand(order_number=order_number, product_id=product_id, actor=principal)
    )
    return _order_response(order)


@router.put("/{order_number}/shipping-method")
def change_shipping_method(
    order_number: str,
    body: ShippingMethodRequest,
    principal: Annotated[Principal, Depends(require_roles(Role.ADMIN))],
    handler: Annotated[OrderContentsHandler, Depends(get_contents_handler)],
) -> OrderResponse:
    order = handler.change_shipping_method(
        ChangeShippingMethodCommand(
            order_number=order_number,
            shipping_method=body.shipping_method.value,
            actor=principal,
        )
    )
    return _order_response(order)


@router.put("/{order_number}/discount")
def apply_discount(
    order_number: str,
    body: DiscountRequest,
    principal: Annotated[Principal, Depends(require_roles(Role.ADMIN))],
    handler: Annotated[OrderContentsHandler, Depends(get_contents_handler)],
) -> OrderResponse:
    order = handler.apply_discount(
        ApplyDiscountCommand(order_number=order_number, discount=body.discount, actor=principal)
    )
    return _order_response(order)


# -- Helpers ------------------------------------------------------------------


def _order_response(order: Order) -> OrderResponse:
    totals = order.totals
    return OrderResponse(
        id=str(order.id),
        order_number=order.order_number,
        owner_id=str(order.owner_id),
        status=order.status,
        items=[
            LineItemResponse(
                product_id=item.product_id,
                name=item.name,
                unit_price=item.unit_price,
                quantity=item.quantity,
                line_total=item.line_total,
            )
            for item in order.line_items
        ],
        totals=TotalsResponse(**totals.as_dict()),
        shipping_method=order.shipping_method,
        payment_method=order.payment_method,
        customer_note=order.customer_note,
        status_history=[
            StatusHistoryResponse(
                status=entry.status.value,
                at=entry.at,
                note=entry.note,
                actor_id=entry.actor_id,
            )
            for entry in order.status_history
        ],
        placed_at=order.placed_at,
        delivered_at=order.delivered_at,
        total_items=order.total_items,
        unique_products=order.unique_products,
        can_be_cancelled=order.can_be_cancelled,
        estimated_delivery_days=order.estimated_delivery_days,
        version=order.version,
    )
