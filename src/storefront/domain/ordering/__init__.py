"""Storefront Ordering -- the Order Ledger.

Provides deterministic totals (``compute_totals``), the Order aggregate
with its status state machine and audit trail, the order repository with
per-month order numbers, and the order command handlers.
"""

from storefront.domain.ordering.exceptions import (
    IllegalTransitionError,
    LastLineItemError,
    LineItemNotFoundError,
    OrderLockedError,
    OrderNotFoundError,
)
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
from storefront.domain.ordering.order_app import OrderApplication
from storefront.domain.ordering.pricing import PricingPolicy, compute_totals
from storefront.domain.ordering.repository import OrderRepository
from storefront.domain.ordering.settings import OrderingSettings, get_ordering_settings

__all__ = [
    "AddLineItemCommand",
    "ApplyDiscountCommand",
    "ChangeOrderStatusCommand",
    "ChangeOrderStatusHandler",
    "ChangeShippingMethodCommand",
    "IllegalTransitionError",
    "LastLineItemError",
    "LineItemNotFoundError",
    "Order",
    "OrderApplication",
    "OrderContentsHandler",
    "OrderLineData",
    "OrderLockedError",
    "OrderNotFoundError",
    "OrderRepository",
    "OrderingSettings",
    "PlaceOrderCommand",
    "PlaceOrderHandler",
    "PricingPolicy",
    "RemoveLineItemCommand",
    "compute_totals",
    "get_ordering_settings",
    "visible_order",
    "visible_orders",
]
