"""Order Ledger business-rule errors.

All of them are local validation failures: the request is rejected
outright and the order is left exactly as it was.
"""

from __future__ import annotations

from storefront.foundation.domain.exceptions import (
    ConflictError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)


class IllegalTransitionError(InvalidStateTransitionError):
    """Requested status is not reachable from the current one.

    Attributes:
        current_status: Status the order is in.
        requested_status: Status that was asked for.
    """

    error_code = "ILLEGAL_TRANSITION"

    def __init__(self, order_number: str, current_status: str, requested_status: str) -> None:
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(
            f"Cannot move order {order_number} from '{current_status}' to '{requested_status}'",
            order_number=order_number,
            current_status=current_status,
            requested_status=requested_status,
        )


class OrderLockedError(ConflictError):
    """Order contents cannot change once it has left the pre-shipment states."""

    error_code = "ORDER_LOCKED"

    def __init__(self, order_number: str, status: str) -> None:
        self.status = status
        super().__init__(
            f"Order {order_number} is '{status}' and can no longer be modified",
            order_number=order_number,
            status=status,
        )


class LastLineItemError(ValidationError):
    """An order keeps at least one line; emptying it is done by cancelling."""

    error_code = "LAST_LINE_ITEM"

    def __init__(self, order_number: str, product_id: str) -> None:
        super().__init__(
            "items",
            "An order needs at least one line item; cancel the order instead",
            order_number=order_number,
            product_id=product_id,
        )


class LineItemNotFoundError(NotFoundError):
    """No line of the order references the given product."""

    error_code = "LINE_ITEM_NOT_FOUND"

    def __init__(self, order_number: str, product_id: str) -> None:
        super().__init__("LineItem", product_id, order_number=order_number)


class OrderNotFoundError(NotFoundError):
    """No order with the given number exists (or it is not visible to the caller)."""

    error_code = "ORDER_NOT_FOUND"

    def __init__(self, order_number: str) -> None:
        super().__init__("Order", order_number)
