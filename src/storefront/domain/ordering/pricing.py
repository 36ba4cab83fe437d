"""Deterministic order totals.

``compute_totals`` is a pure function of its inputs. It is called before
every save that changes line items, shipping method or discount, and the
result is recorded on the event, so stored totals are never stale.

Example:
    >>> from decimal import Decimal
    >>> from storefront.foundation.domain.order_value_objects import LineItem, ShippingMethod
    >>> items = [LineItem("sku-1", "Lamp", 50_000, 2)]
    >>> compute_totals(items, Decimal("0.19"), ShippingMethod.STANDARD)
    Totals(subtotal=100000, tax=19000, shipping=25000, discount=0, total=144000)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from storefront.foundation.domain.order_value_objects import ShippingMethod, Totals

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from storefront.foundation.domain.order_value_objects import LineItem

DEFAULT_TAX_RATE = Decimal("0.19")
DEFAULT_FREE_SHIPPING_THRESHOLD = 200_000


def _default_shipping_costs() -> dict[ShippingMethod, int]:
    return {
        ShippingMethod.STANDARD: 25_000,
        ShippingMethod.EXPRESS: 45_000,
        ShippingMethod.OVERNIGHT: 75_000,
        ShippingMethod.PICKUP: 0,
    }


@dataclass(frozen=True)
class PricingPolicy:
    """Shipping policy: a free-shipping threshold and a cost per method.

    Pickup is always free regardless of the configured costs.
    """

    free_shipping_threshold: int = DEFAULT_FREE_SHIPPING_THRESHOLD
    shipping_costs: Mapping[ShippingMethod, int] = field(default_factory=_default_shipping_costs)

    def shipping_for(self, subtotal: int, method: ShippingMethod) -> int:
        if method is ShippingMethod.PICKUP or subtotal >= self.free_shipping_threshold:
            return 0
        return self.shipping_costs[method]


DEFAULT_PRICING_POLICY = PricingPolicy()


def round_half_up(amount: Decimal) -> int:
    """Round to the smallest currency unit, halves away from zero."""
    return int(amount.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def compute_totals(
    line_items: Iterable[LineItem],
    tax_rate: Decimal,
    shipping_method: ShippingMethod | str,
    discount: int = 0,
    policy: PricingPolicy = DEFAULT_PRICING_POLICY,
) -> Totals:
    """Compute subtotal, tax, shipping and the clamped grand total.

    Args:
        line_items: Validated line items.
        tax_rate: Fractional tax rate (``Decimal("0.19")`` for 19%).
        shipping_method: Chosen shipping method.
        discount: Absolute discount in the smallest currency unit.
        policy: Free-shipping threshold and per-method costs.

    Returns:
        Totals whose ``total`` is ``max(0, subtotal + tax + shipping - discount)``.

    Raises:
        ValueError: If ``discount`` or ``tax_rate`` is negative.
    """
    if discount < 0:
        msg = f"Discount cannot be negative, got {discount}"
        raise ValueError(msg)
    if tax_rate < 0:
        msg = f"Tax rate cannot be negative, got {tax_rate}"
        raise ValueError(msg)

    subtotal = sum(item.unit_price * item.quantity for item in line_items)
    tax = round_half_up(Decimal(subtotal) * Decimal(str(tax_rate)))
    shipping = policy.shipping_for(subtotal, ShippingMethod(shipping_method))
    total = max(0, subtotal + tax + shipping - discount)
    return Totals(
        subtotal=subtotal,
        tax=tax,
        shipping=shipping,
        discount=discount,
        total=total,
    )
