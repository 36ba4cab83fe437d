"""Value objects for the Product aggregate.

Prices follow the order ledger's convention: integers in the currency's
smallest unit.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar

MAX_PRICE = 999_999_999
MAX_STOCK = 99_999
NAME_LENGTH = (2, 200)
DESCRIPTION_LENGTH = (10, 2000)
BRAND_LENGTH = (1, 50)


class ProductCategory(StrEnum):
    FOOTWEAR = "footwear"
    APPAREL = "apparel"
    ACCESSORIES = "accessories"
    EQUIPMENT = "equipment"
    BALLS = "balls"
    BICYCLES = "bicycles"
    NUTRITION = "nutrition"
    TRAINING = "training"
    YOGA = "yoga"
    OTHER = "other"


@dataclass(frozen=True)
class Sku:
    """Catalog key of a product; the ``product_id`` order lines refer to.

    Lowercase letters, digits and hyphens, starting with a letter or digit.

    Example:
        >>> Sku("  Trail-Shoe-42 ").value
        'trail-shoe-42'
    """

    value: str

    _PATTERN: ClassVar[re.Pattern[str]] = re.compile(r"^[a-z0-9][a-z0-9-]{0,63}$")

    def __post_init__(self) -> None:
        normalized = self.value.strip().lower()
        if not self._PATTERN.match(normalized):
            msg = f"Invalid SKU {self.value!r}: use 1-64 lowercase letters, digits or hyphens"
            raise ValueError(msg)
        object.__setattr__(self, "value", normalized)


def validated_text(field_name: str, value: str, bounds: tuple[int, int]) -> str:
    """Strip ``value`` and check its length against ``bounds`` (inclusive)."""
    text = value.strip()
    low, high = bounds
    if not (low <= len(text) <= high):
        msg = f"{field_name} must be {low}-{high} characters, got {len(text)}"
        raise ValueError(msg)
    return text


def validated_price(price: int) -> int:
    if isinstance(price, bool) or not isinstance(price, int):
        msg = f"Price must be an integer amount, got {price!r}"
        raise ValueError(msg)
    if not (0 <= price <= MAX_PRICE):
        msg = f"Price must be between 0 and {MAX_PRICE}, got {price}"
        raise ValueError(msg)
    return price


def validated_stock(stock: int) -> int:
    if isinstance(stock, bool) or not isinstance(stock, int) or not (0 <= stock <= MAX_STOCK):
        msg = f"Stock must be an integer between 0 and {MAX_STOCK}, got {stock!r}"
        raise ValueError(msg)
    return stock
