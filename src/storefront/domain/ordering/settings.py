"""Order Ledger configuration settings.

Loaded from environment variables with ORDERS_ prefix.

Environment Variables:
    ORDERS_TAX_RATE: Fractional tax rate applied to the subtotal
    ORDERS_FREE_SHIPPING_THRESHOLD: Subtotal at which shipping becomes free
    ORDERS_STANDARD_SHIPPING_COST: Cost of standard shipping
    ORDERS_EXPRESS_SHIPPING_COST: Cost of express shipping
    ORDERS_OVERNIGHT_SHIPPING_COST: Cost of overnight shipping
    ORDERS_MAX_SAVE_ATTEMPTS: Re-validation attempts on a concurrent write
"""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from storefront.domain.ordering.pricing import PricingPolicy
from storefront.foundation.domain.order_value_objects import ShippingMethod


class OrderingSettings(BaseSettings):
    """Pricing and concurrency configuration for orders.

    Example:
        >>> settings = OrderingSettings()
        >>> settings.tax_rate
        Decimal('0.19')
        >>> settings.pricing_policy().shipping_for(100_000, ShippingMethod.EXPRESS)
        45000
    """

    model_config = SettingsConfigDict(
        env_prefix="ORDERS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    tax_rate: Decimal = Field(default=Decimal("0.19"), ge=0, le=1)
    free_shipping_threshold: int = Field(default=200_000, ge=0)
    standard_shipping_cost: int = Field(default=25_000, ge=0)
    express_shipping_cost: int = Field(default=45_000, ge=0)
    overnight_shipping_cost: int = Field(default=75_000, ge=0)
    max_save_attempts: int = Field(
        default=3,
        ge=1,
        le=20,
        description="Reload-and-revalidate attempts when a save loses a race",
    )

    def pricing_policy(self) -> PricingPolicy:
        return PricingPolicy(
            free_shipping_threshold=self.free_shipping_threshold,
            shipping_costs={
                ShippingMethod.STANDARD: self.standard_shipping_cost,
                ShippingMethod.EXPRESS: self.express_shipping_cost,
                ShippingMethod.OVERNIGHT: self.overnight_shipping_cost,
                ShippingMethod.PICKUP: 0,
            },
        )


@lru_cache(maxsize=1)
def get_ordering_settings() -> OrderingSettings:
    """Get singleton OrderingSettings instance.

    Clear cache with ``get_ordering_settings.cache_clear()`` for testing.
    """
    return OrderingSettings()
