"""Product catalog errors."""

from __future__ import annotations

from storefront.foundation.domain.exceptions import ConflictError, NotFoundError


class ProductNotFoundError(NotFoundError):
    error_code = "PRODUCT_NOT_FOUND"

    def __init__(self, sku: str) -> None:
        super().__init__("Product", sku)


class ProductDiscontinuedError(ConflictError):
    """The product was withdrawn from sale; it can be neither revised nor ordered."""

    error_code = "PRODUCT_DISCONTINUED"

    def __init__(self, sku: str) -> None:
        super().__init__(f"Product '{sku}' is discontinued", sku=sku)


class ProductOutOfStockError(ConflictError):
    error_code = "PRODUCT_OUT_OF_STOCK"

    def __init__(self, sku: str) -> None:
        super().__init__(f"Product '{sku}' is out of stock", sku=sku)
