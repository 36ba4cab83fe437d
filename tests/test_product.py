"""Unit tests for the Product aggregate and its value objects."""

from __future__ import annotations

import pytest

from storefront.domain.catalog import Product, ProductDiscontinuedError
from storefront.foundation.domain.ports import CatalogEntry
from storefront.foundation.domain.product_value_objects import MAX_PRICE, Sku


def _listed(**overrides) -> Product:  # type: ignore[no-untyped-def]
    fields = {
        "sku": " Trail-Shoe-42 ",
        "name": "Trail shoe",
        "description": "Lightweight shoe for rocky trails",
        "brand": "Acme",
        "category": "footwear",
        "price": 89_900,
        "stock": 4,
    }
    fields.update(overrides)
    return Product.list_new(**fields)


@pytest.mark.unit
class TestSku:
    def test_normalizes(self) -> None:
        assert Sku("  Trail-Shoe-42 ").value == "trail-shoe-42"

    @pytest.mark.parametrize("raw", ["", "-leading", "has space", "x" * 65, "ünï"])
    def test_rejects_malformed(self, raw: str) -> None:
        with pytest.raises(ValueError, match="Invalid SKU"):
            Sku(raw)


@pytest.mark.unit
class TestProductListing:
    def test_lists_with_normalized_fields(self) -> None:
        product = _listed(name="  Trail shoe ")
        assert product.sku == "trail-shoe-42"
        assert product.name == "Trail shoe"
        assert product.in_stock
        assert product.is_purchasable
        assert not product.is_discontinued
        assert type(product.collect_events()[0]).__name__ == "Listed"

    def test_catalog_entry(self) -> None:
        assert _listed().catalog_entry() == CatalogEntry("trail-shoe-42", "Trail shoe", 89_900)

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("name", "x"),
            ("description", "short"),
            ("brand", ""),
            ("category", "spaceships"),
            ("price", -1),
            ("price", MAX_PRICE + 1),
            ("stock", -3),
        ],
    )
    def test_rejects_out_of_range(self, field: str, value: object) -> None:
        with pytest.raises(ValueError):
            _listed(**{field: value})

    def test_zero_stock_is_not_purchasable(self) -> None:
        product = _listed(stock=0)
        assert not product.in_stock
        assert not product.is_purchasable


@pytest.mark.unit
class TestProductRevision:
    def test_records_only_changed_fields(self) -> None:
        product = _listed()
        product.collect_events()
        product.request_revise(price=79_900, brand="Acme")
        (revised,) = product.collect_events()
        assert type(revised).__name__ == "Revised"
        assert revised.changes == {"price": 79_900}
        assert product.price == 79_900

    def test_no_change_records_nothing(self) -> None:
        product = _listed()
        product.collect_events()
        product.request_revise(stock=4)
        assert product.collect_events() == []

    def test_unknown_field(self) -> None:
        with pytest.raises(ValueError, match="cannot be revised"):
            _listed().request_revise(sku="other")

    def test_discontinue_is_idempotent_and_final(self) -> None:
        product = _listed()
        product.request_discontinue()
        product.request_discontinue()
        assert product.is_discontinued
        assert not product.is_purchasable
        assert [type(e).__name__ for e in product.collect_events()][-1] == "Discontinued"
        with pytest.raises(ProductDiscontinuedError):
            product.request_revise(price=1)
