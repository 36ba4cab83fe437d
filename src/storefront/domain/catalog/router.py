"""Catalog REST API router.

Browsing is public; listing, revising and discontinuing products needs
an administrator.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field

from storefront.domain.catalog.exceptions import ProductNotFoundError
from storefront.domain.catalog.handlers import (
    DiscontinueProductHandler,
    ListProductCommand,
    ListProductHandler,
    ProductQuery,
    ProductSort,
    ReviseProductCommand,
    ReviseProductHandler,
    search_products,
)
from storefront.domain.catalog.product import Product
from storefront.domain.catalog.repository import ProductRepository
from storefront.foundation.domain.principal import Principal, Role
from storefront.foundation.domain.product_value_objects import (
    MAX_PRICE,
    MAX_STOCK,
    ProductCategory,
)
from storefront.infra.auth.dependencies import require_roles

router = APIRouter(prefix="/products", tags=["products"])

AdminPrincipal = Annotated[Principal, Depends(require_roles(Role.ADMIN))]


def get_product_repository(request: Request) -> ProductRepository:
    return request.app.state.product_repository  # type: ignore[no-any-return]


def get_list_product_handler(request: Request) -> ListProductHandler:
    return request.app.state.list_product_handler  # type: ignore[no-any-return]


def get_revise_product_handler(request: Request) -> ReviseProductHandler:
    return request.app.state.revise_product_handler  # type: ignore[no-any-return]


def get_discontinue_product_handler(request: Request) -> DiscontinueProductHandler:
    return request.app.state.discontinue_product_handler  # type: ignore[no-any-return]


# -- Request / Response models ------------------------------------------------


class CreateProductRequest(BaseModel):
    sku: str = Field(min_length=1, max_length=64)
    name: str
    description: str
    brand: str
    category: ProductCategory
    price: int = Field(ge=0, le=MAX_PRICE)
    stock: int = Field(default=0, ge=0, le=MAX_STOCK)


class UpdateProductRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    brand: str | None = None
    category: ProductCategory | None = None
    price: int | None = Field(default=None, ge=0, le=MAX_PRICE)
    stock: int | None = Field(default=None, ge=0, le=MAX_STOCK)


class ProductResponse(BaseModel):
    id: str
    sku: str
    name: str
    description: str
    brand: str
    category: str
    price: int
    stock: int
    in_stock: bool
    is_discontinued: bool
    version: int


class ProductPage(BaseModel):
    items: list[ProductResponse]
    total: int
    page: int
    limit: int
    has_next_page: bool


# -- Endpoints ----------------------------------------------------------------


@router.get("")
def browse_products(
    repository: Annotated[ProductRepository, Depends(get_product_repository)],
    category: ProductCategory | None = None,
    brand: str | None = None,
    min_price: Annotated[int | None, Query(ge=0)] = None,
    max_price: Annotated[int | None, Query(ge=0)] = None,
    search: Annotated[str | None, Query(max_length=100)] = None,
    in_stock: bool | None = None,
    sort_by: ProductSort = ProductSort.NAME,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 12,
) -> ProductPage:
    """Browse the catalog with filters, sorting and pagination."""
    matching = search_products(
        repository,
        ProductQuery(
            category=category.value if category is not None else None,
            brand=brand,
            min_price=min_price,
            max_price=max_price,
            search=search,
            in_stock=in_stock,
            sort=sort_by,
        ),
    )
    start = (page - 1) * limit
    return ProductPage(
        items=[_product_response(product) for product in matching[start : start + limit]],
        total=len(matching),
        page=page,
        limit=limit,
        has_next_page=start + limit < len(matching),
    )


@router.get("/{sku}")
def get_product(
    sku: str,
    repository: Annotated[ProductRepository, Depends(get_product_repository)],
) -> ProductResponse:
    product = repository.get_by_sku(sku)
    if product.is_discontinued:
        raise ProductNotFoundError(sku)
    return _product_response(product)


@router.post("", status_code=201)
def create_product(
    body: CreateProductRequest,
    _admin: AdminPrincipal,
    handler: Annotated[ListProductHandler, Depends(get_list_product_handler)],
) -> ProductResponse:
    product = handler.handle(
        ListProductCommand(
            sku=body.sku,
            name=body.name,
            description=body.description,
            brand=body.brand,
            category=body.category.value,
            price=body.price,
            stock=body.stock,
        )
    )
    return _product_response(product)


@router.put("/{sku}")
def update_product(
    sku: str,
    body: UpdateProductRequest,
    _admin: AdminPrincipal,
    handler: Annotated[ReviseProductHandler, Depends(get_revise_product_handler)],
) -> ProductResponse:
    """Revise catalog fields; orders already placed keep their prices."""
    changes = body.model_dump(exclude_none=True, mode="json")
    return _product_response(handler.handle(ReviseProductCommand(sku=sku, changes=changes)))


@router.delete("/{sku}", status_code=204)
def discontinue_product(
    sku: str,
    _admin: AdminPrincipal,
    handler: Annotated[DiscontinueProductHandler, Depends(get_discontinue_product_handler)],
) -> None:
    handler.handle(sku)


def _product_response(product: Product) -> ProductResponse:
    return ProductResponse(
        id=str(product.id),
        sku=product.sku,
        name=product.name,
        description=product.description,
        brand=product.brand,
        category=product.category,
        price=product.price,
        stock=product.stock,
        in_stock=product.in_stock,
        is_discontinued=product.is_discontinued,
        version=product.version,
    )
