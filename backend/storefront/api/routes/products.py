"""Public product catalog routes (no authentication)."""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.session import get_db
from storefront.schemas.catalog import ProductOut
from storefront.schemas.common import Pagination, success
from storefront.services import catalog_service
from storefront.services.catalog_service import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    ProductFilters,
)

router = APIRouter(prefix="/products", tags=["products"])

Db = Annotated[AsyncSession, Depends(get_db)]
Page = Annotated[int, Query(ge=1)]
Limit = Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)]
SortKey = Literal[
    "price-asc", "price-desc", "rating", "newest", "oldest", "popular", "featured"
]


def _page_body(products, total: int, page: int, limit: int) -> dict:
    return {
        "items": [ProductOut.model_validate(p) for p in products],
        "pagination": Pagination.build(page, limit, total),
    }


@router.get("")
async def list_products(
    db: Db,
    category: str | None = None,
    featured: bool | None = None,
    page: Page = 1,
    limit: Limit = DEFAULT_PAGE_SIZE,
):
    """List products newest first, optionally by category or featured flag."""
    products, total, page, limit = await catalog_service.list_products(
        db, ProductFilters(category=category, featured=featured), page, limit
    )
    return success(
        f"Retrieved {len(products)} products", _page_body(products, total, page, limit)
    )


@router.get("/search/advanced")
async def search_products(
    db: Db,
    search: str | None = None,
    category: str | None = None,
    featured: bool | None = None,
    min_price: Annotated[float | None, Query(alias="minPrice", ge=0)] = None,
    max_price: Annotated[float | None, Query(alias="maxPrice", ge=0)] = None,
    rating: Annotated[float | None, Query(ge=0, le=5)] = None,
    in_stock: Annotated[bool | None, Query(alias="inStock")] = None,
    sort: SortKey | None = None,
    page: Page = 1,
    limit: Limit = DEFAULT_PAGE_SIZE,
):
    """Search by text, price range, rating and stock with a selectable sort."""
    filters = ProductFilters(
        category=category,
        featured=featured,
        search=search,
        min_price=min_price,
        max_price=max_price,
        min_rating=rating,
        in_stock=in_stock,
    )
    products, total, page, limit = await catalog_service.list_products(
        db, filters, page, limit, sort
    )
    return success(
        f"Found {total} products", _page_body(products, total, page, limit)
    )


@router.get("/slug/{slug}")
async def get_product_by_slug(slug: str, db: Db):
    product = await catalog_service.get_product_by_slug(db, slug)
    return success("Product retrieved successfully", ProductOut.model_validate(product))


@router.get("/{product_id}")
async def get_product(product_id: int, db: Db):
    product = await catalog_service.get_product(db, product_id)
    return success("Product retrieved successfully", ProductOut.model_validate(product))
