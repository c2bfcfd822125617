"""Catalog data access: categories, products and inventory statistics.

Slugs are derived here, explicitly, before insert; nothing happens in
model hooks. A category's product count is aggregated from the products
table at read time.
"""

import re
from dataclasses import dataclass
from typing import Any

from sqlalchemy import delete, desc, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.errors import Conflict, NotFound
from storefront.core.logging import logger
from storefront.models.catalog import Category, Product
from storefront.schemas.catalog import (
    CategoryCreate,
    CategoryUpdate,
    ProductCreate,
    ProductUpdate,
)
from storefront.services import account_service

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 12

_UNSAFE = re.compile(r"[^\w\s-]")
_WHITESPACE = re.compile(r"\s+")
_DASHES = re.compile(r"-+")

SORT_ORDERS = {
    "price-asc": (Product.price.asc(),),
    "price-desc": (Product.price.desc(),),
    "rating": (Product.rating.desc(), Product.reviews.desc()),
    "newest": (Product.created_at.desc(),),
    "oldest": (Product.created_at.asc(),),
    "popular": (Product.reviews.desc(), Product.rating.desc()),
    "featured": (Product.featured.desc(), Product.created_at.desc()),
}


def slugify(text: str) -> str:
    """Turn a display name into a URL slug.

    >>> slugify("  Smart Home & Garden ")
    'smart-home-garden'
    """
    slug = _UNSAFE.sub("", text.lower().strip())
    slug = _WHITESPACE.sub("-", slug)
    return _DASHES.sub("-", slug)


def clamp_page(page: int, limit: int) -> tuple[int, int]:
    return max(1, page), min(MAX_PAGE_SIZE, max(1, limit))


@dataclass
class ProductFilters:
    """Optional product list filters; ``None`` means "don't filter"."""

    category: str | None = None
    featured: bool | None = None
    search: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    min_rating: float | None = None
    in_stock: bool | None = None

    def conditions(self) -> list:
        conditions = []
        if self.category:
            conditions.append(
                func.lower(Product.category).contains(self.category.strip().lower())
            )
        if self.featured is not None:
            conditions.append(Product.featured.is_(self.featured))
        if self.search:
            pattern = f"%{self.search.strip()}%"
            conditions.append(
                or_(Product.name.ilike(pattern), Product.description.ilike(pattern))
            )
        if self.min_price is not None:
            conditions.append(Product.price >= self.min_price)
        if self.max_price is not None:
            conditions.append(Product.price <= self.max_price)
        if self.min_rating is not None:
            conditions.append(Product.rating >= self.min_rating)
        if self.in_stock is True:
            conditions.append(Product.stock > 0)
        elif self.in_stock is False:
            conditions.append(Product.stock <= 0)
        return conditions


async def _commit_or_conflict(db: AsyncSession, message: str) -> None:
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict(message)


# Categories


async def _product_counts(db: AsyncSession) -> dict[str, int]:
    result = await db.execute(
        select(func.lower(Product.category), func.count(Product.id)).group_by(
            func.lower(Product.category)
        )
    )
    return {slug: count for slug, count in result.all()}


def _with_count(category: Category, counts: dict[str, int]) -> dict[str, Any]:
    data = {c.name: getattr(category, c.name) for c in Category.__table__.columns}
    data["product_count"] = counts.get(category.slug.lower(), 0)
    return data


async def list_categories(db: AsyncSession) -> list[dict[str, Any]]:
    result = await db.execute(select(Category).order_by(Category.name.asc()))
    counts = await _product_counts(db)
    return [_with_count(c, counts) for c in result.scalars().all()]


async def get_category(db: AsyncSession, category_id: int) -> dict[str, Any]:
    category = await db.get(Category, category_id)
    if category is None:
        raise NotFound("Category not found")
    count = await db.scalar(
        select(func.count(Product.id)).where(
            func.lower(Product.category) == category.slug.lower()
        )
    )
    return _with_count(category, {category.slug.lower(): count or 0})


async def create_category(db: AsyncSession, payload: CategoryCreate) -> Category:
    slug = slugify(payload.slug or payload.name)
    category = Category(
        name=payload.name.strip(),
        description=payload.description,
        icon=payload.icon,
        color=payload.color,
        slug=slug,
    )
    db.add(category)
    await _commit_or_conflict(db, "Category with this name or slug already exists")
    await db.refresh(category)
    logger.info("Created category id={} slug={}", category.id, slug)
    return category


async def update_category(
    db: AsyncSession, category_id: int, payload: CategoryUpdate
) -> Category:
    category = await db.get(Category, category_id)
    if category is None:
        raise NotFound("Category not found")
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(category, field, value)
    if "name" in changes:
        category.slug = slugify(changes["name"])
    await _commit_or_conflict(db, "Category with this name or slug already exists")
    await db.refresh(category)
    logger.info("Updated category id={}", category.id)
    return category


async def delete_category(db: AsyncSession, category_id: int) -> None:
    category = await db.get(Category, category_id)
    if category is None:
        raise NotFound("Category not found")
    await db.delete(category)
    await db.commit()
    logger.info("Deleted category id={}", category_id)


# Products


async def list_products(
    db: AsyncSession,
    filters: ProductFilters,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    sort: str | None = None,
) -> tuple[list[Product], int, int, int]:
    """Filter, sort and paginate products.

    Unknown sort keys fall back to newest first.

    Returns:
        tuple: ``(products, total_count, page, page_size)`` with page and
            size after clamping.
    """
    page, limit = clamp_page(page, limit)
    conditions = filters.conditions()
    order_by = SORT_ORDERS.get(sort or "newest", SORT_ORDERS["newest"])

    total = await db.scalar(
        select(func.count()).select_from(Product).where(*conditions)
    )
    result = await db.execute(
        select(Product)
        .where(*conditions)
        .order_by(*order_by, Product.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total or 0, page, limit


async def get_product(db: AsyncSession, product_id: int) -> Product:
    product = await db.get(Product, product_id)
    if product is None:
        raise NotFound("Product not found")
    return product


async def get_product_by_slug(db: AsyncSession, slug: str) -> Product:
    result = await db.execute(select(Product).where(Product.slug == slug.lower()))
    product = result.scalars().first()
    if product is None:
        raise NotFound("Product not found")
    return product


async def create_product(db: AsyncSession, payload: ProductCreate) -> Product:
    data = payload.model_dump(mode="json")
    data["slug"] = slugify(payload.slug or payload.name)
    product = Product(**data)
    db.add(product)
    await _commit_or_conflict(db, "Product with this SKU or slug already exists")
    await db.refresh(product)
    logger.info("Created product id={} sku={}", product.id, product.sku)
    return product


async def update_product(
    db: AsyncSession, product_id: int, payload: ProductUpdate
) -> Product:
    product = await get_product(db, product_id)
    changes = payload.model_dump(mode="json", exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(product, field, value)
    if "name" in changes:
        product.slug = slugify(changes["name"])
    await _commit_or_conflict(db, "Product with this SKU or slug already exists")
    await db.refresh(product)
    logger.info("Updated product id={}", product.id)
    return product


async def delete_product(db: AsyncSession, product_id: int) -> None:
    product = await get_product(db, product_id)
    await db.delete(product)
    await db.commit()
    logger.info("Deleted product id={}", product_id)


async def bulk_delete_products(db: AsyncSession, ids: list[int]) -> int:
    result = await db.execute(delete(Product).where(Product.id.in_(ids)))
    await db.commit()
    logger.info("Bulk deleted {} products", result.rowcount)
    return result.rowcount or 0


# Statistics


async def overview_stats(db: AsyncSession) -> dict[str, Any]:
    """Headline counters for the admin dashboard."""
    row = (
        await db.execute(
            select(
                func.count(Product.id),
                func.coalesce(func.sum(Product.stock), 0),
                func.coalesce(func.sum(Product.price * Product.stock), 0),
            )
        )
    ).one()
    featured = await db.scalar(
        select(func.count(Product.id)).where(Product.featured.is_(True))
    )
    out_of_stock = await db.scalar(
        select(func.count(Product.id)).where(Product.stock <= 0)
    )
    categories = await db.scalar(select(func.count(Category.id)))
    return {
        "totalProducts": row[0],
        "totalCategories": categories or 0,
        "featuredProducts": featured or 0,
        "outOfStockProducts": out_of_stock or 0,
        "totalStock": int(row[1]),
        "inventoryValue": round(float(row[2]), 2),
        "activeAdmins": await account_service.count_active(db),
    }


async def product_stats(db: AsyncSession) -> list[dict[str, Any]]:
    """Per-category product count, average price and stock."""
    category = func.lower(Product.category)
    result = await db.execute(
        select(
            category.label("category"),
            func.count(Product.id).label("count"),
            func.avg(Product.price).label("average_price"),
            func.coalesce(func.sum(Product.stock), 0).label("total_stock"),
        )
        .group_by(category)
        .order_by(desc("count"), category)
    )
    return [
        {
            "category": row.category,
            "count": row.count,
            "averagePrice": round(float(row.average_price or 0), 2),
            "totalStock": int(row.total_stock),
        }
        for row in result.all()
    ]
