"""Public category routes (no authentication)."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.db.session import get_db
from storefront.schemas.catalog import CategoryOut
from storefront.schemas.common import success
from storefront.services import catalog_service

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("")
async def list_categories(db: Annotated[AsyncSession, Depends(get_db)]):
    """All categories sorted by name, each with its product count."""
    categories = await catalog_service.list_categories(db)
    return success(
        f"Retrieved {len(categories)} categories",
        [CategoryOut.model_validate(c) for c in categories],
    )


@router.get("/{category_id}")
async def get_category(category_id: int, db: Annotated[AsyncSession, Depends(get_db)]):
    category = await catalog_service.get_category(db, category_id)
    return success("Category retrieved successfully", CategoryOut.model_validate(category))
