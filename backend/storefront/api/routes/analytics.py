"""Storefront analytics routes.

Endpoints:
    - POST /analytics/track-session: Open or extend a visitor session
    - POST /analytics/track-product-view: Record a product interaction
    - GET /analytics/summary: Traffic report (editor+)
    - GET /analytics/product/{product_id}: Per-product counts (editor+)

The tracking endpoints are called by the public storefront and need no
authentication.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.auth_helper import editor_or_admin, get_client_info
from storefront.db.session import get_db
from storefront.schemas.analytics import (
    ProductViewOut,
    ProductViewTrack,
    SessionTrack,
    VisitorSessionOut,
)
from storefront.schemas.auth import TokenData
from storefront.schemas.common import success
from storefront.services import analytics_service
from storefront.services.audit_service import ClientInfo

router = APIRouter(prefix="/analytics", tags=["analytics"])

Db = Annotated[AsyncSession, Depends(get_db)]
Editor = Annotated[TokenData, Depends(editor_or_admin)]


@router.post("/track-session")
async def track_session(
    body: SessionTrack,
    client: Annotated[ClientInfo, Depends(get_client_info)],
    db: Db,
):
    """Open a visitor session, or count another page on an existing one.

    Args:
        body: Session id plus optional address, agent, referrer, source and
            device class. Missing address and agent come from the request.
        client: Address and agent of the calling browser.
        db: Async database session (dependency-injected).

    Returns:
        dict: The stored session as ``VisitorSessionOut``.
    """
    session, created = await analytics_service.track_session(db, body, client)
    return success(
        "Session started" if created else "Session updated",
        VisitorSessionOut.model_validate(session),
    )


@router.post("/track-product-view", status_code=status.HTTP_201_CREATED)
async def track_product_view(body: ProductViewTrack, db: Db):
    """Record a view, cart add, purchase or wishlist add for a product."""
    view = await analytics_service.track_product_view(db, body)
    return success("Product view tracked", ProductViewOut.model_validate(view))


@router.get("/summary")
async def analytics_summary(
    _: Editor,
    db: Db,
    days: Annotated[int, Query(ge=1, le=365)] = 30,
):
    """Visitors, page views, sessions, top products and traffic sources.

    Args:
        days: Length of the reporting window, ending now.
        db: Async database session (dependency-injected).

    Returns:
        dict: ``AnalyticsSummary`` for the window.
    """
    report = await analytics_service.summary(db, days)
    return success(f"Analytics for the last {days} days", report)


@router.get("/product/{product_id}")
async def product_analytics(product_id: str, _: Editor, db: Db):
    report = await analytics_service.product_analytics(db, product_id)
    return success("Product analytics", report)
