"""Visitor session and product interaction tracking, and the reports on them.

Sessions are keyed by a client-generated id: the first track call opens
the session with zero page views, every later call counts one more page
and moves ``end_time``. A session with no page views after the first is
a bounce.
"""

import math
from datetime import datetime, timedelta

from sqlalchemy import case, distinct, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.logging import logger
from storefront.core.timeutils import as_utc, utcnow
from storefront.models.analytics import (
    ProductAction,
    ProductView,
    TrafficSource,
    VisitorSession,
)
from storefront.schemas.analytics import (
    AnalyticsSummary,
    ProductAnalytics,
    ProductViewTrack,
    SessionTrack,
    TopProduct,
    TrafficShare,
)
from storefront.services.audit_service import ClientInfo

TOP_PRODUCTS_LIMIT = 5


def percent(part: int, whole: int) -> int:
    """Whole-number percentage, halves rounded up; 0 when ``whole`` is 0."""
    if not whole:
        return 0
    return math.floor(part * 100 / whole + 0.5)


def format_duration(seconds: int) -> str:
    """Render seconds as ``45s``, ``2m 5s`` or ``1h 30m``."""
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m {seconds % 60}s"
    return f"{seconds // 3600}h {seconds % 3600 // 60}m"


async def _count_page(
    db: AsyncSession, session_id: str, now: datetime
) -> VisitorSession | None:
    result = await db.execute(
        update(VisitorSession)
        .where(VisitorSession.session_id == session_id)
        .values(page_views=VisitorSession.page_views + 1, end_time=now)
        .returning(VisitorSession.id)
        .execution_options(synchronize_session=False)
    )
    pk = result.scalar_one_or_none()
    await db.commit()
    if pk is None:
        return None
    return await db.get(VisitorSession, pk, populate_existing=True)


async def track_session(
    db: AsyncSession, payload: SessionTrack, client: ClientInfo
) -> tuple[VisitorSession, bool]:
    """Open a session or count another page on an existing one.

    Returns:
        tuple[VisitorSession, bool]: The stored session and whether this
            call created it.
    """
    now = utcnow()
    session = await _count_page(db, payload.session_id, now)
    if session is not None:
        return session, False

    session = VisitorSession(
        session_id=payload.session_id,
        ip_address=payload.ip_address or client.ip_address,
        user_agent=(payload.user_agent or client.user_agent)[:255],
        referrer=payload.referrer,
        device_type=payload.device_type,
        source=payload.source,
        page_views=0,
        start_time=now,
        end_time=None,
    )
    db.add(session)
    try:
        await db.commit()
    except IntegrityError:
        # A concurrent request opened the same session first
        await db.rollback()
        session = await _count_page(db, payload.session_id, now)
        return session, False
    logger.debug(
        "Opened visitor session {} source={}", payload.session_id, payload.source.value
    )
    return session, True


async def track_product_view(db: AsyncSession, payload: ProductViewTrack) -> ProductView:
    view = ProductView(
        product_id=payload.product_id,
        product_name=payload.product_name,
        session_id=payload.session_id,
        user_id=payload.user_id,
        time_spent=payload.time_spent,
        action=payload.action,
        viewed_at=utcnow(),
    )
    db.add(view)
    await db.commit()
    return view


async def _average_session_seconds(db: AsyncSession, since: datetime, now: datetime) -> int:
    result = await db.execute(
        select(VisitorSession.start_time, VisitorSession.end_time).where(
            VisitorSession.start_time >= since
        )
    )
    durations = [
        ((as_utc(end) if end else now) - as_utc(start)).total_seconds()
        for start, end in result.all()
    ]
    if not durations:
        return 0
    return max(0, math.floor(sum(durations) / len(durations)))


async def summary(
    db: AsyncSession, days: int = 30, now: datetime | None = None
) -> AnalyticsSummary:
    """Traffic report for the last ``days`` days.

    Visitors are distinct client addresses; page views are product
    interactions of any kind. ``*ThisMonth`` figures start at midnight UTC
    on the first of the current month.
    """
    now = now or utcnow()
    since = now - timedelta(days=days)
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

    async def visitors(start: datetime) -> int:
        return await db.scalar(
            select(func.count(distinct(VisitorSession.ip_address))).where(
                VisitorSession.start_time >= start
            )
        ) or 0

    async def page_views(start: datetime, *conditions) -> int:
        return await db.scalar(
            select(func.count(ProductView.id)).where(
                ProductView.viewed_at >= start, *conditions
            )
        ) or 0

    total_sessions = await db.scalar(
        select(func.count(VisitorSession.id)).where(VisitorSession.start_time >= since)
    ) or 0
    bounced = await db.scalar(
        select(func.count(VisitorSession.id)).where(
            VisitorSession.start_time >= since, VisitorSession.page_views == 0
        )
    ) or 0
    total_page_views = await page_views(since)
    purchases = await page_views(since, ProductView.action == ProductAction.PURCHASE)
    conversion = round(purchases * 100 / total_page_views, 2) if total_page_views else 0

    views = func.count(ProductView.id).label("views")
    top = await db.execute(
        select(
            ProductView.product_id,
            func.max(ProductView.product_name).label("name"),
            views,
            func.sum(
                case((ProductView.action == ProductAction.PURCHASE, 1), else_=0)
            ).label("purchases"),
        )
        .where(ProductView.viewed_at >= since)
        .group_by(ProductView.product_id)
        .order_by(views.desc(), ProductView.product_id)
        .limit(TOP_PRODUCTS_LIMIT)
    )

    by_source = dict(
        (
            await db.execute(
                select(VisitorSession.source, func.count(VisitorSession.id))
                .where(VisitorSession.start_time >= since)
                .group_by(VisitorSession.source)
            )
        ).all()
    )

    return AnalyticsSummary(
        days=days,
        total_visitors=await visitors(since),
        visitors_this_month=await visitors(month_start),
        total_page_views=total_page_views,
        page_views_this_month=await page_views(month_start),
        total_sessions=total_sessions,
        average_time_on_site=format_duration(
            await _average_session_seconds(db, since, now)
        ),
        bounce_rate=f"{percent(bounced, total_sessions)}%",
        conversion_rate=f"{conversion:g}%",
        top_products=[
            TopProduct(
                id=row.product_id,
                name=row.name,
                views=row.views,
                purchases=int(row.purchases or 0),
            )
            for row in top.all()
        ],
        traffic_sources=[
            TrafficShare(
                source=source.value.capitalize(),
                sessions=by_source.get(source, 0),
                percentage=percent(by_source.get(source, 0), total_sessions),
            )
            for source in TrafficSource
        ],
    )


async def product_analytics(db: AsyncSession, product_id: str) -> ProductAnalytics:
    """Interaction counts for one product over all time."""
    result = await db.execute(
        select(ProductView.action, func.count(ProductView.id))
        .where(ProductView.product_id == product_id)
        .group_by(ProductView.action)
    )
    counts = dict(result.all())
    total = sum(counts.values())
    purchases = counts.get(ProductAction.PURCHASE, 0)
    return ProductAnalytics(
        product_id=product_id,
        views=total,
        purchases=purchases,
        cart_adds=counts.get(ProductAction.ADD_TO_CART, 0),
        wishlist_adds=counts.get(ProductAction.WISHLIST, 0),
        conversion_rate=round(purchases * 100 / total, 2) if total else 0.0,
    )
