"""Schemas for storefront analytics tracking and reports."""

from datetime import datetime

from pydantic import Field

from storefront.models.analytics import DeviceType, ProductAction, TrafficSource
from storefront.schemas.common import CamelModel


class SessionTrack(CamelModel):
    """Body of ``POST /analytics/track-session``.

    ``ipAddress`` and ``userAgent`` default to what the request itself shows.
    """

    session_id: str = Field(min_length=1, max_length=128)
    ip_address: str | None = Field(default=None, max_length=64)
    user_agent: str | None = Field(default=None, max_length=255)
    referrer: str | None = Field(default=None, max_length=500)
    source: TrafficSource = TrafficSource.DIRECT
    device_type: DeviceType = DeviceType.DESKTOP


class ProductViewTrack(CamelModel):
    """Body of ``POST /analytics/track-product-view``."""

    product_id: str = Field(min_length=1, max_length=64)
    product_name: str = Field(min_length=1, max_length=200)
    session_id: str = Field(min_length=1, max_length=128)
    user_id: str | None = Field(default=None, max_length=64)
    time_spent: int = Field(default=0, ge=0)
    action: ProductAction = ProductAction.VIEW


class VisitorSessionOut(CamelModel):
    id: int
    session_id: str
    ip_address: str
    user_agent: str
    referrer: str | None = None
    device_type: DeviceType
    source: TrafficSource
    page_views: int
    start_time: datetime
    end_time: datetime | None = None


class ProductViewOut(CamelModel):
    id: int
    product_id: str
    product_name: str
    session_id: str
    user_id: str | None = None
    time_spent: int
    action: ProductAction
    viewed_at: datetime


class TopProduct(CamelModel):
    id: str
    name: str
    views: int
    purchases: int


class TrafficShare(CamelModel):
    source: str
    sessions: int
    percentage: int


class AnalyticsSummary(CamelModel):
    """Traffic report over the last ``days`` days."""

    days: int
    total_visitors: int
    visitors_this_month: int
    total_page_views: int
    page_views_this_month: int
    total_sessions: int
    average_time_on_site: str
    bounce_rate: str
    conversion_rate: str
    top_products: list[TopProduct]
    traffic_sources: list[TrafficShare]


class ProductAnalytics(CamelModel):
    product_id: str
    views: int
    purchases: int
    cart_adds: int
    wishlist_adds: int
    conversion_rate: float
