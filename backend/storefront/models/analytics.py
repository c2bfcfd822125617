"""Storefront traffic analytics: visitor sessions and product interactions."""

import enum

from sqlalchemy import Column, DateTime, Enum, Index, Integer, String

from storefront.core.timeutils import utcnow
from storefront.db.session import Base


class DeviceType(str, enum.Enum):
    MOBILE = "mobile"
    TABLET = "tablet"
    DESKTOP = "desktop"


class TrafficSource(str, enum.Enum):
    DIRECT = "direct"
    SEARCH = "search"
    SOCIAL = "social"
    REFERRAL = "referral"
    OTHER = "other"


class ProductAction(str, enum.Enum):
    VIEW = "view"
    ADD_TO_CART = "add_to_cart"
    PURCHASE = "purchase"
    WISHLIST = "wishlist"


def _values(members):
    return [m.value for m in members]


class VisitorSession(Base):
    """One browsing session, keyed by the client-generated ``session_id``.

    Attributes:
        id: Primary key.
        session_id: Client session identifier, unique.
        ip_address: Client address.
        user_agent: Client agent string.
        referrer: Referring URL, when the client reported one.
        device_type: Device class, see :class:`DeviceType`.
        source: Traffic source, see :class:`TrafficSource`.
        page_views: Pages seen after the one that opened the session.
        start_time: First time the session was tracked.
        end_time: Last time the session was tracked.
    """

    __tablename__ = "visitor_sessions"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(String(128), nullable=False, unique=True, index=True)
    ip_address = Column(String(64), nullable=False, default="unknown")
    user_agent = Column(String(255), nullable=False, default="")
    referrer = Column(String(500), nullable=True)
    device_type = Column(
        Enum(DeviceType, name="device_type", values_callable=_values),
        nullable=False,
        default=DeviceType.DESKTOP,
    )
    source = Column(
        Enum(TrafficSource, name="traffic_source", values_callable=_values),
        nullable=False,
        default=TrafficSource.DIRECT,
    )
    page_views = Column(Integer, nullable=False, default=0)
    start_time = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    end_time = Column(DateTime(timezone=True), nullable=True)


class ProductView(Base):
    """A single interaction with a product page."""

    __tablename__ = "product_views"
    __table_args__ = (
        Index("ix_product_views_product_viewed_at", "product_id", "viewed_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(String(64), nullable=False, index=True)
    product_name = Column(String(200), nullable=False)
    session_id = Column(String(128), nullable=False, index=True)
    user_id = Column(String(64), nullable=True)
    time_spent = Column(Integer, nullable=False, default=0)
    action = Column(
        Enum(ProductAction, name="product_action", values_callable=_values),
        nullable=False,
        default=ProductAction.VIEW,
    )
    viewed_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
