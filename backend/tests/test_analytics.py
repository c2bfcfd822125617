"""Storefront analytics tests."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from conftest import auth_headers
from storefront.models.analytics import (
    ProductAction,
    ProductView,
    TrafficSource,
    VisitorSession,
)
from storefront.services import analytics_service

NOW = datetime(2026, 3, 20, 12, 0, tzinfo=timezone.utc)


def visit(session_id, ip, source, days_ago, seconds, page_views):
    start = NOW - timedelta(days=days_ago)
    return VisitorSession(
        session_id=session_id,
        ip_address=ip,
        source=source,
        page_views=page_views,
        start_time=start,
        end_time=start + timedelta(seconds=seconds),
    )


def interaction(product_id, name, action, days_ago):
    return ProductView(
        product_id=product_id,
        product_name=name,
        session_id="s-1",
        action=action,
        viewed_at=NOW - timedelta(days=days_ago),
    )


@pytest.fixture
async def traffic(db):
    db.add_all(
        [
            visit("s-1", "1.1.1.1", TrafficSource.SEARCH, 2, 90, 3),
            visit("s-2", "1.1.1.1", TrafficSource.DIRECT, 10, 30, 0),
            visit("s-3", "2.2.2.2", TrafficSource.SOCIAL, 25, 60, 1),
            visit("s-4", "3.3.3.3", TrafficSource.REFERRAL, 40, 60, 2),
            interaction("p1", "Sofa", ProductAction.VIEW, 1),
            interaction("p1", "Sofa", ProductAction.VIEW, 3),
            interaction("p1", "Sofa", ProductAction.PURCHASE, 1),
            interaction("p2", "Chair", ProductAction.VIEW, 22),
            interaction("p2", "Chair", ProductAction.ADD_TO_CART, 1),
            interaction("p3", "Lamp", ProductAction.VIEW, 50),
        ]
    )
    await db.commit()


async def test_first_track_opens_session_and_later_ones_count_pages(client, db):
    body = {"sessionId": "abc-123", "source": "search", "deviceType": "mobile"}
    headers = {"X-Forwarded-For": "203.0.113.7", "User-Agent": "storefront-test"}

    first = await client.post("/analytics/track-session", json=body, headers=headers)
    second = await client.post("/analytics/track-session", json=body, headers=headers)

    assert first.status_code == 200
    assert first.json()["message"] == "Session started"
    opened = first.json()["data"]
    assert opened["pageViews"] == 0
    assert opened["ipAddress"] == "203.0.113.7"
    assert opened["userAgent"] == "storefront-test"
    assert opened["deviceType"] == "mobile"
    assert opened["endTime"] is None

    assert second.json()["message"] == "Session updated"
    updated = second.json()["data"]
    assert updated["id"] == opened["id"]
    assert updated["pageViews"] == 1
    assert updated["endTime"] is not None

    count = await db.scalar(select(func.count()).select_from(VisitorSession))
    assert count == 1


async def test_reported_address_wins_over_request_address(client):
    response = await client.post(
        "/analytics/track-session",
        json={"sessionId": "abc", "ipAddress": "198.51.100.1"},
        headers={"X-Forwarded-For": "203.0.113.7"},
    )

    data = response.json()["data"]
    assert data["ipAddress"] == "198.51.100.1"
    assert data["source"] == "direct"
    assert data["deviceType"] == "desktop"


async def test_track_session_validates_body(client):
    missing = await client.post("/analytics/track-session", json={})
    bad_source = await client.post(
        "/analytics/track-session", json={"sessionId": "x", "source": "billboard"}
    )

    assert missing.status_code == 400
    assert bad_source.status_code == 400
    assert bad_source.json()["message"] == "Validation failed"


async def test_track_product_view_defaults_to_view(client):
    response = await client.post(
        "/analytics/track-product-view",
        json={"productId": "p1", "productName": "Sofa", "sessionId": "abc"},
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["action"] == "view"
    assert data["timeSpent"] == 0


async def test_track_product_view_rejects_unknown_actions(client):
    response = await client.post(
        "/analytics/track-product-view",
        json={
            "productId": "p1",
            "productName": "Sofa",
            "sessionId": "abc",
            "action": "share",
        },
    )

    assert response.status_code == 400


async def test_summary_figures(db, traffic):
    report = await analytics_service.summary(db, 30, now=NOW)

    assert report.total_sessions == 3
    assert report.total_visitors == 2
    assert report.visitors_this_month == 1
    assert report.total_page_views == 5
    assert report.page_views_this_month == 4
    assert report.average_time_on_site == "1m 0s"
    assert report.bounce_rate == "33%"
    assert report.conversion_rate == "20%"
    assert [(p.id, p.name, p.views, p.purchases) for p in report.top_products] == [
        ("p1", "Sofa", 3, 1),
        ("p2", "Chair", 2, 0),
    ]
    assert {s.source: s.percentage for s in report.traffic_sources} == {
        "Direct": 33,
        "Search": 33,
        "Social": 33,
        "Referral": 0,
        "Other": 0,
    }


async def test_summary_of_empty_window(db):
    report = await analytics_service.summary(db, 7, now=NOW)

    assert report.total_sessions == 0
    assert report.average_time_on_site == "0s"
    assert report.bounce_rate == "0%"
    assert report.conversion_rate == "0%"
    assert report.top_products == []


async def test_summary_requires_editor(client, viewer, editor):
    anonymous = await client.get("/analytics/summary")
    as_viewer = await client.get("/analytics/summary", headers=auth_headers(viewer))
    as_editor = await client.get(
        "/analytics/summary", params={"days": 7}, headers=auth_headers(editor)
    )

    assert anonymous.status_code == 401
    assert as_viewer.status_code == 403
    assert as_editor.status_code == 200
    assert as_editor.json()["data"]["days"] == 7
    assert "trafficSources" in as_editor.json()["data"]


async def test_summary_rejects_out_of_range_days(client, editor):
    response = await client.get(
        "/analytics/summary", params={"days": 0}, headers=auth_headers(editor)
    )

    assert response.status_code == 400


async def test_product_analytics(client, editor, traffic):
    response = await client.get("/analytics/product/p1", headers=auth_headers(editor))

    assert response.status_code == 200
    assert response.json()["data"] == {
        "productId": "p1",
        "views": 3,
        "purchases": 1,
        "cartAdds": 0,
        "wishlistAdds": 0,
        "conversionRate": 33.33,
    }


async def test_product_analytics_for_unseen_product(db):
    report = await analytics_service.product_analytics(db, "nothing")

    assert report.views == 0
    assert report.conversion_rate == 0.0


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [(0, "0s"), (45, "45s"), (125, "2m 5s"), (5400, "1h 30m")],
)
def test_format_duration(seconds, expected):
    assert analytics_service.format_duration(seconds) == expected
