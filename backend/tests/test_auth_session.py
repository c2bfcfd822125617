"""Refresh, logout and current-account tests."""

from datetime import timedelta

from sqlalchemy import select

from conftest import PASSWORD, auth_headers
from storefront.config.config import settings
from storefront.core.security import issue_refresh_token, verify_access_token
from storefront.core.timeutils import utcnow
from storefront.models.admin_user import Role
from storefront.models.audit_log import AuditAction, AuditLog, AuditStatus
from storefront.services import account_service


async def sign_in(client) -> dict:
    response = await client.post(
        "/auth/login", json={"email": "admin@example.com", "password": PASSWORD}
    )
    return response.json()["data"]


async def test_refresh_with_body_token(client, admin):
    tokens = await sign_in(client)

    response = await client.post(
        "/auth/refresh", json={"refreshToken": tokens["refreshToken"]}
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert set(data) == {"accessToken"}
    assert verify_access_token(data["accessToken"]).email == "admin@example.com"


async def test_refresh_with_cookie_only(client, admin):
    tokens = await sign_in(client)

    response = await client.post(
        "/auth/refresh",
        headers={"Cookie": f"{settings.REFRESH_COOKIE_NAME}={tokens['refreshToken']}"},
    )

    assert response.status_code == 200
    assert "accessToken" in response.json()["data"]


async def test_refresh_without_token(client):
    response = await client.post("/auth/refresh", json={})

    assert response.status_code == 400
    assert response.json()["message"] == "Refresh token is required"


async def test_refresh_rejects_access_tokens_and_garbage(client, admin):
    tokens = await sign_in(client)

    for token in (tokens["accessToken"], "garbage"):
        response = await client.post("/auth/refresh", json={"refreshToken": token})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired refresh token"


async def test_refresh_rejects_expired_token(client, admin):
    issued = utcnow() - timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS, minutes=1)
    token = issue_refresh_token(admin.id, admin.email, admin.role, now=issued)

    response = await client.post("/auth/refresh", json={"refreshToken": token})

    assert response.status_code == 401


async def test_refresh_for_deactivated_account_is_forbidden(client, admin, db):
    tokens = await sign_in(client)
    await account_service.deactivate_account(db, admin)

    response = await client.post(
        "/auth/refresh", json={"refreshToken": tokens["refreshToken"]}
    )

    assert response.status_code == 403
    body = response.json()
    assert body == {"success": False, "message": "Admin account not found or inactive"}


async def test_refresh_uses_live_role(client, admin, db):
    tokens = await sign_in(client)
    await account_service.update_account(db, admin, role=Role.VIEWER)

    response = await client.post(
        "/auth/refresh", json={"refreshToken": tokens["refreshToken"]}
    )

    token = response.json()["data"]["accessToken"]
    assert verify_access_token(token).role is Role.VIEWER


async def test_logout_clears_cookie_and_is_audited(client, admin, db):
    tokens = await sign_in(client)

    response = await client.post(
        "/auth/logout",
        headers={"Cookie": f"{settings.REFRESH_COOKIE_NAME}={tokens['refreshToken']}"},
    )

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Logout successful"}
    cookie = response.headers["set-cookie"]
    assert cookie.startswith(f"{settings.REFRESH_COOKIE_NAME}=")
    assert "Max-Age=0" in cookie

    result = await db.execute(
        select(AuditLog).where(AuditLog.action == AuditAction.LOGOUT)
    )
    entry = result.scalars().one()
    assert entry.email == "admin@example.com"
    assert entry.status is AuditStatus.SUCCESS


async def test_logout_without_session_still_succeeds(client):
    response = await client.post("/auth/logout")

    assert response.status_code == 200


async def test_me_returns_profile_without_password(client, admin):
    response = await client.get("/auth/me", headers=auth_headers(admin))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["email"] == "admin@example.com"
    assert data["isActive"] is True
    assert "password" not in data


async def test_me_requires_a_token(client):
    response = await client.get("/auth/me")

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


async def test_me_for_missing_account(client, admin, db):
    headers = auth_headers(admin)
    await db.delete(admin)
    await db.commit()

    response = await client.get("/auth/me", headers=headers)

    assert response.status_code == 404
    assert response.json()["message"] == "Admin not found"
