"""Login flow and lockout tests."""

from datetime import timedelta

from sqlalchemy import select, update

from conftest import PASSWORD, create_admin, fetch_admin
from storefront.core.security import verify_access_token, verify_refresh_token
from storefront.core.timeutils import as_utc, utcnow
from storefront.models.admin_user import AdminUser
from storefront.models.audit_log import AuditAction, AuditLog, AuditStatus


async def login(client, email="admin@example.com", password=PASSWORD, **kwargs):
    return await client.post(
        "/auth/login", json={"email": email, "password": password}, **kwargs
    )


async def test_login_returns_tokens_and_sets_refresh_cookie(client, admin):
    response = await login(client)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert data["admin"] == {
        "id": admin.id,
        "name": "Test Admin",
        "email": "admin@example.com",
        "role": "admin",
    }
    assert verify_access_token(data["accessToken"]).account_id == admin.id
    assert verify_refresh_token(data["refreshToken"]).account_id == admin.id

    cookie = response.headers["set-cookie"].lower()
    assert cookie.startswith("refreshtoken=")
    assert "httponly" in cookie
    assert "samesite=strict" in cookie


async def test_login_is_case_insensitive_on_email(client, admin):
    response = await login(client, email="ADMIN@Example.com")

    assert response.status_code == 200


async def test_successful_login_stamps_last_login(client, admin, session_factory):
    await login(client)

    stored = await fetch_admin(session_factory, "admin@example.com")
    assert stored.last_login is not None
    assert utcnow() - as_utc(stored.last_login) < timedelta(minutes=1)


async def test_unknown_email_gets_generic_message(client, admin):
    response = await login(client, email="nobody@example.com")

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Invalid email or password"}


async def test_wrong_password_reports_remaining_attempts(client, admin, session_factory):
    response = await login(client, password="wrong-password")

    assert response.status_code == 401
    assert response.json()["message"] == (
        "Invalid email or password. 4 attempts remaining"
    )
    stored = await fetch_admin(session_factory, "admin@example.com")
    assert stored.login_attempts == 1
    assert stored.is_locked is False


async def test_fifth_failure_locks_and_sixth_is_refused(client, admin, session_factory):
    for remaining in (4, 3, 2, 1):
        response = await login(client, password="wrong-password")
        assert response.status_code == 401
        assert response.json()["message"].endswith(f"{remaining} attempts remaining")

    fifth = await login(client, password="wrong-password")
    assert fifth.status_code == 423
    assert fifth.json()["message"] == (
        "Too many failed login attempts. Account locked for 15 minutes"
    )

    sixth = await login(client)
    assert sixth.status_code == 423
    assert sixth.json()["message"] == "Account is locked. Try again in 15 minutes"

    stored = await fetch_admin(session_factory, "admin@example.com")
    assert stored.is_locked is True
    assert stored.login_attempts == 5
    lock_left = as_utc(stored.locked_until) - utcnow()
    assert timedelta(minutes=14) < lock_left <= timedelta(minutes=15)


async def test_expired_lock_is_lifted_on_next_login(client, admin, db, session_factory):
    await db.execute(
        update(AdminUser)
        .where(AdminUser.id == admin.id)
        .values(
            login_attempts=5,
            is_locked=True,
            locked_until=utcnow() - timedelta(seconds=1),
        )
    )
    await db.commit()

    response = await login(client)

    assert response.status_code == 200
    stored = await fetch_admin(session_factory, "admin@example.com")
    assert stored.login_attempts == 0
    assert stored.is_locked is False
    assert stored.locked_until is None


async def test_wrong_password_after_expired_lock_starts_counting_again(
    client, admin, db, session_factory
):
    await db.execute(
        update(AdminUser)
        .where(AdminUser.id == admin.id)
        .values(
            login_attempts=5,
            is_locked=True,
            locked_until=utcnow() - timedelta(seconds=1),
        )
    )
    await db.commit()

    response = await login(client, password="wrong-password")

    assert response.status_code == 401
    assert response.json()["message"].endswith("4 attempts remaining")


async def test_success_resets_previous_failures(client, admin, session_factory):
    for _ in range(3):
        await login(client, password="wrong-password")

    response = await login(client)

    assert response.status_code == 200
    stored = await fetch_admin(session_factory, "admin@example.com")
    assert stored.login_attempts == 0


async def test_inactive_account_is_refused_even_with_right_password(client, db):
    await create_admin(db, email="gone@example.com", is_active=False)

    response = await login(client, email="gone@example.com")

    assert response.status_code == 403
    assert response.json()["message"] == "Admin account is inactive"


async def test_malformed_body_is_a_validation_error(client):
    response = await client.post("/auth/login", json={"email": "not-an-email"})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Validation failed"
    fields = {e["field"] for e in body["errors"]}
    assert {"email", "password"} <= fields


async def test_login_outcomes_are_audited(client, admin, db):
    await login(client, password="wrong-password")
    await login(client, email="nobody@example.com")
    await login(client)

    result = await db.execute(select(AuditLog).order_by(AuditLog.id))
    records = [(r.action, r.email, r.status) for r in result.scalars().all()]

    assert records == [
        (AuditAction.LOGIN_FAILED, "admin@example.com", AuditStatus.FAILED),
        (AuditAction.LOGIN_FAILED, "nobody@example.com", AuditStatus.FAILED),
        (AuditAction.LOGIN_SUCCESS, "admin@example.com", AuditStatus.SUCCESS),
    ]


async def test_audit_records_capture_client_details(client, admin, db):
    await login(
        client,
        headers={"User-Agent": "storefront-tests/1.0", "X-Forwarded-For": "203.0.113.9, 10.0.0.1"},
    )

    entry = (await db.execute(select(AuditLog))).scalars().one()
    assert entry.ip_address == "203.0.113.9"
    assert entry.user_agent == "storefront-tests/1.0"
