"""Password hashing and JWT tests."""

from datetime import timedelta

import jwt

from storefront.config.config import settings
from storefront.core.security import (
    decode_token,
    get_password_hash,
    issue_access_token,
    issue_refresh_token,
    unusable_password_hash,
    verify_access_token,
    verify_password,
    verify_refresh_token,
)
from storefront.core.timeutils import utcnow
from storefront.models.admin_user import Role


def test_hashes_are_salted_but_both_verify():
    first = get_password_hash("s3cret-pass")
    second = get_password_hash("s3cret-pass")

    assert first != second
    assert verify_password("s3cret-pass", first)
    assert verify_password("s3cret-pass", second)
    assert not verify_password("other-pass", first)


def test_verify_password_rejects_values_that_are_not_hashes():
    assert verify_password("anything", "plain-text-not-a-hash") is False


def test_unusable_password_matches_nothing_obvious():
    digest = unusable_password_hash()
    assert not verify_password("", digest)
    assert not verify_password("password", digest)


def test_access_token_round_trip():
    token = issue_access_token(42, "admin@example.com", Role.EDITOR)

    data = verify_access_token(token)

    assert data is not None
    assert data.account_id == 42
    assert data.email == "admin@example.com"
    assert data.role is Role.EDITOR
    assert data.token_type == "access"
    assert data.expires_at - data.issued_at == timedelta(
        hours=settings.ACCESS_TOKEN_EXPIRE_HOURS
    )


def test_refresh_token_lifetime_and_round_trip():
    token = issue_refresh_token(7, "viewer@example.com", Role.VIEWER)

    data = verify_refresh_token(token)

    assert data is not None
    assert data.account_id == 7
    assert data.expires_at - data.issued_at == timedelta(
        days=settings.REFRESH_TOKEN_EXPIRE_DAYS
    )


def test_expired_access_token_returns_none():
    issued = utcnow() - timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS, minutes=1)
    token = issue_access_token(1, "admin@example.com", Role.ADMIN, now=issued)

    assert verify_access_token(token) is None


def test_token_kinds_are_not_interchangeable():
    access = issue_access_token(1, "admin@example.com", Role.ADMIN)
    refresh = issue_refresh_token(1, "admin@example.com", Role.ADMIN)

    assert verify_refresh_token(access) is None
    assert verify_access_token(refresh) is None


def test_token_signed_with_other_secret_is_rejected():
    now = utcnow()
    forged = jwt.encode(
        {
            "sub": "1",
            "email": "admin@example.com",
            "role": "admin",
            "token_type": "access",
            "iat": now,
            "exp": now + timedelta(hours=1),
        },
        "not-the-real-secret-but-long-enough-to-sign",
        algorithm="HS256",
    )

    assert verify_access_token(forged) is None


def test_garbage_token_returns_none():
    assert verify_access_token("not.a.jwt") is None
    assert decode_token("not.a.jwt") is None


def test_decode_token_reads_claims_without_verifying():
    token = issue_refresh_token(3, "editor@example.com", Role.EDITOR)

    claims = decode_token(token)

    assert claims["email"] == "editor@example.com"
    assert claims["sub"] == "3"
