"""Password hashing and JWT issuance/verification.

TOKEN MODEL:

1. ACCESS TOKEN (JWT, 24h by default):
   - Signed with ``JWT_ACCESS_SECRET``
   - Sent by clients as ``Authorization: Bearer <token>`` on admin routes
   - Carries a snapshot of the account's role at issuance

2. REFRESH TOKEN (JWT, 7 days by default):
   - Signed with the separate ``JWT_REFRESH_SECRET``
   - Exchanged at ``/auth/refresh`` for a new access token
   - Not rotated on use; it stays valid until its own expiry

Both kinds carry ``sub`` (account id), ``email``, ``role``, ``token_type``,
``iat`` and ``exp``. Verification returns ``None`` on any failure so
callers decide which HTTP error to raise.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError
from pwdlib import PasswordHash
from pwdlib.exceptions import UnknownHashError
from pwdlib.hashers.bcrypt import BcryptHasher

from storefront.config.config import settings
from storefront.core.logging import logger
from storefront.core.timeutils import utcnow
from storefront.models.admin_user import Role
from storefront.schemas.auth import TokenData

password_hash = PasswordHash((BcryptHasher(rounds=settings.PASSWORD_BCRYPT_ROUNDS),))


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a stored hash.

    Args:
        plain_password: The clear-text password provided by the user.
        hashed_password: The stored password hash to verify against.

    Returns:
        bool: True if the password matches, False otherwise (including when
            the stored value is not a recognised hash).
    """
    try:
        return password_hash.verify(plain_password, hashed_password)
    except UnknownHashError:
        logger.warning("Stored password value is not a recognised hash")
        return False


def get_password_hash(password: str) -> str:
    """Hash a plain password with a fresh salt.

    Args:
        password: Plain-text password to hash.

    Returns:
        str: The resulting bcrypt hash.
    """
    return password_hash.hash(password)


def unusable_password_hash() -> str:
    """Hash of a random secret nobody knows, for accounts that sign in via OAuth."""
    return get_password_hash(secrets.token_urlsafe(32))


class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True)
class _TokenConfig:
    secret: str
    algorithm: str
    lifetime: timedelta


def _token_config(kind: TokenKind) -> _TokenConfig:
    if kind is TokenKind.ACCESS:
        return _TokenConfig(
            settings.JWT_ACCESS_SECRET,
            settings.JWT_ACCESS_ALGORITHM,
            timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS),
        )
    return _TokenConfig(
        settings.JWT_REFRESH_SECRET,
        settings.JWT_REFRESH_ALGORITHM,
        timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )


def token_lifetime(kind: TokenKind) -> timedelta:
    return _token_config(kind).lifetime


def issue_token(
    kind: TokenKind,
    account_id: int,
    email: str,
    role: Role,
    now: datetime | None = None,
) -> str:
    """Sign a token of ``kind`` for the given account.

    Args:
        kind: Access or refresh.
        account_id: Account primary key (stored as the ``sub`` claim).
        email: Account email.
        role: Account role at issuance.
        now: Issuance time; defaults to the current time.

    Returns:
        str: Encoded JWT.
    """
    cfg = _token_config(kind)
    issued_at = now or utcnow()
    payload = {
        "sub": str(account_id),
        "email": email,
        "role": Role(role).value,
        "token_type": kind.value,
        "iat": issued_at,
        "exp": issued_at + cfg.lifetime,
    }
    return jwt.encode(payload, cfg.secret, algorithm=cfg.algorithm)


def issue_access_token(
    account_id: int, email: str, role: Role, now: datetime | None = None
) -> str:
    return issue_token(TokenKind.ACCESS, account_id, email, role, now)


def issue_refresh_token(
    account_id: int, email: str, role: Role, now: datetime | None = None
) -> str:
    return issue_token(TokenKind.REFRESH, account_id, email, role, now)


def verify_token(kind: TokenKind, token: str) -> TokenData | None:
    """Verify signature, expiry and kind of ``token``.

    Returns:
        TokenData | None: The verified claims, or None when the token is
            expired, malformed, badly signed or of the wrong kind.
    """
    cfg = _token_config(kind)
    try:
        payload = jwt.decode(
            token,
            cfg.secret,
            algorithms=[cfg.algorithm],
            options={"require": ["sub", "exp", "iat"]},
        )
    except ExpiredSignatureError:
        logger.info("Rejected expired {} token", kind.value)
        return None
    except InvalidTokenError as exc:
        logger.warning("Rejected invalid {} token: {}", kind.value, exc)
        return None

    if payload.get("token_type") != kind.value:
        logger.warning(
            "Rejected token of type {} where {} was expected",
            payload.get("token_type"),
            kind.value,
        )
        return None
    try:
        return TokenData.from_claims(payload)
    except ValueError as exc:
        logger.warning("Rejected {} token with malformed claims: {}", kind.value, exc)
        return None


def verify_access_token(token: str) -> TokenData | None:
    return verify_token(TokenKind.ACCESS, token)


def verify_refresh_token(token: str) -> TokenData | None:
    return verify_token(TokenKind.REFRESH, token)


def decode_token(token: str) -> dict | None:
    """Parse claims without verifying the signature.

    Only for inspection (e.g. logging who a rejected token claimed to be);
    never use the result for an authorization decision.
    """
    try:
        return jwt.decode(token, options={"verify_signature": False})
    except InvalidTokenError:
        return None
