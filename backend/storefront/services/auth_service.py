"""Login, refresh, logout and Google sign-in flows.

LOGIN (password):
   rate limit (route dependency) -> account lookup -> active check ->
   lock check (expired locks are cleared here) -> password check ->
   counters reset + tokens issued -> audit record

A wrong password increments the account's counter; the attempt that
reaches ``LOGIN_MAX_ATTEMPTS`` locks the account for ``LOGIN_LOCK_MINUTES``.
Those state changes are committed even though the request fails.

Unknown emails and wrong passwords share one message so responses do not
reveal which accounts exist.
"""

import math
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from storefront.config.config import settings
from storefront.core.errors import AccountLocked, Forbidden, Unauthenticated
from storefront.core.logging import logger
from storefront.core.rate_limiter import RateLimiter
from storefront.core.security import (
    decode_token,
    issue_access_token,
    issue_refresh_token,
    unusable_password_hash,
    verify_refresh_token,
)
from storefront.core.timeutils import as_utc, utcnow
from storefront.models.admin_user import AdminUser, Role
from storefront.models.audit_log import AuditAction, AuditStatus
from storefront.services import account_service, audit_service
from storefront.services.audit_service import ClientInfo
from storefront.services.google_oauth import GoogleIdentityVerifier

INVALID_CREDENTIALS = "Invalid email or password"
INACTIVE_ACCOUNT = "Admin account is inactive"


@dataclass
class LoginResult:
    account: AdminUser
    access_token: str
    refresh_token: str


def _minutes_until(moment) -> int:
    return max(1, math.ceil((as_utc(moment) - utcnow()).total_seconds() / 60))


async def complete_login(
    db: AsyncSession,
    account: AdminUser,
    client: ClientInfo,
    limiter: RateLimiter,
    action: AuditAction = AuditAction.LOGIN_SUCCESS,
) -> LoginResult:
    """Shared tail of every successful sign-in.

    Resets lockout state, stamps ``last_login``, clears the caller's rate
    limit, issues both tokens and writes the audit record.
    """
    await account_service.register_successful_login(db, account)
    await limiter.clear(client.ip_address)

    account_id, email, role = account.id, account.email, account.role
    access_token = issue_access_token(account_id, email, role)
    refresh_token = issue_refresh_token(account_id, email, role)

    await audit_service.record_event(db, action, email, AuditStatus.SUCCESS, client)
    logger.info("Admin {} logged in via {}", email, action.value)
    return LoginResult(account, access_token, refresh_token)


async def login(
    db: AsyncSession,
    email: str,
    password: str,
    client: ClientInfo,
    limiter: RateLimiter,
) -> LoginResult:
    """Authenticate with email and password.

    Raises:
        Unauthenticated: Unknown email or wrong password (401).
        Forbidden: Account inactive (403).
        AccountLocked: Account locked, or locked by this attempt (423).
    """
    email = email.strip().lower()
    account = await account_service.get_by_email(db, email, with_password=True)

    if account is None:
        logger.warning("Failed login for unknown email={} ip={}", email, client.ip_address)
        await audit_service.record_event(
            db, AuditAction.LOGIN_FAILED, email, AuditStatus.FAILED, client, "Unknown email"
        )
        raise Unauthenticated(INVALID_CREDENTIALS)

    if not account.is_active:
        logger.warning("Login attempt on inactive account email={}", email)
        await audit_service.record_event(
            db, AuditAction.LOGIN_FAILED, email, AuditStatus.BLOCKED, client, "Account inactive"
        )
        raise Forbidden(INACTIVE_ACCOUNT)

    if account.is_locked:
        locked_until = as_utc(account.locked_until)
        if locked_until is not None and locked_until > utcnow():
            minutes = _minutes_until(locked_until)
            await audit_service.record_event(
                db,
                AuditAction.LOGIN_ATTEMPT,
                email,
                AuditStatus.BLOCKED,
                client,
                "Account locked",
            )
            raise AccountLocked(f"Account is locked. Try again in {minutes} minutes")
        # Lock window has passed: start over and check the password fresh
        logger.info("Lock expired for email={}, resetting counters", email)
        await account_service.reset_lockout(db, account)

    if not await account_service.check_password(account, password):
        state = await account_service.register_failed_attempt(db, account)
        if state.is_locked:
            logger.warning(
                "Account email={} locked after {} failed attempts",
                email,
                state.login_attempts,
            )
            await audit_service.record_event(
                db,
                AuditAction.LOGIN_FAILED,
                email,
                AuditStatus.BLOCKED,
                client,
                f"Account locked after {state.login_attempts} failed attempts",
            )
            raise AccountLocked(
                "Too many failed login attempts. "
                f"Account locked for {settings.LOGIN_LOCK_MINUTES} minutes"
            )

        remaining = max(0, settings.LOGIN_MAX_ATTEMPTS - state.login_attempts)
        logger.warning(
            "Wrong password for email={} ({} attempts remaining)", email, remaining
        )
        await audit_service.record_event(
            db,
            AuditAction.LOGIN_FAILED,
            email,
            AuditStatus.FAILED,
            client,
            f"Invalid password ({state.login_attempts}/{settings.LOGIN_MAX_ATTEMPTS})",
        )
        raise Unauthenticated(f"{INVALID_CREDENTIALS}. {remaining} attempts remaining")

    return await complete_login(db, account, client, limiter)


async def refresh_access_token(
    db: AsyncSession, refresh_token: str, client: ClientInfo
) -> str:
    """Exchange a refresh token for a new access token.

    The account must still exist and be active; the refresh token itself
    is not rotated.

    Raises:
        Unauthenticated: Refresh token invalid or expired (401).
        Forbidden: Account missing or inactive (403).
    """
    token_data = verify_refresh_token(refresh_token)
    if token_data is None:
        claimed = decode_token(refresh_token) or {}
        await audit_service.record_event(
            db,
            AuditAction.TOKEN_REFRESH,
            claimed.get("email"),
            AuditStatus.FAILED,
            client,
            "Invalid or expired refresh token",
        )
        raise Unauthenticated("Invalid or expired refresh token")

    account = await account_service.get_by_id(db, token_data.account_id)
    if account is None or not account.is_active:
        logger.warning(
            "Refresh refused for account id={} (missing or inactive)",
            token_data.account_id,
        )
        await audit_service.record_event(
            db,
            AuditAction.TOKEN_REFRESH,
            token_data.email,
            AuditStatus.BLOCKED,
            client,
            "Account not found or inactive",
        )
        raise Forbidden("Admin account not found or inactive")

    email = account.email
    access_token = issue_access_token(account.id, email, account.role)
    await audit_service.record_event(
        db, AuditAction.TOKEN_REFRESH, email, AuditStatus.SUCCESS, client
    )
    logger.info("Issued new access token for {}", email)
    return access_token


async def logout(db: AsyncSession, refresh_token: str | None, client: ClientInfo) -> None:
    """Record a logout. Tokens are discarded client-side; nothing is revoked."""
    claimed = decode_token(refresh_token) if refresh_token else None
    await audit_service.record_event(
        db,
        AuditAction.LOGOUT,
        (claimed or {}).get("email"),
        AuditStatus.SUCCESS,
        client,
    )


async def google_login(
    db: AsyncSession,
    id_token: str,
    verifier: GoogleIdentityVerifier,
    client: ClientInfo,
    limiter: RateLimiter,
) -> LoginResult:
    """Sign in with a Google ID token.

    Unknown emails get an account only when they are on
    ``ALLOWED_ADMIN_EMAILS``; such accounts are created with the ``admin``
    role and an unusable local password.

    Raises:
        InvalidIdentityToken: Google did not vouch for the token (401).
        Forbidden: Email not allow-listed, or account inactive (403).
    """
    try:
        identity = await verifier.verify(id_token)
    except Unauthenticated as exc:
        await audit_service.record_event(
            db, AuditAction.GOOGLE_OAUTH, None, AuditStatus.FAILED, client, exc.message
        )
        raise

    account = await account_service.get_by_email(db, identity.email)
    if account is None:
        if identity.email not in settings.allowed_admin_emails:
            logger.warning("Google sign-in refused for non-allow-listed {}", identity.email)
            await audit_service.record_event(
                db,
                AuditAction.GOOGLE_OAUTH,
                identity.email,
                AuditStatus.BLOCKED,
                client,
                "Email not allow-listed",
            )
            raise Forbidden("This email is not authorized for admin access")

        account = await account_service.create_account(
            db,
            name=identity.name,
            email=identity.email,
            role=Role.ADMIN,
            is_active=True,
            password_hash=unusable_password_hash(),
        )
        logger.info("Created admin {} on first Google sign-in", identity.email)

    if not account.is_active:
        await audit_service.record_event(
            db,
            AuditAction.GOOGLE_OAUTH,
            identity.email,
            AuditStatus.BLOCKED,
            client,
            "Account inactive",
        )
        raise Forbidden(INACTIVE_ACCOUNT)

    return await complete_login(db, account, client, limiter, AuditAction.GOOGLE_OAUTH)
