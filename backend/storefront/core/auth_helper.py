"""Request-level authentication helpers and FastAPI dependencies.

AUTHORIZATION GATE:

1. AUTHENTICATION (``get_current_admin``):
   - Requires ``Authorization: Bearer <access token>``
   - Missing/malformed header -> 401
   - Bad signature or expired token -> 401
   - On success the token claims are bound to ``request.state.admin``

2. ROLE CHECK (``require_role``):
   - Roles are ordered viewer < editor < admin
   - ``require_role(Role.VIEWER)``: any authenticated admin
   - ``require_role(Role.EDITOR)``: editor or admin
   - ``require_role(Role.ADMIN)``: admin only
   - Failure -> 403 naming the accepted roles and the caller's role

The gate trusts the role snapshot inside the access token; it does not
reload the account.
"""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.errors import Forbidden, TooManyRequests, Unauthenticated
from storefront.core.logging import logger
from storefront.core.rate_limiter import RateLimiter
from storefront.core.security import verify_access_token
from storefront.db.session import get_db
from storefront.models.admin_user import Role
from storefront.models.audit_log import AuditAction, AuditStatus
from storefront.schemas.auth import TokenData
from storefront.services import audit_service
from storefront.services.audit_service import ClientInfo
from storefront.services.google_oauth import GoogleIdentityVerifier

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_admin(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> TokenData:
    """Validate the bearer access token and return its claims.

    Raises:
        Unauthenticated: If the header is missing or the token is invalid.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise Unauthenticated("Missing or invalid authorization header")

    token_data = verify_access_token(credentials.credentials)
    if token_data is None:
        raise Unauthenticated("Invalid or expired token")

    request.state.admin = token_data
    return token_data


CurrentAdmin = Annotated[TokenData, Depends(get_current_admin)]


def require_role(minimum: Role):
    """Build a dependency admitting callers whose role is at least ``minimum``."""
    accepted = ", ".join(r.value for r in Role.at_least(minimum))

    async def check_role(current: CurrentAdmin) -> TokenData:
        if not current.role.satisfies(minimum):
            logger.warning(
                "Forbidden: account id={} role={} needs {}",
                current.account_id,
                current.role.value,
                accepted,
            )
            raise Forbidden(
                f"Forbidden: Required role(s) {accepted}. Your role: {current.role.value}"
            )
        return current

    return check_role


any_admin = require_role(Role.VIEWER)
editor_or_admin = require_role(Role.EDITOR)
admin_only = require_role(Role.ADMIN)


def get_device_info(request: Request) -> str:
    """Extract device information (user-agent) from a request.

    Args:
        request: FastAPI request object.

    Returns:
        str: Truncated user-agent string (max 255 characters).
    """

    user_agent = request.headers.get("user-agent", "")
    return user_agent[:255]


def get_client_ip(request: Request) -> str:
    """Determine the client's IP address from the request.

    Prefers the `X-Forwarded-For` header when present (typical when
    the app is behind a proxy/load-balancer), otherwise falls back to the
    direct client address exposed by the ASGI server.

    Args:
        request: FastAPI request object.

    Returns:
        str: Client IP address or "unknown" if it cannot be determined.
    """

    # NOTE: Check for proxy headers first to support deployments behind a
    # reverse proxy or load balancer that sets `X-Forwarded-For`.
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def get_client_info(request: Request) -> ClientInfo:
    return ClientInfo(ip_address=get_client_ip(request), user_agent=get_device_info(request))


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_google_verifier(request: Request) -> GoogleIdentityVerifier:
    return request.app.state.google_verifier


async def login_rate_limit(
    client: Annotated[ClientInfo, Depends(get_client_info)],
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> None:
    """Count this request against the caller's address; 429 when exhausted."""
    try:
        await limiter.hit(client.ip_address)
    except TooManyRequests as exc:
        await audit_service.record_event(
            db,
            AuditAction.LOGIN_ATTEMPT,
            None,
            AuditStatus.BLOCKED,
            client,
            reason=exc.message,
        )
        raise
