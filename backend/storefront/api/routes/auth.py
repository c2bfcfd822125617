"""Authentication routes.

Endpoints:
    - POST /auth/login: Email/password login (access + refresh tokens)
    - POST /auth/refresh: Exchange a refresh token for a new access token
    - POST /auth/logout: Clear the refresh cookie
    - GET /auth/me: Profile of the current account
    - POST /auth/google: Sign in with a Google ID token

Login and Google sign-in are rate limited per client address. The refresh
token is returned in the body and also set as an httpOnly cookie.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.config.config import settings
from storefront.core.auth_helper import (
    CurrentAdmin,
    get_client_info,
    get_google_verifier,
    get_rate_limiter,
    login_rate_limit,
)
from storefront.core.errors import NotFound, ValidationFailed
from storefront.core.rate_limiter import RateLimiter
from storefront.core.security import TokenKind, token_lifetime
from storefront.db.session import get_db
from storefront.schemas.auth import (
    AccessToken,
    AdminProfile,
    AdminSummary,
    GoogleLoginRequest,
    LoginRequest,
    LoginResponse,
    TokenRefresh,
)
from storefront.schemas.common import success
from storefront.services import account_service, auth_service
from storefront.services.audit_service import ClientInfo
from storefront.services.google_oauth import GoogleIdentityVerifier

router = APIRouter(prefix="/auth", tags=["auth"])


def set_refresh_cookie(response: Response, refresh_token: str) -> None:
    # NOTE: secure cookies only in production so local http development works
    response.set_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        value=refresh_token,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
        max_age=int(token_lifetime(TokenKind.REFRESH).total_seconds()),
        path="/",
    )


def clear_refresh_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
        path="/",
    )


def _login_body(result: auth_service.LoginResult) -> LoginResponse:
    return LoginResponse(
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        admin=AdminSummary.model_validate(result.account),
    )


@router.post("/login", dependencies=[Depends(login_rate_limit)])
async def login(
    body: LoginRequest,
    response: Response,
    client: Annotated[ClientInfo, Depends(get_client_info)],
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Authenticate with email and password.

    Returns:
        dict: ``{success, message, data: {accessToken, refreshToken, admin}}``
            with the refresh token also set as an httpOnly cookie.
    """
    result = await auth_service.login(db, body.email, body.password, client, limiter)
    set_refresh_cookie(response, result.refresh_token)
    return success("Login successful", _login_body(result))


@router.post("/refresh")
async def refresh(
    request: Request,
    client: Annotated[ClientInfo, Depends(get_client_info)],
    db: Annotated[AsyncSession, Depends(get_db)],
    body: TokenRefresh | None = None,
):
    """Exchange a refresh token (body or cookie) for a new access token."""
    refresh_token = (body.refresh_token if body else None) or request.cookies.get(
        settings.REFRESH_COOKIE_NAME
    )
    if not refresh_token:
        raise ValidationFailed("Refresh token is required")

    access_token = await auth_service.refresh_access_token(db, refresh_token, client)
    return success("Token refreshed successfully", AccessToken(access_token=access_token))


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    client: Annotated[ClientInfo, Depends(get_client_info)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Clear the refresh cookie. Access tokens simply expire."""
    await auth_service.logout(db, request.cookies.get(settings.REFRESH_COOKIE_NAME), client)
    clear_refresh_cookie(response)
    return success("Logout successful")


@router.get("/me")
async def me(current: CurrentAdmin, db: Annotated[AsyncSession, Depends(get_db)]):
    """Return the live profile of the account behind the access token."""
    account = await account_service.get_by_id(db, current.account_id)
    if account is None:
        raise NotFound("Admin not found")
    return success("Admin profile retrieved", AdminProfile.model_validate(account))


@router.post("/google", dependencies=[Depends(login_rate_limit)])
async def google_login(
    body: GoogleLoginRequest,
    response: Response,
    client: Annotated[ClientInfo, Depends(get_client_info)],
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
    verifier: Annotated[GoogleIdentityVerifier, Depends(get_google_verifier)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Sign in with a Google ID token; same response shape as ``/login``."""
    result = await auth_service.google_login(db, body.token, verifier, client, limiter)
    set_refresh_cookie(response, result.refresh_token)
    return success("Google login successful", _login_body(result))
