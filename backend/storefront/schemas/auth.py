"""Pydantic schemas for authentication endpoints.

Includes login/refresh/Google request bodies, the verified token claims
and the account shapes returned by the authentication routes.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, EmailStr, Field, field_validator

from storefront.models.admin_user import Role
from storefront.schemas.common import CamelModel


def normalize_email(value: str) -> str:
    return value.strip().lower()


class TokenData(BaseModel):
    """Claims extracted from a verified JWT.

    Attributes:
        account_id: Account primary key (``sub`` claim).
        email: Account email at issuance.
        role: Account role at issuance.
        token_type: Either "access" or "refresh".
        issued_at: ``iat`` claim.
        expires_at: ``exp`` claim.
    """

    account_id: int
    email: str
    role: Role
    token_type: str
    issued_at: datetime
    expires_at: datetime

    @classmethod
    def from_claims(cls, claims: dict) -> "TokenData":
        return cls(
            account_id=int(claims["sub"]),
            email=claims.get("email", ""),
            role=claims.get("role"),
            token_type=claims.get("token_type", ""),
            issued_at=datetime.fromtimestamp(claims["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
        )


class LoginRequest(BaseModel):
    """Request body for password login."""

    email: EmailStr
    password: str = Field(min_length=6)

    lower_email = field_validator("email", mode="after")(normalize_email)


class TokenRefresh(CamelModel):
    """Request body for refreshing the access token.

    The refresh token may be omitted when the httpOnly cookie carries it.
    """

    refresh_token: str | None = None


class GoogleLoginRequest(BaseModel):
    """Request body carrying a Google ID token."""

    token: str = Field(min_length=1)


class GoogleIdentity(BaseModel):
    """Identity asserted by a verified Google ID token."""

    email: str
    name: str


class AdminSummary(CamelModel):
    """Account fields returned alongside issued tokens."""

    id: int
    name: str
    email: str
    role: Role


class LoginResponse(CamelModel):
    access_token: str
    refresh_token: str
    admin: AdminSummary


class AccessToken(CamelModel):
    """Response containing a freshly issued access token."""

    access_token: str


class AdminProfile(AdminSummary):
    """Public profile of the current account (never includes the password)."""

    is_active: bool
    last_login: datetime | None = None
