"""Schemas for admin account management and the activity log."""

from datetime import datetime

from pydantic import EmailStr, Field, field_validator, model_validator

from storefront.models.admin_user import Role
from storefront.models.audit_log import AuditAction, AuditStatus
from storefront.schemas.auth import normalize_email
from storefront.schemas.common import CamelModel


class AdminCreate(CamelModel):
    """Request body for creating an admin account."""

    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(min_length=6)
    role: Role = Role.EDITOR
    is_active: bool = True

    lower_email = field_validator("email", mode="after")(normalize_email)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        return value.strip()


class AdminUpdate(CamelModel):
    """Partial update of an admin account; omitted fields are left alone."""

    name: str | None = Field(default=None, min_length=2, max_length=100)
    email: EmailStr | None = None
    password: str | None = Field(default=None, min_length=6)
    role: Role | None = None
    is_active: bool | None = None

    @field_validator("email", mode="after")
    @classmethod
    def lower_email(cls, value: str | None) -> str | None:
        return normalize_email(value) if value is not None else None


class ProfileUpdate(CamelModel):
    """Self-service profile update. Changing the password needs the old one."""

    name: str | None = Field(default=None, min_length=2, max_length=100)
    current_password: str | None = None
    new_password: str | None = Field(default=None, min_length=6)

    @model_validator(mode="after")
    def check_password_change(self):
        if self.new_password is not None and not self.current_password:
            raise ValueError("currentPassword is required to change the password")
        return self


class AdminOut(CamelModel):
    """Account as listed to administrators."""

    id: int
    name: str
    email: str
    role: Role
    is_active: bool
    last_login: datetime | None = None
    login_attempts: int
    is_locked: bool
    locked_until: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AuditLogOut(CamelModel):
    id: int
    action: AuditAction
    email: str
    ip_address: str
    user_agent: str
    status: AuditStatus
    reason: str
    timestamp: datetime
