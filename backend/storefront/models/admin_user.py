"""Admin account model and the role hierarchy used for authorization.

Accounts are never physically deleted by the auth flow: deactivation flips
``is_active`` and lockout state lives on the row itself.
"""

import enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Integer,
    String,
)
from sqlalchemy.orm import deferred
from sqlalchemy.sql import func

from storefront.db.session import Base


class Role(str, enum.Enum):
    """Closed set of admin roles, totally ordered by privilege."""

    VIEWER = "viewer"
    EDITOR = "editor"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]

    def satisfies(self, minimum: "Role") -> bool:
        """Return True if this role grants at least ``minimum`` privileges."""
        return self.rank >= minimum.rank

    @classmethod
    def at_least(cls, minimum: "Role") -> list["Role"]:
        """Roles accepted by a ``minimum`` gate, most privileged first."""
        return sorted(
            (r for r in cls if r.satisfies(minimum)), key=lambda r: r.rank, reverse=True
        )


_ROLE_RANK = {Role.VIEWER: 0, Role.EDITOR: 1, Role.ADMIN: 2}


class AdminUser(Base):
    """Database model representing an admin account.

    Attributes:
        id: Primary key.
        name: Display name.
        email: Unique, lower-cased login email.
        password: Password hash; deferred so default loads never carry it.
        role: One of :class:`Role`.
        is_active: Inactive accounts cannot log in or refresh.
        last_login: Timestamp of the last successful login.
        login_attempts: Consecutive failed password checks.
        is_locked: Whether the account is inside a lock window.
        locked_until: End of the current lock window.
        created_at: Account creation timestamp.
        updated_at: Last modification timestamp.
    """

    __tablename__ = "admin_users"
    __table_args__ = (
        CheckConstraint("login_attempts >= 0", name="ck_admin_users_attempts"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password = deferred(Column(String, nullable=False))
    role = Column(
        Enum(
            Role,
            name="admin_role",
            values_callable=lambda roles: [r.value for r in roles],
        ),
        nullable=False,
        default=Role.EDITOR,
    )
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    last_login = Column(DateTime(timezone=True), nullable=True)
    login_attempts = Column(Integer, nullable=False, default=0)
    is_locked = Column(Boolean, nullable=False, default=False)
    locked_until = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
