"""Append-only audit trail of authentication events.

Records carry an ``expires_at`` stamp; the purge task in
:mod:`storefront.services.audit_service` deletes them once it has passed.
"""

import enum

from sqlalchemy import Column, DateTime, Enum, Index, Integer, String

from storefront.core.timeutils import utcnow
from storefront.db.session import Base


class AuditAction(str, enum.Enum):
    LOGIN_ATTEMPT = "login_attempt"
    LOGIN_SUCCESS = "login_success"
    LOGIN_FAILED = "login_failed"
    LOGOUT = "logout"
    TOKEN_REFRESH = "token_refresh"
    GOOGLE_OAUTH = "google_oauth"


class AuditStatus(str, enum.Enum):
    SUCCESS = "success"
    FAILED = "failed"
    BLOCKED = "blocked"


def _values(members):
    return [m.value for m in members]


class AuditLog(Base):
    """A single authentication-relevant event.

    Attributes:
        id: Primary key.
        action: Kind of event, see :class:`AuditAction`.
        email: Subject email (lower-cased), ``unknown`` when not yet known.
        ip_address: Client address.
        user_agent: Client agent string.
        status: Outcome, see :class:`AuditStatus`.
        reason: Free-text explanation for failures and blocks.
        timestamp: When the event happened.
        expires_at: When the record becomes eligible for purging.
    """

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_email_timestamp", "email", "timestamp"),
        Index("ix_audit_logs_ip_timestamp", "ip_address", "timestamp"),
        Index("ix_audit_logs_action_timestamp", "action", "timestamp"),
    )

    id = Column(Integer, primary_key=True, index=True)
    action = Column(
        Enum(AuditAction, name="audit_action", values_callable=_values),
        nullable=False,
    )
    email = Column(String(255), nullable=False)
    ip_address = Column(String(64), nullable=False, default="unknown")
    user_agent = Column(String(255), nullable=False, default="")
    status = Column(
        Enum(AuditStatus, name="audit_status", values_callable=_values),
        nullable=False,
        default=AuditStatus.FAILED,
    )
    reason = Column(String, nullable=False, default="")
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
