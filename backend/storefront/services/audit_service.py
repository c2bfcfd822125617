"""Audit trail writes, reads and expiry.

Writes are best-effort: :func:`record_event` never raises and never touches
the caller's transaction, so a broken audit table cannot change the outcome
of the login it describes.
"""

import asyncio
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storefront.config.config import settings
from storefront.core.logging import logger
from storefront.core.timeutils import utcnow
from storefront.models.audit_log import AuditAction, AuditLog, AuditStatus


@dataclass(frozen=True)
class ClientInfo:
    """Where a request came from, as recorded in the audit trail."""

    ip_address: str = "unknown"
    user_agent: str = ""


async def record_event(
    db: AsyncSession,
    action: AuditAction,
    email: str | None,
    status: AuditStatus,
    client: ClientInfo,
    reason: str = "",
) -> AuditLog | None:
    """Append an audit record; failures are logged and swallowed.

    The row is written through a separate session on the same engine, so a
    failed insert never rolls back or expires anything loaded in ``db``.

    Args:
        db: The request's session; only its engine is used.

    Returns:
        AuditLog | None: The stored record, or None when the write failed.
    """
    now = utcnow()
    entry = AuditLog(
        action=action,
        email=(email or "unknown").strip().lower(),
        ip_address=client.ip_address,
        user_agent=client.user_agent,
        status=status,
        reason=reason,
        timestamp=now,
        expires_at=now + timedelta(days=settings.AUDIT_LOG_RETENTION_DAYS),
    )
    async with AsyncSession(db.bind, expire_on_commit=False) as audit_db:
        try:
            audit_db.add(entry)
            await audit_db.commit()
        except Exception:
            logger.exception(
                "Failed to write audit record action={} email={}", action.value, email
            )
            return None
    logger.debug(
        "Audit {} {} email={} ip={}", action.value, status.value, entry.email, client.ip_address
    )
    return entry


async def list_events(
    db: AsyncSession,
    email: str | None = None,
    ip_address: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[AuditLog], int]:
    """Return audit records newest first, filtered by email and/or address."""
    conditions = []
    if email:
        conditions.append(AuditLog.email == email.strip().lower())
    if ip_address:
        conditions.append(AuditLog.ip_address == ip_address)
    total = await db.scalar(
        select(func.count()).select_from(AuditLog).where(*conditions)
    )
    result = await db.execute(
        select(AuditLog)
        .where(*conditions)
        .order_by(AuditLog.timestamp.desc(), AuditLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total or 0


async def purge_expired(db: AsyncSession) -> int:
    """Delete records whose retention period has passed."""
    result = await db.execute(delete(AuditLog).where(AuditLog.expires_at <= utcnow()))
    await db.commit()
    if result.rowcount:
        logger.info("Purged {} expired audit records", result.rowcount)
    return result.rowcount or 0


async def run_purge_loop(session_factory: async_sessionmaker, interval_seconds: int):
    """Purge expired audit records forever, every ``interval_seconds``."""
    while True:
        try:
            async with session_factory() as db:
                await purge_expired(db)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Audit purge failed; retrying next interval")
        await asyncio.sleep(interval_seconds)
