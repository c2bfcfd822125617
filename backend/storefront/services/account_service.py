"""Credential store: admin account persistence and lockout state.

Passwords are hashed here, explicitly, whenever a create or update carries
a plaintext password; updates without one leave the stored hash untouched.
Lockout counters are changed with single conditional UPDATE statements so
concurrent failed logins cannot lose increments.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import DateTime, case, func, literal, select, true, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import undefer
from sqlalchemy.orm.attributes import set_committed_value
from starlette.concurrency import run_in_threadpool

from storefront.config.config import settings
from storefront.core.errors import Conflict, NotFound
from storefront.core.logging import logger
from storefront.core.security import get_password_hash, verify_password
from storefront.core.timeutils import utcnow
from storefront.models.admin_user import AdminUser, Role


@dataclass(frozen=True)
class LockoutState:
    """Counter and lock fields as stored after a failed attempt."""

    login_attempts: int
    is_locked: bool
    locked_until: datetime | None


async def hash_password(password: str) -> str:
    # bcrypt is CPU bound; keep it off the event loop
    return await run_in_threadpool(get_password_hash, password)


async def check_password(account: AdminUser, password: str) -> bool:
    return await run_in_threadpool(verify_password, password, account.password)


async def get_by_email(
    db: AsyncSession, email: str, with_password: bool = False
) -> AdminUser | None:
    """Load an account by (case-insensitive) email.

    Args:
        db: Async database session.
        email: Email to look up.
        with_password: Also load the deferred password hash.
    """
    stmt = select(AdminUser).where(AdminUser.email == email.strip().lower())
    if with_password:
        stmt = stmt.options(undefer(AdminUser.password))
    result = await db.execute(stmt)
    return result.scalars().first()


async def get_by_id(
    db: AsyncSession, account_id: int, with_password: bool = False
) -> AdminUser | None:
    options = [undefer(AdminUser.password)] if with_password else []
    return await db.get(AdminUser, account_id, options=options)


async def get_or_404(db: AsyncSession, account_id: int) -> AdminUser:
    account = await get_by_id(db, account_id)
    if account is None:
        raise NotFound("Admin not found")
    return account


async def list_accounts(
    db: AsyncSession, page: int = 1, limit: int = 20
) -> tuple[list[AdminUser], int]:
    total = await db.scalar(select(func.count()).select_from(AdminUser))
    result = await db.execute(
        select(AdminUser)
        .order_by(AdminUser.created_at.desc(), AdminUser.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total or 0


async def count_active(db: AsyncSession) -> int:
    return await db.scalar(
        select(func.count()).select_from(AdminUser).where(AdminUser.is_active.is_(True))
    ) or 0


async def _commit_unique(db: AsyncSession, email: str) -> None:
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict(f"An admin with email {email} already exists")


async def create_account(
    db: AsyncSession,
    name: str,
    email: str,
    role: Role = Role.EDITOR,
    is_active: bool = True,
    password: str | None = None,
    password_hash: str | None = None,
) -> AdminUser:
    """Insert a new account.

    Exactly one of ``password`` (plaintext, hashed here) or
    ``password_hash`` (already hashed) must be given.
    """
    if (password is None) == (password_hash is None):
        raise ValueError("Provide either password or password_hash")
    email = email.strip().lower()
    if await get_by_email(db, email) is not None:
        raise Conflict(f"An admin with email {email} already exists")

    account = AdminUser(
        name=name,
        email=email,
        password=password_hash or await hash_password(password),
        role=role,
        is_active=is_active,
        login_attempts=0,
        is_locked=False,
    )
    db.add(account)
    await _commit_unique(db, email)
    await db.refresh(account)
    logger.info("Created admin account id={} email={} role={}", account.id, email, role.value)
    return account


async def update_account(
    db: AsyncSession,
    account: AdminUser,
    name: str | None = None,
    email: str | None = None,
    password: str | None = None,
    role: Role | None = None,
    is_active: bool | None = None,
) -> AdminUser:
    """Apply a partial update; only a supplied password is re-hashed."""
    if name is not None:
        account.name = name.strip()
    if email is not None and email.strip().lower() != account.email:
        email = email.strip().lower()
        if await get_by_email(db, email) is not None:
            raise Conflict(f"An admin with email {email} already exists")
        account.email = email
    if password is not None:
        account.password = await hash_password(password)
    if role is not None:
        account.role = role
    if is_active is not None:
        account.is_active = is_active
    await _commit_unique(db, account.email)
    await db.refresh(account)
    logger.info("Updated admin account id={}", account.id)
    return account


async def deactivate_account(db: AsyncSession, account: AdminUser) -> AdminUser:
    account.is_active = False
    await db.commit()
    await db.refresh(account)
    logger.info("Deactivated admin account id={}", account.id)
    return account


async def reset_lockout(db: AsyncSession, account: AdminUser) -> AdminUser:
    """Clear counter and lock fields (expired lock or manual unlock)."""
    account.login_attempts = 0
    account.is_locked = False
    account.locked_until = None
    await db.commit()
    await db.refresh(account, ["updated_at"])
    return account


async def register_failed_attempt(
    db: AsyncSession, account: AdminUser, now: datetime | None = None
) -> LockoutState:
    """Count a wrong password and lock the account at the threshold.

    The increment and the threshold comparison happen in one statement.

    Returns:
        LockoutState: Counter and lock fields after the update.
    """
    now = now or utcnow()
    lock_until = now + timedelta(minutes=settings.LOGIN_LOCK_MINUTES)
    reaches_threshold = AdminUser.login_attempts + 1 >= settings.LOGIN_MAX_ATTEMPTS
    stmt = (
        update(AdminUser)
        .where(AdminUser.id == account.id)
        .values(
            login_attempts=AdminUser.login_attempts + 1,
            is_locked=case((reaches_threshold, true()), else_=AdminUser.is_locked),
            locked_until=case(
                (reaches_threshold, literal(lock_until, DateTime(timezone=True))),
                else_=AdminUser.locked_until,
            ),
        )
        .returning(AdminUser.login_attempts, AdminUser.is_locked, AdminUser.locked_until)
        .execution_options(synchronize_session=False)
    )
    row = (await db.execute(stmt)).one()
    await db.commit()

    state = LockoutState(
        login_attempts=row.login_attempts,
        is_locked=bool(row.is_locked),
        locked_until=row.locked_until,
    )
    # Mirror the stored values without marking the instance dirty
    set_committed_value(account, "login_attempts", state.login_attempts)
    set_committed_value(account, "is_locked", state.is_locked)
    set_committed_value(account, "locked_until", state.locked_until)
    return state


async def register_successful_login(
    db: AsyncSession, account: AdminUser, now: datetime | None = None
) -> AdminUser:
    """Reset lockout state and stamp ``last_login``."""
    now = now or utcnow()
    account.login_attempts = 0
    account.is_locked = False
    account.locked_until = None
    account.last_login = now
    await db.commit()
    await db.refresh(account, ["updated_at"])
    return account
