"""Failed-attempt counting under concurrent logins."""

import asyncio

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from conftest import create_admin, fetch_admin
from storefront.config.config import settings
from storefront.db.session import initialize_database
from storefront.models.admin_user import AdminUser
from storefront.services import account_service


@pytest.fixture
async def file_session_factory(tmp_path):
    """Sessions on a file database, each on its own connection."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'lockout.db'}",
        connect_args={"timeout": 30},
    )
    await initialize_database(bind=engine)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


async def fail_once(session_factory, account_id: int):
    async with session_factory() as session:
        account = await session.get(AdminUser, account_id)
        return await account_service.register_failed_attempt(session, account)


async def test_concurrent_failures_are_all_counted(file_session_factory):
    async with file_session_factory() as session:
        account = await create_admin(session)
    calls = settings.LOGIN_MAX_ATTEMPTS

    states = await asyncio.gather(
        *(fail_once(file_session_factory, account.id) for _ in range(calls))
    )

    assert sorted(s.login_attempts for s in states) == list(range(1, calls + 1))
    locked = [s for s in states if s.is_locked]
    assert len(locked) == 1
    assert locked[0].login_attempts == settings.LOGIN_MAX_ATTEMPTS
    assert locked[0].locked_until is not None

    stored = await fetch_admin(file_session_factory, "admin@example.com")
    assert stored.login_attempts == calls
    assert stored.is_locked is True
