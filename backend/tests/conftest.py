"""Pytest configuration and fixtures."""

import os
import time
from collections.abc import AsyncGenerator

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing the app
os.environ["APP_ENV"] = "development"
os.environ["DATABASE_URL_ASYNC"] = "sqlite+aiosqlite://"
os.environ["JWT_ACCESS_SECRET"] = "test-access-secret-0123456789abcdef0123456789"
os.environ["JWT_REFRESH_SECRET"] = "test-refresh-secret-0123456789abcdef01234567"
os.environ["PASSWORD_BCRYPT_ROUNDS"] = "4"
os.environ["GOOGLE_CLIENT_ID"] = "storefront-test.apps.googleusercontent.com"
os.environ["ALLOWED_ADMIN_EMAILS"] = "new.admin@example.com, Owner@Example.com"
os.environ["RATE_LIMIT_REDIS_URL"] = ""

from storefront.config.config import settings  # noqa: E402
from storefront.core.rate_limiter import MemoryCounterStore, RateLimiter  # noqa: E402
from storefront.core.security import issue_access_token  # noqa: E402
from storefront.db.session import get_db, initialize_database  # noqa: E402
from storefront.main import app  # noqa: E402
from storefront.models.admin_user import AdminUser, Role  # noqa: E402
from storefront.services import account_service  # noqa: E402
from storefront.services.google_oauth import GoogleIdentityVerifier  # noqa: E402

PASSWORD = "correct-horse"


class FakeGoogle:
    """Stands in for Google's tokeninfo endpoint via ``httpx.MockTransport``."""

    def __init__(self):
        self.status_code = 200
        self.claims: dict = {}
        self.requests: list[httpx.Request] = []

    def sign_in_as(self, email: str, name: str = "New Admin", **overrides) -> None:
        self.status_code = 200
        self.claims = {
            "aud": settings.GOOGLE_CLIENT_ID,
            "iss": "https://accounts.google.com",
            "exp": str(int(time.time()) + 3600),
            "email": email,
            "email_verified": "true",
            "name": name,
            **overrides,
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.claims)

    def verifier(self) -> GoogleIdentityVerifier:
        return GoogleIdentityVerifier(
            settings.GOOGLE_CLIENT_ID, transport=httpx.MockTransport(self.handler)
        )


@pytest.fixture
async def engine():
    """In-memory SQLite engine shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await initialize_database(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def rate_limiter() -> RateLimiter:
    return RateLimiter(
        MemoryCounterStore(),
        max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
        window_seconds=settings.RATE_LIMIT_WINDOW_MINUTES * 60,
    )


@pytest.fixture
def fake_google() -> FakeGoogle:
    return FakeGoogle()


@pytest.fixture
async def client(
    session_factory, rate_limiter, fake_google
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app, wired to the test database."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.rate_limiter = rate_limiter
    app.state.google_verifier = fake_google.verifier()

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


async def create_admin(
    db: AsyncSession,
    email: str = "admin@example.com",
    role: Role = Role.ADMIN,
    password: str = PASSWORD,
    is_active: bool = True,
    name: str = "Test Admin",
) -> AdminUser:
    return await account_service.create_account(
        db, name=name, email=email, role=role, is_active=is_active, password=password
    )


async def fetch_admin(session_factory, email: str) -> AdminUser | None:
    """Load an account through a fresh session so no stale state is seen."""
    async with session_factory() as session:
        result = await session.execute(select(AdminUser).where(AdminUser.email == email))
        return result.scalars().first()


def auth_headers(account: AdminUser) -> dict[str, str]:
    token = issue_access_token(account.id, account.email, account.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def admin(db) -> AdminUser:
    return await create_admin(db)


@pytest.fixture
async def editor(db) -> AdminUser:
    return await create_admin(db, email="editor@example.com", role=Role.EDITOR)


@pytest.fixture
async def viewer(db) -> AdminUser:
    return await create_admin(db, email="viewer@example.com", role=Role.VIEWER)
