"""Async SQLAlchemy engine and session helpers.

Provides a configured async engine, sessionmaker and helper functions for
initializing the database and yielding sessions for dependency injection.
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from storefront.config.config import settings
from storefront.core.logging import logger

engine_kwargs = {"echo": settings.DATABASE_ECHO}
# NOTE: SQLite (tests, local runs) does not accept queue pool sizing.
if not settings.DATABASE_URL_ASYNC.startswith("sqlite"):
    engine_kwargs.update(pool_size=5, max_overflow=10, pool_pre_ping=True)

engine = create_async_engine(settings.DATABASE_URL_ASYNC, **engine_kwargs)

AsyncSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

Base = declarative_base()


async def initialize_database(bind=None):
    """Create all metadata tables defined on the declarative `Base`.

    Args:
        bind: Optional async engine; defaults to the module engine.

    Raises:
        Exception: Re-raises any exception encountered while initializing.
    """

    # Register every table on Base.metadata before create_all
    from storefront.models import admin_user, analytics, audit_log, catalog  # noqa: F401

    logger.info("Initializing database tables")
    async with (bind or engine).begin() as conn:
        try:
            await conn.run_sync(Base.metadata.create_all)
            logger.info("Database initialization complete")
        except Exception:
            logger.exception("Database initialization failed")
            raise


async def get_db():
    """Yield an async database session for FastAPI dependency injection.

    Usage:
        db: AsyncSession = Depends(get_db)

    Yields:
        AsyncSession: an asynchronous SQLAlchemy session.
    """

    async with AsyncSessionLocal() as session:
        yield session
