"""FastAPI application entrypoint for the storefront backend.

Sets up the application, middleware, error handlers and routes and
provides a lifespan context manager that initializes the database, starts
the audit purge and counter sweep tasks and wires the login rate limiter
and Google verifier on startup, then releases them on shutdown.
"""

import asyncio
import time
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.api.routes.admin import router as admin_router
from storefront.api.routes.analytics import router as analytics_router
from storefront.api.routes.auth import router as auth_router
from storefront.api.routes.categories import router as categories_router
from storefront.api.routes.products import router as products_router
from storefront.config.config import settings
from storefront.core.errors import register_exception_handlers
from storefront.core.logging import logger
from storefront.core.rate_limiter import (
    MemoryCounterStore,
    build_rate_limiter,
    run_sweep_loop,
)
from storefront.core.timeutils import utcnow
from storefront.db.session import AsyncSessionLocal, engine, initialize_database
from storefront.schemas.common import success
from storefront.services.audit_service import run_purge_loop
from storefront.services.google_oauth import GoogleIdentityVerifier

DB_INIT_RETRIES = 5
DB_INIT_DELAY_SECONDS = 2

started_at = time.monotonic()


async def init_database_with_retry() -> None:
    """Create tables, retrying while the database is still coming up."""
    for attempt in range(DB_INIT_RETRIES):
        try:
            logger.info("Initializing database tables if not exist")
            await initialize_database()
            logger.info("Database tables created successfully")
            return
        except Exception as e:
            # NOTE: transient DB connectivity issues are retried to improve
            # startup robustness when services come up concurrently.
            if attempt < DB_INIT_RETRIES - 1:
                logger.warning(
                    "Database connection attempt {} failed: {}. Retrying..",
                    attempt + 1,
                    e,
                )
                await asyncio.sleep(DB_INIT_DELAY_SECONDS)
            else:
                logger.exception(
                    "Failed to create database tables after {} attempts", DB_INIT_RETRIES
                )
                raise


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context to run startup and shutdown routines.

    Yields:
        None: Control is returned to FastAPI while the app is running.
    """

    logger.info("Starting up ({} environment)", settings.APP_ENV)
    await init_database_with_retry()

    app.state.rate_limiter = build_rate_limiter()
    app.state.google_verifier = GoogleIdentityVerifier(settings.GOOGLE_CLIENT_ID)
    tasks = [
        asyncio.create_task(
            run_purge_loop(AsyncSessionLocal, settings.AUDIT_PURGE_INTERVAL_MINUTES * 60)
        )
    ]
    store = app.state.rate_limiter.store
    if isinstance(store, MemoryCounterStore):
        # Redis expires its own keys; in-process windows are swept once per window
        tasks.append(
            asyncio.create_task(
                run_sweep_loop(store, settings.RATE_LIMIT_WINDOW_MINUTES * 60)
            )
        )

    yield

    logger.info("Shutting down")
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
    await app.state.rate_limiter.store.close()
    await engine.dispose()


app = FastAPI(lifespan=lifespan, root_path="/api", title="Storefront API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


def service_status() -> dict:
    return {
        "status": "operational",
        "timestamp": utcnow().isoformat(),
        "environment": settings.APP_ENV,
        "uptime": round(time.monotonic() - started_at, 3),
        "version": settings.APP_VERSION,
    }


@app.get("/")
async def root():
    """Return a simple landing response with service status."""

    return service_status()


@app.get("/health")
async def health():
    return service_status()


ENDPOINTS = {
    "health": "GET /api/health",
    "info": "GET /api/info",
    "products": {
        "list": "GET /api/products",
        "get": "GET /api/products/:id",
        "bySlug": "GET /api/products/slug/:slug",
        "search": "GET /api/products/search/advanced",
    },
    "categories": {
        "list": "GET /api/categories",
        "get": "GET /api/categories/:id",
    },
    "auth": {
        "login": "POST /api/auth/login",
        "google": "POST /api/auth/google",
        "refresh": "POST /api/auth/refresh",
        "logout": "POST /api/auth/logout",
        "profile": "GET /api/auth/me",
    },
    "analytics": {
        "trackSession": "POST /api/analytics/track-session",
        "trackProductView": "POST /api/analytics/track-product-view",
        "summary": "GET /api/analytics/summary (editor+)",
        "product": "GET /api/analytics/product/:productId (editor+)",
    },
    "admin": {
        "note": "All /api/admin/* routes require a bearer access token",
        "products": {
            "create": "POST /api/admin/products (editor+)",
            "update": "PUT /api/admin/products/:id (editor+)",
            "delete": "DELETE /api/admin/products/:id (editor+)",
            "bulkDelete": "POST /api/admin/products/bulk-delete (admin only)",
        },
        "categories": {
            "create": "POST /api/admin/categories (editor+)",
            "update": "PUT /api/admin/categories/:id (editor+)",
            "delete": "DELETE /api/admin/categories/:id (editor+)",
        },
        "profile": {
            "get": "GET /api/admin/profile",
            "update": "PUT /api/admin/profile",
            "activity": "GET /api/admin/profile/activity (admin only)",
        },
        "admins": {
            "list": "GET /api/admin/admins (admin only)",
            "create": "POST /api/admin/admins (admin only)",
            "update": "PUT /api/admin/admins/:id (admin only)",
            "deactivate": "DELETE /api/admin/admins/:id (admin only)",
            "unlock": "POST /api/admin/admins/:id/unlock (admin only)",
        },
        "stats": {
            "overview": "GET /api/admin/stats/overview (editor+)",
            "products": "GET /api/admin/stats/products (editor+)",
        },
    },
}


@app.get("/info")
async def info():
    """Describe the API and list its endpoints."""

    return success(
        "API Information",
        {
            "name": app.title,
            "version": settings.APP_VERSION,
            "description": "E-commerce catalog API with JWT admin authentication",
            "endpoints": ENDPOINTS,
        },
    )


app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(products_router)
app.include_router(categories_router)
app.include_router(analytics_router)


if __name__ == "__main__":
    uvicorn.run("storefront.main:app", host="0.0.0.0", port=8000, reload=True)
