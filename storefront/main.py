"""
FastAPI Application Entry Point

Restaurant Storefront & Back Office
Runs against local collaborators (development) or Redis and hosted storage
(staging/production), selected by ENV_MODE.

Endpoints:
    - /api/...: Customer storefront (menu, cart, checkout)
    - /admin/...: Admin session, back office CRUD, live order feed
    - GET /health: System health check
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.middleware.sessions import SessionMiddleware

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from storefront.api import admin, store
from storefront.api.deps import ensure_storefront_open
from storefront.core.config import get_settings, setup_logging
from storefront.database import engine, get_db, init_db
from storefront.schemas import HealthResponse
from storefront.services.cart import get_cart_storage
from storefront.services.catalog import CatalogUnavailable
from storefront.services.realtime import get_order_feed
from storefront.services.storage import get_storage_service

settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    await init_db()
    logger.info("✅ Database initialized")

    logger.info(f"✅ Cart Storage: {get_cart_storage().provider_name}")
    logger.info(f"✅ Order Feed: {get_order_feed().provider_name}")

    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"⚠️ Missing production config: {missing}")

    if settings.storefront_paused:
        logger.warning("⚠️ Storefront is paused (maintenance notice shown)")

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield

    logger.info("Shutting down...")
    await engine.dispose()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Restaurant ordering storefront with an admin back office. "
        "Orders are relayed to the store over Messenger; payment is settled out of band."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Cart id, checkout phase and admin flag live in the signed session cookie
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret_key,
    session_cookie="storefront_session",
    same_site="lax",
    https_only=settings.is_production,
)

app.include_router(store.public_router)
app.include_router(store.router, dependencies=[Depends(ensure_storefront_open)])
app.include_router(admin.auth_router)
app.include_router(admin.router)
app.include_router(admin.ws_router)

if settings.is_development:
    app.mount(
        settings.media_url_prefix,
        StaticFiles(directory=settings.media_directory, check_dir=False),
        name="media",
    )


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍗 Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "store": "/api/store",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """Verify all system components are operational."""

    db_status = "healthy"
    try:
        await db.execute(select(1))
    except SQLAlchemyError as e:
        db_status = f"unhealthy: {e}"
        logger.error(f"Database health check failed: {e}")

    cart_status = "healthy" if await get_cart_storage().health_check() else "unhealthy"
    feed_status = "healthy" if await get_order_feed().health_check() else "unhealthy"

    try:
        storage_ok = await get_storage_service().health_check()
        storage_status = "healthy" if storage_ok else "unhealthy"
    except ValueError as e:
        storage_status = f"unhealthy: {e}"

    overall = "operational" if all(
        s == "healthy" for s in [db_status, cart_status, feed_status, storage_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        cart_storage=cart_status,
        order_feed=feed_status,
        object_storage=storage_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(CatalogUnavailable)
async def catalog_unavailable_handler(request: Request, exc: CatalogUnavailable) -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={
            "success": False,
            "error": "Service Unavailable",
            "detail": str(exc),
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "storefront.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
