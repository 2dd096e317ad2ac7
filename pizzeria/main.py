"""
FastAPI Application Entry Point

Pizzeria Order Management - catalog, orders, accounts and reports over
HTTP, order events over WebSocket.

Endpoints:
    - /auth: Registration, login, account settings and administration
    - /products: Catalog
    - /orders: Order creation, kitchen display and lifecycle
    - /reports: Dashboard and sales reports
    - WS /ws: Real-time order events
    - GET /health: System health check

Version: 1.0.0
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Internal imports
from pizzeria.api import auth, orders, products, reports, ws
from pizzeria.core.config import get_settings, setup_logging
from pizzeria.core.errors import ApiError, InternalError
from pizzeria.database import engine, get_db, init_db
from pizzeria.schemas import HealthResponse
from pizzeria.services.notifications import BaseBroadcaster, get_broadcaster

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"🍕 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    # Initialize database
    try:
        await init_db()
    except Exception as e:
        logger.critical(f"❌ Database unavailable: {e}")
        raise
    logger.info("✅ Database initialized")

    # Start the notification broadcaster
    broadcaster = get_broadcaster()
    await broadcaster.start()
    logger.info(f"✅ Broadcaster: {broadcaster.provider_name}")

    # Validate production config
    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"⚠️ Missing production config: {missing}")

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await broadcaster.stop()
    await engine.dispose()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Order management for a pizzeria: catalog, staff accounts, "
        "kitchen lifecycle, real-time order events and sales reports."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(products.router)
app.include_router(orders.router)
app.include_router(reports.router)
app.include_router(ws.router)


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else first.get("msg", message)
    return JSONResponse(status_code=400, content={"success": False, "message": message})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        message = "Route not found"
    else:
        message = str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    error = InternalError(f"Internal server error: {exc}" if settings.debug else None)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍕 Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    db: AsyncSession = Depends(get_db),
    broadcaster: BaseBroadcaster = Depends(get_broadcaster),
) -> HealthResponse:
    """Verify the database and the notification broadcaster."""

    # Check database
    db_status = "healthy"
    try:
        await db.execute(select(1))
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    # Check broadcaster
    broadcaster_status = "healthy" if await broadcaster.health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [db_status, broadcaster_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        broadcaster=f"{broadcaster.provider_name}: {broadcaster_status}",
        timestamp=datetime.now(timezone.utc),
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "pizzeria.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
    )
