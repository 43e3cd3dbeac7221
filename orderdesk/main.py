"""
FastAPI Application Entry Point

Restaurant ordering backend: customer ordering and tracking, admin order
and menu management, real-time order events.

Endpoints:
    - /api/orders: place, track, list and update orders
    - /api/menu: menu CRUD
    - /api/auth: register, login, current user
    - /ws/orders: real-time newOrder / orderUpdated events
    - GET /health: System health check

Run with:
    uvicorn orderdesk.main:app --port 5000
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

import redis
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from orderdesk.api import auth, menu, orders, websocket
from orderdesk.core.config import get_settings, setup_logging
from orderdesk.core.exceptions import OrderDeskError
from orderdesk.database import engine, get_db, init_db
from orderdesk.schemas import HealthResponse
from orderdesk.services.broadcast import OrderBroadcaster
from orderdesk.services.notifications import get_notification_service

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


def _ping_redis(url: str) -> None:
    """Blocking PING; run it in a worker thread."""
    r = redis.Redis.from_url(url, socket_timeout=2)
    try:
        r.ping()
    finally:
        r.close()


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
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info(f"   Status transitions enforced: {settings.enforce_status_transitions}")
    logger.info(f"   Broadcast scope: {settings.broadcast_scope.value}")
    logger.info("=" * 60)

    await init_db()
    logger.info("✅ Database initialized")

    notification_service = get_notification_service()
    logger.info(f"✅ Notification Service: {notification_service.provider_name}")

    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"⚠️ Missing production config: {missing}")

    logger.info("✅ Application ready!")

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await app.state.broadcaster.close()
    await engine.dispose()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        description=(
            "Restaurant ordering API: dine-in and home-delivery orders, "
            "4-digit tracking ids, admin dashboard and real-time order events."
        ),
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # One broadcaster per application instance
    app.state.broadcaster = OrderBroadcaster(settings.broadcast_scope)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )

    app.include_router(auth.router)
    app.include_router(menu.router)
    app.include_router(orders.router)
    app.include_router(websocket.router)

    register_routes(app)
    register_exception_handlers(app)
    return app


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

def register_routes(app: FastAPI) -> None:

    @app.get("/", tags=["Root"])
    async def root() -> dict[str, str]:
        """API root with navigation links."""
        return {
            "message": f"Welcome to {settings.app_name}",
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
    async def health_check(db: AsyncSession = Depends(get_db)) -> HealthResponse:
        """Verify all system components are operational."""

        db_status = "healthy"
        try:
            await db.execute(select(1))
        except SQLAlchemyError as e:
            db_status = f"unhealthy: {e}"
            logger.error(f"Database health check failed: {e}")

        redis_status = "healthy"
        try:
            await asyncio.to_thread(_ping_redis, settings.redis_url)
        except redis.RedisError as e:
            redis_status = f"unhealthy: {e}"
            logger.error(f"Redis health check failed: {e}")

        notification_service = get_notification_service()
        notification_status = (
            "healthy"
            if await asyncio.to_thread(notification_service.health_check)
            else "unhealthy"
        )

        overall = "operational" if all(
            s == "healthy" for s in [db_status, redis_status, notification_status]
        ) else "degraded"

        return HealthResponse(
            status=overall,
            database=db_status,
            redis=redis_status,
            notification_service=notification_status,
            timestamp=datetime.now(),
        )


# =============================================================================
# ERROR HANDLERS
# =============================================================================

def _error(status_code: int, error: str, msg: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error, "msg": msg},
    )


def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(OrderDeskError)
    async def orderdesk_error_handler(request: Request, exc: OrderDeskError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{exc.title} on {request.url.path}: {exc.message}")
        return _error(exc.status_code, exc.title, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors: list[dict[str, Any]] = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = first.get("msg", "Invalid request")
        return _error(400, "Validation Error", f"{field}: {message}" if field else message)

    @app.exception_handler(SQLAlchemyError)
    async def store_failure_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.exception(f"Store failure on {request.url.path}: {exc}")
        return _error(500, "Store Failure", "Database error, please try again")

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all exception handler."""
        logger.exception(f"Unhandled exception: {exc}")
        return _error(
            500,
            "Internal Server Error",
            str(exc) if settings.debug else "An unexpected error occurred",
        )


app = create_app()
