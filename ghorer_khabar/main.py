"""
FastAPI Application Entry Point

Ghorer Khabar - home-kitchen marketplace for Dhaka.
Supports both Mock services (development) and Real APIs (production).

Routers:
    - /api/addresses: buyer address book
    - /api/kitchens: kitchen discovery
    - /api/chef: onboarding, menu, plans, subscription requests, order status
    - /api/orders: checkout, delivery quotes, meal slots
    - /api/subscriptions: buyer subscription requests
    - /api/reviews: dish reviews
    - /api/admin: dashboard, verification, export
    - /api/recommendations: ML recommendations with fallback
    - GET /health: System health check
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from ghorer_khabar.core.config import get_settings, setup_logging
from ghorer_khabar.database import engine, get_db, init_db
from ghorer_khabar.routers import (
    addresses,
    admin,
    chef,
    kitchens,
    notifications,
    orders,
    recommendations,
    reviews,
    subscriptions,
)
from ghorer_khabar.schemas import HealthResponse
from ghorer_khabar.services.geo import get_geo_service
from ghorer_khabar.services.notifications import get_notification_service
from ghorer_khabar.services.recommendations import get_recommendation_client

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
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    # Initialize database
    await init_db()
    logger.info("✅ Database initialized")

    # Log service configuration
    geo_service = get_geo_service()
    notification_service = get_notification_service()
    recommendation_client = get_recommendation_client()
    logger.info(f"✅ Geo Service: {geo_service.provider_name}")
    logger.info(f"✅ Notification Service: {notification_service.provider_name}")
    logger.info(
        f"✅ Recommendations: "
        f"{recommendation_client.provider_name if recommendation_client else 'popular fallback'}"
    )

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
    await engine.dispose()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Marketplace connecting home-kitchen chefs with customers in Dhaka. "
        "Supports both mock services for development and real APIs for production."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(addresses.router)
app.include_router(kitchens.router)
app.include_router(chef.router)
app.include_router(orders.router)
app.include_router(subscriptions.router)
app.include_router(reviews.router)
app.include_router(admin.router)
app.include_router(notifications.router)
app.include_router(recommendations.router)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍛 Welcome to {settings.app_name}",
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
    geo_service=Depends(get_geo_service),
    notification_service=Depends(get_notification_service),
    recommendation_client=Depends(get_recommendation_client),
) -> HealthResponse:
    """Verify all system components are operational."""

    # Check database
    db_status = "healthy"
    try:
        await db.execute(select(func.now()))
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    geo_status = "healthy" if await geo_service.health_check() else "unhealthy"
    notification_status = "healthy" if await notification_service.health_check() else "unhealthy"

    # The fallback keeps recommendations working without the ML service
    if recommendation_client is None:
        recommendation_status = "fallback"
    elif await recommendation_client.health_check():
        recommendation_status = "healthy"
    else:
        recommendation_status = "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [db_status, geo_status, notification_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        geo_service=geo_status,
        notification_service=notification_status,
        recommendation_service=recommendation_status,
        timestamp=datetime.now(timezone.utc),
    )


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTP errors in the standard envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")

    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "error": f"{location}: {message}" if location else message,
            "detail": jsonable_errors(errors),
        },
    )


def jsonable_errors(errors: list) -> list[dict]:
    return [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
        for e in errors
    ]


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

    uvicorn.run("ghorer_khabar.main:app", host=settings.api_host, port=settings.api_port)
