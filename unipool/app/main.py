"""
FastAPI Application Entry Point.

This is the main application file for the UniPool Backend.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from unipool.app.core.config import settings
from unipool.app.api.v1.router import router as api_v1_router
from unipool.app.db.session import engine, Base
from unipool.app.core.observability import ObservabilityMiddleware, configure_logging
from unipool.app.core.redis_client import ping_redis
from unipool.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from unipool.app.models.user import User
from unipool.app.models.ride import Ride, RidePassenger
from unipool.app.models.booking import Booking
from unipool.app.models.review import Review
from unipool.app.models.report import Report
from unipool.app.models.audit_log import AuditLog
from unipool.app.models.dlq import DeadLetterQueue
from unipool.app.models.notification import Notification

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    Creates database tables on startup and disposes the engine on shutdown.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()

# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Carpooling marketplace backend for university students",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status, application information and Redis reachability
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "redis": "up" if await ping_redis() else "down",
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to UniPool Backend API",
        "docs": "/docs",
        "health": "/health",
    }
