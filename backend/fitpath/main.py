"""
FitPath API - Main FastAPI Application
"""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import admin_router, auth_router, onboarding_router, users_router
from .config import settings
from .core.exceptions import AppError, StorageError
from .core.logging_config import setup_logging
from .middleware import FixedWindowRateLimiter, RateLimitMiddleware, RequestLoggingMiddleware
from .storage import LocalStorage, get_user_repository, init_user_repository

# Logger will be initialized after setup_logging() is called
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    # Startup
    setup_logging(settings)

    storage = LocalStorage(settings.local_storage_path)
    repository = init_user_repository(storage)
    logger.info("User repository initialized")

    try:
        await repository.purge_expired_refresh_tokens(
            ttl=timedelta(days=settings.refresh_token_expire_days)
        )
    except StorageError as e:
        logger.error(f"Refresh token cleanup failed: {e}")

    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Storage path: {settings.local_storage_path}")
    logger.info(f"Log level: {settings.log_level.upper()}")
    logger.info(f"Debug mode: {settings.debug}")
    yield
    # Shutdown
    logger.info(f"Shutting down {settings.app_name}")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Fitness app backend: accounts, JWT sessions and onboarding profile",
    lifespan=lifespan
)

rate_limiter = FixedWindowRateLimiter(
    max_requests=settings.rate_limit_max_requests,
    window_seconds=settings.rate_limit_window_ms / 1000,
)

# Innermost, so 429 responses still get CORS headers and are logged
if settings.rate_limit_enabled:
    app.add_middleware(RateLimitMiddleware, limiter=rate_limiter)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add request logging middleware (after CORS)
if settings.log_api_requests:
    app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}", exc_info=exc)
        payload = exc.to_dict()
        if not settings.debug:
            payload["message"] = "Internal server error"
            payload.pop("details", None)
        return JSONResponse(status_code=exc.status_code, content=payload)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "message": "Validation failed",
            "code": "VALIDATION_ERROR",
            "details": details,
        },
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "message": str(exc) if settings.debug else "Internal server error",
            "code": "INTERNAL_SERVER_ERROR",
        },
    )


# Include routers
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(onboarding_router)
app.include_router(admin_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "app": settings.app_name,
        "version": settings.app_version,
        "status": "running",
        "message": "Welcome to the FitPath API"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "storage": settings.storage_type,
        "version": settings.app_version
    }


@app.get("/health/detailed")
async def detailed_health_check():
    """Health check that also touches the storage backend."""
    try:
        users = await get_user_repository().list_users()
        storage_status = {"status": "connected", "users": len(users)}
        healthy = True
    except (StorageError, RuntimeError) as e:
        logger.error(f"Storage health check failed: {e}")
        storage_status = {"status": "unavailable"}
        healthy = False

    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if healthy else "unhealthy",
            "version": settings.app_version,
            "environment": settings.environment,
            "storage": {"type": settings.storage_type, **storage_status},
        },
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "fitpath.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )
