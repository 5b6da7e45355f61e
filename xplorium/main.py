import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pythonjsonlogger.json import JsonFormatter
from redis.exceptions import RedisError
from starlette.middleware.cors import CORSMiddleware

from xplorium import crud
from xplorium.core.exceptions import RateLimitedError, XploriumError
from xplorium.core.settings import get_settings
from xplorium.database import SessionLocal, db_manager
from xplorium.redis import redis_client

from .api.api import api_router

settings = get_settings()

app = FastAPI(
    title=f"{settings.PROJECT_NAME} back-office API",
    description="""
    Booking management, dashboard analytics and revenue forecasting for the
    Xplorium family-entertainment venue.

    Admin endpoints require a bearer token from `/api/v1/auth/login` belonging
    to an ADMIN or SUPER_ADMIN account.
    """,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    docs_url=f"{settings.API_V1_PREFIX}/docs",
    redoc_url=f"{settings.API_V1_PREFIX}/redoc",
)

# Configure structured logging
log_handler = logging.StreamHandler()
if settings.monitoring.LOG_FORMAT == "json":
    log_handler.setFormatter(
        JsonFormatter(
            "%(levelname)s %(asctime)s %(message)s %(name)s %(filename)s %(lineno)d",
            rename_fields={"levelname": "level", "asctime": "time", "name": "loggerName"},
        )
    )
logging.basicConfig(handlers=[log_handler], level=settings.monitoring.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Set all CORS enabled origins
if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# Include API routes
app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.exception_handler(XploriumError)  # type: ignore[misc]
async def xplorium_exception_handler(request: Request, exc: XploriumError) -> JSONResponse:
    if isinstance(exc, RateLimitedError):
        client_host = request.client.host if request.client else "unknown"
        logger.warning(
            "Rate limit exceeded for client %s on %s %s",
            client_host,
            request.method,
            request.url.path,
        )
    elif exc.status_code >= 500:
        logger.error("Application error: %s", exc.message)
    else:
        logger.info("Request rejected with %s: %s", exc.status_code, exc.message)

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=exc.headers,
    )


@app.exception_handler(HTTPException)  # type: ignore[misc]
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    logger.error(
        "HTTPException occurred: %s",
        exc.detail,
        extra={"status_code": exc.status_code},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=exc.headers,
    )


@app.exception_handler(Exception)  # type: ignore[misc]
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception occurred: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal Server Error"},
    )


@app.get("/health", tags=["Health"], summary="Health Check")  # type: ignore[misc]
async def health_check() -> dict[str, Any]:
    """
    Operational status of the database and, when enabled, Redis.
    """
    components: dict[str, Any] = {"database": await db_manager.health_check()}

    if settings.redis.ENABLED:
        try:
            await redis_client.ping()
            components["redis"] = {"status": "healthy"}
        except RedisError as e:
            logger.error("Redis health check failed: %s", e)
            components["redis"] = {"status": "unhealthy", "error": str(e)}
    else:
        components["redis"] = {"status": "disabled"}

    overall = (
        "healthy"
        if all(c["status"] in ("healthy", "disabled") for c in components.values())
        else "unhealthy"
    )
    return {
        "status": overall,
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
        "components": components,
    }


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Verify connections on startup and release them on shutdown."""
    logger.info("Starting %s back-office", settings.PROJECT_NAME)

    db_health = await db_manager.health_check()
    if db_health.get("status") == "healthy":
        logger.info("Database connection verified")
    else:
        logger.warning("Database health check failed: %s", db_health.get("error"))

    if "sqlite" in settings.SQLALCHEMY_DATABASE_URI:
        await db_manager.create_all()
        logger.info("SQLite schema created")

    if settings.FIRST_SUPERUSER and settings.FIRST_SUPERUSER_PASSWORD:
        async with SessionLocal() as session:
            admin = await crud.user.ensure_superuser(
                session,
                email=settings.FIRST_SUPERUSER,
                password=settings.FIRST_SUPERUSER_PASSWORD,
            )
        logger.info("Bootstrap admin account ready: %s", admin.id)

    try:
        yield
    finally:
        logger.info("Shutting down %s back-office", settings.PROJECT_NAME)
        if settings.redis.ENABLED:
            try:
                await redis_client.aclose()
                logger.info("Redis connections closed")
            except RedisError as e:
                logger.error("Error closing Redis connections: %s", e)
        await db_manager.close()


# Attach lifespan handler
app.router.lifespan_context = lifespan
