"""
FastAPI Application Entry Point
===============================

Main FastAPI application with health check, middleware, error mapping
and lifecycle management.
"""

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator
from uuid import uuid4

from arq import create_pool
from arq.connections import RedisSettings
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from supplier_pricing import __version__
from supplier_pricing.config.settings import get_settings
from supplier_pricing.db.connection import close_database, init_database
from supplier_pricing.db.connection import health_check as db_health_check
from supplier_pricing.utils.errors import (
    AuthenticationError,
    DatabaseError,
    FileSizeError,
    SubscriptionInactiveError,
    SupplierPricingError,
)
from supplier_pricing.utils.logger import configure_logging, get_logger

configure_logging()
logger = get_logger(__name__)

# Anything not listed here is a client error (400).
ERROR_STATUS_CODES: dict[type[SupplierPricingError], int] = {
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
    SubscriptionInactiveError: status.HTTP_402_PAYMENT_REQUIRED,
    FileSizeError: status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    DatabaseError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_code_for(exc: SupplierPricingError) -> int:
    """HTTP status for an application error, most specific class first."""
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return status.HTTP_400_BAD_REQUEST


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Opens the database pool and the arq connection used to queue
    background ingestion. Either may be unavailable; the service then
    starts degraded and reports it on /health.
    """
    settings = get_settings()
    logger.info(
        "supplier-pricing service starting",
        version=__version__,
        environment=settings.environment,
        port=settings.fastapi_port,
    )

    try:
        await init_database(settings)
    except Exception as e:
        logger.error("Failed to initialize database", error=str(e))

    app.state.arq_pool = None
    try:
        app.state.arq_pool = await create_pool(RedisSettings.from_dsn(settings.redis_url))
        logger.info("Redis connection established")
    except Exception as e:
        logger.error("Failed to connect to Redis", error=str(e))

    yield

    logger.info("supplier-pricing service shutting down")

    try:
        await close_database()
    except Exception as e:
        logger.error("Error closing database connections", error=str(e))

    if app.state.arq_pool is not None:
        try:
            await app.state.arq_pool.aclose()
            logger.info("Redis connection closed")
        except Exception as e:
            logger.error("Error closing Redis connection", error=str(e))


def create_app() -> FastAPI:
    """
    FastAPI application factory.

    Returns:
        Configured FastAPI application instance
    """
    settings = get_settings()

    app = FastAPI(
        title="Supplier Pricing API",
        description=(
            "Bulk ingestion of supplier price lists and best-price resolution "
            "for purchase requests."
        ),
        version=__version__,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
        lifespan=lifespan,
    )

    # -------------------------------------------------------------------------
    # CORS Middleware
    # -------------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.is_development else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------------------------------------------------------------------------
    # Request Logging Middleware
    # -------------------------------------------------------------------------
    @app.middleware("http")
    async def log_requests(request: Request, call_next: Any) -> Any:
        """
        Log all incoming requests with timing and correlation ID.

        Adds X-Request-ID and X-Process-Time response headers.
        """
        request_id = str(uuid4())
        start_time = time.perf_counter()

        logger.info(
            "Request received",
            request_id=request_id,
            method=request.method,
            path=str(request.url.path),
            account=request.headers.get("x-account-id"),
        )

        response = await call_next(request)
        process_time = time.perf_counter() - start_time

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{process_time:.4f}"

        logger.info(
            "Request completed",
            request_id=request_id,
            method=request.method,
            path=str(request.url.path),
            status_code=response.status_code,
            duration_ms=round(process_time * 1000, 2),
        )
        return response

    # -------------------------------------------------------------------------
    # Exception Handlers
    # -------------------------------------------------------------------------
    @app.exception_handler(SupplierPricingError)
    async def supplier_pricing_error_handler(
        request: Request, exc: SupplierPricingError
    ) -> JSONResponse:
        """Handle application-specific errors."""
        status_code = status_code_for(exc)
        log = logger.error if status_code >= 500 else logger.warning
        log(
            "Application error",
            error_type=type(exc).__name__,
            message=exc.message,
            details=exc.details,
            path=str(request.url.path),
            status_code=status_code,
        )
        return JSONResponse(
            status_code=status_code,
            content={
                "error": type(exc).__name__,
                "message": exc.message,
                "details": exc.details,
            },
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected errors."""
        logger.exception(
            "Unexpected error",
            error_type=type(exc).__name__,
            message=str(exc),
            path=str(request.url.path),
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "InternalServerError",
                "message": "An unexpected error occurred",
                "details": {},
            },
        )

    # -------------------------------------------------------------------------
    # Health Check Endpoint
    # -------------------------------------------------------------------------
    @app.get(
        "/health",
        tags=["Health"],
        summary="Health check endpoint",
        response_model=dict[str, Any],
    )
    async def health_check(request: Request) -> dict[str, Any]:
        """Check service health: database and Redis connectivity."""
        health_status: dict[str, Any] = {
            "status": "healthy",
            "version": __version__,
            "service": "supplier-pricing",
            "checks": {},
        }

        db_status = await db_health_check()
        health_status["checks"]["database"] = db_status
        if db_status.get("status") != "healthy":
            health_status["status"] = "degraded"

        pool = getattr(request.app.state, "arq_pool", None)
        if pool is None:
            health_status["checks"]["redis"] = {
                "status": "not_initialized",
                "error": "Redis client not available",
            }
            health_status["status"] = "degraded"
        else:
            try:
                start = time.perf_counter()
                await pool.ping()
                health_status["checks"]["redis"] = {
                    "status": "healthy",
                    "latency_ms": round((time.perf_counter() - start) * 1000, 2),
                }
            except Exception as e:
                health_status["checks"]["redis"] = {"status": "unhealthy", "error": str(e)}
                health_status["status"] = "degraded"

        return health_status

    # -------------------------------------------------------------------------
    # API Info Endpoint
    # -------------------------------------------------------------------------
    @app.get("/", tags=["Info"], summary="API information")
    async def api_info() -> dict[str, str]:
        """Return basic API information."""
        return {
            "service": "supplier-pricing",
            "version": __version__,
            "description": "Supplier price ingestion and best-price resolution",
            "docs": "/docs",
        }

    # -------------------------------------------------------------------------
    # Register Routers
    # -------------------------------------------------------------------------
    from supplier_pricing.api.routes import data_router, history_router

    app.include_router(data_router, prefix="/api/data", tags=["Data"])
    app.include_router(history_router, prefix="/api/history", tags=["History"])

    return app


app = create_app()
