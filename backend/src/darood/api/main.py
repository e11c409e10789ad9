"""Main FastAPI application for the Darood API."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from darood.api.rate_limit import limiter
from darood.api.v1.referral import router as referral_router
from darood.errors import DaroodError
from darood.logging_config import configure_logging, get_logger
from darood.referral.service import ReferralService
from darood.settings import Settings, settings
from darood.storage.db import Database

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info("app_starting", env=app.state.settings.env)

    app.state.database.create_tables()

    yield

    # Shutdown
    logger.info("app_shutting_down")
    app.state.database.dispose()


def create_app(database: Database | None = None, config: Settings | None = None) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        database: Store to use (defaults to one built from settings)
        config: Settings override

    Returns:
        Configured FastAPI app
    """
    config = config or settings
    is_production = config.env == "production"

    app = FastAPI(
        title="Darood Counter API",
        description="Referral and points API for the Darood Counter app",
        version="1.0.0",
        docs_url=None if is_production else "/api/docs",
        redoc_url=None if is_production else "/api/redoc",
        openapi_url=None if is_production else "/api/openapi.json",
        lifespan=lifespan,
    )

    # Handles built once per process and shared by all requests
    app.state.settings = config
    app.state.database = database or Database(config.database_url)
    app.state.referral_service = ReferralService(app.state.database, config)

    # CORS middleware - SECURITY: Never allow wildcard in production
    allowed_origins = [
        origin.strip()
        for origin in config.allowed_origins.split(",")
        if origin.strip()
    ]

    if is_production and "*" in allowed_origins:
        logger.error("cors_wildcard_blocked", message="Wildcard CORS not allowed in production")
        allowed_origins = []

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept"],
        max_age=3600,
    )

    # Rate limiting (shared instance from rate_limit module)
    app.state.limiter = limiter

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        return JSONResponse(
            status_code=429,
            content={"detail": "Too many requests. Please try again later."},
        )

    @app.exception_handler(DaroodError)
    async def service_error_handler(request: Request, exc: DaroodError):
        headers = {"WWW-Authenticate": "Bearer"} if exc.http_status == 401 else None
        return JSONResponse(
            status_code=exc.http_status,
            content={"error": exc.to_dict()},
            headers=headers,
        )

    app.include_router(referral_router, prefix="/api/v1")

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": "1.0.0",
            "env": config.env,
        }

    return app


configure_logging()

# Create app instance
app = create_app()
