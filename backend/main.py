"""Volunteer Signup Service - Main FastAPI Application."""

import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from adapters.storage import get_entity_store
from api.middleware.rate_limit import limiter
from api.routes import api_router
from core.security import MicrosoftTokenValidator
from infrastructure.config import Settings, get_settings
from infrastructure.logging_config import setup_logging

logger = logging.getLogger(__name__)

# Reject request bodies larger than 1MB; signup and slot bodies are tiny
_MAX_BODY_SIZE = 1024 * 1024


def init_sentry(settings: Settings) -> None:
    """Initialise Sentry error tracking when SENTRY_DSN is set."""
    dsn = settings.sentry_dsn
    if not dsn:
        return
    if not dsn.startswith("https://") or "@" not in dsn:
        logger.warning("SENTRY_DSN appears malformed: %s. Sentry will not be initialized.", dsn[:30])
        return

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=dsn,
        environment=settings.environment,
        integrations=[
            FastApiIntegration(transaction_style="url"),
            SqlalchemyIntegration(),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        traces_sample_rate=0.1 if settings.is_production else 1.0,
        send_default_pii=False,
    )
    logger.info("Sentry error tracking initialised (env=%s)", settings.environment)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings: Settings = app.state.settings

    logger.info("Starting %s v%s", settings.app_name, settings.app_version)
    logger.info("Environment: %s, storage backend: %s", settings.environment, settings.storage_backend)

    settings.validate_production_secrets()
    await app.state.store.ensure_ready()

    logger.info("Application started successfully!")

    yield

    # Shutdown
    logger.info("Shutting down...")
    await app.state.token_validator.close()
    await app.state.store.close()
    logger.info("Application stopped.")


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    The entity store and token validator are created here and kept on
    ``app.state``; request handlers reach them through ``api.dependencies``.
    """
    settings = settings or get_settings()

    # Configure logging before anything else so all startup messages use the
    # correct format: JSON in production/staging, human-readable in development.
    setup_logging(
        json_output=not settings.debug and settings.environment in ("production", "staging"),
        level="DEBUG" if settings.debug else "INFO",
    )
    init_sentry(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Volunteer slot signup with capacity-safe concurrent registration",
        version=settings.app_version,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.store = get_entity_store(settings)
    app.state.token_validator = MicrosoftTokenValidator(
        client_id=settings.microsoft_client_id,
        tenant_id=settings.microsoft_tenant_id,
        timeout=settings.microsoft_jwks_timeout,
        jwks_requests_per_minute=settings.microsoft_jwks_requests_per_minute,
    )

    # Rate limiting: app.state.limiter is required by SlowAPIMiddleware and the
    # @limiter.limit decorators; exceeding a limit returns 429
    limiter.enabled = settings.rate_limit_enabled
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    @app.middleware("http")
    async def limit_request_body_size(request: Request, call_next):
        if request.method in ("POST", "PUT", "PATCH"):
            content_length = request.headers.get("content-length")
            if content_length and content_length.isdigit() and int(content_length) > _MAX_BODY_SIZE:
                return JSONResponse(
                    status_code=413,
                    content={"detail": "Request body too large (max 1MB)"},
                )
        return await call_next(request)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        # Production logs only type+message, truncated, to avoid leaking connection strings
        if settings.is_production:
            logger.error("Unhandled exception: %s: %s", type(exc).__name__, str(exc)[:200])
        else:
            logger.error("Unhandled exception: %s", str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Response-Time"] = f"{duration_ms:.1f}ms"

        # Skip logging for health check endpoints to avoid log noise
        path = request.url.path
        if not path.startswith("/api/health"):
            logger.info(
                "%s %s %s %.1fms",
                request.method,
                path,
                response.status_code,
                round(duration_ms, 1),
                extra={
                    "method": request.method,
                    "path": path,
                    "status_code": response.status_code,
                    "duration_ms": round(duration_ms, 1),
                },
            )
        return response

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        incoming = request.headers.get("X-Request-ID")
        # Only accept the caller's ID if it is a valid UUID to prevent log injection
        if incoming:
            try:
                uuid.UUID(incoming)
                request_id = incoming
            except ValueError:
                request_id = str(uuid.uuid4())
        else:
            request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Requested-With"],
    )

    app.include_router(api_router, prefix="/api")

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "app": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs" if settings.is_development else "disabled",
            "health": "/api/health",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "main:app",
        host=_settings.host,
        port=_settings.port,
        reload=_settings.is_development,
        workers=_settings.workers if not _settings.is_development else 1,
    )
