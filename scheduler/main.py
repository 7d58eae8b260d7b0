"""
Scheduler API Server

Entry point for the FastAPI application.
"""

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from scheduler.api.v1 import router as api_router
from scheduler.core import errors
from scheduler.core.config import get_settings
from scheduler.core.database import get_session, ping_db
from scheduler.core.logging import configure_logging
from scheduler.core.middleware import CSRFMiddleware, SecurityHeadersMiddleware
from scheduler.core.redis import close_redis

settings = get_settings()
log = structlog.get_logger()


def _error_response(exc: errors.AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="Sewer Swarm Scheduler",
        description="Crew scheduling back office: organizations, invites, roles and billing.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Middleware (the last one added runs outermost)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(CSRFMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE"],
        allow_headers=["Content-Type", "X-CSRF-Token", "X-Organization-Id", "Stripe-Signature"],
    )

    # -----------------------------------------------------------------------
    # Error mapping
    # -----------------------------------------------------------------------

    @app.exception_handler(errors.AppError)
    async def app_error_handler(request: Request, exc: errors.AppError):
        if exc.status_code >= 500:
            log.error("request.failed", path=request.url.path, code=exc.kind.value, message=exc.message)
        return _error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error_response(
            errors.ValidationError(
                "Invalid request data. Please check all fields are filled correctly.",
                fields=[".".join(str(p) for p in e["loc"]) for e in exc.errors()],
            )
        )

    @app.exception_handler(OperationalError)
    @app.exception_handler(InterfaceError)
    @app.exception_handler(ConnectionError)
    async def database_unavailable_handler(request: Request, exc: Exception):
        log.error("database.unavailable", path=request.url.path, error=type(exc).__name__)
        return _error_response(errors.ServiceUnavailable())

    # API routes
    app.include_router(api_router, prefix="/api")

    @app.get("/health", tags=["System"])
    async def health_check(session: AsyncSession = Depends(get_session)):
        """Database round-trip; 503 when unreachable."""
        try:
            await ping_db(session)
        except (OperationalError, InterfaceError, ConnectionError, OSError) as exc:
            log.warning("health.database_unreachable", error=type(exc).__name__)
            return JSONResponse(status_code=503, content={"status": "degraded", "database": "unreachable"})
        return {"status": "ok", "database": "ok"}

    @app.get("/ready", tags=["System"])
    async def readiness_check():
        """Liveness probe; does not touch dependencies."""
        return {"status": "ready"}

    @app.on_event("startup")
    async def on_startup():
        log.info("scheduler.starting", environment=settings.environment)

    @app.on_event("shutdown")
    async def on_shutdown():
        log.info("scheduler.shutting_down")
        await close_redis()

    return app


app = create_app()
