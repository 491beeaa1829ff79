import sys
import uuid
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from loguru import logger
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from tenantguard import __version__
from tenantguard.api.responses import error
from tenantguard.api.v1.router import router as v1_router
from tenantguard.config import get_settings
from tenantguard.db.session import dispose_engines
from tenantguard.error_codes import INTERNAL_ERROR, VALIDATION_ERROR
from tenantguard.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    TenantGuardException,
    TenantResolutionError,
    ValidationError,
)


def configure_logging() -> None:
    """Configure structured JSON logging with loguru."""
    settings = get_settings()

    # Remove default handler
    logger.remove()

    # Add JSON structured logging
    logger.add(
        sys.stdout,
        level=settings.log_level,
        serialize=True,
    )


def configure_sentry() -> None:
    """Initialize Sentry if DSN is configured."""
    settings = get_settings()

    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn.get_secret_value(),
            environment=settings.environment,
            traces_sample_rate=1.0 if settings.environment == "local" else 0.1,
        )
        logger.info("Sentry initialized", environment=settings.environment)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    configure_logging()
    configure_sentry()

    settings = get_settings()
    logger.info(
        "Application startup",
        version=__version__,
        root_domain=settings.root_domain,
        direct_query_operations=sorted(settings.direct_query_operations),
    )
    if settings.direct_query_operations:
        logger.warning(
            "Direct-query path enabled; these operations bypass row policies",
            operations=sorted(settings.direct_query_operations),
        )

    yield

    # Shutdown
    await dispose_engines()
    logger.info("Application shutdown")


def create_app() -> FastAPI:
    """
    Application factory for creating configured FastAPI instances.

    Returns:
        Configured FastAPI application
    """
    settings = get_settings()

    app = FastAPI(
        title="TenantGuard API",
        description="Tenant-isolated member and profile access",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.is_local else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request context middleware
    @app.middleware("http")
    async def add_request_context(request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        with logger.contextualize(request_id=request_id):
            logger.info(
                "Request started",
                method=request.method,
                path=request.url.path,
            )

            # Process request
            response = await call_next(request)

            log_context = {}
            ctx = getattr(request.state, "tenant_context", None)
            if ctx:
                log_context.update(ctx.log_fields())
                response.headers["X-Tenant-ID"] = str(ctx.tenant_id)

            response.headers["X-Request-ID"] = request_id

            # Log completion with full context
            with logger.contextualize(**log_context):
                logger.info(
                    "Request completed",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                )

            return response

    # Global exception handlers
    @app.exception_handler(TenantResolutionError)
    async def tenant_resolution_handler(request: Request, exc: TenantResolutionError):
        request_id = getattr(request.state, "request_id", "unknown")
        logger.info(
            "Tenant not resolved, redirecting to onboarding",
            request_id=request_id,
            host=request.headers.get("host"),
        )
        return RedirectResponse(
            url=settings.onboarding_url,
            status_code=status.HTTP_307_TEMPORARY_REDIRECT,
            headers={"X-Request-ID": request_id},
        )

    @app.exception_handler(TenantGuardException)
    async def tenantguard_exception_handler(request: Request, exc: TenantGuardException):
        request_id = getattr(request.state, "request_id", "unknown")
        logger.warning(
            "Application exception",
            request_id=request_id,
            code=exc.code,
            reason=exc.reason,
            status_code=exc.status_code,
            message=exc.message,
        )
        return error(
            code=exc.code,
            message=exc.public_message or exc.message,
            status_code=exc.status_code,
            request_id=request_id,
            details=None if exc.public_message else exc.details,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        request_id = getattr(request.state, "request_id", "unknown")
        logger.warning("Validation error", request_id=request_id, errors=exc.errors())
        return error(
            code=VALIDATION_ERROR,
            message="Request validation failed",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            request_id=request_id,
            details={"errors": [{"loc": e["loc"], "msg": e["msg"]} for e in exc.errors()]},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        request_id = getattr(request.state, "request_id", "unknown")
        logger.warning(
            "HTTP exception", request_id=request_id, status_code=exc.status_code, detail=exc.detail
        )
        mapped: TenantGuardException
        if exc.status_code == status.HTTP_401_UNAUTHORIZED:
            mapped = AuthenticationError(str(exc.detail))
        elif exc.status_code == status.HTTP_403_FORBIDDEN:
            mapped = AuthorizationError(str(exc.detail))
        elif exc.status_code == status.HTTP_404_NOT_FOUND:
            mapped = NotFoundError(str(exc.detail))
        elif exc.status_code == status.HTTP_409_CONFLICT:
            mapped = ConflictError(str(exc.detail))
        elif exc.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY:
            mapped = ValidationError(str(exc.detail))
        else:
            mapped = TenantGuardException(str(exc.detail))
            mapped.status_code = exc.status_code
            mapped.code = f"HTTP_{exc.status_code}"

        return error(
            code=mapped.code,
            message=mapped.message,
            status_code=mapped.status_code,
            request_id=request_id,
            details=mapped.details,
        )

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        request_id = getattr(request.state, "request_id", "unknown")
        logger.warning("Integrity error", request_id=request_id, error=str(exc.orig))
        mapped = ConflictError("Resource conflict")
        return error(
            code=mapped.code,
            message=mapped.message,
            status_code=mapped.status_code,
            request_id=request_id,
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        request_id = getattr(request.state, "request_id", "unknown")
        logger.exception("Unhandled exception", request_id=request_id)
        return error(
            code=INTERNAL_ERROR,
            message="An unexpected error occurred",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            request_id=request_id,
        )

    # Mount versioned API router
    app.include_router(v1_router, prefix=settings.api_v1_prefix)

    return app


# Create app instance
app = create_app()
