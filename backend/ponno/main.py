"""
FastAPI application entry point with health endpoint and API routing.

This module provides the main FastAPI application instance with CORS and rate
limiting, request correlation logging, the exception handlers that render every
failure into the ``{success, message, code}`` envelope, and the lifespan hooks
that open and dispose of the database engine.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException

from ponno.api.v1 import api_router
from ponno.core.config import get_settings
from ponno.core.exceptions import PonnoError
from ponno.core.logging import (
    clear_context,
    configure_logging,
    get_logger,
    log_performance,
    set_request_id,
)
from ponno.database.connection import close_database_connections, initialize_database
from ponno.schemas.common import ErrorResponse

# Configure logging before application initialization
configure_logging()
logger = get_logger(__name__)

settings = get_settings()

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit],
    enabled=not settings.is_test,
)

_HTTP_ERROR_CODES = {
    status.HTTP_401_UNAUTHORIZED: "UNAUTHORIZED",
    status.HTTP_403_FORBIDDEN: "FORBIDDEN",
    status.HTTP_404_NOT_FOUND: "ROUTE_NOT_FOUND",
    status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
}


def error_body(
    message: str,
    code: str,
    errors: Optional[list[dict[str, str]]] = None,
) -> dict[str, Any]:
    return ErrorResponse(message=message, code=code, errors=errors).model_dump()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan context manager for startup and shutdown events.

    Args:
        app: FastAPI application instance

    Yields:
        None during application runtime
    """
    logger.info(
        "Application starting",
        environment=settings.environment,
        debug=settings.debug,
        version=settings.app_version,
    )

    with log_performance(logger, "application_startup"):
        await initialize_database()

    yield

    logger.info("Application shutting down")
    with log_performance(logger, "application_shutdown"):
        await close_database_connections()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Agricultural marketplace backend API",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    debug=settings.debug,
)

# Configure rate limiting
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """
    Middleware for request logging and correlation ID management.

    Sets request ID for correlation, logs request details, and measures
    response time. Clears context after request processing.

    Args:
        request: Incoming HTTP request
        call_next: Next middleware or route handler

    Returns:
        HTTP response with X-Request-ID header
    """
    request_id = set_request_id(request.headers.get("X-Request-ID"))

    logger.info(
        "Request received",
        method=request.method,
        path=request.url.path,
        client_host=request.client.host if request.client else None,
    )

    try:
        with log_performance(
            logger,
            "request_processing",
            method=request.method,
            path=request.url.path,
        ):
            response = await call_next(request)

        response.headers["X-Request-ID"] = request_id

        logger.info(
            "Request completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
        )

        return response
    finally:
        clear_context()


@app.exception_handler(PonnoError)
async def ponno_error_handler(request: Request, exc: PonnoError) -> JSONResponse:
    """Render application errors with their status and stable code."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "Request failed",
        method=request.method,
        path=request.url.path,
        code=exc.code,
        status_code=exc.status_code,
        detail=exc.message,
        **exc.context,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, exc.code),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle request validation errors with one entry per failing field.

    Args:
        request: HTTP request that caused validation error
        exc: Validation exception with error details

    Returns:
        400 JSON response with field errors
    """
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]

    logger.warning(
        "Request validation failed",
        method=request.method,
        path=request.url.path,
        errors=errors,
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("Validation failed", "VALIDATION_ERROR", errors=errors),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    code = _HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
    message = (
        f"Route {request.url.path} not found"
        if code == "ROUTE_NOT_FOUND"
        else str(exc.detail)
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message, code),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning(
        "Rate limit exceeded",
        path=request.url.path,
        client_host=request.client.host if request.client else None,
    )
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=error_body(
            "Too many requests, please try again later",
            "RATE_LIMIT_EXCEEDED",
        ),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions without exposing internals.

    The exception message is included only in debug mode.
    """
    logger.error(
        "Unhandled exception",
        method=request.method,
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=True,
    )

    message = str(exc) if settings.debug else "Internal server error"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(message, "INTERNAL_SERVER_ERROR"),
    )


@app.get(
    "/health",
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Health check endpoint",
)
async def health_check() -> dict[str, str]:
    """
    Basic health check endpoint.

    Always returns 200 OK if application is running.
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


app.include_router(api_router, prefix=settings.api_v1_prefix)
