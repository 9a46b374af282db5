"""FastAPI application entry point."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from call_scheduler import __version__
from call_scheduler.api import health, scheduler, tasks, webhooks
from call_scheduler.config import get_settings, validate_production_settings
from call_scheduler.core.exceptions import CallSchedulerError
from call_scheduler.core.logging import get_logger, setup_logging
from call_scheduler.dependencies import cleanup_dependencies, get_call_scheduler


def call_scheduler_exception_handler(request: Request, exc: CallSchedulerError) -> JSONResponse:
    """Map domain errors to their HTTP status with a structured body."""
    log = get_logger(__name__)
    log.warning(
        "Request failed",
        error_code=exc.error_code,
        error=exc.message,
        path=request.url.path,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions with structured response.

    Provides consistent error format across all HTTP errors.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": _status_code_to_error_type(exc.status_code),
            "message": str(exc.detail),
            "status_code": exc.status_code,
        },
    )


def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors with detailed field information.

    Provides structured error response for Pydantic validation failures.
    """
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"] if loc != "body")
        errors.append({
            "field": field or "request",
            "message": error["msg"],
            "type": error["type"],
        })

    return JSONResponse(
        status_code=422,
        content={
            "error": "validation_error",
            "message": "Request validation failed",
            "details": errors,
        },
    )


def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions.

    Logs the error and returns a generic 500 response without exposing
    internal details in production.
    """
    log = get_logger(__name__)
    log.error(
        "Unhandled exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
    )

    settings = get_settings()
    detail = str(exc) if settings.debug else "An internal error occurred"

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": detail,
        },
    )


def _status_code_to_error_type(status_code: int) -> str:
    """Map HTTP status codes to error type strings."""
    error_types = {
        400: "bad_request",
        404: "not_found",
        405: "method_not_allowed",
        409: "conflict",
        422: "validation_error",
        429: "rate_limit_exceeded",
        500: "internal_error",
        502: "bad_gateway",
        503: "service_unavailable",
        504: "gateway_timeout",
    }
    return error_types.get(status_code, "error")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    log = get_logger(__name__)

    # Setup logging
    setup_logging(
        level=settings.log_level,
        json_output=settings.log_json,
        instance_id=settings.instance_id,
    )

    log.info(
        "Starting call scheduler",
        version=__version__,
        environment=settings.environment,
        instance_id=settings.instance_id,
    )

    for problem in validate_production_settings(settings):
        log.error("Configuration problem", problem=problem)

    # Start the polling loop; ticks can also come from /scheduler/execute
    call_scheduler = None
    if settings.scheduler.enabled:
        call_scheduler = get_call_scheduler()
        await call_scheduler.start()
    else:
        log.info("Background scheduler disabled, waiting for external ticks")

    yield

    # Shutdown
    log.info("Shutting down call scheduler")

    if call_scheduler:
        await call_scheduler.stop()

    await cleanup_dependencies()
    log.info("Connections closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Outbound Call Scheduler",
        description="Scheduled outbound calls with completion relay",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # Exception handlers (order matters - most specific first)
    app.add_exception_handler(CallSchedulerError, call_scheduler_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # Include routers
    app.include_router(health.router, tags=["Health"])
    app.include_router(webhooks.router, prefix="/api/v1", tags=["Webhooks"])
    app.include_router(scheduler.router, prefix="/api/v1", tags=["Scheduler"])
    app.include_router(tasks.router, prefix="/api/v1", tags=["Tasks"])

    return app


# Create application instance
app = create_app()


def run() -> None:
    """Run the application with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "call_scheduler.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
