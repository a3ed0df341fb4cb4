"""FastAPI application entry point.

This module creates and configures the FastAPI application instance with:
- Application metadata and OpenAPI documentation
- Middleware (CORS, RequestID, Timing, ErrorLogging, SecurityHeaders)
- Exception handlers (APIException, HTTPException, ValidationError, general)
- API routers
- Health check endpoints (/health, /ready)
- Startup/shutdown lifecycle management (database)
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from users_api import __version__
from users_api.api.representation import render_error
from users_api.api.v1.router import router as api_router
from users_api.config import get_settings
from users_api.database import check_connection, close_db, init_db
from users_api.exceptions import APIException, BadRequestError
from users_api.middleware import setup_middleware
from users_api.utils.logging import get_logger, log_error, setup_logging

# Set up logging first
setup_logging()
logger = get_logger("main")

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create database tables on startup and dispose of the engine on shutdown."""
    logger.info("Starting Users API service...")
    try:
        await init_db()
        logger.info("Users API service started successfully")
        yield
    except Exception as e:
        logger.error(f"Failed to start Users API service: {e}", exc_info=True)
        raise
    finally:
        logger.info("Shutting down Users API service...")
        await close_db()
        logger.info("Users API service shut down successfully")


app = FastAPI(
    title="Users API",
    description=(
        "CRUD API over the user resource with partial updates (JSON Patch), "
        "paging via the X-Pagination header and JSON/XML representations."
    ),
    version=__version__,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    openapi_url="/openapi.json" if settings.debug else None,
    debug=settings.debug,
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "users",
            "description": "Create, read, replace, patch, delete and list users",
        },
        {
            "name": "meta",
            "description": "API information",
        },
    ],
)

setup_middleware(app)

app.include_router(api_router)


def _request_context(request: Request, **fields) -> dict:
    """Structured log fields identifying the request and the addressed user."""
    context = {"method": request.method, "path": request.url.path}
    user_id = request.path_params.get("user_id")
    if user_id is not None:
        context["user_id"] = user_id
    context.update(fields)
    return context


@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException) -> Response:
    """Handle custom API exceptions."""
    if exc.status_code >= 500:
        log_error(exc, context=_request_context(request, code=exc.code))
    else:
        fields = _request_context(request, status_code=exc.status_code, code=exc.code)
        invalid_fields = exc.details.get("validation_errors")
        if isinstance(invalid_fields, dict):
            fields["invalid_fields"] = sorted(invalid_fields)
        logger.info(
            f"{exc.status_code} {exc.code}: {request.method} {request.url.path}",
            extra={"extra_fields": fields},
        )
    return render_error(request, exc.to_dict(), status_code=exc.status_code)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> Response:
    """Handle HTTP exceptions (404, 405, etc.)."""
    if exc.status_code < 500:
        logger.warning(
            f"{exc.status_code}: {request.method} {request.url.path}",
            extra={"extra_fields": _request_context(request, status_code=exc.status_code)},
        )
    else:
        log_error(exc, context=_request_context(request, status_code=exc.status_code))

    return render_error(
        request,
        {
            "error": {
                "message": exc.detail,
                "code": "HTTP_ERROR",
                "status_code": exc.status_code,
                "details": {},
            }
        },
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> Response:
    """Handle request validation errors; an unreadable JSON body is a 400."""
    errors = []
    for error in exc.errors():
        errors.append(
            {
                "field": ".".join(str(loc) for loc in error.get("loc", [])),
                "message": error.get("msg"),
                "type": error.get("type"),
            }
        )

    if any(error["type"] == "json_invalid" for error in errors):
        bad_request = BadRequestError(
            "Request body is not valid JSON", details={"validation_errors": errors}
        )
        return render_error(request, bad_request.to_dict(), status_code=bad_request.status_code)

    logger.warning(
        f"Validation error: {request.method} {request.url.path}",
        extra={"extra_fields": _request_context(request, validation_errors=errors)},
    )

    return render_error(
        request,
        {
            "error": {
                "message": "Validation failed",
                "code": "VALIDATION_ERROR",
                "status_code": 422,
                "details": {
                    "validation_errors": errors,
                },
            }
        },
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle all other unhandled exceptions."""
    log_error(exc, context=_request_context(request, unhandled=True))

    # Don't expose internal error details in production
    if settings.is_production:
        message = "An internal server error occurred"
    else:
        message = str(exc)

    return render_error(
        request,
        {
            "error": {
                "message": message,
                "code": "INTERNAL_SERVER_ERROR",
                "status_code": 500,
                "details": {} if settings.is_production else {"exception_type": type(exc).__name__},
            }
        },
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    logger.debug("Health check requested")
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "environment": settings.environment.value,
        "version": __version__,
    }


@app.get("/ready")
async def readiness_check():
    """Readiness check endpoint with database connectivity check."""
    logger.debug("Readiness check requested")
    db_connected = await check_connection()

    if not db_connected:
        logger.warning("Readiness check failed: database not connected")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "app_name": settings.app_name,
                "environment": settings.environment.value,
                "database": "disconnected",
            },
        )

    return {
        "status": "ready",
        "app_name": settings.app_name,
        "environment": settings.environment.value,
        "database": "connected",
    }


def run() -> None:
    """Run the service with uvicorn using the server settings."""
    import uvicorn

    uvicorn.run(
        "users_api.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=settings.server.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
