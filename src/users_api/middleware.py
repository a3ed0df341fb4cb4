"""HTTP middleware for the Users API."""

import time
import uuid
from typing import Callable, Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from users_api.config import get_settings
from users_api.utils.logging import get_logger, log_error, log_request, set_request_id

logger = get_logger("middleware")
settings = get_settings()


def _route_template(request: Request) -> str:
    """Template of the matched route, e.g. ``/api/users/{user_id}``."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


def _user_id(request: Request) -> Optional[str]:
    return request.scope.get("path_params", {}).get("user_id")


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Assigns the request ID and writes one access-log record per request.

    The record names the route template rather than the raw path, plus the
    addressed user ID, so requests for the same operation group together.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        set_request_id(request_id)
        start_time = time.perf_counter()

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        log_request(
            method=request.method,
            route=_route_template(request),
            status_code=response.status_code,
            duration_ms=duration_ms,
            user_id=_user_id(request),
            client_ip=request.client.host if request.client else None,
        )
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{duration_ms:.2f}ms"
        return response


class ErrorLoggingMiddleware(BaseHTTPMiddleware):
    """Logs exceptions that escape the exception handlers."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            log_error(
                e,
                context={
                    "method": request.method,
                    "route": _route_template(request),
                    "user_id": _user_id(request),
                },
            )
            raise


class ResponseHeadersMiddleware(BaseHTTPMiddleware):
    """Adds security headers and marks bodies as varying with ``Accept``."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        # Bodies are negotiated between JSON and XML
        vary = response.headers.get("Vary")
        if not vary:
            response.headers["Vary"] = "Accept"
        elif "accept" not in [part.strip().lower() for part in vary.split(",")]:
            response.headers["Vary"] = f"{vary}, Accept"

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


def setup_cors_middleware(app: FastAPI) -> None:
    """Allow browser clients, exposing the Location and X-Pagination headers."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=settings.cors.allow_methods,
        allow_headers=settings.cors.allow_headers,
        expose_headers=settings.cors.expose_headers,
        max_age=settings.cors.max_age,
    )


def setup_middleware(app: FastAPI) -> None:
    """Set up all middleware for the FastAPI application.

    The last middleware registered is the outermost one:
    1. ResponseHeaders
    2. ErrorLogging
    3. AccessLog
    4. CORS
    """
    setup_cors_middleware(app)
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(ErrorLoggingMiddleware)
    app.add_middleware(ResponseHeadersMiddleware)

    logger.info(
        f"Middleware configured: CORS (origins={settings.cors.origins}), "
        "AccessLog, ErrorLogging, ResponseHeaders"
    )
