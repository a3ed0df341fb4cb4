"""API router aggregation.

All resource endpoints are mounted under the configured API prefix
(``/api`` by default):

- Users (`/api/users/*`)

Common middleware (applied at application level in main.py):
- CORS: Cross-origin resource sharing, exposing Location and X-Pagination
- RequestID: Request tracking and correlation
- Timing: Request processing time measurement
- ErrorLogging: Unhandled exception logging
- SecurityHeaders: Security headers
"""

from fastapi import APIRouter

from users_api.api.v1 import users
from users_api.config import get_settings

settings = get_settings()

router = APIRouter(
    prefix=settings.api_prefix,
    responses={
        404: {"description": "Not found"},
        422: {"description": "Validation error"},
        500: {"description": "Internal server error"},
    },
)

router.include_router(users.router)


@router.get(
    "/",
    summary="API Information",
    description="Get API version and status information",
    tags=["meta"],
)
async def api_info():
    """
    Get API information.

    Returns:
        dict: API version, status and resource entry points
    """
    return {
        "version": "v1",
        "status": "active",
        "endpoints": {
            "users": f"{settings.api_prefix}/users",
        },
    }
