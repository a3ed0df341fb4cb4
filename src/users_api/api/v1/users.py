"""User resource endpoints."""

import logging
import uuid
from typing import Any, List

from fastapi import APIRouter, Body, Query, Request, Response, status

from users_api.api.representation import render
from users_api.database.session import get_session_context
from users_api.exceptions import BadRequestError, NotFoundError, UnsupportedMediaTypeError
from users_api.models.user import PageRequest, PaginationHeader, UserResponse
from users_api.services.user_service import get_user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

JSON_PATCH_MEDIA_TYPE = "application/json-patch+json"
PATCH_MEDIA_TYPES = [JSON_PATCH_MEDIA_TYPE, "application/json"]
COLLECTION_METHODS = "POST, GET, OPTIONS"

# Query integers are bounded like 32-bit ints; larger offsets overflow the store
INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1

_ID_RESPONSES = {
    400: {"description": "Missing body or malformed ID"},
    422: {"description": "Validation error"},
}


def _parse_user_id(raw: str, *, lookup: bool = False) -> uuid.UUID:
    """Parse a path ID; lookups report a malformed ID as a missing user."""
    try:
        return uuid.UUID(raw)
    except ValueError:
        if lookup:
            raise NotFoundError("User", resource_id=raw) from None
        raise BadRequestError(f"'{raw}' is not a valid user ID") from None


def _created(request: Request, user_id: str) -> Response:
    location = str(request.url_for("get_user_by_id", user_id=user_id))
    return render(
        request,
        user_id,
        status_code=status.HTTP_201_CREATED,
        headers={"Location": location},
        xml_root="guid",
    )


@router.api_route(
    "/{user_id}",
    methods=["GET", "HEAD"],
    name="get_user_by_id",
    response_model=UserResponse,
    responses={404: {"description": "User not found"}},
)
async def get_user_by_id(request: Request, user_id: str) -> Response:
    """
    Get a user by ID.

    HEAD returns the same status and content type with an empty body.
    """
    parsed_id = _parse_user_id(user_id, lookup=True)
    async with get_session_context() as session:
        service = get_user_service(session)
        user = await service.get_user(parsed_id)

        if request.method == "HEAD":
            return Response(
                status_code=status.HTTP_200_OK,
                headers={"Content-Type": "application/json; charset=utf-8"},
            )

        return render(request, service.mapper.to_response(user))


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=str,
    responses=_ID_RESPONSES,
)
async def create_user(request: Request, payload: Any = Body(None)) -> Response:
    """
    Create a user.

    Responds with the new user's ID and a Location header pointing at it.
    """
    async with get_session_context() as session:
        service = get_user_service(session)
        user = await service.create_user(payload)
        user_id = user.id

    return _created(request, user_id)


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"description": "User not found"}},
)
async def delete_user(user_id: str) -> Response:
    """Delete a user."""
    parsed_id = _parse_user_id(user_id, lookup=True)
    async with get_session_context() as session:
        service = get_user_service(session)
        await service.delete_user(parsed_id)

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={201: {"description": "User created", "model": str}, **_ID_RESPONSES},
)
async def update_user(request: Request, user_id: str, payload: Any = Body(None)) -> Response:
    """
    Replace a user, creating it if the ID is unknown.

    Responds 201 with a Location header when the user was created, 204 when
    an existing user was replaced.
    """
    parsed_id = _parse_user_id(user_id)
    async with get_session_context() as session:
        service = get_user_service(session)
        user, created = await service.upsert_user(parsed_id, payload)
        stored_id = user.id

    if created:
        return _created(request, stored_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        404: {"description": "User not found"},
        415: {"description": "Body is not a JSON Patch document"},
        **_ID_RESPONSES,
    },
)
async def partially_update_user(
    request: Request,
    user_id: str,
    document: Any = Body(None, media_type=JSON_PATCH_MEDIA_TYPE),
) -> Response:
    """
    Apply a JSON Patch document (RFC 6902) to a user.

    Paths address the update payload fields: ``/login``, ``/firstName``,
    ``/lastName``.
    """
    content_type = request.headers.get("content-type")
    if content_type:
        media_type = content_type.split(";")[0].strip().lower()
        if media_type not in PATCH_MEDIA_TYPES:
            raise UnsupportedMediaTypeError(media_type, PATCH_MEDIA_TYPES)

    parsed_id = _parse_user_id(user_id)
    async with get_session_context() as session:
        service = get_user_service(session)
        await service.patch_user(parsed_id, document)

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "",
    name="get_users",
    response_model=List[UserResponse],
)
async def get_users(
    request: Request,
    page_number: int = Query(
        1, alias="pageNumber", ge=INT32_MIN, le=INT32_MAX, description="1-based page number"
    ),
    page_size: int = Query(
        10, alias="pageSize", ge=INT32_MIN, le=INT32_MAX, description="Users per page (1-20)"
    ),
) -> Response:
    """
    List users one page at a time.

    Pagination metadata is returned in the ``X-Pagination`` header as a JSON
    object.
    """
    page_request = PageRequest(page_number=page_number, page_size=page_size)

    async with get_session_context() as session:
        service = get_user_service(session)
        page = await service.list_users(page_request)
        users = [service.mapper.to_response(user) for user in page.items]

    def page_link(number: int) -> str:
        return str(
            request.url_for("get_users").include_query_params(
                pageNumber=number, pageSize=page.page_size
            )
        )

    pagination = PaginationHeader(
        previous_page_link=page_link(page.current_page - 1) if page.has_previous else None,
        next_page_link=page_link(page.current_page + 1) if page.has_next else None,
        total_count=page.total_count,
        page_size=page.page_size,
        current_page=page.current_page,
        total_pages=page.total_pages,
    )

    return render(
        request,
        users,
        headers={"X-Pagination": pagination.model_dump_json(by_alias=True)},
        xml_root="users",
        xml_item="user",
    )


@router.options("", status_code=status.HTTP_200_OK)
async def get_users_options() -> Response:
    """List the methods supported by the users collection."""
    return Response(status_code=status.HTTP_200_OK, headers={"Allow": COLLECTION_METHODS})
