"""Service layer for the users resource."""

from users_api.services.mapping import UserMapper
from users_api.services.user_service import UserService, get_user_service

__all__ = [
    "UserMapper",
    "UserService",
    "get_user_service",
]
