"""Repositories package."""

from users_api.repositories.base import BaseRepository
from users_api.repositories.user_repository import UserPage, UserRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "UserPage",
]
