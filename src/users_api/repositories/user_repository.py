"""User repository: the store behind the users resource.

All calls run inside the caller's ``AsyncSession``; atomicity of each call,
including the create-vs-replace decision of ``update_or_insert``, is that
of the session's transaction.
"""

import logging
import math
import uuid
from dataclasses import dataclass
from typing import List, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from users_api.database.models import User
from users_api.exceptions import DatabaseError
from users_api.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

# Columns copied on full replace, with the value an unset column falls back to
_REPLACEABLE_FIELDS = {
    "login": None,
    "first_name": None,
    "last_name": None,
    "games_played": 0,
    "current_game_id": None,
}


@dataclass
class UserPage:
    """One page of users plus its position in the full result set."""

    items: List[User]
    total_count: int
    page_size: int
    current_page: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size) if self.page_size else 0

    @property
    def has_previous(self) -> bool:
        return self.current_page > 1

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages


class UserRepository(BaseRepository[User]):
    """Repository for user data access operations."""

    def __init__(self, session: AsyncSession):
        """Initialize user repository."""
        super().__init__(User, session)

    async def insert(self, user: User) -> User:
        """
        Insert a new user, generating an ID when none is set.

        Args:
            user: Transient user entity

        Returns:
            Inserted user
        """
        if not user.id:
            user.id = str(uuid.uuid4())
        inserted = await self.add(user)
        logger.info(f"Inserted user: {inserted.id}")
        return inserted

    async def update_or_insert(self, user: User) -> Tuple[User, bool]:
        """
        Replace the user with ``user.id`` or insert it if absent.

        Args:
            user: Entity carrying the target ID and the full new state

        Returns:
            Tuple of (stored user, True if it was inserted)
        """
        existing = await self.get_by_id(user.id)
        if existing is None:
            return await self.insert(user), True

        try:
            for field, default in _REPLACEABLE_FIELDS.items():
                value = getattr(user, field)
                setattr(existing, field, default if value is None else value)
            await self.session.flush()
            await self.session.refresh(existing)
        except SQLAlchemyError as e:
            logger.error(f"Error replacing user {user.id}: {e}")
            await self.session.rollback()
            raise DatabaseError("Failed to replace User") from e

        logger.info(f"Replaced user: {existing.id}")
        return existing, False

    async def get_page(self, page_number: int, page_size: int) -> UserPage:
        """
        Get one page of users ordered by login, then ID.

        Args:
            page_number: 1-based page index
            page_size: Users per page

        Returns:
            UserPage with the window and the total user count
        """
        total_count = await self.count()
        items = await self.list_ordered(
            User.login,
            User.id,
            skip=(page_number - 1) * page_size,
            limit=page_size,
        )
        return UserPage(
            items=items,
            total_count=total_count,
            page_size=page_size,
            current_page=page_number,
        )
