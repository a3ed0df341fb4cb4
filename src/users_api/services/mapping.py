"""Conversions between wire models and the User entity."""

import uuid
from typing import Any, Dict, Union

from users_api.database.models import User
from users_api.models.user import (
    CreateUserRequest,
    UpdateUserRequest,
    UserPatch,
    UserResponse,
)


class UserMapper:
    """Maps user payloads to entities and entities to representations."""

    def to_entity(
        self,
        request: Union[CreateUserRequest, UpdateUserRequest],
        user_id: Union[uuid.UUID, str, None] = None,
    ) -> User:
        """Build a transient User from a full payload, optionally with a fixed ID."""
        user = User(
            login=request.login,
            first_name=request.first_name,
            last_name=request.last_name,
            games_played=0,
            current_game_id=None,
        )
        if user_id:
            user.id = str(user_id)
        return user

    def to_response(self, user: User) -> UserResponse:
        """Convert a User entity to its response model."""
        return UserResponse(
            id=user.id,
            login=user.login,
            full_name=user.full_name,
            games_played=user.games_played or 0,
            current_game_id=user.current_game_id,
        )

    def to_update_fields(self, patch: UserPatch) -> Dict[str, Any]:
        """Entity columns to overwrite for the fields a patch touched."""
        return patch.model_dump(include=patch.model_fields_set)
