"""User resource service: validation, existence checks and store calls."""

import uuid
from typing import Any, Optional, Tuple

from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from users_api.database.models import User
from users_api.exceptions import BadRequestError, NotFoundError, ValidationError
from users_api.models.user import (
    CreateUserRequest,
    PageRequest,
    UpdateUserRequest,
    UserPatch,
)
from users_api.repositories.user_repository import UserPage, UserRepository
from users_api.services.mapping import UserMapper
from users_api.services.patch import FieldPatcher, parse_patch_document
from users_api.services.validation import ErrorMap, add_error, validate_payload
from users_api.utils.logging import log_user_event

# Pointer tokens accepted by PATCH, in both wire and attribute spelling
_PATCHABLE_FIELDS = {
    **{name: name for name in UserPatch.model_fields},
    **{to_camel(name): name for name in UserPatch.model_fields},
}


class UserService:
    """Service for the users resource.

    Holds no state of its own; every call goes through the injected
    repository, whose session defines the transaction.
    """

    def __init__(self, repository: UserRepository, mapper: UserMapper):
        """
        Initialize user service.

        Args:
            repository: User store
            mapper: Payload/entity/representation mapper
        """
        self.repository = repository
        self.mapper = mapper

    async def get_user(self, user_id: uuid.UUID) -> User:
        """
        Get a user by ID.

        Raises:
            NotFoundError: If the user does not exist
        """
        user = await self.repository.get_by_id(str(user_id))
        if user is None:
            raise NotFoundError("User", resource_id=str(user_id))
        return user

    async def create_user(self, payload: Any) -> User:
        """
        Validate a creation payload and insert the user.

        Args:
            payload: Decoded request body

        Returns:
            Inserted user with its generated ID

        Raises:
            BadRequestError: If the body is missing or not an object
            ValidationError: If any field is invalid
        """
        if not isinstance(payload, dict):
            raise BadRequestError("Request body must be a user object")

        request, errors = validate_payload(CreateUserRequest, payload)
        if errors:
            log_user_event("create_rejected", invalid_fields=sorted(errors))
            raise ValidationError(errors=errors)

        user = await self.repository.insert(self.mapper.to_entity(request))
        log_user_event("create", user.id)
        return user

    async def delete_user(self, user_id: uuid.UUID) -> None:
        """
        Delete a user.

        Raises:
            NotFoundError: If the user does not exist
        """
        if not await self.repository.delete(str(user_id)):
            raise NotFoundError("User", resource_id=str(user_id))
        log_user_event("delete", user_id)

    async def upsert_user(self, user_id: uuid.UUID, payload: Any) -> Tuple[User, bool]:
        """
        Replace a user, creating it when the ID is unknown.

        Args:
            user_id: Target user ID
            payload: Decoded request body

        Returns:
            Tuple of (stored user, True if it was created)

        Raises:
            BadRequestError: If the ID is the nil UUID or the body is missing
            ValidationError: If any field is invalid
        """
        if user_id == uuid.UUID(int=0) or not isinstance(payload, dict):
            raise BadRequestError("A non-empty user ID and a user object are required")

        request, errors = validate_payload(UpdateUserRequest, payload)
        if errors:
            log_user_event("upsert_rejected", user_id, invalid_fields=sorted(errors))
            raise ValidationError(errors=errors)

        user, created = await self.repository.update_or_insert(
            self.mapper.to_entity(request, user_id)
        )
        log_user_event("upsert", user.id, created=created)
        return user, created

    async def patch_user(self, user_id: uuid.UUID, document: Any) -> User:
        """
        Apply a patch document to a user.

        The document is applied to a blank payload and validated before the
        user's existence is checked, so an invalid patch is reported as a
        validation failure even for an unknown ID.

        Args:
            user_id: Target user ID
            document: Decoded patch document (list of operations)

        Returns:
            Updated user

        Raises:
            NotFoundError: If the ID is the nil UUID or the user does not exist
            BadRequestError: If the document is missing or malformed
            ValidationError: If applying the patch fails or leaves invalid fields
        """
        if user_id == uuid.UUID(int=0):
            raise NotFoundError("User", resource_id=str(user_id))
        if document is None:
            raise BadRequestError("Patch document is required")

        operations = parse_patch_document(document)
        result = FieldPatcher(_PATCHABLE_FIELDS).apply(operations)

        errors: ErrorMap = {}
        for error in result.errors:
            add_error(errors, to_camel(error.field) if error.field else error.path, error.message)

        wire_values = {to_camel(name): value for name, value in result.values.items()}
        patch, errors = validate_payload(UserPatch, wire_values, errors)
        if errors:
            log_user_event("patch_rejected", user_id, invalid_fields=sorted(errors))
            raise ValidationError(errors=errors)

        fields = self.mapper.to_update_fields(patch)
        user = await self.repository.update(str(user_id), **fields)
        if user is None:
            raise NotFoundError("User", resource_id=str(user_id))

        log_user_event("patch", user_id, fields=sorted(fields))
        return user

    async def list_users(self, page: PageRequest) -> UserPage:
        """Get one page of users."""
        return await self.repository.get_page(page.page_number, page.page_size)


def get_user_service(session: AsyncSession, mapper: Optional[UserMapper] = None) -> UserService:
    """
    Get a UserService bound to a database session.

    Args:
        session: Database session
        mapper: Representation mapper, a fresh UserMapper by default

    Returns:
        UserService instance
    """
    return UserService(UserRepository(session), mapper or UserMapper())
