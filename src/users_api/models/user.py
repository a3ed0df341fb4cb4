"""User request/response models."""

from typing import ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

_WIRE_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _require_text(v: Optional[str], info: ValidationInfo) -> str:
    """Reject null, empty and whitespace-only values."""
    if v is None or not v.strip():
        raise ValueError(f"The {to_camel(info.field_name)} field is required.")
    return v


class CreateUserRequest(BaseModel):
    """User creation request model."""

    model_config = _WIRE_CONFIG

    login: Optional[str] = Field(..., description="Login, letters and digits only")
    first_name: Optional[str] = Field(..., description="First name", examples=["John"])
    last_name: Optional[str] = Field(..., description="Last name", examples=["Doe"])

    check_required = field_validator("login", "first_name", "last_name")(_require_text)


class UpdateUserRequest(BaseModel):
    """Full user replacement request model (PUT)."""

    model_config = _WIRE_CONFIG

    login: Optional[str] = Field(..., description="Login, letters and digits only")
    first_name: Optional[str] = Field(..., description="First name", examples=["John"])
    last_name: Optional[str] = Field(..., description="Last name", examples=["Doe"])

    check_required = field_validator("login", "first_name", "last_name")(_require_text)


class UserPatch(BaseModel):
    """
    Update payload produced by applying a patch document to a blank instance.

    Every field is optional; a field the patch touched must still hold a
    usable value, so validators only run for fields present in
    ``model_fields_set``.
    """

    model_config = _WIRE_CONFIG

    login: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    check_required = field_validator("login", "first_name", "last_name")(_require_text)


class UserResponse(BaseModel):
    """User response model."""

    model_config = _WIRE_CONFIG

    id: str = Field(..., description="User ID")
    login: str = Field(..., description="Login")
    full_name: str = Field(..., description="Last name followed by first name")
    games_played: int = Field(0, description="Number of finished games")
    current_game_id: Optional[str] = Field(None, description="Game the user is playing now")


class PageRequest(BaseModel):
    """Page window requested by a list call, clamped to the allowed range."""

    MAX_PAGE_SIZE: ClassVar[int] = 20

    model_config = _WIRE_CONFIG

    page_number: int = Field(1, description="1-based page number")
    page_size: int = Field(10, description="Users per page, at most 20")

    @field_validator("page_number")
    @classmethod
    def clamp_page_number(cls, v: int) -> int:
        return max(v, 1)

    @field_validator("page_size")
    @classmethod
    def clamp_page_size(cls, v: int) -> int:
        return min(max(v, 1), cls.MAX_PAGE_SIZE)


class PaginationHeader(BaseModel):
    """Metadata serialized into the ``X-Pagination`` response header."""

    model_config = _WIRE_CONFIG

    previous_page_link: Optional[str] = None
    next_page_link: Optional[str] = None
    total_count: int
    page_size: int
    current_page: int
    total_pages: int
