"""Field validators shared by the user create, replace and patch flows.

Errors are collected into a ``{field: [messages]}`` map so every failing
field is reported in one response.
"""

import unicodedata
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)

ErrorMap = Dict[str, List[str]]

LOGIN_FORMAT_MESSAGE = "Login can contain only letters and digits"


def add_error(errors: ErrorMap, field: str, message: str) -> None:
    """Append ``message`` to the error list of ``field``."""
    messages = errors.setdefault(field, [])
    if message not in messages:
        messages.append(message)


def is_letter_or_digit(char: str) -> bool:
    """True for Unicode letters (L*) and decimal digits (Nd) only."""
    category = unicodedata.category(char)
    return category.startswith("L") or category == "Nd"


def check_login(login: Any, errors: ErrorMap) -> None:
    """Flag a non-empty login holding anything but letters and digits."""
    if isinstance(login, str) and login and not all(map(is_letter_or_digit, login)):
        add_error(errors, "login", LOGIN_FORMAT_MESSAGE)


def collect_model_errors(exc: PydanticValidationError, errors: ErrorMap) -> None:
    """Fold pydantic errors into ``errors`` keyed by wire field name."""
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())) or "body"
        if error.get("type") == "missing":
            message = f"The {field} field is required."
        elif error.get("type") == "value_error" and "error" in error.get("ctx", {}):
            message = str(error["ctx"]["error"])
        else:
            message = error.get("msg", "Invalid value")
        add_error(errors, field, message)


def validate_payload(
    model: Type[ModelT],
    payload: Mapping[str, Any],
    errors: Optional[ErrorMap] = None,
) -> Tuple[Optional[ModelT], ErrorMap]:
    """
    Validate a user payload.

    The login format check runs first, then the model's own field rules.

    Args:
        model: Pydantic model to validate against
        payload: Decoded JSON object
        errors: Errors gathered by earlier steps, extended in place

    Returns:
        Tuple of (model instance or None, error map)
    """
    errors = errors if errors is not None else {}
    check_login(payload.get("login"), errors)

    try:
        instance = model.model_validate(payload)
    except PydanticValidationError as e:
        collect_model_errors(e, errors)
        return None, errors

    return (instance if not errors else None), errors
