"""JSON Patch interpreter for flat payloads.

Applies the ``add``/``remove``/``replace``/``move``/``copy``/``test``
operations of a patch document to a flat set of named fields. Problems met
while applying are returned as ``PatchError`` records; only a document that
cannot be read as a list of operations at all raises.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from users_api.exceptions import BadRequestError


class PatchOperationType(str, Enum):
    """Supported patch operation kinds."""

    ADD = "add"
    REMOVE = "remove"
    REPLACE = "replace"
    MOVE = "move"
    COPY = "copy"
    TEST = "test"


# Operations that need a "value" member / a "from" member
_VALUE_OPERATIONS = {PatchOperationType.ADD, PatchOperationType.REPLACE, PatchOperationType.TEST}
_FROM_OPERATIONS = {PatchOperationType.MOVE, PatchOperationType.COPY}


@dataclass(frozen=True)
class PatchOperation:
    """A single patch operation."""

    op: PatchOperationType
    path: str
    value: Any = None
    from_path: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Any, index: int) -> "PatchOperation":
        """Build an operation from its decoded JSON form."""
        if not isinstance(raw, dict):
            raise BadRequestError(
                "Patch operation must be an object", details={"operation": index}
            )

        try:
            op = PatchOperationType(str(raw.get("op", "")).lower())
        except ValueError:
            raise BadRequestError(
                f"Unsupported patch operation: {raw.get('op')!r}",
                details={"operation": index},
            ) from None

        path = raw.get("path")
        if not isinstance(path, str):
            raise BadRequestError(
                "Patch operation requires a string 'path'", details={"operation": index}
            )
        if op in _VALUE_OPERATIONS and "value" not in raw:
            raise BadRequestError(
                f"Patch operation '{op.value}' requires a 'value'", details={"operation": index}
            )

        from_path = raw.get("from")
        if op in _FROM_OPERATIONS and not isinstance(from_path, str):
            raise BadRequestError(
                f"Patch operation '{op.value}' requires a string 'from'",
                details={"operation": index},
            )

        return cls(op=op, path=path, value=raw.get("value"), from_path=from_path)


@dataclass(frozen=True)
class PatchError:
    """A problem found while applying one operation."""

    index: int
    operation: PatchOperationType
    path: str
    message: str
    field: Optional[str] = None


@dataclass
class PatchResult:
    """Values written by a patch plus the problems met on the way."""

    values: Dict[str, Any] = field(default_factory=dict)
    errors: List[PatchError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def parse_patch_document(document: Any) -> List[PatchOperation]:
    """
    Read a decoded patch document.

    Raises:
        BadRequestError: If the document is not a list of operation objects
    """
    if not isinstance(document, list):
        raise BadRequestError("Patch document must be a JSON array of operations")
    return [PatchOperation.from_dict(raw, index) for index, raw in enumerate(document)]


class FieldPatcher:
    """Applies patch operations to a blank holder of the given fields.

    ``fields`` maps each accepted pointer token, compared case-insensitively,
    to the attribute it addresses, e.g. ``{"firstname": "first_name",
    "first_name": "first_name"}``.
    """

    def __init__(self, fields: Dict[str, str]):
        self.fields = {token.lower(): name for token, name in fields.items()}

    def resolve(self, pointer: str) -> Optional[str]:
        """Map a JSON pointer to a field name; None if it addresses nothing."""
        if not pointer.startswith("/"):
            return None
        tokens = pointer[1:].split("/")
        if len(tokens) != 1:
            return None
        token = tokens[0].replace("~1", "/").replace("~0", "~")
        return self.fields.get(token.lower())

    def apply(self, operations: Sequence[PatchOperation]) -> PatchResult:
        """Apply ``operations`` in order, collecting rather than raising errors."""
        result = PatchResult()
        for index, operation in enumerate(operations):
            error = self._apply_one(index, operation, result.values)
            if error is not None:
                result.errors.append(error)
        return result

    def _apply_one(
        self, index: int, operation: PatchOperation, values: Dict[str, Any]
    ) -> Optional[PatchError]:
        target = self.resolve(operation.path)
        if target is None:
            return PatchError(
                index=index,
                operation=operation.op,
                path=operation.path,
                message=f"The target location specified by path '{operation.path}' was not found.",
            )

        if operation.op in (PatchOperationType.ADD, PatchOperationType.REPLACE):
            values[target] = operation.value
        elif operation.op == PatchOperationType.REMOVE:
            values[target] = None
        elif operation.op == PatchOperationType.TEST:
            current = values.get(target)
            if current != operation.value:
                return PatchError(
                    index=index,
                    operation=operation.op,
                    path=operation.path,
                    field=target,
                    message=(
                        f"The current value '{current}' at path '{operation.path}' "
                        f"is not equal to the test value '{operation.value}'."
                    ),
                )
        else:
            source = self.resolve(operation.from_path or "")
            if source is None:
                return PatchError(
                    index=index,
                    operation=operation.op,
                    path=operation.from_path or "",
                    message=(
                        f"The target location specified by path "
                        f"'{operation.from_path}' was not found."
                    ),
                )
            value = values.get(source)
            if operation.op == PatchOperationType.MOVE and source != target:
                values[source] = None
            values[target] = value

        return None
