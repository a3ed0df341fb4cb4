"""Tests for the JSON Patch interpreter."""

import pytest

from users_api.exceptions import BadRequestError
from users_api.services.patch import (
    FieldPatcher,
    PatchOperation,
    PatchOperationType,
    parse_patch_document,
)

FIELDS = {
    "login": "login",
    "firstName": "first_name",
    "first_name": "first_name",
    "lastName": "last_name",
    "last_name": "last_name",
}


@pytest.fixture
def patcher() -> FieldPatcher:
    return FieldPatcher(FIELDS)


def apply(patcher: FieldPatcher, document):
    return patcher.apply(parse_patch_document(document))


def test_parse_operations():
    operations = parse_patch_document(
        [
            {"op": "replace", "path": "/login", "value": "abc"},
            {"op": "MOVE", "from": "/login", "path": "/lastName"},
        ]
    )
    assert operations[0] == PatchOperation(PatchOperationType.REPLACE, "/login", "abc")
    assert operations[1].op == PatchOperationType.MOVE
    assert operations[1].from_path == "/login"


@pytest.mark.parametrize(
    "document",
    [
        {"op": "add", "path": "/login", "value": "x"},
        ["not an object"],
        [{"op": "merge", "path": "/login"}],
        [{"op": "add", "value": "x"}],
        [{"op": "replace", "path": "/login"}],
        [{"op": "copy", "path": "/login"}],
    ],
)
def test_malformed_documents_raise(document):
    with pytest.raises(BadRequestError):
        parse_patch_document(document)


def test_empty_document_touches_nothing(patcher: FieldPatcher):
    result = apply(patcher, [])
    assert result.ok
    assert result.values == {}


def test_add_and_replace_set_values(patcher: FieldPatcher):
    result = apply(
        patcher,
        [
            {"op": "add", "path": "/firstName", "value": "John"},
            {"op": "replace", "path": "/LOGIN", "value": "jd"},
        ],
    )
    assert result.ok
    assert result.values == {"first_name": "John", "login": "jd"}


def test_remove_clears_value(patcher: FieldPatcher):
    result = apply(patcher, [{"op": "remove", "path": "/last_name"}])
    assert result.ok
    assert result.values == {"last_name": None}


def test_move_and_copy(patcher: FieldPatcher):
    result = apply(
        patcher,
        [
            {"op": "add", "path": "/login", "value": "jd"},
            {"op": "copy", "from": "/login", "path": "/firstName"},
            {"op": "move", "from": "/login", "path": "/lastName"},
        ],
    )
    assert result.ok
    assert result.values == {"login": None, "first_name": "jd", "last_name": "jd"}


def test_test_operation(patcher: FieldPatcher):
    result = apply(
        patcher,
        [
            {"op": "add", "path": "/login", "value": "jd"},
            {"op": "test", "path": "/login", "value": "jd"},
            {"op": "test", "path": "/firstName", "value": "John"},
        ],
    )
    assert len(result.errors) == 1
    error = result.errors[0]
    assert error.index == 2
    assert error.operation == PatchOperationType.TEST
    assert error.field == "first_name"


def test_errors_are_collected_not_raised(patcher: FieldPatcher):
    result = apply(
        patcher,
        [
            {"op": "replace", "path": "/unknown", "value": 1},
            {"op": "replace", "path": "/login/nested", "value": 1},
            {"op": "move", "from": "/nowhere", "path": "/login"},
            {"op": "replace", "path": "/firstName", "value": "John"},
        ],
    )
    assert not result.ok
    assert [error.index for error in result.errors] == [0, 1, 2]
    assert result.errors[2].path == "/nowhere"
    assert result.values == {"first_name": "John"}


def test_resolve_unescapes_tokens(patcher: FieldPatcher):
    assert patcher.resolve("/login") == "login"
    assert patcher.resolve("login") is None
    assert patcher.resolve("") is None
    assert FieldPatcher({"a/b": "ab"}).resolve("/a~1b") == "ab"
