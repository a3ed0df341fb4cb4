"""Tests for structured logging of requests and user operations."""

import json
import logging

import pytest
from fastapi.testclient import TestClient

from users_api.utils.logging import (
    JSONFormatter,
    StandardFormatter,
    log_user_event,
    set_request_id,
)


class RecordingHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@pytest.fixture
def records():
    handler = RecordingHandler()
    logger = logging.getLogger("users_api")
    previous_level = logger.level
    logger.setLevel(logging.INFO)
    logger.addHandler(handler)
    yield handler.records
    logger.removeHandler(handler)
    logger.setLevel(previous_level)


def fields_of(records, logger_name):
    return [r.extra_fields for r in records if r.name == logger_name]


def test_user_event_fields(records):
    log_user_event("patch", "abc", fields=["login"])

    assert fields_of(records, "users_api.users") == [
        {"operation": "patch", "user_id": "abc", "fields": ["login"]}
    ]


def test_json_formatter_flattens_fields(records):
    set_request_id("req-1")
    log_user_event("delete", "abc")

    line = json.loads(JSONFormatter().format(records[-1]))

    assert line["request_id"] == "req-1"
    assert line["operation"] == "delete"
    assert line["user_id"] == "abc"
    assert line["logger"] == "users_api.users"


def test_standard_formatter_appends_fields(records):
    log_user_event("create", "abc")

    line = StandardFormatter().format(records[-1])

    assert line.endswith("| operation=create user_id=abc")


def test_create_and_read_are_logged(client: TestClient, user_payload: dict, records):
    user_id = client.post("/api/users", json=user_payload).json()
    client.get(f"/api/users/{user_id}")

    assert {"operation": "create", "user_id": user_id} in fields_of(records, "users_api.users")
    access = fields_of(records, "users_api.http")
    read = [f for f in access if f["method"] == "GET"][-1]
    assert read["route"] == "/api/users/{user_id}"
    assert read["user_id"] == user_id
    assert read["status_code"] == 200


def test_rejected_create_names_invalid_fields(client: TestClient, records):
    client.post("/api/users", json={"login": "a b", "firstName": "A", "lastName": "B"})

    assert {"operation": "create_rejected", "invalid_fields": ["login"]} in fields_of(
        records, "users_api.users"
    )
