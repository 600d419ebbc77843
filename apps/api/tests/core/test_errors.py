"""
Tests for the error envelope rendered by the exception handlers.
"""

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
from pydantic import BaseModel

from app.core.errors import (
    AuthorizationError,
    ConflictError,
    InternalError,
    NotFoundError,
    RateLimitExceededError,
    ValidationError,
    error_body,
    register_exception_handlers,
)
from app.modules.shared.schemas import ApiResponse


class Item(BaseModel):
    name: str
    quantity: int


@pytest.fixture
def client():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/conflict")
    async def conflict():
        raise ConflictError(
            "This request has already been approved.",
            error_code="REQUEST_ALREADY_PROCESSED",
            details={"current_status": "approved"},
        )

    @app.get("/forbidden")
    async def forbidden():
        raise AuthorizationError("Nope.")

    @app.get("/missing")
    async def missing():
        raise NotFoundError("Request not found.", error_code="REQUEST_NOT_FOUND")

    @app.get("/limited")
    async def limited():
        raise RateLimitExceededError("Slow down.", details={"retry_after_seconds": 60})

    @app.get("/internal")
    async def internal():
        raise InternalError("Registry missing.", details={"secret": "x"})

    @app.get("/http")
    async def http_error():
        raise HTTPException(status_code=418, detail={"error": "TEAPOT", "message": "Short."})

    @app.get("/boom")
    async def boom():
        raise RuntimeError("unexpected")

    @app.post("/items")
    async def create_item(item: Item):
        return ApiResponse(data=item, message="Created.")

    return TestClient(app, raise_server_exceptions=False)


def test_conflict_envelope(client):
    response = client.get("/conflict")

    assert response.status_code == 409
    assert response.json() == {
        "success": False,
        "error": {
            "code": "REQUEST_ALREADY_PROCESSED",
            "message": "This request has already been approved.",
            "details": {"current_status": "approved"},
        },
    }


@pytest.mark.parametrize(
    "path,status_code,code",
    [
        ("/forbidden", 403, "FORBIDDEN"),
        ("/missing", 404, "REQUEST_NOT_FOUND"),
        ("/limited", 429, "RATE_LIMIT_EXCEEDED"),
        ("/http", 418, "TEAPOT"),
        ("/boom", 500, "INTERNAL_ERROR"),
    ],
)
def test_error_codes_and_statuses(client, path, status_code, code):
    response = client.get(path)

    assert response.status_code == status_code
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == code


def test_rate_limit_sets_retry_after(client):
    response = client.get("/limited")

    assert response.headers["Retry-After"] == "60"


def test_internal_error_details_hidden_outside_development(client, monkeypatch):
    monkeypatch.setattr("app.core.errors.settings.python_env", "production")

    body = client.get("/internal").json()
    assert "details" not in body["error"]

    body = client.get("/boom").json()
    assert "details" not in body["error"]
    assert body["error"]["message"] == "An unexpected error occurred."


def test_request_validation_lists_fields(client):
    response = client.post("/items", json={"name": "RG"})

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert [detail["field"] for detail in error["details"]] == ["quantity"]


def test_success_envelope(client):
    response = client.post("/items", json={"name": "RG", "quantity": 2})

    assert response.json() == {
        "success": True,
        "data": {"name": "RG", "quantity": 2},
        "message": "Created.",
    }


def test_error_body_omits_empty_details():
    assert error_body("X", "msg") == {"success": False, "error": {"code": "X", "message": "msg"}}


def test_validation_error_defaults():
    error = ValidationError("bad")

    assert error.status_code == 400
    assert error.error_code == "VALIDATION_ERROR"
