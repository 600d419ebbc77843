"""
Tests for the requests HTTP endpoints: envelope shape, role gates and
error mapping. The service layer is mocked.
"""

from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core import rate_limit
from app.core.auth import get_current_user
from app.core.database import get_db
from app.core.errors import register_exception_handlers
from app.modules.requests.router import router as requests_router
from app.modules.requests.service import RequestAlreadyProcessedError
from app.modules.shared import ReviewStatus
from app.modules.shared.pagination import PageMeta

SERVICE = "app.modules.requests.router.service"


def make_request_row(student_id, status=ReviewStatus.PENDING):
    now = datetime.now(UTC)
    return SimpleNamespace(
        id=uuid4(),
        student_id=student_id,
        request_type_id=uuid4(),
        description="Preciso do histórico",
        status=status,
        reviewed_by=None,
        reviewed_at=None,
        observations=None,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture(autouse=True)
def clean_rate_limits():
    rate_limit.reset_memory_store()
    with patch.object(rate_limit.redis_state, "redis_client", None):
        yield


def build_client(user):
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(requests_router, prefix="/api/v1/requests")
    app.dependency_overrides[get_current_user] = lambda: user
    app.dependency_overrides[get_db] = lambda: AsyncMock()
    return TestClient(app)


def test_create_returns_201_envelope(student_user):
    row = make_request_row(student_user.id)

    with patch(f"{SERVICE}.create_request", new=AsyncMock(return_value=row)):
        response = build_client(student_user).post(
            "/api/v1/requests", json={"request_type_id": str(row.request_type_id)}
        )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["data"]["status"] == "pending"
    assert body["data"]["status_label"] == "Pendente"
    assert body["message"] == "Request created successfully."


def test_create_with_bad_body_is_400(student_user):
    response = build_client(student_user).post("/api/v1/requests", json={})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_teacher_blocked_at_route(teacher_user):
    response = build_client(teacher_user).get("/api/v1/requests")

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "INSUFFICIENT_ROLE"


def test_list_returns_pagination(admin_user):
    row = make_request_row(uuid4())
    meta = PageMeta(
        total=1, page=1, limit=20, total_pages=1, has_next_page=False, has_previous_page=False
    )

    with patch(f"{SERVICE}.list_requests", new=AsyncMock(return_value=([row], meta))) as listing:
        response = build_client(admin_user).get("/api/v1/requests", params={"status": "pending"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert len(data["items"]) == 1
    assert data["pagination"]["total"] == 1
    assert listing.call_args.kwargs["status"] == "pending"


def test_approve_conflict_is_409(admin_user):
    with patch(
        f"{SERVICE}.approve_request",
        new=AsyncMock(side_effect=RequestAlreadyProcessedError(ReviewStatus.APPROVED)),
    ):
        response = build_client(admin_user).put(f"/api/v1/requests/{uuid4()}/approve")

    assert response.status_code == 409
    error = response.json()["error"]
    assert error["code"] == "REQUEST_ALREADY_PROCESSED"
    assert error["details"] == {"current_status": "approved"}


def test_reject_passes_observations(admin_user):
    row = make_request_row(uuid4(), status=ReviewStatus.REJECTED)
    row.observations = "Falta assinatura"

    with patch(f"{SERVICE}.reject_request", new=AsyncMock(return_value=row)) as reject:
        response = build_client(admin_user).put(
            f"/api/v1/requests/{row.id}/reject", json={"observations": "Falta assinatura"}
        )

    assert response.status_code == 200
    assert response.json()["data"]["status_label"] == "Rejeitado"
    assert reject.call_args.args[3] == "Falta assinatura"


def test_review_rate_limited(admin_user):
    row = make_request_row(uuid4(), status=ReviewStatus.APPROVED)
    client = build_client(admin_user)

    with (
        patch(f"{SERVICE}.approve_request", new=AsyncMock(return_value=row)),
        patch("app.modules.requests.router.RATE_LIMIT_APPROVE", (2, 60)),
    ):
        statuses = [client.put(f"/api/v1/requests/{row.id}/approve").status_code for _ in range(3)]

    assert statuses == [200, 200, 429]


def test_student_cannot_see_stats(student_user):
    response = build_client(student_user).get("/api/v1/requests/stats")

    assert response.status_code == 403
