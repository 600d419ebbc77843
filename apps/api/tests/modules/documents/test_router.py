"""
Tests for the documents HTTP endpoints.
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
from app.modules.documents.router import router as documents_router
from app.modules.shared import ReviewStatus

SERVICE = "app.modules.documents.router.service"


def make_document_row(owner_id, status=ReviewStatus.PENDING):
    now = datetime.now(UTC)
    return SimpleNamespace(
        id=uuid4(),
        owner_id=owner_id,
        document_type_id=uuid4(),
        file_name="rg.pdf",
        file_size=1536,
        mime_type="application/pdf",
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
    app.include_router(documents_router, prefix="/api/v1/documents")
    app.dependency_overrides[get_current_user] = lambda: user
    app.dependency_overrides[get_db] = lambda: AsyncMock()
    return TestClient(app)


def test_upload_multipart(student_user):
    row = make_document_row(student_user.id)

    with patch(f"{SERVICE}.upload_document", new=AsyncMock(return_value=row)) as upload:
        response = build_client(student_user).post(
            "/api/v1/documents",
            data={"document_type_id": str(row.document_type_id)},
            files={"file": ("rg.pdf", b"%PDF-1.4", "application/pdf")},
        )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["file_size_display"] == "1.5 KB"
    assert data["status_label"] == "Pendente"
    assert "file_path" not in data
    args = upload.call_args.args
    assert args[2] == row.document_type_id
    assert args[3].filename == "rg.pdf"
    assert args[4] is None


def test_upload_without_file_is_400(student_user):
    response = build_client(student_user).post(
        "/api/v1/documents", data={"document_type_id": str(uuid4())}
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_reject_without_observations_is_400(admin_user):
    response = build_client(admin_user).put(f"/api/v1/documents/{uuid4()}/reject", json={})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "OBSERVATIONS_REQUIRED"


def test_download_streams_file(student_user, tmp_path):
    row = make_document_row(student_user.id)
    stored = tmp_path / "1-rg.pdf"
    stored.write_bytes(b"%PDF-1.4 content")

    with patch(f"{SERVICE}.get_document_file", new=AsyncMock(return_value=(row, stored))):
        response = build_client(student_user).get(f"/api/v1/documents/{row.id}/download")

    assert response.status_code == 200
    assert response.content == b"%PDF-1.4 content"
    assert response.headers["content-type"] == "application/pdf"
    assert "rg.pdf" in response.headers["content-disposition"]


def test_delete_requires_admin(teacher_user):
    response = build_client(teacher_user).delete(f"/api/v1/documents/{uuid4()}")

    assert response.status_code == 403
