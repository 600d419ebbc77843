"""
Tests for the documents service.

These tests verify:
- Upload ownership rules, type applicability and duplicate handling
- Re-upload after rejection replaces the rejected document
- Stored file cleanup when the record cannot be saved
- Review rules: pending-only, rejection needs observations
- Checklist of required documents
"""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from app.core.errors import AuthorizationError, NotFoundError, ValidationError
from app.modules.documents.models import Document, DocumentType, DocumentUserType
from app.modules.documents.service import (
    CHECKLIST_NOT_SENT,
    DocumentAlreadyExistsError,
    DocumentAlreadyProcessedError,
    DocumentTypeNotFoundError,
    OwnerNotFoundError,
    approve_document,
    delete_document,
    get_checklist,
    get_document_file,
    reject_document,
    upload_document,
)
from app.modules.documents.storage import StoredFile
from app.modules.shared import ReviewStatus

SERVICE = "app.modules.documents.service"


# ============================================
# Fixtures
# ============================================


def make_type(user_type=DocumentUserType.BOTH, name="RG"):
    document_type = MagicMock(spec=DocumentType)
    document_type.id = uuid4()
    document_type.name = name
    document_type.user_type = user_type
    document_type.is_required = True
    document_type.is_applicable_for = MagicMock(side_effect=user_type.applies_to)
    return document_type


def make_document(owner_id, document_type_id=None, status=ReviewStatus.PENDING):
    document = MagicMock(spec=Document)
    document.id = uuid4()
    document.owner_id = owner_id
    document.document_type_id = document_type_id or uuid4()
    document.status = status
    document.observations = None
    document.file_path = "/tmp/none.pdf"
    return document


@pytest.fixture
def upload():
    file = MagicMock()
    file.filename = "rg.pdf"
    return file


@pytest.fixture
def stored_file():
    return StoredFile(
        path=Path("/data/uploads/documents/x/1-rg.pdf"),
        file_name="rg.pdf",
        size=1234,
        mime_type="application/pdf",
    )


@pytest.fixture
def mock_storage(stored_file):
    with patch(f"{SERVICE}.storage") as storage:
        storage.validate_upload_name = MagicMock(return_value="rg.pdf")
        storage.save_upload = AsyncMock(return_value=stored_file)
        storage.delete_file = AsyncMock()
        storage.file_exists = AsyncMock(return_value=True)
        yield storage


@pytest.fixture
def no_notify():
    with patch(f"{SERVICE}._notify_owner", new=AsyncMock()) as notify:
        yield notify


# ============================================
# Test upload_document
# ============================================


@pytest.mark.asyncio
async def test_student_uploads_own_document(mock_db, student_user, upload, mock_storage):
    document_type = make_type()
    created = make_document(student_user.id, document_type.id)

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_document_type = AsyncMock(return_value=document_type)
        mock_repo.get_current_for_owner_and_type = AsyncMock(return_value=None)
        mock_repo.create = AsyncMock(return_value=created)

        result = await upload_document(mock_db, student_user, document_type.id, upload)

        assert result is created
        kwargs = mock_repo.create.call_args.kwargs
        assert kwargs["owner_id"] == student_user.id
        assert kwargs["file_size"] == 1234
        assert kwargs["replaces"] is None
        mock_storage.save_upload.assert_awaited_once_with(upload, student_user.id)


@pytest.mark.asyncio
async def test_owner_cannot_upload_for_someone_else(
    mock_db, teacher_user, student_user, upload, mock_storage
):
    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_document_type = AsyncMock()

        with pytest.raises(AuthorizationError):
            await upload_document(
                mock_db, teacher_user, uuid4(), upload, owner_id=student_user.id
            )

        mock_repo.get_document_type.assert_not_called()
        mock_storage.save_upload.assert_not_called()


@pytest.mark.asyncio
async def test_admin_upload_requires_owner(mock_db, admin_user, upload):
    with pytest.raises(ValidationError) as exc_info:
        await upload_document(mock_db, admin_user, uuid4(), upload)

    assert exc_info.value.error_code == "OWNER_ID_REQUIRED"


@pytest.mark.asyncio
async def test_admin_upload_unknown_owner(mock_db, admin_user, upload):
    with patch(f"{SERVICE}.UserRepository") as mock_users:
        mock_users.get_active_by_id_and_roles = AsyncMock(return_value=None)

        with pytest.raises(OwnerNotFoundError):
            await upload_document(mock_db, admin_user, uuid4(), upload, owner_id=uuid4())


@pytest.mark.asyncio
async def test_upload_unknown_type(mock_db, student_user, upload, mock_storage):
    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_document_type = AsyncMock(return_value=None)

        with pytest.raises(DocumentTypeNotFoundError):
            await upload_document(mock_db, student_user, uuid4(), upload)


@pytest.mark.asyncio
async def test_upload_type_not_applicable_to_role(mock_db, student_user, upload, mock_storage):
    document_type = make_type(DocumentUserType.TEACHER, name="Diploma de Graduação")

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_document_type = AsyncMock(return_value=document_type)

        with pytest.raises(ValidationError) as exc_info:
            await upload_document(mock_db, student_user, document_type.id, upload)

        assert exc_info.value.error_code == "DOCUMENT_TYPE_NOT_APPLICABLE"
        mock_storage.save_upload.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [ReviewStatus.PENDING, ReviewStatus.APPROVED])
async def test_upload_conflicts_with_live_document(
    mock_db, student_user, upload, mock_storage, status
):
    document_type = make_type()
    existing = make_document(student_user.id, document_type.id, status=status)

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_document_type = AsyncMock(return_value=document_type)
        mock_repo.get_current_for_owner_and_type = AsyncMock(return_value=existing)
        mock_repo.create = AsyncMock()

        with pytest.raises(DocumentAlreadyExistsError) as exc_info:
            await upload_document(mock_db, student_user, document_type.id, upload)

        assert exc_info.value.details == {"current_status": status.value}
        mock_storage.save_upload.assert_not_called()
        mock_repo.create.assert_not_called()


@pytest.mark.asyncio
async def test_reupload_after_rejection_replaces(mock_db, student_user, upload, mock_storage):
    document_type = make_type()
    rejected = make_document(student_user.id, document_type.id, status=ReviewStatus.REJECTED)
    created = make_document(student_user.id, document_type.id)

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_document_type = AsyncMock(return_value=document_type)
        mock_repo.get_current_for_owner_and_type = AsyncMock(return_value=rejected)
        mock_repo.create = AsyncMock(return_value=created)

        result = await upload_document(mock_db, student_user, document_type.id, upload)

        assert result is created
        assert mock_repo.create.call_args.kwargs["replaces"] is rejected


@pytest.mark.asyncio
async def test_stored_file_removed_when_record_fails(
    mock_db, student_user, upload, mock_storage, stored_file
):
    document_type = make_type()

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_document_type = AsyncMock(return_value=document_type)
        mock_repo.get_current_for_owner_and_type = AsyncMock(return_value=None)
        mock_repo.create = AsyncMock(side_effect=RuntimeError("db down"))

        with pytest.raises(RuntimeError):
            await upload_document(mock_db, student_user, document_type.id, upload)

        mock_storage.delete_file.assert_awaited_once_with(stored_file.path)


# ============================================
# Test approve_document / reject_document / delete_document
# ============================================


@pytest.mark.asyncio
async def test_approve_pending_document(mock_db, admin_user, student_user, no_notify):
    document = make_document(student_user.id)

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_by_id = AsyncMock(return_value=document)
        mock_repo.transition_status = AsyncMock(return_value=1)

        result = await approve_document(mock_db, admin_user, document.id)

        assert result is document
        mock_repo.transition_status.assert_called_once_with(
            mock_db, document.id, ReviewStatus.APPROVED, admin_user.id, None
        )
        no_notify.assert_awaited_once_with(mock_db, document)


@pytest.mark.asyncio
@pytest.mark.parametrize("observations", [None, "", "   "])
async def test_reject_requires_observations(mock_db, admin_user, observations):
    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_by_id = AsyncMock()

        with pytest.raises(ValidationError) as exc_info:
            await reject_document(mock_db, admin_user, uuid4(), observations)

        assert exc_info.value.error_code == "OBSERVATIONS_REQUIRED"
        mock_repo.get_by_id.assert_not_called()


@pytest.mark.asyncio
async def test_reject_strips_observations(mock_db, admin_user, student_user, no_notify):
    document = make_document(student_user.id)

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_by_id = AsyncMock(return_value=document)
        mock_repo.transition_status = AsyncMock(return_value=1)

        await reject_document(mock_db, admin_user, document.id, "  Foto ilegível  ")

        assert mock_repo.transition_status.call_args.args[2] == ReviewStatus.REJECTED
        assert mock_repo.transition_status.call_args.args[4] == "Foto ilegível"


@pytest.mark.asyncio
async def test_review_of_approved_document_conflicts(
    mock_db, admin_user, student_user, no_notify
):
    document = make_document(student_user.id, status=ReviewStatus.APPROVED)

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_by_id = AsyncMock(return_value=document)
        mock_repo.transition_status = AsyncMock()

        with pytest.raises(DocumentAlreadyProcessedError):
            await reject_document(mock_db, admin_user, document.id, "Vencido")

        assert document.status == ReviewStatus.APPROVED
        mock_repo.transition_status.assert_not_called()
        no_notify.assert_not_called()


@pytest.mark.asyncio
async def test_concurrent_document_review_loses(mock_db, admin_user, student_user, no_notify):
    document = make_document(student_user.id)

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_by_id = AsyncMock(return_value=document)
        mock_repo.transition_status = AsyncMock(return_value=0)

        with pytest.raises(DocumentAlreadyProcessedError):
            await approve_document(mock_db, admin_user, document.id)

        no_notify.assert_not_called()


@pytest.mark.asyncio
async def test_only_admin_deletes(mock_db, teacher_user):
    with pytest.raises(AuthorizationError):
        await delete_document(mock_db, teacher_user, uuid4())


@pytest.mark.asyncio
async def test_admin_soft_deletes(mock_db, admin_user, student_user):
    document = make_document(student_user.id)

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_by_id = AsyncMock(return_value=document)
        mock_repo.soft_delete = AsyncMock(return_value=document)

        await delete_document(mock_db, admin_user, document.id)

        mock_repo.soft_delete.assert_awaited_once_with(mock_db, document)


# ============================================
# Test get_document_file
# ============================================


@pytest.mark.asyncio
async def test_download_missing_file(mock_db, student_user, mock_storage):
    document = make_document(student_user.id)
    mock_storage.file_exists = AsyncMock(return_value=False)

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_by_id = AsyncMock(return_value=document)

        with pytest.raises(NotFoundError) as exc_info:
            await get_document_file(mock_db, student_user, document.id)

        assert exc_info.value.error_code == "FILE_NOT_FOUND"


@pytest.mark.asyncio
async def test_download_of_other_owner_forbidden(
    mock_db, student_user, other_student_user, mock_storage
):
    document = make_document(other_student_user.id)

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.get_by_id = AsyncMock(return_value=document)

        with pytest.raises(AuthorizationError):
            await get_document_file(mock_db, student_user, document.id)


# ============================================
# Test get_checklist
# ============================================


@pytest.mark.asyncio
async def test_checklist_uses_latest_document_per_type(mock_db, student_user):
    rg = make_type(name="RG")
    cpf = make_type(name="CPF")
    residence = make_type(name="Comprovante de Residência")

    # Newest first, as the repository returns them
    rg_new = make_document(student_user.id, rg.id, status=ReviewStatus.APPROVED)
    rg_old = make_document(student_user.id, rg.id, status=ReviewStatus.REJECTED)
    cpf_doc = make_document(student_user.id, cpf.id, status=ReviewStatus.PENDING)

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.list_required_types = AsyncMock(return_value=[rg, cpf, residence])
        mock_repo.list_for_owner = AsyncMock(return_value=[rg_new, cpf_doc, rg_old])

        checklist = await get_checklist(mock_db, student_user)

        statuses = {item.name: item.status for item in checklist.items}
        assert statuses == {
            "RG": "approved",
            "CPF": "pending",
            "Comprovante de Residência": CHECKLIST_NOT_SENT,
        }
        assert checklist.total_required == 3
        assert checklist.approved == 1
        assert checklist.complete is False
        mock_repo.list_required_types.assert_awaited_once_with(mock_db, "student")


@pytest.mark.asyncio
async def test_checklist_complete_when_all_approved(mock_db, teacher_user):
    diploma = make_type(DocumentUserType.TEACHER, name="Diploma de Graduação")
    approved = make_document(teacher_user.id, diploma.id, status=ReviewStatus.APPROVED)

    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.list_required_types = AsyncMock(return_value=[diploma])
        mock_repo.list_for_owner = AsyncMock(return_value=[approved])

        checklist = await get_checklist(mock_db, teacher_user)

        assert checklist.complete is True
        assert checklist.owner_id == teacher_user.id
