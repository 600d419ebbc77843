"""
Documents Service Layer

Upload, review and retrieval of owner documents.

Roles:
- student / teacher: upload and see only their own documents
- admin: uploads on behalf of a named student or teacher, sees and
  reviews everything, soft-deletes

Rules:
1. A document type must apply to the owner's role
2. One live document per owner and type; only a rejected one may be
   replaced by a new upload
3. Reviews are pending-only conditional updates; rejection requires
   observations
4. Review emails are best-effort and never fail the review
"""

import logging
from pathlib import Path
from uuid import UUID

from fastapi import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import ROLE_ADMIN, CurrentUser
from app.core.email import send_document_approved, send_document_rejected
from app.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.modules.documents import repository, storage
from app.modules.documents.models import Document, DocumentType
from app.modules.documents.schemas import ChecklistItem, DocumentChecklist, DocumentStats
from app.modules.shared import ReviewStatus
from app.modules.shared.pagination import PageMeta, page_meta, resolve_page
from app.modules.users.models import OWNER_ROLES
from app.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

CHECKLIST_NOT_SENT = "not_sent"
_OWNER_ROLE_VALUES = {role.value for role in OWNER_ROLES}


class DocumentNotFoundError(NotFoundError):
    def __init__(self, document_id: UUID):
        super().__init__(f"Document {document_id} not found.", error_code="DOCUMENT_NOT_FOUND")


class DocumentTypeNotFoundError(NotFoundError):
    def __init__(self, document_type_id: UUID):
        super().__init__(
            f"Document type {document_type_id} not found.",
            error_code="DOCUMENT_TYPE_NOT_FOUND",
        )


class OwnerNotFoundError(NotFoundError):
    def __init__(self, owner_id: UUID):
        super().__init__(
            f"Student or teacher {owner_id} not found.", error_code="OWNER_NOT_FOUND"
        )


class DocumentAlreadyExistsError(ConflictError):
    def __init__(self, status: ReviewStatus):
        super().__init__(
            f"A {status.value} document of this type already exists.",
            error_code="DOCUMENT_ALREADY_EXISTS",
            details={"current_status": status.value},
        )


class DocumentAlreadyProcessedError(ConflictError):
    def __init__(self, status: ReviewStatus | None = None):
        message = "This document has already been reviewed."
        if status is not None:
            message = f"This document has already been {status.value}."
        super().__init__(
            message,
            error_code="DOCUMENT_ALREADY_PROCESSED",
            details={"current_status": status.value} if status else None,
        )


async def _resolve_owner(
    db: AsyncSession,
    user: CurrentUser,
    owner_id: UUID | None,
    action: str,
) -> tuple[UUID, str]:
    """
    Work out whose documents the caller acts on.

    Returns:
        Tuple of (owner id, owner role)
    """
    if user.role in _OWNER_ROLE_VALUES:
        if owner_id is not None and owner_id != user.id:
            logger.warning(f"User {user.id} tried to {action} documents of {owner_id}")
            raise AuthorizationError(
                f"You can only {action} your own documents.",
                error_code="CANNOT_ACT_FOR_OTHER_USER",
            )
        return user.id, user.role

    if user.role == ROLE_ADMIN:
        if owner_id is None:
            raise ValidationError(
                "owner_id is required when an administrator acts on documents.",
                error_code="OWNER_ID_REQUIRED",
            )
        owner = await UserRepository.get_active_by_id_and_roles(db, owner_id, OWNER_ROLES)
        if owner is None:
            raise OwnerNotFoundError(owner_id)
        return owner.id, owner.role.value

    raise AuthorizationError(
        "Your role cannot manage documents.", error_code="ROLE_NOT_ALLOWED"
    )


def _parse_status(status: str | None) -> ReviewStatus | None:
    if status is None:
        return None
    parsed = ReviewStatus.parse(status)
    if parsed is None:
        raise ValidationError(
            f"Invalid status '{status}'.",
            error_code="INVALID_STATUS",
            details={"allowed": [s.value for s in ReviewStatus]},
        )
    return parsed


async def upload_document(
    db: AsyncSession,
    user: CurrentUser,
    document_type_id: UUID,
    upload: UploadFile,
    owner_id: UUID | None = None,
) -> Document:
    """
    Store an uploaded file and create its pending document record.

    Raises:
        AuthorizationError: Owner-type caller naming someone else, or other roles
        ValidationError: Missing owner for admin, type not applicable, bad file
        NotFoundError: Unknown owner or document type
        DocumentAlreadyExistsError: A pending or approved document of the type exists
    """
    resolved_owner_id, owner_role = await _resolve_owner(db, user, owner_id, "upload")

    document_type = await repository.get_document_type(db, document_type_id)
    if document_type is None:
        raise DocumentTypeNotFoundError(document_type_id)

    if not document_type.is_applicable_for(owner_role):
        raise ValidationError(
            f"Document type '{document_type.name}' does not apply to {owner_role}s.",
            error_code="DOCUMENT_TYPE_NOT_APPLICABLE",
        )

    storage.validate_upload_name(upload.filename)

    existing = await repository.get_current_for_owner_and_type(
        db, resolved_owner_id, document_type_id
    )
    if existing is not None and existing.status != ReviewStatus.REJECTED:
        raise DocumentAlreadyExistsError(existing.status)

    stored = await storage.save_upload(upload, resolved_owner_id)

    try:
        document = await repository.create(
            db,
            owner_id=resolved_owner_id,
            document_type_id=document_type_id,
            file_path=str(stored.path),
            file_name=stored.file_name,
            file_size=stored.size,
            mime_type=stored.mime_type,
            replaces=existing,
        )
    except Exception:
        logger.error(f"Failed to record upload {stored.path}, removing stored file")
        await storage.delete_file(stored.path)
        raise

    if existing is not None:
        logger.info(f"Rejected document {existing.id} replaced by {document.id}")
    logger.info(
        f"User {user.id} ({user.role}) uploaded document {document.id} "
        f"of type '{document_type.name}' for {resolved_owner_id}"
    )
    return document


async def list_documents(
    db: AsyncSession,
    user: CurrentUser,
    *,
    status: str | None = None,
    owner_id: UUID | None = None,
    document_type_id: UUID | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Document], PageMeta]:
    if user.role in _OWNER_ROLE_VALUES:
        if owner_id is not None and owner_id != user.id:
            raise AuthorizationError(
                "You can only list your own documents.",
                error_code="CANNOT_ACT_FOR_OTHER_USER",
            )
        owner_filter: UUID | None = user.id
    elif user.role == ROLE_ADMIN:
        owner_filter = owner_id
    else:
        raise AuthorizationError("Your role cannot list documents.", error_code="ROLE_NOT_ALLOWED")

    status_filter = _parse_status(status)
    params = resolve_page(page, limit)

    items, total = await repository.list_documents(
        db,
        owner_id=owner_filter,
        document_type_id=document_type_id,
        status=status_filter,
        offset=params.offset,
        limit=params.limit,
    )
    return items, page_meta(total, params)


async def get_document(db: AsyncSession, user: CurrentUser, document_id: UUID) -> Document:
    """
    Raises:
        DocumentNotFoundError: Missing or soft-deleted
        AuthorizationError: Caller is neither owner nor admin
    """
    document = await repository.get_by_id(db, document_id)
    if document is None:
        raise DocumentNotFoundError(document_id)

    if not user.is_admin and document.owner_id != user.id:
        logger.warning(f"User {user.id} denied access to document {document_id}")
        raise AuthorizationError(
            "You do not have permission to access this document.",
            error_code="DOCUMENT_ACCESS_DENIED",
        )
    return document


async def get_document_file(
    db: AsyncSession, user: CurrentUser, document_id: UUID
) -> tuple[Document, Path]:
    """Resolve a visible document's file on disk for download."""
    document = await get_document(db, user, document_id)
    path = Path(document.file_path)
    if not await storage.file_exists(path):
        logger.error(f"File for document {document_id} missing on disk: {path}")
        raise NotFoundError("The document file was not found.", error_code="FILE_NOT_FOUND")
    return document, path


async def _review_document(
    db: AsyncSession,
    user: CurrentUser,
    document_id: UUID,
    new_status: ReviewStatus,
    observations: str | None,
) -> Document:
    if not user.is_admin:
        raise AuthorizationError(
            "Only administrators can review documents.", error_code="ROLE_NOT_ALLOWED"
        )

    document = await repository.get_by_id(db, document_id)
    if document is None:
        raise DocumentNotFoundError(document_id)

    if document.status != ReviewStatus.PENDING:
        logger.warning(
            f"Admin {user.id} tried to set document {document_id} to {new_status.value}, "
            f"but it is already {document.status.value}"
        )
        raise DocumentAlreadyProcessedError(document.status)

    affected = await repository.transition_status(
        db, document_id, new_status, user.id, observations
    )
    if affected == 0:
        logger.warning(f"Document {document_id} was reviewed concurrently; {new_status.value} lost")
        raise DocumentAlreadyProcessedError()

    await db.refresh(document)
    logger.info(f"Admin {user.id} {new_status.value} document {document_id}")

    await _notify_owner(db, document)
    return document


async def _notify_owner(db: AsyncSession, document: Document) -> None:
    """Email the owner about the review; failures are only logged."""
    try:
        owner = await UserRepository.get_by_id(db, document.owner_id)
        document_type = await db.get(DocumentType, document.document_type_id)
        if owner is None or document_type is None:
            return
        if document.status == ReviewStatus.APPROVED:
            await send_document_approved(
                owner.email, owner.name, document_type.name, document.observations
            )
        else:
            await send_document_rejected(
                owner.email, owner.name, document_type.name, document.observations or ""
            )
    except Exception as e:
        logger.error(f"Failed to send review email for document {document.id}: {e}")


async def approve_document(
    db: AsyncSession,
    user: CurrentUser,
    document_id: UUID,
    observations: str | None = None,
) -> Document:
    return await _review_document(db, user, document_id, ReviewStatus.APPROVED, observations)


async def reject_document(
    db: AsyncSession,
    user: CurrentUser,
    document_id: UUID,
    observations: str | None,
) -> Document:
    """Reject a pending document. Observations tell the owner what to fix."""
    if not observations or not observations.strip():
        raise ValidationError(
            "Observations are required when rejecting a document.",
            error_code="OBSERVATIONS_REQUIRED",
        )
    return await _review_document(
        db, user, document_id, ReviewStatus.REJECTED, observations.strip()
    )


async def delete_document(db: AsyncSession, user: CurrentUser, document_id: UUID) -> None:
    if not user.is_admin:
        raise AuthorizationError(
            "Only administrators can delete documents.", error_code="ROLE_NOT_ALLOWED"
        )
    document = await repository.get_by_id(db, document_id)
    if document is None:
        raise DocumentNotFoundError(document_id)
    await repository.soft_delete(db, document)
    logger.info(f"Admin {user.id} deleted document {document_id}")


async def get_checklist(
    db: AsyncSession,
    user: CurrentUser,
    owner_id: UUID | None = None,
) -> DocumentChecklist:
    """
    Required document types for the owner's role with the owner's current
    status for each. Complete when every required type is approved.
    """
    resolved_owner_id, owner_role = await _resolve_owner(db, user, owner_id, "view")

    required_types = await repository.list_required_types(db, owner_role)
    documents = await repository.list_for_owner(db, resolved_owner_id)

    # Documents come newest first; keep the first seen per type
    latest: dict[UUID, Document] = {}
    for document in documents:
        latest.setdefault(document.document_type_id, document)

    items: list[ChecklistItem] = []
    approved = 0
    for document_type in required_types:
        document = latest.get(document_type.id)
        if document is not None and document.status == ReviewStatus.APPROVED:
            approved += 1
        items.append(
            ChecklistItem(
                document_type_id=document_type.id,
                name=document_type.name,
                status=document.status.value if document else CHECKLIST_NOT_SENT,
                document_id=document.id if document else None,
                observations=document.observations if document else None,
            )
        )

    return DocumentChecklist(
        owner_id=resolved_owner_id,
        items=items,
        total_required=len(required_types),
        approved=approved,
        complete=approved == len(required_types),
    )


async def get_document_stats(db: AsyncSession) -> DocumentStats:
    counts = await repository.count_by_status(db)
    return DocumentStats(
        total=sum(counts.values()),
        pending=counts.get(ReviewStatus.PENDING, 0),
        approved=counts.get(ReviewStatus.APPROVED, 0),
        rejected=counts.get(ReviewStatus.REJECTED, 0),
    )


async def list_document_types(db: AsyncSession, user: CurrentUser) -> list[DocumentType]:
    """Owner-type callers see the types that apply to them; admins see all."""
    role = None if user.is_admin else user.role
    return await repository.list_document_types(db, role)
