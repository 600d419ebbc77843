"""
Documents Repository

Database operations for documents and document types. Soft-deleted rows
are excluded from every query.
"""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.documents.models import Document, DocumentType, DocumentUserType
from app.modules.shared import ReviewStatus
from app.modules.shared.review import transition_review_status


def _applicable_to(role: str):
    return or_(
        DocumentType.user_type == DocumentUserType(role),
        DocumentType.user_type == DocumentUserType.BOTH,
    )


async def get_document_type(db: AsyncSession, document_type_id: UUID) -> DocumentType | None:
    result = await db.execute(
        select(DocumentType).where(
            DocumentType.id == document_type_id,
            DocumentType.is_active.is_(True),
            DocumentType.deleted_at.is_(None),
        )
    )
    return result.scalar_one_or_none()


async def list_document_types(db: AsyncSession, role: str | None = None) -> list[DocumentType]:
    """Active types, optionally only those applicable to an owner role."""
    query = select(DocumentType).where(
        DocumentType.is_active.is_(True),
        DocumentType.deleted_at.is_(None),
    )
    if role is not None:
        query = query.where(_applicable_to(role))
    result = await db.execute(query.order_by(DocumentType.name))
    return list(result.scalars().all())


async def list_required_types(db: AsyncSession, role: str) -> list[DocumentType]:
    result = await db.execute(
        select(DocumentType)
        .where(
            DocumentType.is_active.is_(True),
            DocumentType.is_required.is_(True),
            DocumentType.deleted_at.is_(None),
            _applicable_to(role),
        )
        .order_by(DocumentType.name)
    )
    return list(result.scalars().all())


async def get_by_id(db: AsyncSession, document_id: UUID) -> Document | None:
    result = await db.execute(
        select(Document).where(Document.id == document_id, Document.deleted_at.is_(None))
    )
    return result.scalar_one_or_none()


async def get_current_for_owner_and_type(
    db: AsyncSession,
    owner_id: UUID,
    document_type_id: UUID,
) -> Document | None:
    """The owner's live document of a type, newest first if several exist."""
    result = await db.execute(
        select(Document)
        .where(
            Document.owner_id == owner_id,
            Document.document_type_id == document_type_id,
            Document.deleted_at.is_(None),
        )
        .order_by(desc(Document.created_at))
        .limit(1)
    )
    return result.scalar_one_or_none()


async def list_for_owner(db: AsyncSession, owner_id: UUID) -> list[Document]:
    result = await db.execute(
        select(Document)
        .where(Document.owner_id == owner_id, Document.deleted_at.is_(None))
        .order_by(desc(Document.created_at))
    )
    return list(result.scalars().all())


async def create(
    db: AsyncSession,
    *,
    owner_id: UUID,
    document_type_id: UUID,
    file_path: str,
    file_name: str,
    file_size: int,
    mime_type: str,
    replaces: Document | None = None,
) -> Document:
    """
    Insert a pending document.

    When `replaces` is given (a rejected document of the same type) it is
    soft-deleted in the same transaction.
    """
    if replaces is not None:
        replaces.deleted_at = datetime.now(UTC)

    document = Document(
        owner_id=owner_id,
        document_type_id=document_type_id,
        file_path=file_path,
        file_name=file_name,
        file_size=file_size,
        mime_type=mime_type,
        status=ReviewStatus.PENDING,
    )
    db.add(document)
    await db.commit()
    await db.refresh(document)
    return document


async def list_documents(
    db: AsyncSession,
    *,
    owner_id: UUID | None = None,
    document_type_id: UUID | None = None,
    status: ReviewStatus | None = None,
    offset: int = 0,
    limit: int = 20,
) -> tuple[list[Document], int]:
    query = select(Document).where(Document.deleted_at.is_(None))
    if owner_id is not None:
        query = query.where(Document.owner_id == owner_id)
    if document_type_id is not None:
        query = query.where(Document.document_type_id == document_type_id)
    if status is not None:
        query = query.where(Document.status == status)

    total_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = total_result.scalar() or 0

    result = await db.execute(
        query.order_by(desc(Document.created_at)).offset(offset).limit(limit)
    )
    return list(result.scalars().all()), total


async def transition_status(
    db: AsyncSession,
    document_id: UUID,
    status: ReviewStatus,
    reviewer_id: UUID,
    observations: str | None = None,
) -> int:
    return await transition_review_status(
        db, Document, document_id, status, reviewer_id, observations
    )


async def soft_delete(db: AsyncSession, document: Document) -> Document:
    document.deleted_at = datetime.now(UTC)
    await db.commit()
    return document


async def count_by_status(db: AsyncSession) -> dict[ReviewStatus, int]:
    result = await db.execute(
        select(Document.status, func.count(Document.id))
        .where(Document.deleted_at.is_(None))
        .group_by(Document.status)
    )
    return {status: count for status, count in result.all()}
