"""
Requests Repository

Database operations for requests and request types. Soft-deleted rows are
excluded from every query.
"""

from uuid import UUID

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.requests.models import Request, RequestType
from app.modules.shared import ReviewStatus
from app.modules.shared.review import transition_review_status


async def get_request_type(
    db: AsyncSession,
    request_type_id: UUID,
    *,
    include_inactive: bool = False,
) -> RequestType | None:
    query = select(RequestType).where(
        RequestType.id == request_type_id,
        RequestType.deleted_at.is_(None),
    )
    if not include_inactive:
        query = query.where(RequestType.is_active.is_(True))
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def list_request_types(db: AsyncSession) -> list[RequestType]:
    """Active request types ordered by name."""
    result = await db.execute(
        select(RequestType)
        .where(RequestType.is_active.is_(True), RequestType.deleted_at.is_(None))
        .order_by(RequestType.name)
    )
    return list(result.scalars().all())


async def create(
    db: AsyncSession,
    *,
    student_id: UUID,
    request_type_id: UUID,
    description: str | None,
) -> Request:
    request = Request(
        student_id=student_id,
        request_type_id=request_type_id,
        description=description,
        status=ReviewStatus.PENDING,
    )
    db.add(request)
    await db.commit()
    await db.refresh(request)
    return request


async def get_by_id(db: AsyncSession, request_id: UUID) -> Request | None:
    result = await db.execute(
        select(Request).where(Request.id == request_id, Request.deleted_at.is_(None))
    )
    return result.scalar_one_or_none()


async def list_requests(
    db: AsyncSession,
    *,
    student_id: UUID | None = None,
    status: ReviewStatus | None = None,
    offset: int = 0,
    limit: int = 20,
) -> tuple[list[Request], int]:
    """
    Filtered page of requests, newest first.

    Returns:
        Tuple of (requests on the page, total matching the filters)
    """
    query = select(Request).where(Request.deleted_at.is_(None))
    if student_id is not None:
        query = query.where(Request.student_id == student_id)
    if status is not None:
        query = query.where(Request.status == status)

    total_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = total_result.scalar() or 0

    result = await db.execute(
        query.order_by(desc(Request.created_at)).offset(offset).limit(limit)
    )
    return list(result.scalars().all()), total


async def transition_status(
    db: AsyncSession,
    request_id: UUID,
    status: ReviewStatus,
    reviewer_id: UUID,
    observations: str | None = None,
) -> int:
    """Conditional pending -> status update; returns affected rows."""
    return await transition_review_status(
        db, Request, request_id, status, reviewer_id, observations
    )


async def count_by_status(db: AsyncSession) -> dict[ReviewStatus, int]:
    result = await db.execute(
        select(Request.status, func.count(Request.id))
        .where(Request.deleted_at.is_(None))
        .group_by(Request.status)
    )
    return {status: count for status, count in result.all()}
