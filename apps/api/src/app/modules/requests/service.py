"""
Requests Service Layer

Role rules for filing, listing, viewing and reviewing student requests.

Roles:
- student: files and sees only their own requests
- admin: files on behalf of a named student, sees everything, reviews
- teacher: no access

Reviews are pending-only. The final write is a conditional update, so a
concurrent review that got there first surfaces as REQUEST_ALREADY_PROCESSED
instead of silently overwriting.
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import ROLE_ADMIN, ROLE_STUDENT, CurrentUser
from app.core.email import send_request_reviewed
from app.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.modules.requests import repository
from app.modules.requests.models import Request, RequestType
from app.modules.requests.schemas import RequestCreate, RequestStats
from app.modules.shared import ReviewStatus
from app.modules.shared.pagination import PageMeta, page_meta, resolve_page
from app.modules.users.models import UserRole
from app.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)


class RequestNotFoundError(NotFoundError):
    def __init__(self, request_id: UUID):
        super().__init__(f"Request {request_id} not found.", error_code="REQUEST_NOT_FOUND")


class RequestTypeNotFoundError(NotFoundError):
    def __init__(self, request_type_id: UUID):
        super().__init__(
            f"Request type {request_type_id} not found or inactive.",
            error_code="REQUEST_TYPE_NOT_FOUND",
        )


class StudentNotFoundError(NotFoundError):
    def __init__(self, student_id: UUID):
        super().__init__(f"Student {student_id} not found.", error_code="STUDENT_NOT_FOUND")


class RequestAlreadyProcessedError(ConflictError):
    """Raised when reviewing a request that is no longer pending."""

    def __init__(self, status: ReviewStatus | None = None):
        message = "This request has already been processed."
        if status is not None:
            message = f"This request has already been {status.value}."
        super().__init__(
            message,
            error_code="REQUEST_ALREADY_PROCESSED",
            details={"current_status": status.value} if status else None,
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


async def create_request(db: AsyncSession, user: CurrentUser, data: RequestCreate) -> Request:
    """
    File a new request.

    Raises:
        AuthorizationError: Teacher caller, or a student naming another student
        ValidationError: Admin caller without student_id
        StudentNotFoundError: Admin named an unknown or inactive student
        RequestTypeNotFoundError: Unknown or inactive request type
    """
    if user.role == ROLE_STUDENT:
        if data.student_id is not None and data.student_id != user.id:
            logger.warning(f"Student {user.id} tried to file a request for {data.student_id}")
            raise AuthorizationError(
                "Students can only create requests for themselves.",
                error_code="CANNOT_CREATE_FOR_OTHER_STUDENT",
            )
        student_id = user.id
    elif user.role == ROLE_ADMIN:
        if data.student_id is None:
            raise ValidationError(
                "student_id is required when an administrator creates a request.",
                error_code="STUDENT_ID_REQUIRED",
            )
        student = await UserRepository.get_active_by_id_and_roles(
            db, data.student_id, [UserRole.STUDENT]
        )
        if student is None:
            raise StudentNotFoundError(data.student_id)
        student_id = student.id
    else:
        raise AuthorizationError(
            "Only students and administrators can create requests.",
            error_code="ROLE_NOT_ALLOWED",
        )

    request_type = await repository.get_request_type(db, data.request_type_id)
    if request_type is None:
        raise RequestTypeNotFoundError(data.request_type_id)

    request = await repository.create(
        db,
        student_id=student_id,
        request_type_id=request_type.id,
        description=data.description,
    )
    logger.info(
        f"User {user.id} ({user.role}) created request {request.id} "
        f"of type '{request_type.name}' for student {student_id}"
    )
    return request


async def list_requests(
    db: AsyncSession,
    user: CurrentUser,
    *,
    status: str | None = None,
    student_id: UUID | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Request], PageMeta]:
    """
    List requests visible to the caller.

    Students only see their own; admins may filter by student and status.
    """
    if user.role == ROLE_STUDENT:
        if student_id is not None and student_id != user.id:
            raise AuthorizationError(
                "Students can only list their own requests.",
                error_code="CANNOT_LIST_OTHER_STUDENT",
            )
        owner_filter: UUID | None = user.id
    elif user.role == ROLE_ADMIN:
        owner_filter = student_id
    else:
        raise AuthorizationError(
            "Only students and administrators can list requests.",
            error_code="ROLE_NOT_ALLOWED",
        )

    status_filter = _parse_status(status)
    params = resolve_page(page, limit)

    items, total = await repository.list_requests(
        db,
        student_id=owner_filter,
        status=status_filter,
        offset=params.offset,
        limit=params.limit,
    )
    return items, page_meta(total, params)


async def get_request(db: AsyncSession, user: CurrentUser, request_id: UUID) -> Request:
    """
    Raises:
        RequestNotFoundError: Missing or soft-deleted
        AuthorizationError: Exists but the caller is neither owner nor admin
    """
    request = await repository.get_by_id(db, request_id)
    if request is None:
        raise RequestNotFoundError(request_id)

    if not user.is_admin and request.student_id != user.id:
        logger.warning(f"User {user.id} denied access to request {request_id}")
        raise AuthorizationError(
            "You do not have permission to view this request.",
            error_code="REQUEST_ACCESS_DENIED",
        )
    return request


async def _review_request(
    db: AsyncSession,
    user: CurrentUser,
    request_id: UUID,
    new_status: ReviewStatus,
    observations: str | None,
) -> Request:
    if not user.is_admin:
        raise AuthorizationError(
            "Only administrators can review requests.", error_code="ROLE_NOT_ALLOWED"
        )

    request = await repository.get_by_id(db, request_id)
    if request is None:
        raise RequestNotFoundError(request_id)

    if request.status != ReviewStatus.PENDING:
        logger.warning(
            f"Admin {user.id} tried to set request {request_id} to {new_status.value}, "
            f"but it is already {request.status.value}"
        )
        raise RequestAlreadyProcessedError(request.status)

    affected = await repository.transition_status(
        db, request_id, new_status, user.id, observations
    )
    if affected == 0:
        logger.warning(f"Request {request_id} was reviewed concurrently; {new_status.value} lost")
        raise RequestAlreadyProcessedError()

    await db.refresh(request)
    logger.info(f"Admin {user.id} {new_status.value} request {request_id}")

    await _notify_student(db, request, approved=new_status == ReviewStatus.APPROVED)
    return request


async def _notify_student(db: AsyncSession, request: Request, approved: bool) -> None:
    """Email the student; failures are logged and never undo the review."""
    try:
        student = await UserRepository.get_by_id(db, request.student_id)
        request_type = await repository.get_request_type(
            db, request.request_type_id, include_inactive=True
        )
        if student is None or request_type is None:
            return
        await send_request_reviewed(
            to_email=student.email,
            student_name=student.name,
            request_type_name=request_type.name,
            approved=approved,
            observations=request.observations,
        )
    except Exception as e:
        logger.error(f"Failed to notify student about request {request.id}: {e}")


async def approve_request(
    db: AsyncSession,
    user: CurrentUser,
    request_id: UUID,
    observations: str | None = None,
) -> Request:
    return await _review_request(db, user, request_id, ReviewStatus.APPROVED, observations)


async def reject_request(
    db: AsyncSession,
    user: CurrentUser,
    request_id: UUID,
    observations: str | None = None,
) -> Request:
    return await _review_request(db, user, request_id, ReviewStatus.REJECTED, observations)


async def get_request_stats(db: AsyncSession) -> RequestStats:
    counts = await repository.count_by_status(db)
    return RequestStats(
        total=sum(counts.values()),
        pending=counts.get(ReviewStatus.PENDING, 0),
        approved=counts.get(ReviewStatus.APPROVED, 0),
        rejected=counts.get(ReviewStatus.REJECTED, 0),
    )


async def list_request_types(db: AsyncSession) -> list[RequestType]:
    return await repository.list_request_types(db)
