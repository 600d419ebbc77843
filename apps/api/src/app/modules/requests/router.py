"""
Requests Router

Endpoints:
- POST /requests - File a request (student for self, admin for a student)
- GET /requests - List requests (students see their own)
- GET /requests/types - Active request types
- GET /requests/stats - Counts per status (admin)
- GET /requests/{id} - Request details (owner or admin)
- PUT /requests/{id}/approve - Approve a pending request (admin)
- PUT /requests/{id}/reject - Reject a pending request (admin)

Service errors propagate to the application's exception handlers, which
render the error envelope.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import ROLE_ADMIN, ROLE_STUDENT, CurrentUser, require_roles
from app.core.database import get_db
from app.core.rate_limit import enforce_rate_limit
from app.modules.requests import service
from app.modules.requests.schemas import (
    RequestCreate,
    RequestResponse,
    RequestStats,
    RequestTypeResponse,
    ReviewBody,
)
from app.modules.shared.schemas import ApiResponse, PaginatedData

logger = logging.getLogger(__name__)

router = APIRouter()

RATE_LIMIT_APPROVE = (30, 60)  # 30 approvals per minute per admin
RATE_LIMIT_REJECT = (30, 60)

student_or_admin = require_roles(ROLE_STUDENT, ROLE_ADMIN)
admin_only = require_roles(ROLE_ADMIN)


async def _check_admin_rate_limit(admin: CurrentUser, action: str, limit: int, window: int) -> None:
    await enforce_rate_limit(f"admin:{action}:{admin.id}", limit, window)


@router.post(
    "",
    response_model=ApiResponse[RequestResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create Request",
)
async def create_request(
    data: RequestCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(student_or_admin),
) -> ApiResponse[RequestResponse]:
    request = await service.create_request(db, user, data)
    return ApiResponse(
        data=RequestResponse.model_validate(request),
        message="Request created successfully.",
    )


@router.get("", response_model=ApiResponse[PaginatedData[RequestResponse]], summary="List Requests")
async def list_requests(
    status_filter: str | None = Query(None, alias="status"),
    student_id: UUID | None = Query(None),
    page: int = Query(1),
    limit: int = Query(20),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(student_or_admin),
) -> ApiResponse[PaginatedData[RequestResponse]]:
    """
    List requests, newest first.

    Invalid status values, page < 1 or limit < 1 return 400; limit is
    capped at 100.
    """
    items, meta = await service.list_requests(
        db,
        user,
        status=status_filter,
        student_id=student_id,
        page=page,
        limit=limit,
    )
    return ApiResponse(
        data=PaginatedData(
            items=[RequestResponse.model_validate(item) for item in items],
            pagination=meta,
        )
    )


@router.get("/types", response_model=ApiResponse[list[RequestTypeResponse]])
async def list_request_types(
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(student_or_admin),
) -> ApiResponse[list[RequestTypeResponse]]:
    types = await service.list_request_types(db)
    return ApiResponse(data=[RequestTypeResponse.model_validate(t) for t in types])


@router.get("/stats", response_model=ApiResponse[RequestStats])
async def request_stats(
    db: AsyncSession = Depends(get_db),
    _admin: CurrentUser = Depends(admin_only),
) -> ApiResponse[RequestStats]:
    return ApiResponse(data=await service.get_request_stats(db))


@router.get("/{request_id}", response_model=ApiResponse[RequestResponse])
async def get_request(
    request_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(student_or_admin),
) -> ApiResponse[RequestResponse]:
    request = await service.get_request(db, user, request_id)
    return ApiResponse(data=RequestResponse.model_validate(request))


@router.put("/{request_id}/approve", response_model=ApiResponse[RequestResponse])
async def approve_request(
    request_id: UUID,
    data: ReviewBody | None = None,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_only),
) -> ApiResponse[RequestResponse]:
    await _check_admin_rate_limit(admin, "approve_request", *RATE_LIMIT_APPROVE)
    request = await service.approve_request(
        db, admin, request_id, data.observations if data else None
    )
    return ApiResponse(
        data=RequestResponse.model_validate(request),
        message="Request approved successfully.",
    )


@router.put("/{request_id}/reject", response_model=ApiResponse[RequestResponse])
async def reject_request(
    request_id: UUID,
    data: ReviewBody | None = None,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_only),
) -> ApiResponse[RequestResponse]:
    await _check_admin_rate_limit(admin, "reject_request", *RATE_LIMIT_REJECT)
    request = await service.reject_request(
        db, admin, request_id, data.observations if data else None
    )
    return ApiResponse(
        data=RequestResponse.model_validate(request),
        message="Request rejected successfully.",
    )
