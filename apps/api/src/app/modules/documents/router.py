"""
Documents Router

Endpoints:
- POST /documents - Upload a document (multipart)
- GET /documents - List documents (owners see their own)
- GET /documents/types - Document types applicable to the caller
- GET /documents/stats - Counts per status (admin)
- GET /documents/checklist - Required documents and their status
- GET /documents/{id} - Document metadata (owner or admin)
- GET /documents/{id}/download - Stored file (owner or admin)
- PUT /documents/{id}/approve - Approve a pending document (admin)
- PUT /documents/{id}/reject - Reject a pending document, observations required (admin)
- DELETE /documents/{id} - Soft delete (admin)
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import ALL_ROLES, ROLE_ADMIN, CurrentUser, require_roles
from app.core.database import get_db
from app.core.rate_limit import enforce_rate_limit
from app.modules.documents import service
from app.modules.documents.schemas import (
    ApproveDocumentBody,
    DocumentChecklist,
    DocumentResponse,
    DocumentStats,
    DocumentTypeResponse,
    RejectDocumentBody,
)
from app.modules.shared.schemas import ApiResponse, PaginatedData

logger = logging.getLogger(__name__)

router = APIRouter()

RATE_LIMIT_APPROVE = (30, 60)  # 30 approvals per minute per admin
RATE_LIMIT_REJECT = (30, 60)
RATE_LIMIT_UPLOAD = (20, 60)

any_user = require_roles(*ALL_ROLES)
admin_only = require_roles(ROLE_ADMIN)


@router.post(
    "",
    response_model=ApiResponse[DocumentResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Upload Document",
)
async def upload_document(
    document_type_id: UUID = Form(...),
    owner_id: UUID | None = Form(None),
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(any_user),
) -> ApiResponse[DocumentResponse]:
    """
    Upload a PDF/JPG/PNG file (10 MB max by default).

    Students and teachers upload for themselves; administrators must
    pass `owner_id`.
    """
    await enforce_rate_limit(f"documents:upload:{user.id}", *RATE_LIMIT_UPLOAD)
    document = await service.upload_document(db, user, document_type_id, file, owner_id)
    return ApiResponse(
        data=DocumentResponse.model_validate(document),
        message="Document uploaded successfully.",
    )


@router.get("", response_model=ApiResponse[PaginatedData[DocumentResponse]])
async def list_documents(
    status_filter: str | None = Query(None, alias="status"),
    owner_id: UUID | None = Query(None),
    document_type_id: UUID | None = Query(None),
    page: int = Query(1),
    limit: int = Query(20),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(any_user),
) -> ApiResponse[PaginatedData[DocumentResponse]]:
    items, meta = await service.list_documents(
        db,
        user,
        status=status_filter,
        owner_id=owner_id,
        document_type_id=document_type_id,
        page=page,
        limit=limit,
    )
    return ApiResponse(
        data=PaginatedData(
            items=[DocumentResponse.model_validate(item) for item in items],
            pagination=meta,
        )
    )


@router.get("/types", response_model=ApiResponse[list[DocumentTypeResponse]])
async def list_document_types(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(any_user),
) -> ApiResponse[list[DocumentTypeResponse]]:
    types = await service.list_document_types(db, user)
    return ApiResponse(data=[DocumentTypeResponse.model_validate(t) for t in types])


@router.get("/stats", response_model=ApiResponse[DocumentStats])
async def document_stats(
    db: AsyncSession = Depends(get_db),
    _admin: CurrentUser = Depends(admin_only),
) -> ApiResponse[DocumentStats]:
    return ApiResponse(data=await service.get_document_stats(db))


@router.get("/checklist", response_model=ApiResponse[DocumentChecklist])
async def document_checklist(
    owner_id: UUID | None = Query(None),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(any_user),
) -> ApiResponse[DocumentChecklist]:
    return ApiResponse(data=await service.get_checklist(db, user, owner_id))


@router.get("/{document_id}", response_model=ApiResponse[DocumentResponse])
async def get_document(
    document_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(any_user),
) -> ApiResponse[DocumentResponse]:
    document = await service.get_document(db, user, document_id)
    return ApiResponse(data=DocumentResponse.model_validate(document))


@router.get("/{document_id}/download", response_class=FileResponse)
async def download_document(
    document_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(any_user),
) -> FileResponse:
    document, path = await service.get_document_file(db, user, document_id)
    return FileResponse(path, media_type=document.mime_type, filename=document.file_name)


@router.put("/{document_id}/approve", response_model=ApiResponse[DocumentResponse])
async def approve_document(
    document_id: UUID,
    data: ApproveDocumentBody | None = None,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_only),
) -> ApiResponse[DocumentResponse]:
    await enforce_rate_limit(f"admin:approve_document:{admin.id}", *RATE_LIMIT_APPROVE)
    document = await service.approve_document(
        db, admin, document_id, data.observations if data else None
    )
    return ApiResponse(
        data=DocumentResponse.model_validate(document),
        message="Document approved successfully.",
    )


@router.put("/{document_id}/reject", response_model=ApiResponse[DocumentResponse])
async def reject_document(
    document_id: UUID,
    data: RejectDocumentBody | None = None,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_only),
) -> ApiResponse[DocumentResponse]:
    await enforce_rate_limit(f"admin:reject_document:{admin.id}", *RATE_LIMIT_REJECT)
    document = await service.reject_document(
        db, admin, document_id, data.observations if data else None
    )
    return ApiResponse(
        data=DocumentResponse.model_validate(document),
        message="Document rejected successfully.",
    )


@router.delete("/{document_id}", response_model=ApiResponse[None])
async def delete_document(
    document_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: CurrentUser = Depends(admin_only),
) -> ApiResponse[None]:
    await service.delete_document(db, admin, document_id)
    return ApiResponse(data=None, message="Document deleted successfully.")
