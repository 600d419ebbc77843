"""Document schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field

from app.modules.documents.models import DocumentUserType
from app.modules.shared import ReviewStatus
from app.modules.shared.formatters import format_bytes


class DocumentTypeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None = None
    user_type: DocumentUserType
    is_required: bool


class DocumentResponse(BaseModel):
    """Document metadata; the stored path is never exposed."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_id: UUID
    document_type_id: UUID
    file_name: str
    file_size: int
    mime_type: str
    status: ReviewStatus
    reviewed_by: UUID | None = None
    reviewed_at: datetime | None = None
    observations: str | None = None
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def status_label(self) -> str:
        return self.status.label

    @computed_field
    @property
    def file_size_display(self) -> str:
        return format_bytes(self.file_size)


class ApproveDocumentBody(BaseModel):
    observations: str | None = Field(None, max_length=1000)


class RejectDocumentBody(BaseModel):
    """Observations are mandatory for rejection; blank values are refused by the service."""

    observations: str | None = Field(None, max_length=1000)


class ChecklistItem(BaseModel):
    document_type_id: UUID
    name: str
    status: str
    document_id: UUID | None = None
    observations: str | None = None


class DocumentChecklist(BaseModel):
    owner_id: UUID
    items: list[ChecklistItem]
    total_required: int
    approved: int
    complete: bool


class DocumentStats(BaseModel):
    total: int
    pending: int
    approved: int
    rejected: int
