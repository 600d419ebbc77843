"""Request schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field

from app.modules.shared import ReviewStatus


class RequestCreate(BaseModel):
    """
    Body for filing a request.

    `student_id` is required when an administrator files on a student's
    behalf; students may omit it or pass their own id.
    """

    request_type_id: UUID
    description: str | None = Field(None, max_length=2000)
    student_id: UUID | None = None


class ReviewBody(BaseModel):
    observations: str | None = Field(None, max_length=1000)


class RequestTypeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None = None
    response_deadline_days: int


class RequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    student_id: UUID
    request_type_id: UUID
    description: str | None = None
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


class RequestStats(BaseModel):
    total: int
    pending: int
    approved: int
    rejected: int
