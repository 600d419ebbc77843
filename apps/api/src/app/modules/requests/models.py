"""
Request Models

Administrative requests filed by students (transcripts, enrollment
certificates, ...) and the catalog of request types.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.modules.shared import BaseModel, ReviewStatus, SoftDeleteMixin, enum_values


class RequestType(SoftDeleteMixin, BaseModel):
    """Kind of request a student can file, with its expected response time."""

    __tablename__ = "request_types"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    response_deadline_days: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<RequestType(id={self.id}, name={self.name})>"


class Request(SoftDeleteMixin, BaseModel):
    """
    A student's request, reviewed by an administrator.

    Status only moves pending -> approved | pending -> rejected.
    """

    __tablename__ = "requests"

    student_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    request_type_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("request_types.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[ReviewStatus] = mapped_column(
        Enum(ReviewStatus, name="request_status", values_callable=enum_values),
        nullable=False,
        default=ReviewStatus.PENDING,
    )
    reviewed_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    observations: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_requests_status", "status"),
        Index("ix_requests_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Request(id={self.id}, student_id={self.student_id}, status={self.status.value})>"
