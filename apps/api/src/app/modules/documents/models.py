"""
Document Models

Files students and teachers upload for administrative review (ID card,
proof of address, diplomas, ...) and the catalog of document types.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Enum, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.modules.shared import BaseModel, ReviewStatus, SoftDeleteMixin, enum_values


class DocumentUserType(str, enum.Enum):
    """Which owner role a document type is requested from."""

    STUDENT = "student"
    TEACHER = "teacher"
    BOTH = "both"

    def applies_to(self, role: str) -> bool:
        if self is DocumentUserType.BOTH:
            return role in (DocumentUserType.STUDENT.value, DocumentUserType.TEACHER.value)
        return self.value == role


class DocumentType(SoftDeleteMixin, BaseModel):
    __tablename__ = "document_types"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_type: Mapped[DocumentUserType] = mapped_column(
        Enum(DocumentUserType, name="document_user_type", values_callable=enum_values),
        nullable=False,
        default=DocumentUserType.BOTH,
    )
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def is_applicable_for(self, role: str) -> bool:
        return self.user_type.applies_to(role)

    def __repr__(self) -> str:
        return f"<DocumentType(id={self.id}, name={self.name}, user_type={self.user_type.value})>"


class Document(SoftDeleteMixin, BaseModel):
    """
    An uploaded file awaiting or past review.

    One live (non-deleted) document per owner and type; a rejected one is
    soft-deleted when its replacement is uploaded.
    """

    __tablename__ = "documents"

    owner_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    document_type_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("document_types.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    file_path: Mapped[str] = mapped_column(String(500), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)

    status: Mapped[ReviewStatus] = mapped_column(
        Enum(ReviewStatus, name="document_status", values_callable=enum_values),
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
        Index("ix_documents_status", "status"),
        Index("ix_documents_owner_type", "owner_id", "document_type_id"),
    )

    def __repr__(self) -> str:
        return f"<Document(id={self.id}, owner_id={self.owner_id}, status={self.status.value})>"
