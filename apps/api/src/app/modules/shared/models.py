"""
Shared Model Building Blocks

Abstract base with UUID key and audit timestamps, the soft-delete mixin and
the review status used by every approval workflow.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


def enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Persist enum values (not member names) in database enum types."""
    return [member.value for member in enum_cls]


class BaseModel(Base):
    """Abstract base: UUID primary key plus created/updated timestamps."""

    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class SoftDeleteMixin:
    """Records are hidden by stamping `deleted_at`, never physically removed."""

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class ReviewStatus(str, enum.Enum):
    """Lifecycle shared by requests and documents."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def label(self) -> str:
        return REVIEW_STATUS_LABELS[self]

    @classmethod
    def parse(cls, value: str) -> "ReviewStatus | None":
        try:
            return cls(value)
        except ValueError:
            return None


REVIEW_STATUS_LABELS = {
    ReviewStatus.PENDING: "Pendente",
    ReviewStatus.APPROVED: "Aprovado",
    ReviewStatus.REJECTED: "Rejeitado",
}

# Terminal states have no exits
VALID_REVIEW_TRANSITIONS: dict[ReviewStatus, set[ReviewStatus]] = {
    ReviewStatus.PENDING: {ReviewStatus.APPROVED, ReviewStatus.REJECTED},
    ReviewStatus.APPROVED: set(),
    ReviewStatus.REJECTED: set(),
}
