"""
Review Transitions

Approve/reject is a single conditional UPDATE guarded on the current status,
so two concurrent reviews of the same record cannot both succeed: the loser
affects zero rows and the caller maps that to a conflict.
"""

import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.shared.models import VALID_REVIEW_TRANSITIONS, ReviewStatus

logger = logging.getLogger(__name__)


class InvalidStatusTransitionError(ValueError):
    """Raised when a transition is not allowed by the review state machine."""

    def __init__(self, current_status: ReviewStatus, new_status: ReviewStatus):
        self.current_status = current_status
        self.new_status = new_status
        valid = VALID_REVIEW_TRANSITIONS.get(current_status, set())
        super().__init__(
            f"Invalid status transition: {current_status.value} -> {new_status.value}. "
            f"Valid transitions: {sorted(s.value for s in valid)}"
        )


def ensure_transition(current_status: ReviewStatus, new_status: ReviewStatus) -> None:
    if new_status not in VALID_REVIEW_TRANSITIONS.get(current_status, set()):
        raise InvalidStatusTransitionError(current_status, new_status)


async def transition_review_status(
    db: AsyncSession,
    model: Any,
    record_id: UUID,
    new_status: ReviewStatus,
    reviewer_id: UUID,
    observations: str | None = None,
) -> int:
    """
    Move a pending, non-deleted record to a terminal status.

    Args:
        db: Database session
        model: Mapped class with status/reviewed_by/reviewed_at/observations columns
        record_id: Primary key of the record
        new_status: APPROVED or REJECTED
        reviewer_id: Admin performing the review
        observations: Optional review notes

    Returns:
        Number of rows updated (0 when the record was not pending)
    """
    ensure_transition(ReviewStatus.PENDING, new_status)

    now = datetime.now(UTC)
    stmt = (
        update(model)
        .where(
            model.id == record_id,
            model.status == ReviewStatus.PENDING,
            model.deleted_at.is_(None),
        )
        .values(
            status=new_status,
            reviewed_by=reviewer_id,
            reviewed_at=now,
            observations=observations,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    await db.commit()

    affected = result.rowcount or 0
    logger.debug(
        f"{model.__name__} {record_id}: pending -> {new_status.value} affected {affected} row(s)"
    )
    return affected
