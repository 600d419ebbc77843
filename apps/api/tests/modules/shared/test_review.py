"""
Tests for the review state machine and the conditional status update.
"""

from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from app.modules.requests.models import Request
from app.modules.shared import ReviewStatus
from app.modules.shared.review import (
    InvalidStatusTransitionError,
    ensure_transition,
    transition_review_status,
)


@pytest.mark.parametrize("target", [ReviewStatus.APPROVED, ReviewStatus.REJECTED])
def test_pending_can_be_reviewed(target):
    ensure_transition(ReviewStatus.PENDING, target)


@pytest.mark.parametrize(
    "current,target",
    [
        (ReviewStatus.APPROVED, ReviewStatus.REJECTED),
        (ReviewStatus.REJECTED, ReviewStatus.APPROVED),
        (ReviewStatus.APPROVED, ReviewStatus.PENDING),
        (ReviewStatus.PENDING, ReviewStatus.PENDING),
    ],
)
def test_other_transitions_rejected(current, target):
    with pytest.raises(InvalidStatusTransitionError):
        ensure_transition(current, target)


def test_status_labels():
    assert ReviewStatus.PENDING.label == "Pendente"
    assert ReviewStatus.APPROVED.label == "Aprovado"
    assert ReviewStatus.REJECTED.label == "Rejeitado"
    assert ReviewStatus.parse("archived") is None


@pytest.mark.asyncio
@pytest.mark.parametrize("rowcount", [1, 0])
async def test_transition_returns_affected_rows(mock_db, rowcount):
    mock_db.execute.return_value = MagicMock(rowcount=rowcount)
    reviewer = uuid4()

    affected = await transition_review_status(
        mock_db, Request, uuid4(), ReviewStatus.APPROVED, reviewer, "ok"
    )

    assert affected == rowcount
    mock_db.execute.assert_awaited_once()
    mock_db.commit.assert_awaited_once()

    statement = mock_db.execute.call_args.args[0]
    compiled = str(statement)
    assert "requests.status" in compiled
    assert "requests.deleted_at IS NULL" in compiled


@pytest.mark.asyncio
async def test_transition_to_pending_not_allowed(mock_db):
    with pytest.raises(InvalidStatusTransitionError):
        await transition_review_status(
            mock_db, Request, uuid4(), ReviewStatus.PENDING, uuid4()
        )

    mock_db.execute.assert_not_called()
