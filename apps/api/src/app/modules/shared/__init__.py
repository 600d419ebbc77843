"""
Shared module - Model base classes, review workflow helpers, pagination,
validators and formatters.
"""

from app.modules.shared.models import (
    REVIEW_STATUS_LABELS,
    VALID_REVIEW_TRANSITIONS,
    BaseModel,
    ReviewStatus,
    SoftDeleteMixin,
    enum_values,
)

__all__ = [
    "BaseModel",
    "SoftDeleteMixin",
    "ReviewStatus",
    "REVIEW_STATUS_LABELS",
    "VALID_REVIEW_TRANSITIONS",
    "enum_values",
]
