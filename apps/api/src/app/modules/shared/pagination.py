"""Page/limit handling shared by list endpoints."""

import math
from dataclasses import dataclass

from pydantic import BaseModel

from app.core.errors import ValidationError

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


@dataclass(frozen=True)
class PageParams:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class PageMeta(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool


def resolve_page(page: int = 1, limit: int = DEFAULT_LIMIT) -> PageParams:
    """
    Validate page/limit, capping the limit at MAX_LIMIT.

    Raises:
        ValidationError: If page or limit is below 1
    """
    if page < 1:
        raise ValidationError("Page must be greater than or equal to 1.", error_code="INVALID_PAGE")
    if limit < 1:
        raise ValidationError("Limit must be greater than or equal to 1.", error_code="INVALID_LIMIT")
    return PageParams(page=page, limit=min(limit, MAX_LIMIT))


def page_meta(total: int, params: PageParams) -> PageMeta:
    total_pages = math.ceil(total / params.limit) if total else 0
    return PageMeta(
        total=total,
        page=params.page,
        limit=params.limit,
        total_pages=total_pages,
        has_next_page=params.page < total_pages,
        has_previous_page=params.page > 1,
    )
