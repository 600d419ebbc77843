"""Response envelope models shared by all routers."""

from typing import Generic, TypeVar

from pydantic import BaseModel

from app.modules.shared.pagination import PageMeta

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Success envelope: {"success": true, "data": ..., "message": ...}."""

    success: bool = True
    data: T
    message: str | None = None


class PaginatedData(BaseModel, Generic[T]):
    items: list[T]
    pagination: PageMeta
