"""Storefront: common response envelope."""
from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Meta(BaseModel):
    """Pagination and metadata."""

    page: int = 1
    page_size: int = 20
    total_count: int | None = None
    message: str | None = None


class ApiResponse(BaseModel, Generic[T]):
    """Standard response envelope: {data, error, meta}."""

    data: T | None = None
    error: str | None = None
    meta: Meta | None = None
