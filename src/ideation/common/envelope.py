"""Uniform response envelope: ``{success, message, data, pagination?}``."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_count: int
    has_next_page: bool
    has_prev_page: bool
    limit: int

    @classmethod
    def build(cls, page: int, limit: int, total_count: int) -> Pagination:
        total_pages = (total_count + limit - 1) // limit if limit else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_count=total_count,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
            limit=limit,
        )


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    message: str = ""
    data: T | None = None
    pagination: Pagination | None = None


class ErrorEnvelope(BaseModel):
    """Body of every failed response."""

    success: bool = False
    message: str
    data: None = None
    errors: list[dict] | None = None
