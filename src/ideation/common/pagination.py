"""Page-number pagination and whitelisted sorting for list endpoints."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Literal

from fastapi import Query
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from ideation.common.envelope import Pagination
from ideation.config import get_settings
from ideation.errors import ValidationError


@dataclass(frozen=True)
class PageParams:
    page: int
    limit: int
    sort_by: str
    sort_order: Literal["asc", "desc"]

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_params(
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    sort_by: str = Query("created_at"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
) -> PageParams:
    """FastAPI dependency reading ``page``, ``limit``, ``sort_by`` and ``sort_order``."""
    settings = get_settings()
    effective = min(limit or settings.default_page_size, settings.max_page_size)
    return PageParams(page=page, limit=effective, sort_by=sort_by, sort_order=sort_order)


async def paginate(
    db: AsyncSession,
    query: Select[Any],
    params: PageParams,
    sortable: Mapping[str, InstrumentedAttribute[Any]],
    options: Sequence[Any] = (),
) -> tuple[list[Any], Pagination]:
    """Run ``query`` for one page.

    ``sortable`` maps the accepted ``sort_by`` names to columns; anything else
    is a 400. The id is always a tie-breaker so pages are stable. Loader
    ``options`` apply to the page query only, not to the count.
    """
    column = sortable.get(params.sort_by)
    if column is None:
        allowed = ", ".join(sorted(sortable))
        raise ValidationError(f"Invalid sort_by '{params.sort_by}'. Allowed: {allowed}")

    total = (await db.execute(select(func.count()).select_from(query.order_by(None).subquery()))).scalar_one()

    ordering = column.asc() if params.sort_order == "asc" else column.desc()
    id_column = query.column_descriptions[0]["entity"].id
    tie = id_column.asc() if params.sort_order == "asc" else id_column.desc()
    rows = (
        await db.execute(query.options(*options).order_by(ordering, tie).offset(params.offset).limit(params.limit))
    ).scalars().all()

    return list(rows), Pagination.build(params.page, params.limit, total)


def search_pattern(term: str) -> str:
    """``ILIKE`` pattern matching ``term`` anywhere, with wildcards escaped."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
