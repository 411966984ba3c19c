"""
Paginator - page queries with total counts and navigation metadata.

Example::

    page = await Paginator(adapter, "products").paginate(
        page=2,
        limit=20,
        filters={"category": "electronics"},
        search_fields=["name", "description"],
        search_term="laptop",
    )
    page.pagination.total_pages
    page.to_dict()
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from .builder import QueryBuilder
from .exceptions import QueryValidationError

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from .ports.adapter import DatabaseAdapter

logger = logging.getLogger("polyquery.pagination")


class PaginationMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    current_page: int
    total_pages: int
    total_records: int
    records_per_page: int
    has_next_page: bool
    has_prev_page: bool
    next_page: int | None = None
    prev_page: int | None = None

    @classmethod
    def compute(cls, page: int, limit: int, total: int) -> PaginationMeta:
        total_pages = math.ceil(total / limit)
        has_next = page < total_pages
        has_prev = page > 1
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_records=total,
            records_per_page=limit,
            has_next_page=has_next,
            has_prev_page=has_prev,
            next_page=page + 1 if has_next else None,
            prev_page=page - 1 if has_prev else None,
        )


class SearchEcho(BaseModel):
    term: str = ""
    fields: list[str] = Field(default_factory=list)


class SortEcho(BaseModel):
    field: str | None = None
    order: str = "asc"


class PaginationResult(BaseModel):
    """One page of rows plus the metadata envelope."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    data: list[dict[str, Any]] = Field(default_factory=list)
    pagination: PaginationMeta
    filters: dict[str, Any] = Field(default_factory=dict)
    search: SearchEcho = Field(default_factory=SearchEcho)
    sort: SortEcho = Field(default_factory=SortEcho)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump()


class Paginator:
    """
    Runs a count query and a page query sharing identical predicates.

    Both queries are cloned from one base builder, so filters and search
    terms can never drift between the total and the page.
    """

    def __init__(
        self,
        adapter: DatabaseAdapter,
        target: str,
        *,
        engine: str | None = None,
    ) -> None:
        self._adapter = adapter
        self._target = target
        self._engine = engine or adapter.engine_kind

    def base_query(
        self,
        filters: Mapping[str, Any] | None = None,
        search_fields: Sequence[str] | None = None,
        search_term: str = "",
    ) -> QueryBuilder:
        builder = QueryBuilder(self._engine).select().from_(self._target)
        for field, value in (filters or {}).items():
            builder.where(field, value)
        if search_term and search_fields:
            builder.search(list(search_fields), search_term)
        return builder

    async def paginate(
        self,
        page: int = 1,
        limit: int = 10,
        sort_by: str | None = "id",
        sort_order: str = "asc",
        filters: Mapping[str, Any] | None = None,
        search_fields: Sequence[str] | None = None,
        search_term: str = "",
    ) -> PaginationResult:
        """Fetch page ``page`` (1-based) of ``limit`` rows.

        Raises:
            QueryValidationError: ``page`` or ``limit`` is below 1.
        """
        if page < 1:
            raise QueryValidationError(f"page must be >= 1, got {page}")
        if limit < 1:
            raise QueryValidationError(f"limit must be >= 1, got {limit}")

        base = self.base_query(filters, search_fields, search_term)

        count_result = await self._adapter.run(base.clone().count())
        total = int(count_result.scalar("count") or 0)

        page_query = base.clone()
        if sort_by:
            page_query.order_by(sort_by, sort_order)
        page_query.limit(limit).offset((page - 1) * limit)
        rows = await self._adapter.run(page_query)

        logger.debug(
            "Paginated %s page %d/%d (%d records)",
            self._target,
            page,
            math.ceil(total / limit),
            total,
        )
        return PaginationResult(
            data=rows.rows,
            pagination=PaginationMeta.compute(page, limit, total),
            filters=dict(filters or {}),
            search=SearchEcho(term=search_term, fields=list(search_fields or [])),
            sort=SortEcho(field=sort_by, order=sort_order),
        )
