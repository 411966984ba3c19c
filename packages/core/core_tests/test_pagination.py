"""Tests for Paginator and PaginationMeta."""

from unittest.mock import AsyncMock

import pytest

from polyquery_core import PaginationMeta, Paginator, QueryValidationError
from polyquery_core.result import QueryResult


class TestPaginationMeta:
    def test_middle_page(self):
        meta = PaginationMeta.compute(page=2, limit=10, total=25)
        assert meta.total_pages == 3
        assert meta.has_next_page and meta.has_prev_page
        assert (meta.next_page, meta.prev_page) == (3, 1)

    def test_last_page(self):
        meta = PaginationMeta.compute(page=3, limit=10, total=25)
        assert not meta.has_next_page
        assert meta.next_page is None

    def test_empty_result(self):
        meta = PaginationMeta.compute(page=1, limit=10, total=0)
        assert meta.total_pages == 0
        assert not meta.has_next_page
        assert not meta.has_prev_page


@pytest.mark.asyncio
class TestPaginator:
    @pytest.fixture
    def adapter(self):
        adapter = AsyncMock()
        adapter.engine_kind = "sqlite"
        adapter.run.side_effect = [
            QueryResult(rows=[{"count": 25}]),
            QueryResult(rows=[{"id": 11}, {"id": 12}]),
        ]
        return adapter

    async def test_count_and_page_share_predicates(self, adapter):
        page = await Paginator(adapter, "products").paginate(
            page=2,
            limit=10,
            filters={"category": "books"},
            search_fields=["name", "description"],
            search_term="python",
        )
        count_query, page_query = (c.args[0] for c in adapter.run.call_args_list)
        assert count_query.to_sql().sql == (
            "SELECT COUNT(*) AS count FROM products WHERE category = ? "
            "AND (name LIKE ? OR description LIKE ?)"
        )
        assert page_query.to_sql().sql == (
            "SELECT * FROM products WHERE category = ? "
            "AND (name LIKE ? OR description LIKE ?) "
            "ORDER BY id ASC LIMIT 10 OFFSET 10"
        )
        assert count_query.get_params() == page_query.get_params()

        assert page.data == [{"id": 11}, {"id": 12}]
        assert page.pagination.total_records == 25
        assert page.pagination.current_page == 2
        assert page.filters == {"category": "books"}
        assert page.search.term == "python"
        assert page.sort.field == "id"

    async def test_document_target(self, adapter):
        adapter.engine_kind = "mongodb"
        await Paginator(adapter, "products").paginate(page=3, limit=5, sort_order="desc")
        op = adapter.run.call_args_list[1].args[0].build()
        assert op["skip"] == 10
        assert op["limit"] == 5
        assert op["sort"] == {"id": -1}

    async def test_to_dict(self, adapter):
        page = await Paginator(adapter, "products").paginate()
        data = page.to_dict()
        assert set(data) == {"data", "pagination", "filters", "search", "sort"}
        assert data["pagination"]["records_per_page"] == 10

    @pytest.mark.parametrize(("page", "limit"), [(0, 10), (1, 0), (-1, 5)])
    async def test_invalid_page_or_limit(self, adapter, page, limit):
        with pytest.raises(QueryValidationError):
            await Paginator(adapter, "t").paginate(page=page, limit=limit)
        adapter.run.assert_not_called()
