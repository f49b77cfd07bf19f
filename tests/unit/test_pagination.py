"""Unit tests for pagination metadata and search patterns."""

from __future__ import annotations

from ideation.common.envelope import Pagination
from ideation.common.pagination import PageParams, page_params, search_pattern


class TestPaginationBuild:
    def test_middle_page(self):
        p = Pagination.build(page=2, limit=10, total_count=35)
        assert p.total_pages == 4
        assert p.has_next_page
        assert p.has_prev_page

    def test_last_page(self):
        p = Pagination.build(page=4, limit=10, total_count=35)
        assert not p.has_next_page
        assert p.has_prev_page

    def test_empty(self):
        p = Pagination.build(page=1, limit=10, total_count=0)
        assert p.total_pages == 0
        assert not p.has_next_page
        assert not p.has_prev_page


class TestPageParams:
    def test_defaults(self):
        params = page_params(page=1, limit=None, sort_by="created_at", sort_order="desc")
        assert params.limit == 10
        assert params.offset == 0

    def test_limit_is_capped(self):
        params = page_params(page=3, limit=10_000, sort_by="title", sort_order="asc")
        assert params.limit == 100
        assert params.offset == 200

    def test_offset(self):
        assert PageParams(page=5, limit=20, sort_by="created_at", sort_order="desc").offset == 80


class TestSearchPattern:
    def test_wraps_term(self):
        assert search_pattern("solar") == "%solar%"

    def test_escapes_wildcards(self):
        assert search_pattern("50%_off\\") == "%50\\%\\_off\\\\%"
