"""Tests for SearchService: validation gate and error wrapping."""

import pytest

from later.services.search import (
    AggregationError,
    ContentType,
    SearchAggregator,
    SearchService,
    SearchValidationError,
    UnexpectedSearchError,
    ValidationErrorKind,
    default_adapters,
)
from tests.helpers import OWNER_ID, note_row


class TestShortCircuit:
    @pytest.mark.asyncio
    async def test_empty_phrase_makes_no_backend_calls(self, backend, service, make_query):
        backend.add_rows("notes", [note_row("milk")])

        results = await service.search(make_query(""))

        assert results == []
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_whitespace_phrase_makes_no_backend_calls(self, backend, service, make_query):
        assert await service.search(make_query("   ")) == []
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_empty_type_filter_makes_no_backend_calls(self, backend, service, make_query):
        backend.add_rows("notes", [note_row("milk")])

        page = await service.search_page(make_query(content_types=frozenset()))

        assert page.results == []
        assert not page.has_more
        assert backend.calls == []


class TestValidationErrors:
    @pytest.mark.asyncio
    async def test_too_long_phrase(self, backend, service, make_query):
        with pytest.raises(SearchValidationError) as exc_info:
            await service.search(make_query("x" * 501))

        assert exc_info.value.kind == ValidationErrorKind.QUERY_TOO_LONG
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_missing_scope(self, backend, service, make_query):
        with pytest.raises(SearchValidationError) as exc_info:
            await service.search(make_query(space_id=""))

        assert exc_info.value.kind == ValidationErrorKind.SCOPE_REQUIRED
        assert backend.calls == []


class TestAggregation:
    @pytest.mark.asyncio
    async def test_phrase_trimmed_before_backend(self, backend, service, make_query):
        backend.add_rows("notes", [note_row("Buy milk")])

        results = await service.search(make_query("  milk  ", content_types={ContentType.NOTE}))

        assert [r.title for r in results] == ["Buy milk"]
        assert backend.calls[0].phrase == "milk"

    @pytest.mark.asyncio
    async def test_owner_filter_applied(self, backend, service, make_query):
        await service.search(make_query(content_types={ContentType.NOTE}))

        assert ("user_id", OWNER_ID) in backend.calls[0].scope_filters

    @pytest.mark.asyncio
    async def test_aggregation_error_propagates(self, backend, service, make_query):
        backend.fail_table("lists")

        with pytest.raises(AggregationError) as exc_info:
            await service.search(make_query())

        assert exc_info.value.failed_type == ContentType.LIST

    @pytest.mark.asyncio
    async def test_unexpected_error_wrapped(self, backend, make_query):
        def broken_owner() -> str:
            raise RuntimeError("session lost")

        service = SearchService(SearchAggregator(default_adapters(backend), broken_owner))

        with pytest.raises(UnexpectedSearchError) as exc_info:
            await service.search(make_query())

        assert isinstance(exc_info.value.cause, RuntimeError)
        assert isinstance(exc_info.value.__cause__, RuntimeError)
