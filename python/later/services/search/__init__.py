"""Unified search across notes, todo lists, lists, todo items and list items.

Pipeline:
    SearchController (debounce) -> SearchService -> validate_query
        -> SearchAggregator -> QueryAdapter x5 -> TextSearchBackend
        -> normalizer -> merge, sort by recency, window

Usage:
    from later.services.search import (
        PostgrestSearchBackend,
        SearchController,
        SearchQuery,
        create_search_service,
    )

    backend = PostgrestSearchBackend(httpx_client, settings.rest_url, settings.supabase_anon_key)
    service = create_search_service(backend, lambda: user_id, settings)
    controller = SearchController(service, debounce_s=settings.debounce_s)
    controller.search(SearchQuery(phrase="milk", space_id=space_id))

Rules:
- Every search is scoped to exactly one space
- Blank phrases and explicit empty type filters return [] without backend calls
- Any adapter failure fails the whole aggregation
- Raw phrases are never logged
"""

from later.services.search.adapters import (
    ListAdapter,
    ListItemAdapter,
    NoteAdapter,
    QueryAdapter,
    TodoItemAdapter,
    TodoListAdapter,
    default_adapters,
)
from later.services.search.aggregator import SearchAggregator, hash_query
from later.services.search.backend import (
    FakeSearchBackend,
    PostgrestSearchBackend,
    TableQuery,
    TextSearchBackend,
)
from later.services.search.controller import (
    SearchController,
    SearchData,
    SearchFailed,
    SearchIdle,
    SearchLoading,
    SearchState,
)
from later.services.search.errors import (
    AggregationError,
    AggregationTimeoutError,
    BackendErrorClass,
    MalformedRowError,
    SearchBackendError,
    SearchError,
    SearchValidationError,
    UnexpectedSearchError,
    ValidationErrorKind,
    classify_backend_error,
)
from later.services.search.filters import SearchFilters, SearchFiltersController
from later.services.search.normalizer import normalize_row, normalize_rows
from later.services.search.service import SearchService, create_search_service
from later.services.search.types import (
    ContentType,
    ListItem,
    ListModel,
    Note,
    ParentRef,
    SearchPage,
    SearchQuery,
    SearchResult,
    TodoItem,
    TodoList,
    parse_content_types,
)
from later.services.search.validator import validate_query

__all__ = [
    # Types
    "ContentType",
    "Note",
    "TodoList",
    "ListModel",
    "TodoItem",
    "ListItem",
    "ParentRef",
    "SearchQuery",
    "SearchResult",
    "SearchPage",
    "parse_content_types",
    # Filters
    "SearchFilters",
    "SearchFiltersController",
    # Backend
    "TableQuery",
    "TextSearchBackend",
    "PostgrestSearchBackend",
    "FakeSearchBackend",
    # Adapters
    "QueryAdapter",
    "NoteAdapter",
    "TodoListAdapter",
    "ListAdapter",
    "TodoItemAdapter",
    "ListItemAdapter",
    "default_adapters",
    # Pipeline
    "normalize_row",
    "normalize_rows",
    "validate_query",
    "SearchAggregator",
    "hash_query",
    "SearchService",
    "create_search_service",
    # Controller
    "SearchController",
    "SearchState",
    "SearchIdle",
    "SearchLoading",
    "SearchData",
    "SearchFailed",
    # Errors
    "SearchError",
    "SearchValidationError",
    "ValidationErrorKind",
    "SearchBackendError",
    "BackendErrorClass",
    "classify_backend_error",
    "AggregationError",
    "AggregationTimeoutError",
    "UnexpectedSearchError",
    "MalformedRowError",
]
