"""Text search backend abstraction.

The backend exposes one logical operation per table: filter by scope (and
optionally tags), match a phrase against the table's full-text column,
order by recency and return one offset/limit window of raw rows.

Implementations:
- PostgrestSearchBackend: Supabase PostgREST over httpx
- FakeSearchBackend: in-memory tables for tests and local development

Child tables (todo_items, list_items) are scoped through an inner join on
their parent. Their scope filters use dotted parent columns
("todo_lists.space_id") and their order column names the parent
("todo_lists(updated_at)").
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone

import httpx

from later.services.search.errors import (
    BackendErrorClass,
    SearchBackendError,
    classify_backend_error,
)
from later.services.search.types import ContentType

# PostgREST reserves these characters inside filter values
_POSTGREST_RESERVED = re.compile(r'[,(){}"\\]')


@dataclass(frozen=True)
class TableQuery:
    """One backend call issued by a query adapter.

    Attributes:
        table: Table (or view) to query
        select: PostgREST select clause, including embedded parent for child tables
        scope_filters: Ordered (column, value) equality filters
        fts_column: tsvector column matched against the phrase
        phrase: Trimmed search phrase
        order_column: Recency column, e.g. "updated_at" or "todo_lists(updated_at)"
        offset: First row to return
        limit: Maximum rows to return
        tag_column: Array column for the tag containment filter (None if untagged)
        tags: Tags that must all be present (None for no filter)
        content_type: Content type the adapter serves (diagnostics only)
    """

    table: str
    select: str
    scope_filters: tuple[tuple[str, str], ...]
    fts_column: str
    phrase: str
    order_column: str
    offset: int
    limit: int
    tag_column: str | None = None
    tags: tuple[str, ...] | None = None
    content_type: ContentType | None = None


class TextSearchBackend(ABC):
    """Abstract base class for text search backends."""

    @abstractmethod
    async def query(self, table_query: TableQuery) -> list[dict]:
        """Execute one table query and return raw rows.

        Raises:
            SearchBackendError: If the call fails for any reason.
        """
        ...


# =============================================================================
# PostgREST
# =============================================================================


def _quote_value(value: str) -> str:
    """Quote a PostgREST filter value when it contains reserved characters."""
    if _POSTGREST_RESERVED.search(value):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return value


def build_postgrest_params(table_query: TableQuery, text_search_config: str) -> list[tuple[str, str]]:
    """Build PostgREST query params for a table query.

    Filters are composed in a fixed order: scope, tags, full-text predicate,
    then ordering and pagination.
    """
    params: list[tuple[str, str]] = [("select", table_query.select)]

    for column, value in table_query.scope_filters:
        params.append((column, f"eq.{_quote_value(value)}"))

    if table_query.tag_column and table_query.tags:
        members = ",".join(_quote_value(tag) for tag in table_query.tags)
        params.append((table_query.tag_column, f"cs.{{{members}}}"))

    params.append(
        (table_query.fts_column, f"wfts({text_search_config}).{table_query.phrase}")
    )
    params.append(("order", f"{table_query.order_column}.desc"))
    params.append(("offset", str(table_query.offset)))
    params.append(("limit", str(table_query.limit)))
    return params


class PostgrestSearchBackend(TextSearchBackend):
    """Supabase PostgREST search backend.

    Requests run under the caller's access token when one is given, so
    row-level security policies apply. Otherwise the anon key is used.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        rest_url: str,
        api_key: str,
        access_token: str | None = None,
        text_search_config: str = "german",
        timeout_s: float = 5.0,
    ):
        self._client = client
        self._rest_url = rest_url.rstrip("/")
        self._api_key = api_key
        self._access_token = access_token
        self._text_search_config = text_search_config
        self._timeout_s = timeout_s

    def with_access_token(self, access_token: str | None) -> "PostgrestSearchBackend":
        """Return a copy that issues requests as the given user."""
        return PostgrestSearchBackend(
            client=self._client,
            rest_url=self._rest_url,
            api_key=self._api_key,
            access_token=access_token,
            text_search_config=self._text_search_config,
            timeout_s=self._timeout_s,
        )

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._access_token or self._api_key}",
            "Accept": "application/json",
        }

    async def query(self, table_query: TableQuery) -> list[dict]:
        url = f"{self._rest_url}/{table_query.table}"
        params = build_postgrest_params(table_query, self._text_search_config)

        try:
            response = await self._client.get(
                url,
                params=params,
                headers=self._headers(),
                timeout=self._timeout_s,
            )
        except httpx.HTTPError as exc:
            error_class = classify_backend_error(None, None, exc)
            raise SearchBackendError(
                error_class,
                f"{type(exc).__name__} querying {table_query.table}",
                content_type=table_query.content_type,
                table=table_query.table,
            ) from exc

        if response.status_code >= 400:
            json_body = _safe_json(response)
            if not isinstance(json_body, dict):
                json_body = None
            error_class = classify_backend_error(response.status_code, json_body, None)
            pg_code = None
            message = f"HTTP {response.status_code}"
            if json_body:
                pg_code = json_body.get("code")
                message = json_body.get("message") or message
            raise SearchBackendError(
                error_class,
                message,
                content_type=table_query.content_type,
                table=table_query.table,
                status_code=response.status_code,
                pg_code=pg_code,
            )

        rows = _safe_json(response)
        if not isinstance(rows, list):
            raise SearchBackendError(
                BackendErrorClass.GENERIC,
                "expected a JSON array of rows",
                content_type=table_query.content_type,
                table=table_query.table,
                status_code=response.status_code,
            )
        return rows


def _safe_json(response: httpx.Response):
    try:
        return response.json()
    except ValueError:
        return None


# =============================================================================
# In-memory fake
# =============================================================================


@dataclass
class FakeTable:
    rows: list[dict] = field(default_factory=list)
    # Columns whose text is matched by the phrase, standing in for the tsvector
    text_columns: tuple[str, ...] = ("title",)


# Columns folded into each table's fts tsvector
FAKE_TEXT_COLUMNS: dict[str, tuple[str, ...]] = {
    "notes": ("title", "content"),
    "todo_lists": ("name", "description"),
    "lists": ("name",),
    "todo_items": ("title", "description"),
    "list_items": ("title", "notes"),
}


class FakeSearchBackend(TextSearchBackend):
    """In-memory search backend for testing.

    Matching is case-insensitive: every whitespace-separated phrase term must
    appear somewhere in the table's text columns. Scope filters on "parent.column" read
    the embedded parent object. Every TableQuery is recorded in `calls`.
    """

    def __init__(self, tables: dict[str, FakeTable] | None = None):
        self.tables: dict[str, FakeTable] = tables or {}
        self.calls: list[TableQuery] = []
        self._failures: dict[str, SearchBackendError] = {}

    def add_rows(self, table: str, rows: list[dict], text_columns: tuple[str, ...] | None = None) -> None:
        """Append rows to a table, creating it if needed."""
        existing = self.tables.get(table)
        if existing is None:
            existing = FakeTable(text_columns=text_columns or FAKE_TEXT_COLUMNS.get(table, ("title",)))
            self.tables[table] = existing
        elif text_columns is not None:
            existing.text_columns = text_columns
        existing.rows.extend(rows)

    def fail_table(self, table: str, error: SearchBackendError | None = None) -> None:
        """Make every query against `table` raise."""
        self._failures[table] = error or SearchBackendError(
            BackendErrorClass.UNAVAILABLE, f"{table} unavailable", table=table
        )

    def calls_for(self, table: str) -> list[TableQuery]:
        return [c for c in self.calls if c.table == table]

    async def query(self, table_query: TableQuery) -> list[dict]:
        self.calls.append(table_query)

        failure = self._failures.get(table_query.table)
        if failure is not None:
            raise failure

        table = self.tables.get(table_query.table, FakeTable())
        matched = [
            row
            for row in table.rows
            if _matches_scope(row, table_query.scope_filters)
            and _matches_tags(row, table_query)
            and _matches_phrase(row, table.text_columns, table_query.phrase)
        ]

        # Stable sort keeps insertion order among equal timestamps
        matched.sort(key=lambda row: _order_value(row, table_query.order_column), reverse=True)

        window = matched[table_query.offset : table_query.offset + table_query.limit]
        return [dict(row) for row in window]


def _lookup(row: dict, column: str):
    if "." in column:
        relation, _, name = column.partition(".")
        nested = row.get(relation) or {}
        return nested.get(name)
    return row.get(column)


def _matches_scope(row: dict, scope_filters: tuple[tuple[str, str], ...]) -> bool:
    return all(str(_lookup(row, column)) == value for column, value in scope_filters)


def _matches_tags(row: dict, table_query: TableQuery) -> bool:
    if not table_query.tag_column or not table_query.tags:
        return True
    row_tags = set(row.get(table_query.tag_column) or [])
    return set(table_query.tags) <= row_tags


def _matches_phrase(row: dict, text_columns: tuple[str, ...], phrase: str) -> bool:
    haystack = " ".join(str(row.get(column) or "") for column in text_columns).lower()
    return all(term in haystack for term in phrase.lower().split())


def _order_value(row: dict, order_column: str) -> datetime:
    # "todo_lists(updated_at)" -> row["todo_lists"]["updated_at"]
    match = re.fullmatch(r"(\w+)\((\w+)\)", order_column)
    if match:
        raw = (row.get(match.group(1)) or {}).get(match.group(2))
    else:
        raw = row.get(order_column)
    if isinstance(raw, datetime):
        return raw
    if raw is None:
        return datetime.min.replace(tzinfo=timezone.utc)
    return datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
