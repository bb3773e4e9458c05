"""Per-content-type query adapters.

Each adapter translates a SearchQuery into one TableQuery for its table and
returns the raw rows. Adapters never window results themselves: they fetch
the first offset + limit + 1 rows so the aggregator can apply the window over
the merged list and detect whether more rows exist.

Child adapters (todo items, list items) scope through an inner join on the
parent and order by the parent's updated_at.
"""

from abc import ABC

from later.services.search.backend import TableQuery, TextSearchBackend
from later.services.search.errors import SearchBackendError
from later.services.search.types import ContentType, SearchQuery


class QueryAdapter(ABC):
    """Base adapter. Subclasses set the class attributes for their table."""

    content_type: ContentType
    table: str
    fts_column: str = "fts"
    tag_column: str | None = None
    # Parent relation for child tables; None for containers
    parent_relation: str | None = None

    def __init__(self, backend: TextSearchBackend):
        self.backend = backend

    @property
    def select(self) -> str:
        if self.parent_relation:
            return f"*, {self.parent_relation}!inner(id, name, space_id, user_id, updated_at)"
        return "*"

    @property
    def order_column(self) -> str:
        if self.parent_relation:
            return f"{self.parent_relation}(updated_at)"
        return "updated_at"

    def _scope_column(self, column: str) -> str:
        if self.parent_relation:
            return f"{self.parent_relation}.{column}"
        return column

    def build_table_query(self, query: SearchQuery, space_id: str, owner_id: str) -> TableQuery:
        """Compose the backend call: scope, then tags, then the phrase."""
        scope_filters = (
            (self._scope_column("user_id"), owner_id),
            (self._scope_column("space_id"), space_id),
        )
        tags = query.tags if self.tag_column and query.tags else None
        return TableQuery(
            table=self.table,
            select=self.select,
            scope_filters=scope_filters,
            tag_column=self.tag_column if tags else None,
            tags=tags,
            fts_column=self.fts_column,
            phrase=query.phrase,
            order_column=self.order_column,
            offset=0,
            limit=query.offset + query.limit + 1,
            content_type=self.content_type,
        )

    async def search(self, query: SearchQuery, space_id: str, owner_id: str) -> list[dict]:
        """Fetch raw rows for this content type.

        Raises:
            SearchBackendError: Tagged with this adapter's content type and table.
        """
        if not query.phrase.strip():
            return []
        table_query = self.build_table_query(query, space_id, owner_id)
        try:
            return await self.backend.query(table_query)
        except SearchBackendError as exc:
            if exc.content_type is self.content_type and exc.table == self.table:
                raise
            raise exc.for_source(self.content_type, self.table) from exc


class NoteAdapter(QueryAdapter):
    content_type = ContentType.NOTE
    table = "notes"
    tag_column = "tags"


class TodoListAdapter(QueryAdapter):
    content_type = ContentType.TODO_LIST
    table = "todo_lists"


class ListAdapter(QueryAdapter):
    content_type = ContentType.LIST
    table = "lists"


class TodoItemAdapter(QueryAdapter):
    content_type = ContentType.TODO_ITEM
    table = "todo_items"
    tag_column = "tags"
    parent_relation = "todo_lists"


class ListItemAdapter(QueryAdapter):
    content_type = ContentType.LIST_ITEM
    table = "list_items"
    parent_relation = "lists"


ADAPTER_CLASSES: tuple[type[QueryAdapter], ...] = (
    NoteAdapter,
    TodoListAdapter,
    ListAdapter,
    TodoItemAdapter,
    ListItemAdapter,
)


def default_adapters(backend: TextSearchBackend) -> dict[ContentType, QueryAdapter]:
    """Build one adapter per content type over a shared backend."""
    return {cls.content_type: cls(backend) for cls in ADAPTER_CLASSES}
