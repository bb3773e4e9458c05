"""Canonical search types.

- ContentType: closed set of searchable content kinds
- Note / TodoList / ListModel / TodoItem / ListItem: typed records parsed
  from PostgREST rows, carried on SearchResult.content
- ParentRef: parent container joined onto a child row
- SearchQuery: immutable input to one aggregation
- SearchResult: one normalized row
- SearchPage: a pagination window over the merged, sorted results

Invariants:
- SearchResult.parent_id and parent_name are both set iff the result is a
  child item (todoItem, listItem)
- Child results carry the parent's updated_at, not their own
"""

from collections.abc import Iterable
from dataclasses import dataclass, field, replace as dc_replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union

from later.services.search.errors import MalformedRowError


class ContentType(str, Enum):
    """Searchable content kinds.

    Declaration order is the merge order used to break recency ties.
    """

    NOTE = "note"
    TODO_LIST = "todoList"
    LIST = "list"
    TODO_ITEM = "todoItem"
    LIST_ITEM = "listItem"

    @property
    def is_container(self) -> bool:
        return self in _CONTAINER_TYPES

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_CONTAINER_TYPES = frozenset({ContentType.NOTE, ContentType.TODO_LIST, ContentType.LIST})

_DISPLAY_NAMES = {
    ContentType.NOTE: "Note",
    ContentType.TODO_LIST: "Todo List",
    ContentType.LIST: "List",
    ContentType.TODO_ITEM: "Todo Item",
    ContentType.LIST_ITEM: "List Item",
}

ALL_CONTENT_TYPES: tuple[ContentType, ...] = tuple(ContentType)


def parse_content_types(values: Iterable[str]) -> frozenset[ContentType]:
    """Convert wire strings (e.g. "todoItem") into ContentType members.

    Raises:
        ValueError: If any value is not a known content type.
    """
    parsed = set()
    for value in values:
        try:
            parsed.add(ContentType(value))
        except ValueError:
            allowed = ", ".join(t.value for t in ContentType)
            raise ValueError(f"Unknown content type '{value}'. Allowed: {allowed}") from None
    return frozenset(parsed)


# =============================================================================
# Row parsing helpers
# =============================================================================


def _require(row: dict, key: str) -> Any:
    value = row.get(key)
    if value is None:
        raise MalformedRowError(f"missing '{key}'", row_id=_row_id(row))
    return value


def _row_id(row: dict) -> str | None:
    value = row.get("id")
    return str(value) if value is not None else None


def _parse_ts(row: dict, key: str, required: bool = True) -> datetime | None:
    raw = _require(row, key) if required else row.get(key)
    if raw is None:
        return None
    if isinstance(raw, datetime):
        parsed = raw
    else:
        try:
            parsed = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
        except ValueError:
            raise MalformedRowError(f"unparseable '{key}'", row_id=_row_id(row)) from None
    # Offset-less timestamps are UTC; naive and aware values cannot be compared
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_tags(row: dict) -> tuple[str, ...]:
    tags = row.get("tags") or []
    if not isinstance(tags, list):
        raise MalformedRowError("'tags' is not a list", row_id=_row_id(row))
    return tuple(str(t) for t in tags)


# =============================================================================
# Records
# =============================================================================


@dataclass(frozen=True)
class Note:
    id: str
    title: str
    content: str | None
    space_id: str
    user_id: str
    tags: tuple[str, ...]
    created_at: datetime
    updated_at: datetime
    sort_order: int = 0

    @classmethod
    def from_row(cls, row: dict) -> "Note":
        return cls(
            id=str(_require(row, "id")),
            title=_require(row, "title"),
            content=row.get("content"),
            space_id=str(_require(row, "space_id")),
            user_id=str(_require(row, "user_id")),
            tags=_parse_tags(row),
            created_at=_parse_ts(row, "created_at"),
            updated_at=_parse_ts(row, "updated_at"),
            sort_order=row.get("sort_order") or 0,
        )


@dataclass(frozen=True)
class TodoList:
    id: str
    space_id: str
    user_id: str
    name: str
    description: str | None
    total_item_count: int
    completed_item_count: int
    created_at: datetime
    updated_at: datetime
    sort_order: int = 0

    @classmethod
    def from_row(cls, row: dict) -> "TodoList":
        return cls(
            id=str(_require(row, "id")),
            space_id=str(_require(row, "space_id")),
            user_id=str(_require(row, "user_id")),
            name=_require(row, "name"),
            description=row.get("description"),
            total_item_count=row.get("total_item_count") or 0,
            completed_item_count=row.get("completed_item_count") or 0,
            created_at=_parse_ts(row, "created_at"),
            updated_at=_parse_ts(row, "updated_at"),
            sort_order=row.get("sort_order") or 0,
        )


@dataclass(frozen=True)
class ListModel:
    """A user list (bullets, numbered, checkboxes or plain)."""

    id: str
    space_id: str
    user_id: str
    name: str
    icon: str | None
    style: str
    total_item_count: int
    checked_item_count: int
    created_at: datetime
    updated_at: datetime
    sort_order: int = 0

    @classmethod
    def from_row(cls, row: dict) -> "ListModel":
        return cls(
            id=str(_require(row, "id")),
            space_id=str(_require(row, "space_id")),
            user_id=str(_require(row, "user_id")),
            name=_require(row, "name"),
            icon=row.get("icon"),
            style=row.get("style") or "bullets",
            total_item_count=row.get("total_item_count") or 0,
            checked_item_count=row.get("checked_item_count") or 0,
            created_at=_parse_ts(row, "created_at"),
            updated_at=_parse_ts(row, "updated_at"),
            sort_order=row.get("sort_order") or 0,
        )


@dataclass(frozen=True)
class TodoItem:
    id: str
    todo_list_id: str
    title: str
    description: str | None
    is_completed: bool
    due_date: datetime | None
    priority: str | None
    tags: tuple[str, ...]
    sort_order: int = 0

    @classmethod
    def from_row(cls, row: dict) -> "TodoItem":
        return cls(
            id=str(_require(row, "id")),
            todo_list_id=str(_require(row, "todo_list_id")),
            title=_require(row, "title"),
            description=row.get("description"),
            is_completed=bool(row.get("is_completed") or False),
            due_date=_parse_ts(row, "due_date", required=False),
            priority=row.get("priority"),
            tags=_parse_tags(row),
            sort_order=row.get("sort_order") or 0,
        )


@dataclass(frozen=True)
class ListItem:
    id: str
    list_id: str
    title: str
    notes: str | None
    is_checked: bool
    sort_order: int = 0

    @classmethod
    def from_row(cls, row: dict) -> "ListItem":
        return cls(
            id=str(_require(row, "id")),
            list_id=str(_require(row, "list_id")),
            title=_require(row, "title"),
            notes=row.get("notes"),
            is_checked=bool(row.get("is_checked") or False),
            sort_order=row.get("sort_order") or 0,
        )


@dataclass(frozen=True)
class ParentRef:
    """Parent container embedded in a child row by the inner join."""

    id: str
    name: str
    updated_at: datetime

    @classmethod
    def from_row(cls, row: dict, relation: str) -> "ParentRef":
        nested = row.get(relation)
        # PostgREST embeds many-to-one relations as an object, but tolerate a
        # single-element array.
        if isinstance(nested, list) and len(nested) == 1:
            nested = nested[0]
        if not isinstance(nested, dict):
            raise MalformedRowError(f"missing parent '{relation}'", row_id=_row_id(row))
        try:
            return cls(
                id=str(_require(nested, "id")),
                name=_require(nested, "name"),
                updated_at=_parse_ts(nested, "updated_at"),
            )
        except MalformedRowError as exc:
            raise MalformedRowError(f"parent {exc}", row_id=_row_id(row)) from None


SearchContent = Union[Note, TodoList, ListModel, TodoItem, ListItem]


# =============================================================================
# Query / result types
# =============================================================================


@dataclass(frozen=True)
class SearchQuery:
    """Immutable input to one aggregation.

    Attributes:
        phrase: Raw user text (trimmed by the validator)
        space_id: Tenant scope; every result belongs to this space
        content_types: None runs every adapter; an empty set short-circuits
        tags: Applied only to content types that carry tags (note, todoItem)
        limit: Window size over the merged results
        offset: Window start over the merged results
    """

    phrase: str
    space_id: str
    content_types: frozenset[ContentType] | None = None
    tags: tuple[str, ...] | None = None
    limit: int = 50
    offset: int = 0

    def __post_init__(self) -> None:
        if self.content_types is not None and not isinstance(self.content_types, frozenset):
            object.__setattr__(self, "content_types", frozenset(self.content_types))
        if isinstance(self.tags, str):
            object.__setattr__(self, "tags", (self.tags,))
        elif self.tags is not None and not isinstance(self.tags, tuple):
            object.__setattr__(self, "tags", tuple(self.tags))

    def replace(self, **changes: Any) -> "SearchQuery":
        """Return a copy with the given fields changed."""
        return dc_replace(self, **changes)

    @property
    def active_content_types(self) -> tuple[ContentType, ...]:
        """Content types to query, in merge order."""
        if self.content_types is None:
            return ALL_CONTENT_TYPES
        return tuple(t for t in ALL_CONTENT_TYPES if t in self.content_types)


@dataclass(frozen=True, eq=False)
class SearchResult:
    """One normalized search hit.

    Equality and hashing use (id, type) only.
    """

    id: str
    type: ContentType
    title: str
    updated_at: datetime
    content: SearchContent
    subtitle: str | None = None
    preview: str | None = None
    tags: tuple[str, ...] = field(default_factory=tuple)
    parent_id: str | None = None
    parent_name: str | None = None

    def __post_init__(self) -> None:
        has_parent = self.parent_id is not None and self.parent_name is not None
        has_any_parent = self.parent_id is not None or self.parent_name is not None
        if self.is_child_item and not has_parent:
            raise ValueError(f"{self.type.value} result {self.id} requires parent_id and parent_name")
        if not self.is_child_item and has_any_parent:
            raise ValueError(f"{self.type.value} result {self.id} must not carry a parent")

    @property
    def is_child_item(self) -> bool:
        return not self.type.is_container

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SearchResult):
            return NotImplemented
        return self.id == other.id and self.type == other.type

    def __hash__(self) -> int:
        return hash((self.id, self.type))


@dataclass(frozen=True)
class SearchPage:
    results: list[SearchResult]
    offset: int
    limit: int
    has_more: bool

    @property
    def next_offset(self) -> int | None:
        if not self.has_more:
            return None
        return self.offset + self.limit

    @classmethod
    def empty(cls, offset: int = 0, limit: int = 0) -> "SearchPage":
        return cls(results=[], offset=offset, limit=limit, has_more=False)
