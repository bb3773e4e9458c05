"""Map raw backend rows onto SearchResult.

One pure function per content type. Child rows take parent_id, parent_name
and updated_at from the joined parent object, so a todo item ranks by its
list's last activity.

Malformed rows (missing fields, missing parent linkage) are logged and
skipped by normalize_rows. They never fail an aggregation.
"""

from collections.abc import Callable

from later.logging import get_logger
from later.services.search.errors import MalformedRowError
from later.services.search.types import (
    ContentType,
    ListItem,
    ListModel,
    Note,
    ParentRef,
    SearchResult,
    TodoItem,
    TodoList,
)

logger = get_logger(__name__)


def normalize_note(row: dict) -> SearchResult:
    note = Note.from_row(row)
    return SearchResult(
        id=note.id,
        type=ContentType.NOTE,
        title=note.title,
        preview=note.content,
        tags=note.tags,
        updated_at=note.updated_at,
        content=note,
    )


def normalize_todo_list(row: dict) -> SearchResult:
    todo_list = TodoList.from_row(row)
    return SearchResult(
        id=todo_list.id,
        type=ContentType.TODO_LIST,
        title=todo_list.name,
        subtitle=todo_list.description,
        preview=todo_list.description,
        updated_at=todo_list.updated_at,
        content=todo_list,
    )


def normalize_list(row: dict) -> SearchResult:
    list_model = ListModel.from_row(row)
    return SearchResult(
        id=list_model.id,
        type=ContentType.LIST,
        title=list_model.name,
        updated_at=list_model.updated_at,
        content=list_model,
    )


def normalize_todo_item(row: dict) -> SearchResult:
    parent = ParentRef.from_row(row, "todo_lists")
    item = TodoItem.from_row(row)
    return SearchResult(
        id=item.id,
        type=ContentType.TODO_ITEM,
        title=item.title,
        subtitle=item.description,
        preview=item.description,
        tags=item.tags,
        updated_at=parent.updated_at,
        content=item,
        parent_id=parent.id,
        parent_name=parent.name,
    )


def normalize_list_item(row: dict) -> SearchResult:
    parent = ParentRef.from_row(row, "lists")
    item = ListItem.from_row(row)
    return SearchResult(
        id=item.id,
        type=ContentType.LIST_ITEM,
        title=item.title,
        subtitle=item.notes,
        preview=item.notes,
        updated_at=parent.updated_at,
        content=item,
        parent_id=parent.id,
        parent_name=parent.name,
    )


NORMALIZERS: dict[ContentType, Callable[[dict], SearchResult]] = {
    ContentType.NOTE: normalize_note,
    ContentType.TODO_LIST: normalize_todo_list,
    ContentType.LIST: normalize_list,
    ContentType.TODO_ITEM: normalize_todo_item,
    ContentType.LIST_ITEM: normalize_list_item,
}


def normalize_row(content_type: ContentType, row: dict) -> SearchResult:
    """Normalize a single row.

    Raises:
        MalformedRowError: If the row cannot be mapped.
    """
    if not isinstance(row, dict):
        raise MalformedRowError(f"expected an object, got {type(row).__name__}")
    try:
        return NORMALIZERS[content_type](row)
    except (TypeError, ValueError) as exc:
        raise MalformedRowError(str(exc), row_id=_safe_id(row)) from exc


def normalize_rows(content_type: ContentType, rows: list[dict]) -> list[SearchResult]:
    """Normalize rows in order, dropping (and logging) malformed ones."""
    results = []
    for row in rows:
        try:
            results.append(normalize_row(content_type, row))
        except MalformedRowError as exc:
            logger.warning(
                "search_row_skipped",
                content_type=content_type.value,
                row_id=exc.row_id,
                reason=str(exc),
            )
    return results


def _safe_id(row: dict) -> str | None:
    value = row.get("id")
    return str(value) if value is not None else None
