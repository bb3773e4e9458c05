"""Search routes.

Routes are transport-only: parse parameters, call the search service once,
serialize the page. Validation and aggregation live in later.services.search.

The HTTP surface is one-shot (no debounce). Debouncing belongs to the
in-process SearchController used by the UI.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from later.api.deps import get_search_service
from later.config import get_settings
from later.errors import InvalidRequestError
from later.logging import set_search_context
from later.schemas.search import SearchResponse
from later.services.search import SearchQuery, SearchService, parse_content_types

router = APIRouter()


def _split_csv(value: str | None) -> list[str] | None:
    if value is None:
        return None
    return [part.strip() for part in value.split(",") if part.strip()]


@router.get("/search")
async def search(
    service: Annotated[SearchService, Depends(get_search_service)],
    q: str = Query(default="", description="Search phrase"),
    space_id: str = Query(default="", description="Space to search in (required)"),
    types: str | None = Query(
        default=None,
        description="Comma-separated content types (note, todoList, list, todoItem, listItem). "
        "An empty value searches nothing.",
    ),
    tags: str | None = Query(default=None, description="Comma-separated tags; all must match"),
    limit: int | None = Query(default=None, description="Page size"),
    offset: int = Query(default=0, description="Page start over the merged results"),
) -> dict:
    """Search notes, todo lists, lists, todo items and list items in one space.

    Results are ordered by updated_at descending; todo items and list items
    rank by their parent's updated_at.

    - Blank `q` returns an empty page
    - `q` longer than the configured maximum returns 400 E_QUERY_TOO_LONG
    - Missing `space_id` returns 400 E_SCOPE_REQUIRED
    - Any backend failure fails the whole search (502 / 504)
    """
    content_types = None
    type_list = _split_csv(types)
    if type_list is not None:
        try:
            content_types = parse_content_types(type_list)
        except ValueError as e:
            raise InvalidRequestError(message=str(e)) from e

    set_search_context(space_id or None)

    query = SearchQuery(
        phrase=q,
        space_id=space_id,
        content_types=content_types,
        tags=_split_csv(tags),
        limit=limit if limit is not None else get_settings().search_default_limit,
        offset=offset,
    )
    page = await service.search_page(query)
    return SearchResponse.from_page(page).model_dump(mode="json")
