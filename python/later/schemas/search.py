"""Search response schemas.

A search response is one page of mixed, typed results ordered by recency:
    { "results": [...], "page": { "offset", "limit", "has_more", "next_offset" } }

Child results (todoItem, listItem) carry parent_id and parent_name; their
updated_at is the parent's.
"""

from dataclasses import asdict
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from later.services.search.types import ContentType, SearchPage, SearchResult


class SearchResultOut(BaseModel):
    id: str
    type: ContentType
    type_label: str
    title: str
    subtitle: str | None = None
    preview: str | None = None
    tags: list[str] = Field(default_factory=list)
    updated_at: datetime
    is_child_item: bool = False
    parent_id: str | None = None
    parent_name: str | None = None
    content: dict[str, Any]

    @classmethod
    def from_result(cls, result: SearchResult) -> "SearchResultOut":
        return cls(
            id=result.id,
            type=result.type,
            type_label=result.type.display_name,
            title=result.title,
            subtitle=result.subtitle,
            preview=result.preview,
            tags=list(result.tags),
            updated_at=result.updated_at,
            is_child_item=result.is_child_item,
            parent_id=result.parent_id,
            parent_name=result.parent_name,
            content=asdict(result.content),
        )


class SearchPageInfo(BaseModel):
    """Offset pagination over the merged result list."""

    offset: int = 0
    limit: int = 0
    has_more: bool = False
    next_offset: int | None = None


class SearchResponse(BaseModel):
    results: list[SearchResultOut] = Field(default_factory=list)
    page: SearchPageInfo = Field(default_factory=SearchPageInfo)

    @classmethod
    def from_page(cls, page: SearchPage) -> "SearchResponse":
        return cls(
            results=[SearchResultOut.from_result(r) for r in page.results],
            page=SearchPageInfo(
                offset=page.offset,
                limit=page.limit,
                has_more=page.has_more,
                next_offset=page.next_offset,
            ),
        )
