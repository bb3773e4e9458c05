"""Pydantic response schemas for the search API."""

from later.schemas.search import SearchPageInfo, SearchResponse, SearchResultOut

__all__ = ["SearchPageInfo", "SearchResponse", "SearchResultOut"]
