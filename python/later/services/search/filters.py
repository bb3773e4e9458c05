"""Currently selected search filters.

SearchFilters is a value; SearchFiltersController holds the long-lived
selection and notifies listeners on change. The default state is all
content types and no tags. Nothing is persisted.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass

from later.services.search.types import ContentType, SearchQuery

FiltersListener = Callable[["SearchFilters"], None]


@dataclass(frozen=True)
class SearchFilters:
    content_types: frozenset[ContentType] | None = None
    tags: tuple[str, ...] | None = None

    @property
    def has_active_filters(self) -> bool:
        return bool(self.content_types) or bool(self.tags)

    def replace(
        self,
        content_types: Iterable[ContentType] | None = None,
        tags: Iterable[str] | None = None,
        clear_content_types: bool = False,
        clear_tags: bool = False,
    ) -> "SearchFilters":
        """copyWith: None keeps the current value, clear_* resets it."""
        new_types = self.content_types
        if clear_content_types:
            new_types = None
        elif content_types is not None:
            new_types = frozenset(content_types)

        new_tags = self.tags
        if clear_tags:
            new_tags = None
        elif tags is not None:
            new_tags = tuple(tags)

        return SearchFilters(content_types=new_types, tags=new_tags)

    def to_query(self, phrase: str, space_id: str, limit: int = 50, offset: int = 0) -> SearchQuery:
        return SearchQuery(
            phrase=phrase,
            space_id=space_id,
            content_types=self.content_types,
            tags=self.tags,
            limit=limit,
            offset=offset,
        )


class SearchFiltersController:
    """Holds the selected filters. Empty or None setters clear the filter."""

    def __init__(self, initial: SearchFilters | None = None):
        self._state = initial or SearchFilters()
        self._listeners: list[FiltersListener] = []

    @property
    def state(self) -> SearchFilters:
        return self._state

    def set_content_types(self, content_types: Iterable[ContentType] | None) -> None:
        types = frozenset(content_types) if content_types is not None else frozenset()
        if types:
            self._set(self._state.replace(content_types=types))
        else:
            self._set(self._state.replace(clear_content_types=True))

    def set_tags(self, tags: Iterable[str] | None) -> None:
        cleaned = tuple(dict.fromkeys(t.strip() for t in tags or () if t.strip()))
        if cleaned:
            self._set(self._state.replace(tags=cleaned))
        else:
            self._set(self._state.replace(clear_tags=True))

    def reset(self) -> None:
        self._set(SearchFilters())

    def subscribe(self, listener: FiltersListener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, new_state: SearchFilters) -> None:
        if new_state == self._state:
            return
        self._state = new_state
        for listener in list(self._listeners):
            listener(new_state)
