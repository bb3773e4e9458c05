"""Debounced, cancellable search state holder.

States:
- SearchIdle: initial, and after clear()
- SearchLoading: set immediately on every search() call, before the delay
- SearchData: the latest aggregation succeeded
- SearchFailed: the latest aggregation failed; holds the error verbatim

Every search() cancels the pending debounce, takes the next generation
number and schedules a new debounce on the running event loop. When the
delay elapses the aggregation starts in its own task. In-flight
aggregations are never cancelled at the I/O level; a result is applied only
if its generation is still the latest and the controller is not disposed.
clear() and dispose() also bump the generation so late results are dropped.

No automatic retries. retry() re-issues the last query on request.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Union

from later.logging import get_logger, set_search_context
from later.services.search.errors import SearchError, UnexpectedSearchError
from later.services.search.service import SearchService
from later.services.search.types import SearchQuery, SearchResult

logger = get_logger(__name__)

DEFAULT_DEBOUNCE_S = 0.3


@dataclass(frozen=True)
class SearchIdle:
    results: list[SearchResult] = field(default_factory=list)


@dataclass(frozen=True)
class SearchLoading:
    pass


@dataclass(frozen=True)
class SearchData:
    results: list[SearchResult]


@dataclass(frozen=True)
class SearchFailed:
    error: SearchError


SearchState = Union[SearchIdle, SearchLoading, SearchData, SearchFailed]
StateListener = Callable[[SearchState], None]


class SearchController:
    def __init__(self, service: SearchService, debounce_s: float = DEFAULT_DEBOUNCE_S):
        self._service = service
        self._debounce_s = debounce_s
        self._state: SearchState = SearchIdle()
        self._listeners: list[StateListener] = []
        self._generation = 0
        self._debounce_task: asyncio.Task | None = None
        self._inflight: set[asyncio.Task] = set()
        self._last_query: SearchQuery | None = None
        self._disposed = False

    @property
    def state(self) -> SearchState:
        return self._state

    @property
    def last_query(self) -> SearchQuery | None:
        return self._last_query

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def disposed(self) -> bool:
        return self._disposed

    def search(self, query: SearchQuery) -> None:
        """Schedule a debounced aggregation. Must be called on the event loop."""
        self._schedule(query, self._debounce_s)

    def retry(self) -> None:
        """Re-issue the last query without waiting for the debounce delay."""
        if self._last_query is not None:
            self._schedule(self._last_query, 0)

    def clear(self) -> None:
        """Cancel pending work, drop in-flight results and return to idle."""
        self._cancel_debounce()
        if self._disposed:
            return
        self._generation += 1
        self._set_state(SearchIdle())

    def dispose(self) -> None:
        """Tear down. Later search() calls are ignored and late results dropped."""
        self._cancel_debounce()
        self._generation += 1
        self._disposed = True
        self._listeners.clear()

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener called on every state change."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def wait_until_settled(self) -> None:
        """Wait for the pending debounce and every in-flight aggregation."""
        while True:
            pending = set(self._inflight)
            if self._debounce_task is not None and not self._debounce_task.done():
                pending.add(self._debounce_task)
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    # -------------------------------------------------------------------------

    def _schedule(self, query: SearchQuery, delay_s: float) -> None:
        self._cancel_debounce()
        if self._disposed:
            return
        self._last_query = query
        self._generation += 1
        self._set_state(SearchLoading())
        loop = asyncio.get_running_loop()
        self._debounce_task = loop.create_task(self._debounce(query, delay_s, self._generation))

    async def _debounce(self, query: SearchQuery, delay_s: float, generation: int) -> None:
        if delay_s > 0:
            await asyncio.sleep(delay_s)
        if self._disposed or generation != self._generation:
            return
        task = asyncio.create_task(self._run(query, generation))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _run(self, query: SearchQuery, generation: int) -> None:
        set_search_context(query.space_id, generation)
        try:
            results = await self._service.search(query)
        except SearchError as exc:
            self._apply(generation, SearchFailed(exc))
        except Exception as exc:
            self._apply(generation, SearchFailed(UnexpectedSearchError(exc)))
        else:
            self._apply(generation, SearchData(results))

    def _apply(self, generation: int, state: SearchState) -> None:
        if self._disposed or generation != self._generation:
            logger.info(
                "search_result_discarded",
                generation=generation,
                latest_generation=self._generation,
                disposed=self._disposed,
            )
            return
        self._set_state(state)

    def _cancel_debounce(self) -> None:
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = None

    def _set_state(self, state: SearchState) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("search_listener_failed", state=type(state).__name__)
