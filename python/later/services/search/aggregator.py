"""Search aggregation: fan out to adapters, merge, sort, window.

Algorithm:
1. Active types = query.content_types, or all five when None
2. One asyncio task per active adapter, all issued before any is awaited
3. Fail fast: the first SearchBackendError cancels the remaining tasks and
   raises AggregationError naming the failed content type
4. The whole fan-out is bounded by timeout_s (AggregationTimeoutError)
5. Rows are normalized per type; malformed rows are skipped
6. Merge in fixed ContentType order, then stable sort by updated_at desc,
   so ties keep type order and then backend order
7. Window [offset, offset + limit) over the merged list; has_more when rows
   remain past the window

No caching. Every call re-queries the backend.
"""

import asyncio
import hashlib
import time
from collections.abc import Callable, Mapping

from later.logging import get_logger
from later.services.search.adapters import QueryAdapter
from later.services.search.errors import (
    AggregationError,
    AggregationTimeoutError,
    SearchBackendError,
)
from later.services.search.normalizer import normalize_rows
from later.services.search.types import ContentType, SearchPage, SearchQuery, SearchResult

logger = get_logger(__name__)

DEFAULT_TIMEOUT_S = 10.0


def hash_query(q: str) -> str:
    """Hash a normalized query for logging (privacy-safe).

    Never log raw queries - only the hash for debugging.
    """
    q_normalized = q.strip().lower()
    return hashlib.sha256(q_normalized.encode("utf-8")).hexdigest()[:16]


class SearchAggregator:
    """Runs one aggregation per call over a fixed set of adapters.

    Args:
        adapters: Adapter per content type
        owner_id_provider: Returns the current user's id (defense-in-depth
            filter alongside row-level security)
        timeout_s: Upper bound for the whole fan-out
    """

    def __init__(
        self,
        adapters: Mapping[ContentType, QueryAdapter],
        owner_id_provider: Callable[[], str],
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ):
        self.adapters = dict(adapters)
        self.owner_id_provider = owner_id_provider
        self.timeout_s = timeout_s

    async def search(self, query: SearchQuery) -> list[SearchResult]:
        page = await self.search_page(query)
        return page.results

    async def search_page(self, query: SearchQuery) -> SearchPage:
        """Aggregate one already-validated query into a page of results.

        A blank phrase or an explicit empty content_types yields an empty
        page without touching any adapter.

        Raises:
            AggregationError: An adapter failed.
            AggregationTimeoutError: The fan-out exceeded timeout_s.
        """
        if not query.phrase.strip() or query.content_types == frozenset():
            return SearchPage.empty(offset=query.offset, limit=query.limit)

        start_time = time.monotonic()
        owner_id = self.owner_id_provider()
        active_types = [t for t in query.active_content_types if t in self.adapters]

        rows_by_type = await self._fan_out(query, owner_id, active_types)

        merged: list[SearchResult] = []
        for content_type in active_types:
            merged.extend(normalize_rows(content_type, rows_by_type[content_type]))

        # list.sort is stable: equal timestamps keep merge order
        merged.sort(key=lambda r: r.updated_at, reverse=True)

        end = query.offset + query.limit
        page = SearchPage(
            results=merged[query.offset : end],
            offset=query.offset,
            limit=query.limit,
            has_more=len(merged) > end,
        )

        logger.info(
            "search_executed",
            query_len=len(query.phrase),
            query_hash=hash_query(query.phrase),
            space_id=query.space_id,
            types_count=len(active_types),
            tags_count=len(query.tags) if query.tags else 0,
            candidates_count=len(merged),
            results_count=len(page.results),
            has_more=page.has_more,
            latency_ms=int((time.monotonic() - start_time) * 1000),
        )
        return page

    async def _fan_out(
        self,
        query: SearchQuery,
        owner_id: str,
        active_types: list[ContentType],
    ) -> dict[ContentType, list[dict]]:
        if not active_types:
            return {}

        tasks: dict[asyncio.Task, ContentType] = {
            asyncio.create_task(
                self.adapters[t].search(query, query.space_id, owner_id),
                name=f"search:{t.value}",
            ): t
            for t in active_types
        }

        try:
            pending = set(tasks)
            rows_by_type: dict[ContentType, list[dict]] = {}
            deadline = time.monotonic() + self.timeout_s

            while pending:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                done, pending = await asyncio.wait(
                    pending, timeout=remaining, return_when=asyncio.FIRST_EXCEPTION
                )
                for task in done:
                    content_type = tasks[task]
                    exc = task.exception()
                    if exc is None:
                        rows_by_type[content_type] = task.result()
                        continue
                    if isinstance(exc, SearchBackendError):
                        logger.warning(
                            "search_adapter_failed",
                            content_type=content_type.value,
                            table=exc.table,
                            error_class=exc.error_class.value,
                            status_code=exc.status_code,
                            pg_code=exc.pg_code,
                        )
                        raise AggregationError(content_type, exc) from exc
                    raise exc

            if pending:
                logger.warning(
                    "search_timed_out",
                    timeout_s=self.timeout_s,
                    pending_types=sorted(tasks[t].value for t in pending),
                )
                raise AggregationTimeoutError(self.timeout_s)

            return rows_by_type
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
                elif not task.cancelled():
                    # Mark sibling failures as retrieved
                    task.exception()
