"""Search service: validator followed by aggregator.

- Short-circuited queries (blank phrase, explicit empty content types)
  return an empty result without touching any adapter
- Search errors propagate unchanged
- Any other exception is wrapped in UnexpectedSearchError
"""

from collections.abc import Callable

from later.config import Settings
from later.logging import get_logger
from later.services.search.adapters import default_adapters
from later.services.search.aggregator import SearchAggregator, hash_query
from later.services.search.backend import TextSearchBackend
from later.services.search.errors import SearchError, UnexpectedSearchError
from later.services.search.types import SearchPage, SearchQuery, SearchResult
from later.services.search.validator import MAX_LIMIT, MAX_QUERY_LENGTH, validate_query

logger = get_logger(__name__)


class SearchService:
    def __init__(
        self,
        aggregator: SearchAggregator,
        max_query_length: int = MAX_QUERY_LENGTH,
        max_limit: int = MAX_LIMIT,
    ):
        self.aggregator = aggregator
        self.max_query_length = max_query_length
        self.max_limit = max_limit

    async def search(self, query: SearchQuery) -> list[SearchResult]:
        page = await self.search_page(query)
        return page.results

    async def search_page(self, query: SearchQuery) -> SearchPage:
        """Validate then aggregate.

        Raises:
            SearchError: Validation, aggregation or unexpected failure.
        """
        try:
            validated = validate_query(
                query,
                max_query_length=self.max_query_length,
                max_limit=self.max_limit,
            )
            if validated is None:
                logger.info(
                    "search_short_circuited",
                    query_len=len((query.phrase or "").strip()),
                    content_types_empty=query.content_types is not None
                    and not query.content_types,
                )
                return SearchPage.empty(offset=max(query.offset, 0), limit=query.limit)
            return await self.aggregator.search_page(validated)
        except SearchError as exc:
            logger.warning(
                "search_failed",
                error=type(exc).__name__,
                query_len=len(query.phrase or ""),
                query_hash=hash_query(query.phrase or ""),
            )
            raise
        except Exception as exc:
            logger.error(
                "search_failed",
                error=type(exc).__name__,
                query_len=len(query.phrase or ""),
                query_hash=hash_query(query.phrase or ""),
                exc_info=True,
            )
            raise UnexpectedSearchError(exc) from exc


def create_search_service(
    backend: TextSearchBackend,
    owner_id_provider: Callable[[], str],
    settings: Settings,
) -> SearchService:
    """Wire the default adapters, aggregator and validator limits."""
    aggregator = SearchAggregator(
        default_adapters(backend),
        owner_id_provider,
        timeout_s=settings.search_timeout_s,
    )
    return SearchService(
        aggregator,
        max_query_length=settings.search_max_query_length,
        max_limit=settings.search_max_limit,
    )
