"""Query validation.

Synchronous checks that gate an aggregation before any backend call. Checks
run in a fixed order:

1. blank space_id -> SearchValidationError(SCOPE_REQUIRED)
2. blank phrase -> None (short-circuit to an empty result, not an error)
3. phrase longer than max_query_length -> SearchValidationError(QUERY_TOO_LONG)
4. explicit empty content_types -> None (short-circuit)
5. limit/offset out of range -> SearchValidationError(INVALID_PAGINATION)
6. tags stripped, blanks and duplicates dropped; empty tags become None
"""

from later.services.search.errors import SearchValidationError, ValidationErrorKind
from later.services.search.types import SearchQuery

MAX_QUERY_LENGTH = 500
MAX_LIMIT = 200


def validate_query(
    query: SearchQuery,
    max_query_length: int = MAX_QUERY_LENGTH,
    max_limit: int = MAX_LIMIT,
) -> SearchQuery | None:
    """Validate and normalize a query.

    Returns:
        The normalized query, or None when the query short-circuits to an
        empty result.

    Raises:
        SearchValidationError: If the query is rejected.
    """
    space_id = (query.space_id or "").strip()
    if not space_id:
        raise SearchValidationError(ValidationErrorKind.SCOPE_REQUIRED)

    phrase = (query.phrase or "").strip()
    if not phrase:
        return None

    if len(phrase) > max_query_length:
        raise SearchValidationError(ValidationErrorKind.QUERY_TOO_LONG)

    if query.content_types is not None and not query.content_types:
        return None

    if query.limit < 1 or query.limit > max_limit:
        raise SearchValidationError(
            ValidationErrorKind.INVALID_PAGINATION,
            f"limit must be between 1 and {max_limit}",
        )
    if query.offset < 0:
        raise SearchValidationError(
            ValidationErrorKind.INVALID_PAGINATION, "offset must be >= 0"
        )

    return query.replace(phrase=phrase, space_id=space_id, tags=_normalize_tags(query.tags))


def _normalize_tags(tags: tuple[str, ...] | None) -> tuple[str, ...] | None:
    if not tags:
        return None
    seen: dict[str, None] = {}
    for tag in tags:
        cleaned = tag.strip()
        if cleaned:
            seen.setdefault(cleaned, None)
    return tuple(seen) or None
