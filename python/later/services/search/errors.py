"""Search error taxonomy and backend error classification.

Error kinds:
- SearchValidationError: raised by the validator before any backend call
- SearchBackendError: one PostgREST call failed (network, query, outage)
- AggregationError: fail-fast wrapping of the first backend failure
- AggregationTimeoutError: the whole fan-out exceeded its time budget
- UnexpectedSearchError: anything else, wrapped by the service
- MalformedRowError: internal, raised by record parsing and swallowed by
  the normalizer (the row is logged and skipped)

Backend error classes (PostgREST / Postgres):
- PERMISSION_DENIED: 401/403 or SQLSTATE 42501
- TIMEOUT: client timeout or SQLSTATE 57014 (statement canceled)
- UNAVAILABLE: 5xx or network failure
- BAD_QUERY: 400, PGRST* codes, SQLSTATE 42601 / 42703 / 42P01
- GENERIC: everything else
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from later.services.search.types import ContentType


class ValidationErrorKind(str, Enum):
    """Reasons a query is rejected before aggregation."""

    SCOPE_REQUIRED = "scope_required"
    QUERY_TOO_LONG = "query_too_long"
    INVALID_PAGINATION = "invalid_pagination"


class BackendErrorClass(str, Enum):
    """Normalized classification of a failed backend call."""

    PERMISSION_DENIED = "permission_denied"
    TIMEOUT = "timeout"
    UNAVAILABLE = "unavailable"
    BAD_QUERY = "bad_query"
    GENERIC = "generic"

    @property
    def retryable(self) -> bool:
        return self in (BackendErrorClass.TIMEOUT, BackendErrorClass.UNAVAILABLE)


_DEFAULT_VALIDATION_MESSAGES = {
    ValidationErrorKind.SCOPE_REQUIRED: "scope required",
    ValidationErrorKind.QUERY_TOO_LONG: "query too long",
    ValidationErrorKind.INVALID_PAGINATION: "invalid pagination",
}


class SearchError(Exception):
    """Base class for every error surfaced by the search subsystem."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class SearchValidationError(SearchError):
    """Query rejected by the validator. Always recoverable by the caller."""

    def __init__(self, kind: ValidationErrorKind, message: str | None = None):
        self.kind = kind
        super().__init__(message or _DEFAULT_VALIDATION_MESSAGES[kind])


class SearchBackendError(SearchError):
    """A single backend call failed.

    Attributes:
        error_class: Normalized classification
        content_type: Content type whose adapter issued the call (if known)
        table: Backend table queried (if known)
        status_code: HTTP status returned by PostgREST (if any)
        pg_code: Postgres SQLSTATE or PGRST code from the error body (if any)
    """

    def __init__(
        self,
        error_class: BackendErrorClass,
        message: str,
        content_type: ContentType | None = None,
        table: str | None = None,
        status_code: int | None = None,
        pg_code: str | None = None,
    ):
        self.error_class = error_class
        self.content_type = content_type
        self.table = table
        self.status_code = status_code
        self.pg_code = pg_code
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        return self.error_class.retryable

    def for_source(self, content_type: ContentType, table: str) -> SearchBackendError:
        """Return a copy tagged with the adapter that issued the call."""
        return SearchBackendError(
            self.error_class,
            self.message,
            content_type=content_type,
            table=table,
            status_code=self.status_code,
            pg_code=self.pg_code,
        )

    def __str__(self) -> str:
        where = f" [{self.table}]" if self.table else ""
        return f"{self.error_class.value}{where}: {self.message}"


class AggregationError(SearchError):
    """The aggregation failed because one adapter failed (fail-fast)."""

    def __init__(self, failed_type: ContentType, cause: SearchBackendError):
        self.failed_type = failed_type
        self.cause = cause
        super().__init__(f"search failed for {failed_type.value}: {cause.message}")

    @property
    def retryable(self) -> bool:
        return self.cause.retryable


class AggregationTimeoutError(SearchError):
    """The aggregation did not finish within its time budget."""

    def __init__(self, timeout_s: float):
        self.timeout_s = timeout_s
        super().__init__(f"search timed out after {timeout_s:g}s")

    @property
    def retryable(self) -> bool:
        return True


class UnexpectedSearchError(SearchError):
    """Wraps a non-search exception raised somewhere in the pipeline."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"unexpected search failure: {type(cause).__name__}")


class MalformedRowError(Exception):
    """A backend row is missing required fields or parent linkage."""

    def __init__(self, message: str, row_id: str | None = None):
        self.row_id = row_id
        super().__init__(message)


_BAD_QUERY_PG_CODES = {"42601", "42703", "42P01", "42883", "22P02"}


def classify_backend_error(
    status_code: int | None,
    json_body: dict | None,
    exception: Exception | None,
) -> BackendErrorClass:
    """Classify a failed PostgREST call into a normalized error class.

    Args:
        status_code: HTTP status code (if a response was received)
        json_body: Parsed PostgREST error body (if available)
        exception: The transport exception raised (if any)

    Returns:
        The matching BackendErrorClass.
    """
    if exception is not None:
        if isinstance(exception, httpx.TimeoutException):
            return BackendErrorClass.TIMEOUT
        if isinstance(exception, httpx.TransportError):
            return BackendErrorClass.UNAVAILABLE

    pg_code = ""
    if json_body:
        pg_code = str(json_body.get("code") or "")

    if pg_code == "42501" or status_code in (401, 403):
        return BackendErrorClass.PERMISSION_DENIED
    if pg_code == "57014":
        return BackendErrorClass.TIMEOUT
    if pg_code.startswith("PGRST") or pg_code in _BAD_QUERY_PG_CODES:
        return BackendErrorClass.BAD_QUERY

    if status_code is None:
        return BackendErrorClass.GENERIC
    if status_code in (408, 504):
        return BackendErrorClass.TIMEOUT
    if status_code >= 500:
        return BackendErrorClass.UNAVAILABLE
    if status_code == 400:
        return BackendErrorClass.BAD_QUERY

    return BackendErrorClass.GENERIC
