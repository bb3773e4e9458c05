"""Error envelope and exception handlers.

Every error response has the shape:
    { "error": { "code": "E_...", "message": "...", "request_id": "..." } }

Search domain errors are translated to API codes here, at the HTTP boundary,
so the search package never depends on FastAPI.
"""

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from later.errors import ApiError, ApiErrorCode
from later.logging import get_logger, get_request_id
from later.services.search.errors import (
    AggregationError,
    AggregationTimeoutError,
    BackendErrorClass,
    SearchError,
    SearchValidationError,
    ValidationErrorKind,
)

logger = get_logger(__name__)

_VALIDATION_CODES = {
    ValidationErrorKind.SCOPE_REQUIRED: ApiErrorCode.E_SCOPE_REQUIRED,
    ValidationErrorKind.QUERY_TOO_LONG: ApiErrorCode.E_QUERY_TOO_LONG,
    ValidationErrorKind.INVALID_PAGINATION: ApiErrorCode.E_INVALID_REQUEST,
}

_STATUS_TO_CODE = {
    400: ApiErrorCode.E_INVALID_REQUEST,
    401: ApiErrorCode.E_UNAUTHENTICATED,
    403: ApiErrorCode.E_FORBIDDEN,
    404: ApiErrorCode.E_NOT_FOUND,
    422: ApiErrorCode.E_INVALID_REQUEST,
}


def error_response(
    code: ApiErrorCode, message: str, request_id: str | None = None
) -> dict[str, Any]:
    """Build the error envelope, taking request_id from context when not given."""
    if request_id is None:
        request_id = get_request_id()

    error = {"code": code.value, "message": message}
    if request_id:
        error["request_id"] = request_id

    return {"error": error}


def search_error_to_api_error(exc: SearchError) -> ApiError:
    """Map a search domain error onto an API error code.

    - validation kinds map to E_SCOPE_REQUIRED / E_QUERY_TOO_LONG / E_INVALID_REQUEST
    - a permission-denied backend failure maps to E_FORBIDDEN
    - a timeout (aggregation or backend) maps to E_SEARCH_TIMEOUT
    - other aggregation failures map to E_SEARCH_UNAVAILABLE
    - anything else maps to E_INTERNAL with a generic message
    """
    if isinstance(exc, SearchValidationError):
        return ApiError(_VALIDATION_CODES[exc.kind], exc.message)

    if isinstance(exc, AggregationTimeoutError):
        return ApiError(ApiErrorCode.E_SEARCH_TIMEOUT, exc.message)

    if isinstance(exc, AggregationError):
        error_class = exc.cause.error_class
        if error_class == BackendErrorClass.PERMISSION_DENIED:
            return ApiError(ApiErrorCode.E_FORBIDDEN, "Search not permitted")
        if error_class == BackendErrorClass.TIMEOUT:
            return ApiError(ApiErrorCode.E_SEARCH_TIMEOUT, "Search timed out")
        return ApiError(
            ApiErrorCode.E_SEARCH_UNAVAILABLE,
            f"Search failed for {exc.failed_type.display_name}",
        )

    return ApiError(ApiErrorCode.E_INTERNAL, "Internal server error")


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.code, exc.message),
    )


async def search_error_handler(request: Request, exc: SearchError) -> JSONResponse:
    api_error = search_error_to_api_error(exc)
    return JSONResponse(
        status_code=api_error.status_code,
        content=error_response(api_error.code, api_error.message),
    )


async def http_exception_handler(request: Request, exc: Any) -> JSONResponse:
    """Wrap FastAPI/Starlette HTTPException in the error envelope."""
    code = _STATUS_TO_CODE.get(exc.status_code, ApiErrorCode.E_INTERNAL)
    message = str(exc.detail) if exc.detail else "An error occurred"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(code, message),
    )


async def validation_exception_handler(request: Request, exc: Any) -> JSONResponse:
    """Report query parameter validation failures as E_INVALID_REQUEST."""
    errors = exc.errors() if hasattr(exc, "errors") else []
    fields = sorted({".".join(str(p) for p in e.get("loc", ())[1:]) for e in errors})
    message = f"Invalid parameters: {', '.join(fields)}" if fields else "Invalid request"
    return JSONResponse(
        status_code=400,
        content=error_response(ApiErrorCode.E_INVALID_REQUEST, message),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return 500 E_INTERNAL; details are logged, never sent to the client."""
    logger.exception("Unhandled exception: %s", exc)

    return JSONResponse(
        status_code=500,
        content=error_response(ApiErrorCode.E_INTERNAL, "Internal server error"),
    )
