"""HTTP-facing error codes.

Handlers in later.responses render every ApiError as
    { "error": { "code", "message", "request_id" } }
with the status from ERROR_CODE_TO_STATUS. Search domain errors never
subclass ApiError; later.responses translates them at the boundary.
"""

from enum import Enum


class ApiErrorCode(str, Enum):
    E_UNAUTHENTICATED = "E_UNAUTHENTICATED"
    E_FORBIDDEN = "E_FORBIDDEN"
    E_NOT_FOUND = "E_NOT_FOUND"

    # Rejected search input
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_SCOPE_REQUIRED = "E_SCOPE_REQUIRED"
    E_QUERY_TOO_LONG = "E_QUERY_TOO_LONG"

    # Upstream (JWKS, PostgREST) and internal failures
    E_AUTH_UNAVAILABLE = "E_AUTH_UNAVAILABLE"
    E_SEARCH_UNAVAILABLE = "E_SEARCH_UNAVAILABLE"
    E_SEARCH_TIMEOUT = "E_SEARCH_TIMEOUT"
    E_INTERNAL = "E_INTERNAL"


_STATUS_GROUPS: dict[int, tuple[ApiErrorCode, ...]] = {
    400: (
        ApiErrorCode.E_INVALID_REQUEST,
        ApiErrorCode.E_SCOPE_REQUIRED,
        ApiErrorCode.E_QUERY_TOO_LONG,
    ),
    401: (ApiErrorCode.E_UNAUTHENTICATED,),
    403: (ApiErrorCode.E_FORBIDDEN,),
    404: (ApiErrorCode.E_NOT_FOUND,),
    500: (ApiErrorCode.E_INTERNAL,),
    502: (ApiErrorCode.E_SEARCH_UNAVAILABLE,),
    503: (ApiErrorCode.E_AUTH_UNAVAILABLE,),
    504: (ApiErrorCode.E_SEARCH_TIMEOUT,),
}

ERROR_CODE_TO_STATUS: dict[ApiErrorCode, int] = {
    code: status for status, codes in _STATUS_GROUPS.items() for code in codes
}


class ApiError(Exception):
    """An error with a stable code; status_code is derived from the code."""

    def __init__(self, code: ApiErrorCode, message: str):
        self.code = code
        self.message = message
        self.status_code = ERROR_CODE_TO_STATUS.get(code, 500)
        super().__init__(message)


class InvalidRequestError(ApiError):
    def __init__(
        self, code: ApiErrorCode = ApiErrorCode.E_INVALID_REQUEST, message: str = "Invalid request"
    ):
        super().__init__(code, message)
