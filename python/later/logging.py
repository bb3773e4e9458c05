"""structlog setup for the search API.

Every entry is rendered through the stdlib root handler (JSON in staging and
prod, console locally) and enriched from context variables:
- request_id, user_id, path, method: bound per HTTP request
- space_id, search_generation: bound per aggregation task

Raw search phrases are never logged. Callers log `query_len` and
`query_hash`; the drop_search_phrases processor strips any phrase-like key
that slips through.

Usage:
    from later.logging import configure_logging, get_logger

    configure_logging(json_format=False)
    logger = get_logger(__name__)
    logger.info("search_executed", query_len=4, query_hash="ab12...")
"""

import logging
import sys
from contextvars import ContextVar
from typing import Any

import structlog

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
path_var: ContextVar[str | None] = ContextVar("path", default=None)
method_var: ContextVar[str | None] = ContextVar("method", default=None)
space_id_var: ContextVar[str | None] = ContextVar("space_id", default=None)
search_generation_var: ContextVar[int | None] = ContextVar("search_generation", default=None)

# Request fields overwrite; search fields yield to explicit event values
_REQUEST_VARS: tuple[ContextVar, ...] = (request_id_var, user_id_var, path_var, method_var)
_SEARCH_VARS: tuple[ContextVar, ...] = (space_id_var, search_generation_var)

_PHRASE_KEYS = frozenset({"q", "phrase", "query", "search_phrase"})

_NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def add_request_context(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Inject bound context variables into the event."""
    for var in _REQUEST_VARS:
        value = var.get()
        if value:
            event_dict[var.name] = value
    for var in _SEARCH_VARS:
        value = var.get()
        if value is not None and value != "":
            event_dict.setdefault(var.name, value)
    return event_dict


def drop_search_phrases(logger: Any, method_name: str, event_dict: dict) -> dict:
    for key in _PHRASE_KEYS & event_dict.keys():
        del event_dict[key]
    return event_dict


def configure_logging(json_format: bool = True, level: int = logging.INFO) -> None:
    """Route structlog and stdlib logging through one stdout handler.

    Args:
        json_format: JSON lines if True, otherwise the structlog console renderer.
        level: Root log level.
    """
    pre_chain = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_request_context,
        drop_search_phrases,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer = (
        structlog.processors.JSONRenderer() if json_format else structlog.dev.ConsoleRenderer()
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def set_request_context(
    request_id: str | None,
    user_id: str | None = None,
    path: str | None = None,
    method: str | None = None,
) -> None:
    """Bind request fields. None leaves user_id, path and method untouched."""
    request_id_var.set(request_id)
    for var, value in ((user_id_var, user_id), (path_var, path), (method_var, method)):
        if value is not None:
            var.set(value)


def set_search_context(space_id: str | None, generation: int | None = None) -> None:
    """Bind the search scope (and debounce generation) for the current task.

    Each aggregation runs in its own asyncio task, which copies the context,
    so setting these never leaks into sibling aggregations.
    """
    space_id_var.set(space_id)
    search_generation_var.set(generation)


def clear_request_context() -> None:
    for var in (*_REQUEST_VARS, *_SEARCH_VARS):
        var.set(None)


def get_request_id() -> str | None:
    return request_id_var.get()
