"""
Logging setup with per-request context.

The request context lives in a ContextVar so concurrent requests served by
the FastAPI threadpool each see their own request id.
"""

import logging
import sys
from contextvars import ContextVar
from dataclasses import replace

from .types import RequestContext

_request_context: ContextVar[RequestContext | None] = ContextVar("request_context", default=None)

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(request_id)s%(item)s] %(name)s: %(message)s"


class RequestContextFilter(logging.Filter):
    """Inject request_id and item index into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = _request_context.get()
        record.request_id = ctx.request_id if ctx else "-"
        record.item = f" item={ctx.item_index}" if ctx and ctx.item_index is not None else ""
        return True


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger. Safe to call more than once."""
    root = logging.getLogger()
    root.setLevel(level.upper())

    for handler in root.handlers:
        if getattr(handler, "_presenta_handler", False):
            handler.setLevel(level.upper())
            return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestContextFilter())
    handler._presenta_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)

    # requests/urllib3 debug output would echo the Authorization header
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def set_request_context(ctx: RequestContext) -> None:
    _request_context.set(ctx)


def get_request_context() -> RequestContext | None:
    return _request_context.get()


def set_item_index(index: int | None) -> None:
    """Tag subsequent log records with the batch item being processed."""
    ctx = _request_context.get()
    if ctx is not None:
        _request_context.set(replace(ctx, item_index=index))


def clear_request_context() -> None:
    _request_context.set(None)
