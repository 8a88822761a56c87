"""Structured logging configuration.

Every record is rendered as one JSON object carrying the service identity,
the caller's request/user ids and, inside index calls, the index name and
operation that produced it. Degraded search results are only visible in the
logs, so this context is what ties an empty response to its cause.
"""

from __future__ import annotations

import json
import logging
import sys
import traceback
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar("user_id", default=None)
search_index_var: ContextVar[Optional[str]] = ContextVar("search_index", default=None)
search_operation_var: ContextVar[Optional[str]] = ContextVar("search_operation", default=None)

PLAIN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class StructuredFormatter(logging.Formatter):
    """Render log records as single-line JSON."""

    def __init__(
        self,
        service_name: str = "game-catalog-search",
        environment: str = "production",
        include_stack_trace: bool = True,
    ):
        super().__init__()
        self.service_name = service_name
        self.environment = environment
        self.include_stack_trace = include_stack_trace

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
            "environment": self.environment,
            "location": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }
        entry.update(_request_context())

        search = _search_context()
        if search:
            entry["search"] = search

        extra = getattr(record, "extra_fields", None)
        if extra:
            entry["extra"] = extra

        if record.exc_info and self.include_stack_trace:
            entry["exception"] = self._exception(record)

        return json.dumps(entry, default=str)

    @staticmethod
    def _exception(record: logging.LogRecord) -> Dict[str, Any]:
        exc_type, exc_value, _ = record.exc_info
        info: Dict[str, Any] = {
            "type": exc_type.__name__ if exc_type else None,
            "message": str(exc_value) if exc_value else None,
            "stacktrace": traceback.format_exception(*record.exc_info),
        }
        # SearchError subclasses carry a machine-readable code
        code = getattr(exc_value, "code", None)
        if code is not None:
            info["code"] = getattr(code, "value", code)
        return info


def _request_context() -> Dict[str, str]:
    context = {}
    if request_id := request_id_var.get():
        context["request_id"] = request_id
    if user_id := user_id_var.get():
        context["user_id"] = user_id
    return context


def _search_context() -> Dict[str, str]:
    context = {}
    if index := search_index_var.get():
        context["index"] = index
    if operation := search_operation_var.get():
        context["operation"] = operation
    return context


def setup_structured_logging(
    service_name: str = "game-catalog-search",
    environment: str = "production",
    level: int = logging.INFO,
    json_output: bool = True,
) -> None:
    """Send all logging to stdout, as JSON unless ``json_output`` is False."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if json_output:
        handler.setFormatter(StructuredFormatter(service_name, environment))
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers[:] = [handler]


def configure_from_settings(settings: Any) -> None:
    """Apply LOG_LEVEL / LOG_JSON / SERVICE_NAME from a Settings object."""
    setup_structured_logging(
        service_name=settings.SERVICE_NAME,
        environment=settings.ENVIRONMENT,
        level=logging.getLevelName(settings.LOG_LEVEL.upper()),
        json_output=settings.LOG_JSON,
    )


def set_request_context(
    request_id: Optional[str] = None,
    user_id: Optional[str] = None,
) -> str:
    """Set request context for logging."""
    req_id = request_id or str(uuid.uuid4())
    request_id_var.set(req_id)
    if user_id:
        user_id_var.set(user_id)
    return req_id


def clear_request_context() -> None:
    request_id_var.set(None)
    user_id_var.set(None)


@contextmanager
def search_context(index: str, operation: str) -> Iterator[None]:
    """Tag records logged inside the block with the index call they belong to."""
    index_token = search_index_var.set(index)
    operation_token = search_operation_var.set(operation)
    try:
        yield
    finally:
        search_operation_var.reset(operation_token)
        search_index_var.reset(index_token)


__all__ = [
    "StructuredFormatter",
    "setup_structured_logging",
    "configure_from_settings",
    "set_request_context",
    "clear_request_context",
    "search_context",
]
