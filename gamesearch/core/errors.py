"""Error codes and exceptions for the search orchestration layer.

Failure classes and how they travel:

* ``IndexUnavailable``: the index is missing or could not be created. Fatal
  to the write path and always propagated.
* ``WriteFailure``: the engine rejected a document write. The index is left
  stale; callers log it and carry on unless strict mode is enabled.
* ``QueryFailure``: a search or aggregation could not be executed. Callers
  log it and return an empty result unless strict mode is enabled.
* ``MappingInconsistency``: an index document cannot be turned back into a
  valid entity. Always propagated since it means schema drift.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    INDEX_UNAVAILABLE = "INDEX_UNAVAILABLE"
    INDEX_EXISTS = "INDEX_EXISTS"
    WRITE_FAILED = "WRITE_FAILED"
    QUERY_FAILED = "QUERY_FAILED"
    MAPPING_INCONSISTENCY = "MAPPING_INCONSISTENCY"
    TIMEOUT = "TIMEOUT"
    INPUT_ERROR = "INPUT_ERROR"


class SearchError(Exception):
    """Base exception for the search layer."""

    code: ErrorCode = ErrorCode.QUERY_FAILED

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


class IndexUnavailable(SearchError):
    """Raised when the target index is missing or cannot be created."""

    code = ErrorCode.INDEX_UNAVAILABLE


class IndexAlreadyExists(SearchError):
    """Raised by a client when a create races with another creator."""

    code = ErrorCode.INDEX_EXISTS


class WriteFailure(SearchError):
    """Raised when a document write is rejected by the engine."""

    code = ErrorCode.WRITE_FAILED


class QueryFailure(SearchError):
    """Raised when a search or aggregation request fails."""

    code = ErrorCode.QUERY_FAILED


class MappingInconsistency(SearchError):
    """Raised when an index document cannot be rebuilt into an entity."""

    code = ErrorCode.MAPPING_INCONSISTENCY


__all__ = [
    "ErrorCode",
    "SearchError",
    "IndexUnavailable",
    "IndexAlreadyExists",
    "WriteFailure",
    "QueryFailure",
    "MappingInconsistency",
]
