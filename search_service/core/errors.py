"""
Error kinds and outcomes shared by the query engine and the HTTP layer.

Query engine operations never raise for expected failures. They return a
`QueryOutcome` carrying either a payload or an `ErrorKind`, and the route
layer maps the kind to a status code.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class StoreError(Exception):
    """The primary store could not answer a query."""


class SearchIndexError(Exception):
    """The search index rejected a request or could not be reached."""


class CacheError(Exception):
    """The query cache could not be read or written."""


class ErrorKind(str, Enum):
    INVALID_REQUEST = "invalid_request"
    SOURCE_FAILURE = "source_failure"


STATUS_CODES = {
    ErrorKind.INVALID_REQUEST: 400,
    ErrorKind.SOURCE_FAILURE: 500,
}


@dataclass
class QueryOutcome:
    payload: Optional[Dict[str, Any]] = None
    error: Optional[ErrorKind] = None
    message: str = ""
    cached: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def status_code(self) -> int:
        return 200 if self.error is None else STATUS_CODES[self.error]

    @classmethod
    def success(cls, payload: Dict[str, Any], cached: bool = False) -> "QueryOutcome":
        return cls(payload=payload, cached=cached)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "QueryOutcome":
        return cls(error=kind, message=message)

    def to_body(self) -> Dict[str, Any]:
        if self.ok:
            return self.payload or {}
        return {"success": False, "message": self.message}
