"""Database exceptions for connection, adapter and query failures.

Every error raised by the gateway derives from ``DatabaseError`` so callers can
catch the whole family at once. ``QueryError`` keeps the failing ``Query`` so
its text, parameters and error can be inspected after the fact.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from sql_gateway.io.engine.query import Query


class ErrorKind(str, Enum):
    """Enum for the failure classes surfaced to callers."""

    CONNECTION = "connection"
    ADAPTER = "adapter"
    QUERY = "query"


class DatabaseError(Exception):
    """Base error for the gateway, optionally tied to a query."""

    kind: ErrorKind = ErrorKind.ADAPTER

    def __init__(self, message: str = "", query: Optional["Query"] = None):
        self.query = query
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to structured dict for logging."""
        data: Dict[str, Any] = {
            "error_type": type(self).__name__,
            "kind": self.kind.value,
            "message": str(self),
        }
        if self.query is not None:
            data["query"] = self.query.text
            data["params"] = list(self.query.params.keys())
        return data


class DatabaseConnectionError(DatabaseError):
    """Raised when the database cannot be reached or is misconfigured."""

    kind = ErrorKind.CONNECTION


class AdapterError(DatabaseError):
    """Raised when transaction control or last-insert-id lookups fail."""

    kind = ErrorKind.ADAPTER


class QueryError(DatabaseError):
    """Raised when a specific query fails to prepare, bind, execute or fetch."""

    kind = ErrorKind.QUERY

    def __init__(self, query: "Query", message: str = ""):
        super().__init__(message, query=query)
