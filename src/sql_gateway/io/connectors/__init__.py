"""Connection bootstrap: driver kinds, server credentials and error types."""

from .exceptions import (
    AdapterError,
    DatabaseConnectionError,
    DatabaseError,
    ErrorKind,
    QueryError,
)
from .server import DriverKind, Server, build_url, register_url_factory

__all__ = [
    "AdapterError",
    "DatabaseConnectionError",
    "DatabaseError",
    "ErrorKind",
    "QueryError",
    "DriverKind",
    "Server",
    "build_url",
    "register_url_factory",
]
