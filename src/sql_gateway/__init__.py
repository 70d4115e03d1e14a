"""
SQL Gateway - fluent SQL statement builder and execution engine.

Compiles structured calls into parameterized SQL, binds parameters with
explicit types, runs them on one SQLAlchemy connection and returns row counts,
row sets or pages.

Usage:
    >>> from sql_gateway import DriverKind, Server
    >>> db = Server(DriverKind.SQLITE).name("app.db").connect()
    >>> db.query().table("users").find({"id": 1}).fetch().first()
"""

from sql_gateway.io.builder import FetchResult, Pagination, StatementBuilder
from sql_gateway.io.connectors import (
    AdapterError,
    DatabaseConnectionError,
    DatabaseError,
    DriverKind,
    QueryError,
    Server,
)
from sql_gateway.io.database import Database
from sql_gateway.io.engine import ExecutionEngine, Query, QueryLog, QueryMode

__version__ = "0.1.0"

__all__ = [
    "AdapterError",
    "Database",
    "DatabaseConnectionError",
    "DatabaseError",
    "DriverKind",
    "ExecutionEngine",
    "FetchResult",
    "Pagination",
    "Query",
    "QueryError",
    "QueryLog",
    "QueryMode",
    "Server",
    "StatementBuilder",
]
