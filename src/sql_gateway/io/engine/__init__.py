"""Query records, the query log and the execution engine."""

from .execution import ExecutionEngine, QueryMode
from .query import Query, normalize_params
from .query_log import QueryLog

__all__ = ["ExecutionEngine", "QueryMode", "Query", "QueryLog", "normalize_params"]
