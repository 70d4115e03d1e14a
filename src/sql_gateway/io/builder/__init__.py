"""Statement builder and result wrappers."""

from .results import FetchResult, Pagination, build_pages, plan_pagination
from .statement_builder import NO_RESTRICTION, StatementBuilder

__all__ = [
    "StatementBuilder",
    "NO_RESTRICTION",
    "FetchResult",
    "Pagination",
    "build_pages",
    "plan_pagination",
]
