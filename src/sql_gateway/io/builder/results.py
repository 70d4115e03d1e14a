"""
Result wrappers for SELECT statements.

``FetchResult`` materializes every row at construction time. ``Pagination``
describes one page of a filtered row set together with its page index, and
``plan_pagination`` builds it from a count query and a bounded page query.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from sql_gateway.io.engine.execution import ExecutionEngine, QueryMode, Row
from sql_gateway.io.engine.query import Query

DEFAULT_PAGE_LIMIT = 50


class FetchResult:
    """
    Rows returned by a SELECT, fully loaded in memory.

    Supports ``len()``, Python iteration (always from the first row) and a
    cursor interface with ``current``/``key``/``next``/``valid``/``rewind``.
    Loops never move the cursor, and nested loops over one result are safe.

    Raises:
        QueryError: From the constructor, when the SELECT fails.
    """

    def __init__(self, db: ExecutionEngine, query: Query) -> None:
        self._rows: List[Row] = db.run(QueryMode.FETCH, query)
        self._query = query
        self._index = 0

    @property
    def query(self) -> Query:
        return self._query

    def count(self) -> int:
        return len(self._rows)

    def first(self) -> Optional[Row]:
        return self._rows[0] if self._rows else None

    def last(self) -> Optional[Row]:
        return self._rows[-1] if self._rows else None

    def all(self) -> List[Row]:
        return self._rows

    def rewind(self) -> None:
        self._index = 0

    def current(self) -> Row:
        return self._rows[self._index]

    def key(self) -> int:
        return self._index

    def next(self) -> None:
        self._index += 1

    def valid(self) -> bool:
        return 0 <= self._index < len(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[Row]:
        # Independent of the cursor position
        return iter(self._rows)

    def __repr__(self) -> str:
        return f"FetchResult(count={len(self._rows)}, query={self._query.text!r})"


@dataclass
class Pagination:
    """One page of rows plus the index of every page."""

    start: int
    limit: int
    total_rows: int = 0
    total_pages: int = 0
    count: int = 0
    rows: List[Row] = field(default_factory=list)
    pages: List[Dict[str, int]] = field(default_factory=list)

    def __len__(self) -> int:
        return self.count


def build_pages(total_pages: int, limit: int) -> List[Dict[str, int]]:
    """
    Page index entries, numbered from 1.

    Examples:
        >>> build_pages(3, 50)
        [{'index': 1, 'start': 0}, {'index': 2, 'start': 50}, {'index': 3, 'start': 100}]
    """
    return [
        {"index": index, "start": (index - 1) * limit}
        for index in range(1, total_pages + 1)
    ]


def _scalar(rows: List[Row]) -> Any:
    if not rows:
        return None
    return next(iter(rows[0].values()), None)


def plan_pagination(
    db: ExecutionEngine,
    count_query: Query,
    page_query: Query,
    start: int,
    limit: int,
) -> Pagination:
    """
    Count matching rows, then fetch one page.

    The page query is skipped entirely when nothing matches. The two queries
    are not isolated from each other; rows written in between may shift the
    page.

    Args:
        db: Engine running both queries
        count_query: SELECT count(*) over the filtered rows
        page_query: The same SELECT bounded by ``start`` and ``limit``
        start: Offset of the page
        limit: Rows per page
    """
    pagination = Pagination(start=start, limit=limit)

    total_rows = int(_scalar(db.run(QueryMode.FETCH, count_query)) or 0)
    if total_rows == 0:
        return pagination

    rows = db.run(QueryMode.FETCH, page_query)
    pagination.total_rows = total_rows
    pagination.rows = rows
    pagination.count = len(rows)
    pagination.total_pages = math.ceil(total_rows / limit) if limit > 0 else 0
    pagination.pages = build_pages(pagination.total_pages, limit)
    return pagination
