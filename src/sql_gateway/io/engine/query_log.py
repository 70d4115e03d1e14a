"""Ordered record of every query submitted to an execution engine."""

from typing import Iterator, List, Optional

from sql_gateway.io.engine.query import Query


class QueryLog:
    """
    Append-only log of queries, one per engine instance.

    Usage:
        log = QueryLog()
        engine = ExecutionEngine(conn, query_log=log)
        ...
        for query in log:
            print(query.text, query.row_count, query.error)
    """

    def __init__(self) -> None:
        self._queries: List[Query] = []

    def append(self, query: Query) -> "QueryLog":
        self._queries.append(query)
        return self

    def last(self) -> Optional[Query]:
        """Most recently submitted query, or None when nothing ran yet."""
        return self._queries[-1] if self._queries else None

    def failed(self) -> List[Query]:
        return [query for query in self._queries if query.failed]

    def __len__(self) -> int:
        return len(self._queries)

    def __iter__(self) -> Iterator[Query]:
        return iter(list(self._queries))

    def __getitem__(self, index: int) -> Query:
        return self._queries[index]
