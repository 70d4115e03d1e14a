"""
Fluent statement builder for INSERT, UPDATE, DELETE and SELECT.

Each setter returns the builder; terminal methods compile one ``Query`` and run
it through the execution engine. Preconditions (missing WHERE on UPDATE or
DELETE, positional keys where names are required) are checked before anything
reaches the connection.

Example:
    >>> db.query().table("users").where("id=:id", {"id": 5}).fetch().first()
    {'id': 5, 'name': 'alice'}
    >>> db.query().table("users").find({"id": 5}).update({"name": "bob"})
    1
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from sql_gateway.infrastructure.sql.core.identifier import quote_columns, quote_identifier
from sql_gateway.infrastructure.sql.core.parameters import (
    WHERE_PARAM_PREFIX,
    has_positional_placeholders,
    named_placeholders,
    prefix_named_placeholders,
    prefix_params,
)
from sql_gateway.io.builder.results import (
    DEFAULT_PAGE_LIMIT,
    FetchResult,
    Pagination,
    plan_pagination,
)
from sql_gateway.io.connectors.exceptions import QueryError
from sql_gateway.io.engine.execution import ExecutionEngine, QueryMode
from sql_gateway.io.engine.query import ParamKey, Params, Query, normalize_params

# WHERE clause meaning "every row"; UPDATE and DELETE refuse to run with it
NO_RESTRICTION = "1"


class StatementBuilder:
    """Accumulates the parts of one statement against one engine."""

    def __init__(self, db: ExecutionEngine) -> None:
        self.db = db
        self._table = ""
        self._where = NO_RESTRICTION
        self._params: Dict[ParamKey, Any] = {}
        self._columns = "*"
        self._lock = False
        self._order = ""
        self._start: Optional[int] = None
        self._limit: Optional[int] = None

    def _quote(self, name: str) -> str:
        return quote_identifier(name, self.db.dialect)

    def _where_sql(self) -> str:
        # PostgreSQL rejects an integer as a WHERE condition
        if self._where == NO_RESTRICTION and self.db.dialect == "postgresql":
            return "TRUE"
        return self._where

    def _table_name(self) -> str:
        if not self._table:
            raise QueryError(Query(""), "Table name is not set")
        return self._quote(self._table)

    # Configuration

    def table(self, name: str) -> "StatementBuilder":
        self._table = name.strip()
        return self

    def where(self, clause: str, params: Params = None) -> "StatementBuilder":
        """Replace the WHERE clause and its parameters."""
        self._where = clause
        self._params = normalize_params(params)
        return self

    def find(self, assoc: Mapping[Any, Any]) -> "StatementBuilder":
        """
        Filter on column equality, joined with AND.

        Non-string keys are ignored. When no string key is left the filter
        falls back to matching every row.
        """
        conditions = []
        params: Dict[ParamKey, Any] = {}
        for key, value in assoc.items():
            if not isinstance(key, str):
                continue
            conditions.append(f"{self._quote(key)}=:{key}")
            params[key] = value

        self._where = " AND ".join(conditions) if conditions else NO_RESTRICTION
        self._params = params
        return self

    def columns(self, *columns: str) -> "StatementBuilder":
        """
        Set the projection. Columns with parentheses are passed through raw.

        Blank names are dropped; with nothing left the projection stays ``*``.
        """
        names = [column for column in columns if column.strip()]
        self._columns = ", ".join(quote_columns(names, self.db.dialect)) if names else "*"
        return self

    def select(self, *columns: str) -> "StatementBuilder":
        return self.columns(*columns)

    def _order_by(self, columns, direction: str) -> str:
        quoted = ",".join(self._quote(column.strip()) for column in columns)
        return f"ORDER BY {quoted} {direction}"

    def order_asc(self, *columns: str) -> "StatementBuilder":
        self._order = self._order_by(columns, "ASC")
        return self

    def order_desc(self, *columns: str) -> "StatementBuilder":
        self._order = self._order_by(columns, "DESC")
        return self

    def start(self, offset: int) -> "StatementBuilder":
        self._start = int(offset)
        return self

    def limit(self, count: int) -> "StatementBuilder":
        self._limit = int(count)
        return self

    def lock(self) -> "StatementBuilder":
        """Lock the selected rows (``FOR UPDATE``)."""
        self._lock = True
        return self

    # Compilation

    def _limit_clause(self, start: Optional[int], limit: Optional[int]) -> str:
        # An offset without a row count has no effect
        if limit is None:
            return ""
        if self.db.dialect == "postgresql":
            return f"LIMIT {limit} OFFSET {start}" if start is not None else f"LIMIT {limit}"
        return f"LIMIT {start},{limit}" if start is not None else f"LIMIT {limit}"

    def _select_query(self, start: Optional[int], limit: Optional[int]) -> Query:
        parts = [f"SELECT {self._columns} FROM {self._table_name()} WHERE {self._where_sql()}"]
        if self._order:
            parts.append(self._order)
        limit_clause = self._limit_clause(start, limit)
        if limit_clause:
            parts.append(limit_clause)
        if self._lock:
            parts.append("FOR UPDATE")
        return Query(" ".join(parts), dict(self._params))

    def _require_where(self, statement: str, params: Params = None) -> None:
        if self._where.strip() == NO_RESTRICTION:
            raise QueryError(
                Query(statement, params), f"{statement.split()[0]} query requires WHERE clause"
            )

    def _exec(self, query: Query) -> int:
        return query.row_count if self.db.run(QueryMode.EXEC, query) else 0

    # Terminal operations

    def insert(self, assoc: Mapping[str, Any]) -> int:
        """
        Insert one row.

        Returns:
            Number of inserted rows

        Raises:
            QueryError: If a key is not a column name or the insert fails
        """
        table = self._table_name()
        if not assoc:
            raise QueryError(Query(f"INSERT INTO {table}"), "INSERT query requires data")
        if not all(isinstance(key, str) for key in assoc):
            raise QueryError(
                Query(f"INSERT INTO {table}", dict(assoc)),
                "INSERT query cannot accept positional keys",
            )

        columns = ", ".join(self._quote(key) for key in assoc)
        placeholders = ", ".join(f":{key}" for key in assoc)
        query = Query(f"INSERT INTO {table} ({columns}) VALUES ({placeholders})", dict(assoc))
        return self._exec(query)

    def update(self, assoc: Mapping[str, Any]) -> int:
        """
        Update the rows matched by the WHERE clause.

        WHERE placeholders are renamed with a ``__`` prefix so they share one
        parameter mapping with the SET values without colliding.

        Returns:
            Number of affected rows

        Raises:
            QueryError: If there is no WHERE clause, a key is positional or the
                update fails
        """
        table = self._table_name()
        self._require_where(f"UPDATE {table}", dict(assoc))
        if not assoc:
            raise QueryError(Query(f"UPDATE {table}"), "UPDATE query requires data")
        if not all(isinstance(key, str) for key in assoc):
            raise QueryError(
                Query(f"UPDATE {table}", dict(assoc)),
                "UPDATE query cannot accept positional keys",
            )
        if any(isinstance(key, int) for key in self._params) or has_positional_placeholders(
            self._where, self.db.dialect
        ):
            raise QueryError(
                Query(f"UPDATE {table} WHERE {self._where}", dict(self._params)),
                "WHERE clause for UPDATE query requires named parameters",
            )

        where_params = prefix_params(self._params)
        where_names = set(where_params) | {
            f"{WHERE_PARAM_PREFIX}{name}"
            for name in named_placeholders(self._where, self.db.dialect)
        }
        for key in sorted(where_names):
            if key in assoc:
                raise QueryError(
                    Query(f"UPDATE {table}", dict(assoc)),
                    f'WHERE parameter "{key}" collides with an updated column',
                )

        params: Dict[ParamKey, Any] = dict(assoc)
        params.update(where_params)

        sets = ", ".join(f"{self._quote(key)}=:{key}" for key in assoc)
        where = prefix_named_placeholders(self._where, dialect=self.db.dialect)
        query = Query(f"UPDATE {table} SET {sets} WHERE {where}", params)
        return self._exec(query)

    def delete(self) -> int:
        """
        Delete the rows matched by the WHERE clause.

        Raises:
            QueryError: If there is no WHERE clause or the delete fails
        """
        table = self._table_name()
        self._require_where(f"DELETE FROM {table}", dict(self._params))
        query = Query(f"DELETE FROM {table} WHERE {self._where}", dict(self._params))
        return self._exec(query)

    def fetch(self) -> FetchResult:
        """Run the SELECT and load every row."""
        return FetchResult(self.db, self._select_query(self._start, self._limit))

    def paginate(self) -> Pagination:
        """
        Fetch one page and the page index.

        ``start`` defaults to 0 and ``limit`` to 50 when unset.
        """
        start = self._start if self._start is not None else 0
        limit = self._limit if self._limit is not None else DEFAULT_PAGE_LIMIT

        count_query = Query(
            f"SELECT count(*) FROM {self._table_name()} WHERE {self._where_sql()}",
            dict(self._params),
        )
        return plan_pagination(
            self.db, count_query, self._select_query(start, limit), start, limit
        )
