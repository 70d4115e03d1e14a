"""
Execution engine binding queries to a live SQLAlchemy connection.

The engine is the only component that touches the connection. It binds a
``Query``'s parameters with explicit types, executes the statement, records the
outcome on the query and keeps track of transactions it opened itself.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Union

import sqlalchemy as sa
from sqlalchemy.engine import Connection, CursorResult
from sqlalchemy.exc import SQLAlchemyError

from sql_gateway.infrastructure.sql.core.parameters import (
    BoundValue,
    number_positional_placeholders,
)
from sql_gateway.io.connectors.exceptions import AdapterError, QueryError
from sql_gateway.io.engine.query import Query
from sql_gateway.io.engine.query_log import QueryLog
from sql_gateway.utils.logging import get_logger

logger = get_logger(__name__)

Row = Dict[str, Any]


class QueryMode(str, Enum):
    """How the engine treats the outcome of a statement."""

    FETCH = "fetch"
    EXEC = "exec"


def _driver_message(error: SQLAlchemyError) -> str:
    orig = getattr(error, "orig", None)
    if orig is not None:
        return f"[{type(orig).__name__}] {orig}"
    return str(error)


class ExecutionEngine:
    """
    Binds and runs queries on one connection.

    Outside a transaction opened through ``begin_transaction`` every statement
    is committed on success and rolled back on failure, so each ``run`` stands
    alone. Inside one, nothing is committed until ``commit``.

    Example:
        >>> engine = sa.create_engine("sqlite://")
        >>> with engine.connect() as conn:
        ...     db = ExecutionEngine(conn)
        ...     db.run(QueryMode.FETCH, Query("SELECT 1 AS one"))
        [{'one': 1}]
    """

    def __init__(
        self,
        connection: Connection,
        query_log: Optional[QueryLog] = None,
        dialect: Optional[str] = None,
    ) -> None:
        """
        Args:
            connection: Live SQLAlchemy connection owned by this engine
            query_log: Log receiving every submitted query; a new one by default
            dialect: Dialect name used for SQL generation; read from the
                connection when omitted
        """
        self.connection = connection
        self.queries = query_log if query_log is not None else QueryLog()
        self.dialect = dialect or connection.dialect.name
        self._in_transaction = False
        self._last_insert_id = 0

    def _prepare(self, query: Query) -> sa.TextClause:
        text = query.text
        if any(isinstance(key, int) for key in query.params):
            text = number_positional_placeholders(text, self.dialect)

        binds = []
        for key, value in query.params.items():
            if isinstance(key, int):
                # Placeholders are numbered from 1
                key = key + 1
            bound = BoundValue.infer(value)
            binds.append(sa.bindparam(str(key), bound.bind_value, type_=bound.sql_type))

        return sa.text(text).bindparams(*binds)

    def _fail(self, query: Query, error: str) -> QueryError:
        query.error = error
        logger.error("database.query.failed", error=error, query=query.text)
        return QueryError(query, error)

    def _execute(self, mode: QueryMode, query: Query) -> Union[List[Row], bool]:
        try:
            statement = self._prepare(query)
        except (ValueError, TypeError) as e:
            raise self._fail(query, f"Failed to bind parameters: {e}") from e

        result: Optional[CursorResult] = None
        try:
            result = self.connection.execute(statement)
            if mode is QueryMode.FETCH:
                if not result.returns_rows:
                    raise self._fail(query, "Fetch query failed")
                rows = [dict(row) for row in result.mappings()]
                query.row_count = len(rows)
                return rows

            # Some drivers report -1 when the count is unknown
            query.row_count = max(result.rowcount, 0)
            if result.lastrowid:
                self._last_insert_id = int(result.lastrowid)
            return True
        finally:
            if result is not None:
                result.close()

    def _end_statement(self, outer_transaction: bool, success: bool) -> None:
        # Only settle transactions that the statement itself began
        if self._in_transaction or outer_transaction:
            return
        if not self.connection.in_transaction():
            return
        if success:
            self.connection.commit()
        else:
            self.connection.rollback()

    def run(self, mode: QueryMode, query: Query) -> Union[List[Row], bool]:
        """
        Execute a query.

        Args:
            mode: FETCH to return rows, EXEC to return success
            query: Query to run; its metadata is updated in place

        Returns:
            List of column-name keyed rows for FETCH, True for EXEC

        Raises:
            QueryError: If the statement fails at any stage. The query carries
                the error message and stays in the query log.
        """
        self.queries.append(query)
        query.executed = True

        outer_transaction = self.connection.in_transaction()
        try:
            outcome = self._execute(mode, query)
            self._end_statement(outer_transaction, success=True)
        except SQLAlchemyError as e:
            self._discard(outer_transaction)
            raise self._fail(query, _driver_message(e)) from e
        except QueryError:
            self._discard(outer_transaction)
            raise

        logger.debug(
            "database.query.executed", mode=mode.value, row_count=query.row_count
        )
        return outcome

    def _discard(self, outer_transaction: bool) -> None:
        try:
            self._end_statement(outer_transaction, success=False)
        except SQLAlchemyError as e:
            logger.warning("database.rollback.failed", error=_driver_message(e))

    def last_insert_id(self, name: Optional[str] = None) -> int:
        """
        Primary key generated by the most recent insert.

        Args:
            name: Sequence name; only consulted on PostgreSQL

        Raises:
            AdapterError: If the sequence lookup fails
        """
        if name is None or self.dialect != "postgresql":
            return self._last_insert_id

        outer_transaction = self.connection.in_transaction()
        try:
            value = self.connection.execute(
                sa.text("SELECT currval(:name)"), {"name": name}
            ).scalar()
            self._end_statement(outer_transaction, success=True)
        except SQLAlchemyError as e:
            self._discard(outer_transaction)
            raise AdapterError(_driver_message(e)) from e
        return int(value or 0)

    def in_transaction(self) -> bool:
        """True when a transaction is open on this engine's connection."""
        # Transaction marked locally
        if self._in_transaction:
            return True

        try:
            return self.connection.in_transaction()
        except SQLAlchemyError as e:
            raise AdapterError(_driver_message(e)) from e

    def begin_transaction(self) -> None:
        """
        Open a transaction on the connection.

        Raises:
            AdapterError: If a transaction is already open or the driver fails
        """
        try:
            self.connection.begin()
        except SQLAlchemyError as e:
            raise AdapterError(_driver_message(e)) from e

        if not self.connection.in_transaction():
            raise AdapterError("Failed to begin a transaction")

        self._in_transaction = True
        logger.info("database.transaction.begin")

    def commit(self) -> None:
        """
        Commit the open transaction.

        Raises:
            AdapterError: If no transaction is open or the driver fails
        """
        if not self.connection.in_transaction():
            raise AdapterError("Failed to commit transaction")

        try:
            self.connection.commit()
        except SQLAlchemyError as e:
            raise AdapterError(_driver_message(e)) from e

        self._in_transaction = False
        logger.info("database.transaction.commit")

    def rollback(self) -> None:
        """
        Roll back the open transaction.

        Raises:
            AdapterError: If no transaction is open or the driver fails
        """
        if not self.connection.in_transaction():
            raise AdapterError("Failed to roll back transaction")

        try:
            self.connection.rollback()
        except SQLAlchemyError as e:
            raise AdapterError(_driver_message(e)) from e

        self._in_transaction = False
        logger.info("database.transaction.rollback")
