"""
Database facade: one connection, raw query helpers and the statement builder.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

import sqlalchemy as sa
from sqlalchemy.exc import NoSuchModuleError, SQLAlchemyError

from sql_gateway.io.connectors.exceptions import DatabaseConnectionError
from sql_gateway.io.connectors.server import Server
from sql_gateway.io.engine.execution import ExecutionEngine, QueryMode, Row
from sql_gateway.io.engine.query import Params, Query
from sql_gateway.io.engine.query_log import QueryLog
from sql_gateway.utils.logging import get_logger

if TYPE_CHECKING:
    from sql_gateway.io.builder.statement_builder import StatementBuilder

logger = get_logger(__name__)


class Database(ExecutionEngine):
    """
    A connected database.

    Credentials are only used to open the connection; afterwards the instance
    keeps the sanitized parameters from ``Server.describe``.

    Example:
        >>> from sql_gateway.io.connectors import DriverKind, Server
        >>> db = Server(DriverKind.SQLITE).connect()
        >>> db.exec("CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT)")
        True
        >>> db.query().table("users").insert({"name": "alice"})
        1
    """

    def __init__(self, server: Server, query_log: Optional[QueryLog] = None) -> None:
        url = server.url()
        try:
            self._engine = sa.create_engine(url, **server.engine_options())
            connection = self._engine.connect()
        except (ImportError, NoSuchModuleError) as e:
            raise DatabaseConnectionError(
                f'"{server.driver.value}" is not available as database driver'
            ) from e
        except SQLAlchemyError as e:
            raise DatabaseConnectionError(str(getattr(e, "orig", None) or e)) from e

        super().__init__(connection, query_log=query_log)
        self.server: Dict[str, Any] = server.describe()
        logger.info("database.connected", **self.server)

    def fetch(self, query: str, params: Params = None) -> List[Row]:
        """Run a raw SELECT and return its rows."""
        return self.run(QueryMode.FETCH, Query(query, params))

    def exec(self, query: str, params: Params = None) -> bool:
        """Run a raw statement that returns no rows."""
        return self.run(QueryMode.EXEC, Query(query, params))

    def query(self) -> "StatementBuilder":
        """Start a new statement builder on this connection."""
        from sql_gateway.io.builder.statement_builder import StatementBuilder

        return StatementBuilder(self)

    def close(self) -> None:
        """Close the connection and dispose of the engine."""
        self.connection.close()
        self._engine.dispose()
        logger.info("database.closed", driver=self.server["driver"])

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
