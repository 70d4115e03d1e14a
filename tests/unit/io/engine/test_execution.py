"""
Tests for the execution engine.

Binding, outcome classification and transaction tracking run against an
in-memory SQLite connection; driver failure paths use a mocked connection.
"""

import json
import logging
from unittest.mock import MagicMock

import pytest
import sqlalchemy as sa
from sqlalchemy.exc import OperationalError

from sql_gateway.infrastructure.sql.core.parameters import BindType, BoundValue
from sql_gateway.io.connectors.exceptions import AdapterError, QueryError
from sql_gateway.io.engine.execution import ExecutionEngine, QueryMode
from sql_gateway.io.engine.query import Query
from sql_gateway.io.engine.query_log import QueryLog


@pytest.fixture
def connection():
    engine = sa.create_engine("sqlite://")
    conn = engine.connect()
    yield conn
    conn.close()
    engine.dispose()


@pytest.fixture
def engine(connection):
    db = ExecutionEngine(connection)
    db.run(QueryMode.EXEC, Query("CREATE TABLE items (id INTEGER PRIMARY KEY, label TEXT)"))
    return db


def _mock_connection(in_transaction=False):
    conn = MagicMock()
    conn.dialect.name = "sqlite"
    conn.in_transaction.return_value = in_transaction
    return conn


def _labels(engine):
    rows = engine.run(QueryMode.FETCH, Query("SELECT label FROM items ORDER BY id"))
    return [row["label"] for row in rows]


class TestRun:
    """Tests for FETCH and EXEC outcomes."""

    def test_fetch_returns_column_keyed_rows(self, engine):
        engine.run(QueryMode.EXEC, Query("INSERT INTO items (label) VALUES ('a'), ('b')"))
        query = Query("SELECT id, label FROM items ORDER BY id")

        rows = engine.run(QueryMode.FETCH, query)

        assert rows == [{"id": 1, "label": "a"}, {"id": 2, "label": "b"}]
        assert query.row_count == 2
        assert query.executed is True
        assert query.error is None

    def test_fetch_empty_result_is_empty_list(self, engine):
        assert engine.run(QueryMode.FETCH, Query("SELECT * FROM items")) == []

    def test_exec_sets_affected_rows(self, engine):
        engine.run(QueryMode.EXEC, Query("INSERT INTO items (label) VALUES ('a'), ('b'), ('c')"))
        query = Query("UPDATE items SET label = 'z' WHERE id > 1")

        assert engine.run(QueryMode.EXEC, query) is True
        assert query.row_count == 2

    def test_fetch_without_row_set_fails(self, engine):
        """A statement that returns no rows cannot be fetched."""
        query = Query("UPDATE items SET label = 'x'")

        with pytest.raises(QueryError, match="Fetch query failed") as exc_info:
            engine.run(QueryMode.FETCH, query)

        assert exc_info.value.query is query
        assert query.error == "Fetch query failed"

    def test_failed_query_keeps_error_and_executed_flag(self, engine):
        query = Query("SELECT * FROM missing_table")

        with pytest.raises(QueryError) as exc_info:
            engine.run(QueryMode.FETCH, query)

        assert exc_info.value.query is query
        assert query.executed is True
        assert "no such table" in query.error
        assert query.error.startswith("[OperationalError]")

    def test_failure_outside_transaction_leaves_connection_usable(self, engine):
        with pytest.raises(QueryError):
            engine.run(QueryMode.EXEC, Query("INSERT INTO nowhere VALUES (1)"))

        engine.run(QueryMode.EXEC, Query("INSERT INTO items (label) VALUES ('ok')"))
        assert _labels(engine) == ["ok"]

    def test_statements_autocommit_outside_transaction(self, engine):
        engine.run(QueryMode.EXEC, Query("INSERT INTO items (label) VALUES ('a')"))
        assert engine.connection.in_transaction() is False

    def test_negative_rowcount_reported_as_zero(self):
        conn = _mock_connection()
        result = MagicMock(rowcount=-1, lastrowid=None, returns_rows=False)
        conn.execute.return_value = result
        query = Query("CREATE TABLE t (id INTEGER)")

        assert ExecutionEngine(conn).run(QueryMode.EXEC, query) is True
        assert query.row_count == 0
        result.close.assert_called_once()

    def test_result_closed_when_fetch_fails(self):
        conn = _mock_connection()
        result = MagicMock(returns_rows=False)
        conn.execute.return_value = result

        with pytest.raises(QueryError):
            ExecutionEngine(conn).run(QueryMode.FETCH, Query("DELETE FROM t"))

        result.close.assert_called_once()

    def test_failure_is_logged(self, engine, caplog):
        caplog.set_level(logging.ERROR)

        with pytest.raises(QueryError):
            engine.run(QueryMode.FETCH, Query("SELECT nope FROM items"))

        log_data = json.loads(caplog.records[-1].message)
        assert log_data["event"] == "database.query.failed"
        assert log_data["query"] == "SELECT nope FROM items"


class TestBinding:
    """Tests for parameter binding."""

    def test_named_parameters(self, engine):
        rows = engine.run(QueryMode.FETCH, Query("SELECT :a AS a, :b AS b", {"a": "x", "b": 2}))
        assert rows == [{"a": "x", "b": 2}]

    def test_positional_parameters_bind_one_based(self, engine):
        """List positions 0 and 1 fill the first and second placeholders."""
        query = Query("SELECT ? AS first, ? AS second", ["x", "y"])

        rows = engine.run(QueryMode.FETCH, query)

        assert rows == [{"first": "x", "second": "y"}]

    def test_positional_placeholder_inside_literal_is_kept(self, engine):
        rows = engine.run(QueryMode.FETCH, Query("SELECT '?' AS mark, ? AS value", [3]))
        assert rows == [{"mark": "?", "value": 3}]

    @pytest.mark.parametrize(
        "value,sqlite_type",
        [
            (7, "integer"),
            ("7", "text"),
            (None, "null"),
            (1.5, "text"),
        ],
    )
    def test_bind_types(self, engine, value, sqlite_type):
        """Values outside bool/int/None are bound as text."""
        rows = engine.run(QueryMode.FETCH, Query("SELECT typeof(:v) AS t", {"v": value}))
        assert rows[0]["t"] == sqlite_type

    def test_boolean_binds_as_integer_flag(self, engine):
        rows = engine.run(QueryMode.FETCH, Query("SELECT :flag AS flag", {"flag": True}))
        assert rows[0]["flag"] == 1

    def test_explicit_bound_value_wins(self, engine):
        query = Query("SELECT typeof(:v) AS t", {"v": BoundValue(BindType.TEXT, 7)})
        assert engine.run(QueryMode.FETCH, query)[0]["t"] == "text"

    def test_uncoercible_bound_value_is_query_error(self, engine):
        """An explicit INT bind that is not a number fails before execution."""
        query = Query("SELECT * FROM items WHERE id = :id", {"id": BoundValue(BindType.INT, "abc")})

        with pytest.raises(QueryError, match="Failed to bind parameters") as exc_info:
            engine.run(QueryMode.FETCH, query)

        assert exc_info.value.query is query
        assert query.executed is True
        assert query.error.startswith("Failed to bind parameters")
        assert engine.queries.last() is query
        assert engine.connection.in_transaction() is False

    def test_unknown_parameter_is_query_error(self, engine):
        with pytest.raises(QueryError):
            engine.run(QueryMode.FETCH, Query("SELECT 1 AS one", {"extra": 1}))


class TestQueryLog:
    """Tests for query log recording."""

    def test_every_submitted_query_is_logged(self, connection):
        log = QueryLog()
        engine = ExecutionEngine(connection, query_log=log)
        first = Query("SELECT 1 AS one")
        failing = Query("SELECT * FROM nowhere")

        engine.run(QueryMode.FETCH, first)
        with pytest.raises(QueryError):
            engine.run(QueryMode.FETCH, failing)

        assert list(log) == [first, failing]
        assert log.last() is failing
        assert log.failed() == [failing]

    def test_engines_do_not_share_logs(self, connection):
        one = ExecutionEngine(connection)
        other = ExecutionEngine(connection)

        one.run(QueryMode.FETCH, Query("SELECT 1 AS one"))

        assert len(one.queries) == 1
        assert len(other.queries) == 0


class TestTransactions:
    """Tests for the transaction sub-protocol."""

    def test_rollback_discards_writes(self, engine):
        engine.begin_transaction()
        assert engine.in_transaction() is True

        engine.run(QueryMode.EXEC, Query("INSERT INTO items (label) VALUES ('temp')"))
        engine.rollback()

        assert engine.in_transaction() is False
        assert _labels(engine) == []

    def test_commit_keeps_writes(self, engine):
        engine.begin_transaction()
        engine.run(QueryMode.EXEC, Query("INSERT INTO items (label) VALUES ('kept')"))
        engine.commit()

        assert engine.in_transaction() is False
        assert _labels(engine) == ["kept"]

    def test_commit_without_transaction_fails(self, engine):
        with pytest.raises(AdapterError, match="Failed to commit transaction"):
            engine.commit()

    def test_rollback_without_transaction_fails(self, engine):
        with pytest.raises(AdapterError, match="Failed to roll back transaction"):
            engine.rollback()

    def test_begin_twice_fails(self, engine):
        engine.begin_transaction()
        with pytest.raises(AdapterError):
            engine.begin_transaction()
        engine.rollback()

    def test_begin_reported_inactive_is_adapter_error(self):
        """The connection accepted begin() but reports no transaction."""
        conn = _mock_connection(in_transaction=False)

        with pytest.raises(AdapterError, match="Failed to begin a transaction"):
            ExecutionEngine(conn).begin_transaction()

    def test_begin_driver_error_is_adapter_error(self):
        conn = _mock_connection()
        conn.begin.side_effect = OperationalError("BEGIN", {}, Exception("database is locked"))

        with pytest.raises(AdapterError, match="database is locked"):
            ExecutionEngine(conn).begin_transaction()

    def test_local_flag_skips_connection_lookup(self):
        conn = _mock_connection(in_transaction=True)
        engine = ExecutionEngine(conn)
        engine.begin_transaction()

        conn.in_transaction.side_effect = AssertionError("connection should not be asked")

        assert engine.in_transaction() is True

    def test_in_transaction_falls_back_to_connection(self):
        conn = _mock_connection(in_transaction=True)
        assert ExecutionEngine(conn).in_transaction() is True

    def test_failed_statement_inside_transaction_keeps_it_open(self, engine):
        engine.begin_transaction()
        engine.run(QueryMode.EXEC, Query("INSERT INTO items (label) VALUES ('a')"))

        with pytest.raises(QueryError):
            engine.run(QueryMode.EXEC, Query("INSERT INTO nowhere VALUES (1)"))

        assert engine.in_transaction() is True
        engine.commit()
        assert _labels(engine) == ["a"]


class TestLastInsertId:
    """Tests for last_insert_id."""

    def test_returns_generated_key(self, engine):
        engine.run(QueryMode.EXEC, Query("INSERT INTO items (label) VALUES ('a')"))
        engine.run(QueryMode.EXEC, Query("INSERT INTO items (label) VALUES ('b')"))

        assert engine.last_insert_id() == 2

    def test_zero_before_any_insert(self, engine):
        assert engine.last_insert_id() == 0

    def test_sequence_lookup_failure_is_adapter_error(self):
        conn = _mock_connection()
        conn.execute.side_effect = OperationalError("SELECT currval", {}, Exception("no sequence"))
        engine = ExecutionEngine(conn, dialect="postgresql")

        with pytest.raises(AdapterError, match="no sequence"):
            engine.last_insert_id("items_id_seq")
