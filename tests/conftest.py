"""Pytest configuration and shared database fixtures.

Every database fixture is an in-memory SQLite connection, so the suite runs
without any server. Settings are read from SQLGW_* variables; the fixture
below strips them so a developer's shell cannot leak into the tests.
"""

from __future__ import annotations

import os
from typing import Any, Callable, Dict, Generator, List

import pytest

from sql_gateway.config import get_settings
from sql_gateway.io.connectors import DriverKind, Server
from sql_gateway.io.database import Database

USERS_DDL = (
    "CREATE TABLE users ("
    "id INTEGER PRIMARY KEY, "
    "name TEXT NOT NULL, "
    "email TEXT, "
    "active BOOLEAN DEFAULT 1, "
    "age INTEGER"
    ")"
)

USERS_FIXTURE = [
    {"id": 5, "name": "alice", "email": "alice@example.com", "active": 1, "age": 31},
    {"id": 6, "name": "bob", "email": None, "active": 0, "age": 27},
    {"id": 7, "name": "carol", "email": "carol@example.com", "active": 1, "age": 45},
]


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Isolate every test from SQLGW_* environment variables."""
    for key in list(os.environ):
        if key.startswith("SQLGW_"):
            monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def db() -> Generator[Database, None, None]:
    """Empty in-memory SQLite database."""
    database = Server(DriverKind.SQLITE).name(":memory:").connect()
    try:
        yield database
    finally:
        database.close()


@pytest.fixture
def users_rows() -> List[Dict[str, Any]]:
    """Copy of the rows loaded into the ``users`` fixture table."""
    return [dict(row) for row in USERS_FIXTURE]


@pytest.fixture
def seed_users() -> Callable[[Database], None]:
    """Create and fill the ``users`` table on a given database."""

    def _seed(database: Database) -> None:
        database.exec(USERS_DDL)
        for row in USERS_FIXTURE:
            database.exec(
                "INSERT INTO users (id, name, email, active, age) "
                "VALUES (:id, :name, :email, :active, :age)",
                row,
            )

    return _seed


@pytest.fixture
def users_db(db: Database, seed_users: Callable[[Database], None]) -> Database:
    """Database holding the ``users`` fixture table."""
    seed_users(db)
    return db
