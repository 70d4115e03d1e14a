"""
Server credentials and driver registry.

A ``Server`` collects connection parameters fluently and turns them into a
SQLAlchemy URL through a factory registered for its ``DriverKind``.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from sqlalchemy.engine import URL
from sqlalchemy.pool import NullPool

from sql_gateway.io.connectors.exceptions import DatabaseConnectionError

if TYPE_CHECKING:
    from sql_gateway.config.settings import Settings
    from sql_gateway.io.database import Database


class DriverKind(str, Enum):
    """Database drivers the gateway can connect through."""

    MYSQL = "mysql"
    SQLITE = "sqlite"
    PGSQL = "pgsql"

    @classmethod
    def parse(cls, value: Any) -> "DriverKind":
        """
        Resolve a driver from its name or a common alias.

        Examples:
            >>> DriverKind.parse("postgresql")
            <DriverKind.PGSQL: 'pgsql'>
        """
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower()
        aliases = {"postgres": cls.PGSQL, "postgresql": cls.PGSQL}
        if name in aliases:
            return aliases[name]
        try:
            return cls(name)
        except ValueError:
            raise DatabaseConnectionError(f"Invalid database driver '{value}'") from None


UrlFactory = Callable[["Server"], URL]

_URL_FACTORIES: Dict[DriverKind, UrlFactory] = {}


def register_url_factory(driver: DriverKind) -> Callable[[UrlFactory], UrlFactory]:
    """Register the function building connection URLs for ``driver``."""

    def decorator(factory: UrlFactory) -> UrlFactory:
        _URL_FACTORIES[driver] = factory
        return factory

    return decorator


def build_url(server: "Server") -> URL:
    """Build the SQLAlchemy URL for a server through its driver's factory."""
    try:
        factory = _URL_FACTORIES[server.driver]
    except KeyError:
        raise DatabaseConnectionError(
            f'No connection factory registered for driver "{server.driver.value}"'
        ) from None
    return factory(server)


def _require_name(server: "Server") -> str:
    if not server.database:
        raise DatabaseConnectionError(
            f'Database name must be specified for driver "{server.driver.value}"'
        )
    return server.database


@register_url_factory(DriverKind.SQLITE)
def _sqlite_url(server: "Server") -> URL:
    return URL.create("sqlite", database=server.database or ":memory:")


@register_url_factory(DriverKind.MYSQL)
def _mysql_url(server: "Server") -> URL:
    return URL.create(
        "mysql+pymysql",
        username=server.user,
        password=server.secret,
        host=server.hostname,
        port=server.port_number,
        database=_require_name(server),
        query={"charset": "utf8mb4"},
    )


@register_url_factory(DriverKind.PGSQL)
def _pgsql_url(server: "Server") -> URL:
    return URL.create(
        "postgresql+psycopg2",
        username=server.user,
        password=server.secret,
        host=server.hostname,
        port=server.port_number,
        database=_require_name(server),
    )


class Server:
    """
    Fluent builder for database connection parameters.

    Usage:
        db = (
            Server(DriverKind.MYSQL)
            .host("db.internal")
            .name("shop")
            .username("app")
            .password("...")
            .connect()
        )
    """

    def __init__(self, driver: Any) -> None:
        self.driver = DriverKind.parse(driver)
        self.hostname = "localhost"
        self.port_number: Optional[int] = None
        self.database: Optional[str] = None
        self.user: Optional[str] = None
        self.secret: Optional[str] = None
        self.is_persistent = False

    @classmethod
    def from_settings(cls, settings: Optional["Settings"] = None) -> "Server":
        """Build a server from environment settings."""
        if settings is None:
            from sql_gateway.config import get_settings

            settings = get_settings()

        server = cls(settings.driver).host(settings.host)
        if settings.name:
            server.name(settings.name)
        if settings.port:
            server.port(settings.port)
        if settings.username:
            server.username(settings.username)
        if settings.password:
            server.password(settings.password)
        if settings.persistent:
            server.persistent()
        return server

    def name(self, database: str) -> "Server":
        self.database = database
        return self

    def host(self, hostname: str) -> "Server":
        self.hostname = hostname
        return self

    def port(self, port: int) -> "Server":
        self.port_number = port
        return self

    def username(self, user: str) -> "Server":
        self.user = user
        return self

    def password(self, password: str) -> "Server":
        self.secret = password
        return self

    def persistent(self) -> "Server":
        self.is_persistent = True
        return self

    def url(self) -> URL:
        return build_url(self)

    def engine_options(self) -> Dict[str, Any]:
        """Keyword arguments for ``sqlalchemy.create_engine``."""
        if self.is_persistent:
            return {"pool_pre_ping": True}
        return {"poolclass": NullPool}

    def describe(self) -> Dict[str, Any]:
        """Connection parameters without credentials."""
        return {
            "driver": self.driver.value,
            "host": None if self.driver is DriverKind.SQLITE else self.hostname,
            "port": self.port_number,
            "name": self.database,
            "persistent": self.is_persistent,
        }

    def connect(self) -> "Database":
        from sql_gateway.io.database import Database

        return Database(self)
