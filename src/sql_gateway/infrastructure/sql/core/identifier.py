"""
SQL identifier handling utilities.

Provides functions for quoting table and column names so that user supplied
identifiers can never terminate the quoted name and inject SQL.
"""

from typing import Iterable, List

BACKTICK_DIALECTS = ("mysql", "sqlite")


def quote_identifier(name: str, dialect: str = "mysql") -> str:
    """
    Quote a SQL identifier (table or column name).

    Args:
        name: The identifier to quote
        dialect: Database dialect ("mysql", "sqlite", "postgresql")

    Returns:
        Properly quoted identifier

    Examples:
        >>> quote_identifier("users")
        '`users`'
        >>> quote_identifier("col`name")
        '`col``name`'
        >>> quote_identifier("users", dialect="postgresql")
        '"users"'
    """
    if dialect in BACKTICK_DIALECTS:
        escaped = name.replace("`", "``")
        return f"`{escaped}`"

    escaped = name.replace('"', '""')
    return f'"{escaped}"'


def is_expression(column: str) -> bool:
    """Columns containing parentheses are raw expressions such as ``count(*)``."""
    return "(" in column or ")" in column


def quote_column(column: str, dialect: str = "mysql") -> str:
    """
    Quote a projected column unless it is a raw expression.

    Examples:
        >>> quote_column(" name ")
        '`name`'
        >>> quote_column(" count(*) ")
        'count(*)'
    """
    column = column.strip()
    if is_expression(column):
        return column
    return quote_identifier(column, dialect)


def quote_columns(columns: Iterable[str], dialect: str = "mysql") -> List[str]:
    """Quote every column of a projection list."""
    return [quote_column(column, dialect) for column in columns]
