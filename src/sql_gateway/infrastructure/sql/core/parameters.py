"""
SQL parameter binding utilities.

Provides the closed set of bind types used when binding values to a prepared
statement, and helpers that rewrite placeholders inside SQL text while leaving
quoted literals and identifiers untouched.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List

from sqlalchemy.types import Boolean, Integer, NullType, String, TypeEngine

# Quoted strings and identifiers are never scanned for placeholders
_QUOTED_RE = re.compile(r"('(?:[^']|'')*'|\"(?:[^\"]|\"\")*\"|`(?:[^`]|``)*`)")
# MySQL string literals also accept backslash escapes such as \'
_MYSQL_QUOTED_RE = re.compile(
    r"('(?:[^'\\]|\\.|'')*'|\"(?:[^\"\\]|\\.|\"\")*\"|`(?:[^`]|``)*`)", re.DOTALL
)
# Same rule SQLAlchemy's text() uses, so "::" casts are not placeholders
_NAMED_RE = re.compile(r"(?<![:\w\\]):(\w+)(?!:)")

WHERE_PARAM_PREFIX = "__"


class BindType(str, Enum):
    """Value kinds a parameter can be bound as."""

    BOOL = "bool"
    INT = "int"
    NULL = "null"
    TEXT = "text"


_SQL_TYPES: Dict[BindType, Callable[[], TypeEngine]] = {
    BindType.BOOL: Boolean,
    BindType.INT: Integer,
    BindType.NULL: NullType,
    BindType.TEXT: String,
}


@dataclass(frozen=True)
class BoundValue:
    """
    A parameter value tagged with the kind it is bound as.

    Callers may construct one explicitly to force a bind type; otherwise
    ``BoundValue.infer`` decides once, at the binding boundary.
    """

    kind: BindType
    value: Any

    @classmethod
    def infer(cls, value: Any) -> "BoundValue":
        """
        Tag a raw value. Anything that is not bool, int or None binds as text.

        Examples:
            >>> BoundValue.infer(True).kind
            <BindType.BOOL: 'bool'>
            >>> BoundValue.infer(1.5)
            BoundValue(kind=<BindType.TEXT: 'text'>, value='1.5')
        """
        if isinstance(value, BoundValue):
            return value
        # bool before int: bool is an int subclass
        if isinstance(value, bool):
            return cls(BindType.BOOL, value)
        if isinstance(value, int):
            return cls(BindType.INT, value)
        if value is None:
            return cls(BindType.NULL, None)
        if isinstance(value, (str, bytes)):
            return cls(BindType.TEXT, value)
        return cls(BindType.TEXT, str(value))

    @property
    def bind_value(self) -> Any:
        """The value coerced to its kind."""
        if self.kind is BindType.NULL:
            return None
        if self.kind is BindType.BOOL:
            return bool(self.value)
        if self.kind is BindType.INT:
            return int(self.value)
        if isinstance(self.value, (str, bytes)):
            return self.value
        return str(self.value)

    @property
    def sql_type(self) -> TypeEngine:
        """SQLAlchemy type used for the bind parameter."""
        return _SQL_TYPES[self.kind]()


def _quoted_pattern(dialect: str) -> "re.Pattern[str]":
    return _MYSQL_QUOTED_RE if dialect == "mysql" else _QUOTED_RE


def _unquoted_parts(text: str, dialect: str) -> List[str]:
    # split() with a capturing group alternates plain SQL / quoted literal
    return _quoted_pattern(dialect).split(text)[::2]


def _rewrite_unquoted(text: str, rewrite: Callable[[str], str], dialect: str) -> str:
    parts = _quoted_pattern(dialect).split(text)
    return "".join(
        rewrite(part) if index % 2 == 0 else part for index, part in enumerate(parts)
    )


def has_positional_placeholders(text: str, dialect: str = "mysql") -> bool:
    """True when ``?`` placeholders occur outside quoted literals."""
    return any("?" in part for part in _unquoted_parts(text, dialect))


def number_positional_placeholders(text: str, dialect: str = "mysql") -> str:
    """
    Rewrite ``?`` placeholders as 1-based numbered placeholders.

    Examples:
        >>> number_positional_placeholders("SELECT * FROM t WHERE a=? AND b='?'")
        "SELECT * FROM t WHERE a=:1 AND b='?'"
    """
    counter = 0

    def _number(part: str) -> str:
        nonlocal counter
        pieces = part.split("?")
        numbered = [pieces[0]]
        for piece in pieces[1:]:
            counter += 1
            numbered.append(f":{counter}{piece}")
        return "".join(numbered)

    return _rewrite_unquoted(text, _number, dialect)


def named_placeholders(text: str, dialect: str = "mysql") -> List[str]:
    """Names of the ``:name`` placeholders in order of appearance."""
    names: List[str] = []
    for part in _unquoted_parts(text, dialect):
        names.extend(_NAMED_RE.findall(part))
    return names


def prefix_named_placeholders(
    text: str, prefix: str = WHERE_PARAM_PREFIX, dialect: str = "mysql"
) -> str:
    """
    Prefix every named placeholder, e.g. ``:id`` becomes ``:__id``.

    Quoted literals are left alone. On MySQL a backslash-escaped quote does
    not end a literal; other dialects only recognize doubled quotes.

    Examples:
        >>> prefix_named_placeholders("id=:id AND name=':id'")
        "id=:__id AND name=':id'"
    """
    return _rewrite_unquoted(
        text,
        lambda part: _NAMED_RE.sub(lambda m: f":{prefix}{m.group(1)}", part),
        dialect,
    )


def prefix_params(params: Dict[str, Any], prefix: str = WHERE_PARAM_PREFIX) -> Dict[str, Any]:
    """
    Prefix the keys of a named parameter mapping.

    Examples:
        >>> prefix_params({"id": 5})
        {'__id': 5}
    """
    return {f"{prefix}{key}": value for key, value in params.items()}
