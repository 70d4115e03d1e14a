"""Core SQL utilities package."""

from .identifier import is_expression, quote_column, quote_columns, quote_identifier
from .parameters import (
    WHERE_PARAM_PREFIX,
    BindType,
    BoundValue,
    has_positional_placeholders,
    named_placeholders,
    number_positional_placeholders,
    prefix_named_placeholders,
    prefix_params,
)

__all__ = [
    "quote_identifier",
    "quote_column",
    "quote_columns",
    "is_expression",
    "WHERE_PARAM_PREFIX",
    "BindType",
    "BoundValue",
    "has_positional_placeholders",
    "named_placeholders",
    "number_positional_placeholders",
    "prefix_named_placeholders",
    "prefix_params",
]
