"""
SQL module for centralized SQL text handling.

This module provides reusable utilities for building SQL statements with
proper identifier quoting, typed parameter binding and placeholder rewriting.
"""

from .core.identifier import quote_column, quote_columns, quote_identifier
from .core.parameters import (
    BindType,
    BoundValue,
    number_positional_placeholders,
    prefix_named_placeholders,
)

__all__ = [
    "quote_identifier",
    "quote_column",
    "quote_columns",
    "BindType",
    "BoundValue",
    "number_positional_placeholders",
    "prefix_named_placeholders",
]
