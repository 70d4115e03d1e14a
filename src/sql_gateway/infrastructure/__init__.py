"""
Infrastructure Layer

Reusable SQL text utilities that support the engine and the statement
builder without knowing about connections.

Components:
- sql: identifier quoting, bind types and placeholder rewriting

Usage:
    from sql_gateway.infrastructure.sql import quote_identifier, BoundValue
"""
