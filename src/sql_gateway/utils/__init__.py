"""Shared utilities."""

from .logging import bind_context, get_logger

__all__ = ["get_logger", "bind_context"]
