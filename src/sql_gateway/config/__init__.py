"""Configuration management for SQL Gateway.

Usage:
    >>> from sql_gateway.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.driver, settings.LOG_LEVEL)
"""

from sql_gateway.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
