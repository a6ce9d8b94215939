"""
Database models for the short-link loader.

Importing this package registers every table with Base.metadata.
"""

from .url import ShortURL
from .log import ClickLog
from .option import Option

__all__ = ["ShortURL", "ClickLog", "Option"]
