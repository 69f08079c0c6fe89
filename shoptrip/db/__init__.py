"""SQLite persistence for trip sessions."""

from .schema import ensure_schema
from .sessions import SQLiteSessionStore

__all__ = [
    "SQLiteSessionStore",
    "ensure_schema",
]
