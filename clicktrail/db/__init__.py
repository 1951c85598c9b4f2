"""
Database module with abstraction layer.

This module provides:
- DatabaseAdapter interface: Abstract base class for database implementations
- SQLiteAdapter / PostgreSQLAdapter: Backend-specific implementations
- Session management: Database session creation and management
"""

from clicktrail.db.interface import DatabaseAdapter
from clicktrail.db.session import get_session, async_session_maker, engine, db_adapter

__all__ = [
    "DatabaseAdapter",
    "get_session",
    "async_session_maker",
    "engine",
    "db_adapter",
]
