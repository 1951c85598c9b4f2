"""
Database adapter factory.

Picks the adapter matching the dialect of the configured DATABASE_URL.
"""

from clicktrail.core.setting import settings
from clicktrail.db.interface import DatabaseAdapter
from clicktrail.db.postgres_adapter import PostgreSQLAdapter
from clicktrail.db.sqlite_adapter import SQLiteAdapter


def get_database_adapter(database_url: str = None) -> DatabaseAdapter:
    """
    Factory function to get the database adapter.

    Returns SQLiteAdapter for sqlite URLs (the default) and
    PostgreSQLAdapter for postgresql URLs.

    Args:
        database_url: Connection string, defaults to settings.DATABASE_URL

    Returns:
        DatabaseAdapter instance
    """
    url = database_url or settings.DATABASE_URL
    if url.startswith("postgresql"):
        return PostgreSQLAdapter()
    return SQLiteAdapter()
