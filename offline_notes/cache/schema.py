"""DuckDB schema definitions for the offline resource cache.

Provides schema creation and migration for the cache database.
"""

from typing import Optional
import duckdb


class CacheSchema:
    """Manages DuckDB schema for cache database."""

    SCHEMA_VERSION = 1

    # SQL statements for creating tables
    CREATE_CACHE_META = """
    CREATE TABLE IF NOT EXISTS cache_meta (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """

    CREATE_CACHE_NAMES = """
    CREATE TABLE IF NOT EXISTS cache_names (
        name TEXT PRIMARY KEY,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """

    CREATE_CACHE_ENTRIES = """
    CREATE TABLE IF NOT EXISTS cache_entries (
        cache_name TEXT NOT NULL,
        url TEXT NOT NULL,
        status INTEGER NOT NULL,
        headers TEXT NOT NULL DEFAULT '{}',
        body BLOB,
        stored_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (cache_name, url)
    )
    """

    @classmethod
    def create_schema(cls, conn: duckdb.DuckDBPyConnection) -> None:
        """Create all tables.

        Args:
            conn: DuckDB connection
        """
        conn.execute(cls.CREATE_CACHE_META)
        conn.execute(cls.CREATE_CACHE_NAMES)
        conn.execute(cls.CREATE_CACHE_ENTRIES)

        # Set schema version
        conn.execute(
            """
            INSERT OR REPLACE INTO cache_meta (key, value, updated_at)
            VALUES ('schema_version', ?, CURRENT_TIMESTAMP)
            """,
            [str(cls.SCHEMA_VERSION)],
        )

    @classmethod
    def get_schema_version(cls, conn: duckdb.DuckDBPyConnection) -> Optional[int]:
        """Get current schema version from database.

        Args:
            conn: DuckDB connection

        Returns:
            Schema version or None if not set
        """
        try:
            result = conn.execute(
                "SELECT value FROM cache_meta WHERE key = 'schema_version'"
            ).fetchone()
            if result:
                return int(result[0])
        except duckdb.CatalogException:
            pass
        return None

    @classmethod
    def needs_migration(cls, conn: duckdb.DuckDBPyConnection) -> bool:
        """Check if schema needs migration.

        Args:
            conn: DuckDB connection

        Returns:
            True if migration is needed
        """
        current_version = cls.get_schema_version(conn)
        return current_version is None or current_version < cls.SCHEMA_VERSION

    @classmethod
    def migrate(cls, conn: duckdb.DuckDBPyConnection) -> None:
        """Migrate schema to latest version.

        Args:
            conn: DuckDB connection
        """
        # Every statement is idempotent, so a fresh install and an upgrade
        # run the same script.
        cls.create_schema(conn)
