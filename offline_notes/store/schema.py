"""DuckDB schema definitions for the note store.

Provides schema creation and additive migration between versions.
"""

from contextlib import suppress
from typing import Callable, Dict, Optional

import duckdb

from ..errors import MigrationFailed

STORE_NAME = "notes"


class NoteSchema:
    """Manages DuckDB schema for the note database."""

    LATEST_VERSION = 2

    CREATE_STORE_META = """
    CREATE TABLE IF NOT EXISTS store_meta (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """

    # v1: one row per note keyed by id
    CREATE_NOTES = f"""
    CREATE TABLE IF NOT EXISTS {STORE_NAME} (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL DEFAULT '',
        body TEXT NOT NULL DEFAULT '',
        image TEXT,
        updated BIGINT NOT NULL
    )
    """

    # v2: creation time and location
    ADD_V2_COLUMNS = [
        f"ALTER TABLE {STORE_NAME} ADD COLUMN IF NOT EXISTS created BIGINT",
        f"ALTER TABLE {STORE_NAME} ADD COLUMN IF NOT EXISTS geo_lat DOUBLE",
        f"ALTER TABLE {STORE_NAME} ADD COLUMN IF NOT EXISTS geo_lon DOUBLE",
    ]

    @classmethod
    def _upgrade_to_v1(cls, conn: duckdb.DuckDBPyConnection) -> None:
        conn.execute(cls.CREATE_NOTES)

    @classmethod
    def _upgrade_to_v2(cls, conn: duckdb.DuckDBPyConnection) -> None:
        # Existing rows keep a NULL created; readers fall back to updated
        for sql in cls.ADD_V2_COLUMNS:
            conn.execute(sql)

    @classmethod
    def steps(cls) -> Dict[int, Callable[[duckdb.DuckDBPyConnection], None]]:
        """Upgrade step that brings the store to each version."""
        return {
            1: cls._upgrade_to_v1,
            2: cls._upgrade_to_v2,
        }

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
                "SELECT value FROM store_meta WHERE key = 'schema_version'"
            ).fetchone()
            if result:
                return int(result[0])
        except duckdb.CatalogException:
            pass
        return None

    @classmethod
    def needs_migration(cls, conn: duckdb.DuckDBPyConnection, version: int) -> bool:
        """Check if schema is behind the requested version.

        Args:
            conn: DuckDB connection
            version: Declared schema version

        Returns:
            True if migration is needed
        """
        current_version = cls.get_schema_version(conn)
        return current_version is None or current_version < version

    @classmethod
    def migrate(cls, conn: duckdb.DuckDBPyConnection, version: int) -> Optional[int]:
        """Migrate schema up to the requested version.

        All steps and the version bump run in one transaction. Versions past
        the last known step only record the new number.

        Args:
            conn: DuckDB connection
            version: Declared schema version

        Returns:
            Version found before migrating (None for a fresh database)

        Raises:
            MigrationFailed: A step failed; the database is left untouched
        """
        current_version = cls.get_schema_version(conn)
        start = current_version or 0
        if start >= version:
            return current_version

        steps = cls.steps()
        conn.begin()
        try:
            conn.execute(cls.CREATE_STORE_META)
            for target in range(start + 1, version + 1):
                step = steps.get(target)
                if step:
                    step(conn)
            conn.execute(
                """
                INSERT OR REPLACE INTO store_meta (key, value, updated_at)
                VALUES ('schema_version', ?, CURRENT_TIMESTAMP)
                """,
                [str(version)],
            )
            conn.commit()
        except Exception as e:
            with suppress(duckdb.Error):
                conn.rollback()
            raise MigrationFailed(
                f"Migration from version {current_version} to {version} failed: {e}",
                from_version=current_version,
                to_version=version,
            ) from e

        return current_version
