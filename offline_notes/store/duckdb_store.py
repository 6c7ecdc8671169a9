"""DuckDB-backed note store."""

import logging
from contextlib import contextmanager, suppress
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

import duckdb

from .base import NoteStore, StoreHandle
from .schema import STORE_NAME, NoteSchema
from ..config import data_path
from ..errors import StorageUnavailable, WriteFailed
from ..models.note import Note

logger = logging.getLogger(__name__)

COLUMNS = "id, title, body, image, geo_lat, geo_lon, created, updated"


def get_default_store_path() -> Path:
    """Get default note database path."""
    return Path(data_path("notes.duckdb")).expanduser()


class DuckDBNoteStore(NoteStore):
    """Note store kept in a DuckDB file.

    The connection is opened lazily and can be closed and reopened at any
    time; reopening an up-to-date file does not touch its data.
    """

    def __init__(
        self,
        db_path: Optional[str] = None,
        version: int = NoteSchema.LATEST_VERSION,
    ):
        """Initialize note store.

        Args:
            db_path: Path to DuckDB database file (default: ~/.local/share/offline-notes/notes.duckdb)
            version: Declared schema version
        """
        if version < NoteSchema.LATEST_VERSION:
            raise ValueError(
                f"Note store needs schema version {NoteSchema.LATEST_VERSION} or later, got {version}"
            )
        if db_path:
            self.db_path = Path(db_path).expanduser()
        else:
            self.db_path = get_default_store_path()

        self.version = version
        self._conn: Optional[duckdb.DuckDBPyConnection] = None
        self._handle: Optional[StoreHandle] = None

    def open(self) -> StoreHandle:
        if self._conn is not None and self._handle is not None:
            return self._handle

        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = duckdb.connect(str(self.db_path))
        except (OSError, duckdb.Error) as e:
            raise StorageUnavailable(f"Cannot open note store {self.db_path}: {e}") from e

        try:
            previous = NoteSchema.get_schema_version(conn)
            if previous is not None and previous > self.version:
                raise StorageUnavailable(
                    f"Note store {self.db_path} is at version {previous}, "
                    f"newer than declared version {self.version}"
                )
            if NoteSchema.needs_migration(conn, self.version):
                logger.info(
                    "Migrating note store %s from version %s to %s",
                    self.db_path,
                    previous,
                    self.version,
                )
                NoteSchema.migrate(conn, self.version)
        except Exception:
            conn.close()
            raise

        self._conn = conn
        self._handle = StoreHandle(
            name=STORE_NAME,
            location=str(self.db_path),
            version=self.version,
            previous_version=previous,
        )
        return self._handle

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None
            self._handle = None

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        if self._conn is None:
            self.open()
        return self._conn

    @contextmanager
    def _write(self, action: str) -> Iterator[duckdb.DuckDBPyConnection]:
        """Run a write in its own transaction, rolling back on failure."""
        conn = self._get_connection()
        conn.begin()
        try:
            yield conn
            conn.commit()
        except duckdb.Error as e:
            with suppress(duckdb.Error):
                conn.rollback()
            logger.error("Note store write failed (%s): %s", action, e)
            raise WriteFailed(f"Could not {action}: {e}") from e
        except Exception:
            with suppress(duckdb.Error):
                conn.rollback()
            raise

    def _query(self, sql: str, params: Optional[List[Any]] = None) -> List[tuple]:
        conn = self._get_connection()
        try:
            return conn.execute(sql, params or []).fetchall()
        except duckdb.Error as e:
            raise StorageUnavailable(f"Cannot read note store {self.db_path}: {e}") from e

    @staticmethod
    def _row_to_note(row: tuple) -> Note:
        note_id, title, body, image, geo_lat, geo_lon, created, updated = row
        geo = None
        if geo_lat is not None and geo_lon is not None:
            geo = {"lat": geo_lat, "lon": geo_lon}
        return Note.from_record(
            {
                "id": note_id,
                "title": title,
                "body": body,
                "image": image,
                "geo": geo,
                "created": created,
                "updated": updated,
            }
        )

    # === CRUD ===

    def put(self, note: Note) -> None:
        with self._write(f"save note {note.id}") as conn:
            conn.execute(
                f"""
                INSERT OR REPLACE INTO {STORE_NAME}
                ({COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    note.id,
                    note.title,
                    note.body,
                    note.image,
                    note.geo.lat if note.geo else None,
                    note.geo.lon if note.geo else None,
                    note.created,
                    note.updated,
                ],
            )

    def get_all(self) -> List[Note]:
        rows = self._query(f"SELECT {COLUMNS} FROM {STORE_NAME}")
        return [self._row_to_note(row) for row in rows]

    def get_by_id(self, note_id: str) -> Optional[Note]:
        rows = self._query(
            f"SELECT {COLUMNS} FROM {STORE_NAME} WHERE id = ?",
            [note_id],
        )
        return self._row_to_note(rows[0]) if rows else None

    def delete_by_id(self, note_id: str) -> None:
        with self._write(f"delete note {note_id}") as conn:
            conn.execute(f"DELETE FROM {STORE_NAME} WHERE id = ?", [note_id])

    def clear(self) -> None:
        with self._write("clear notes") as conn:
            conn.execute(f"DELETE FROM {STORE_NAME}")
        logger.info("Cleared note store %s", self.db_path)

    def count(self) -> int:
        return self._query(f"SELECT COUNT(*) FROM {STORE_NAME}")[0][0]

    def stats(self) -> Dict[str, Any]:
        stats = super().stats()
        stats["db_size_bytes"] = self.db_path.stat().st_size if self.db_path.exists() else 0
        return stats
