"""Named resource caches.

A cache storage holds any number of named caches, each mapping a request
URL to a stored response, plus a small key/value area for coordinator state.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from contextlib import suppress
from pathlib import Path
from typing import Any, Dict, List, Optional

import duckdb

from .schema import CacheSchema
from ..config import cache_path
from ..errors import StorageUnavailable, WriteFailed
from ..models.http import Response

logger = logging.getLogger(__name__)


def get_default_cache_path() -> Path:
    """Get default resource cache database path.

    Returns:
        Path to cache database file
    """
    return Path(cache_path("resources.duckdb")).expanduser()


class CacheStorage(ABC):
    """Abstract base class for named resource caches."""

    @abstractmethod
    def keys(self) -> List[str]:
        """Get the names of all existing caches."""
        pass

    @abstractmethod
    def open(self, name: str) -> None:
        """Create the named cache if it does not exist yet."""
        pass

    @abstractmethod
    def delete(self, name: str) -> bool:
        """Delete a cache and all its entries.

        Returns:
            True if the cache existed
        """
        pass

    @abstractmethod
    def match(self, name: str, url: str) -> Optional[Response]:
        """Get the stored response for a URL, or None."""
        pass

    @abstractmethod
    def put(self, name: str, url: str, response: Response) -> None:
        """Store a response, creating the cache if needed.

        Raises:
            WriteFailed: Nothing was stored
        """
        pass

    @abstractmethod
    def put_all(self, name: str, responses: Dict[str, Response]) -> None:
        """Store several responses in one transaction.

        Raises:
            WriteFailed: None of the responses were stored
        """
        pass

    @abstractmethod
    def entry_count(self, name: str) -> int:
        pass

    @abstractmethod
    def get_meta(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set_meta(self, key: str, value: str) -> None:
        pass

    def has(self, name: str) -> bool:
        return name in self.keys()

    def close(self) -> None:
        """Release the underlying connection, if any."""


class DuckDBCacheStorage(CacheStorage):
    """Resource caches kept in a DuckDB file.

    Revalidation runs on worker threads, so access to the single connection
    is serialised with a lock.
    """

    def __init__(self, db_path: Optional[str] = None):
        """Initialize cache storage.

        Args:
            db_path: Path to DuckDB database file (default: ~/.cache/offline-notes/resources.duckdb)
        """
        if db_path:
            self.db_path = Path(db_path).expanduser()
        else:
            self.db_path = get_default_cache_path()

        self._conn: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = threading.RLock()

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        """Get or create database connection.

        Returns:
            DuckDB connection
        """
        if self._conn is None:
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                self._conn = duckdb.connect(str(self.db_path))
            except (OSError, duckdb.Error) as e:
                raise StorageUnavailable(f"Cannot open resource cache {self.db_path}: {e}") from e
            if CacheSchema.needs_migration(self._conn):
                CacheSchema.migrate(self._conn)
        return self._conn

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None

    def _write(self, action: str, statements: List[tuple]) -> None:
        """Execute (sql, params) pairs in one transaction."""
        with self._lock:
            conn = self._get_connection()
            conn.begin()
            try:
                for sql, params in statements:
                    conn.execute(sql, params)
                conn.commit()
            except duckdb.Error as e:
                with suppress(duckdb.Error):
                    conn.rollback()
                raise WriteFailed(f"Could not {action}: {e}") from e

    @staticmethod
    def _entry_params(name: str, url: str, response: Response) -> List[Any]:
        return [name, url, response.status, json.dumps(response.headers), response.body]

    _REGISTER_NAME = "INSERT OR IGNORE INTO cache_names (name) VALUES (?)"
    _PUT_ENTRY = """
        INSERT OR REPLACE INTO cache_entries
        (cache_name, url, status, headers, body, stored_at)
        VALUES (?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
    """

    def keys(self) -> List[str]:
        with self._lock:
            conn = self._get_connection()
            rows = conn.execute("SELECT name FROM cache_names ORDER BY name").fetchall()
        return [row[0] for row in rows]

    def open(self, name: str) -> None:
        self._write(f"create cache {name}", [(self._REGISTER_NAME, [name])])

    def delete(self, name: str) -> bool:
        existed = self.has(name)
        self._write(
            f"delete cache {name}",
            [
                ("DELETE FROM cache_entries WHERE cache_name = ?", [name]),
                ("DELETE FROM cache_names WHERE name = ?", [name]),
            ],
        )
        return existed

    def match(self, name: str, url: str) -> Optional[Response]:
        with self._lock:
            conn = self._get_connection()
            row = conn.execute(
                """
                SELECT status, headers, body FROM cache_entries
                WHERE cache_name = ? AND url = ?
                """,
                [name, url],
            ).fetchone()
        if not row:
            return None
        return Response(
            url=url,
            status=row[0],
            headers=json.loads(row[1]),
            body=bytes(row[2] or b""),
            from_cache=True,
        )

    def put(self, name: str, url: str, response: Response) -> None:
        self.put_all(name, {url: response})

    def put_all(self, name: str, responses: Dict[str, Response]) -> None:
        statements: List[tuple] = [(self._REGISTER_NAME, [name])]
        for url, response in responses.items():
            statements.append((self._PUT_ENTRY, self._entry_params(name, url, response)))
        self._write(f"store {len(responses)} entries in {name}", statements)

    def entry_count(self, name: str) -> int:
        with self._lock:
            conn = self._get_connection()
            return conn.execute(
                "SELECT COUNT(*) FROM cache_entries WHERE cache_name = ?", [name]
            ).fetchone()[0]

    def get_meta(self, key: str) -> Optional[str]:
        with self._lock:
            conn = self._get_connection()
            row = conn.execute(
                "SELECT value FROM cache_meta WHERE key = ?", [key]
            ).fetchone()
        return row[0] if row else None

    def set_meta(self, key: str, value: str) -> None:
        self._write(
            f"set {key}",
            [
                (
                    """
                    INSERT OR REPLACE INTO cache_meta (key, value, updated_at)
                    VALUES (?, ?, CURRENT_TIMESTAMP)
                    """,
                    [key, value],
                )
            ],
        )

    def size_bytes(self) -> int:
        return self.db_path.stat().st_size if self.db_path.exists() else 0
