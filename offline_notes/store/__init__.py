"""Versioned note store for Offline Notes.

Provides durable CRUD for note records with:
- One transaction per operation
- Additive, idempotent schema migration on open
"""

from .schema import NoteSchema, STORE_NAME
from .base import NoteStore, StoreHandle
from .duckdb_store import DuckDBNoteStore

__all__ = [
    "NoteSchema",
    "STORE_NAME",
    "NoteStore",
    "StoreHandle",
    "DuckDBNoteStore",
]
