"""Record store abstraction for Offline Notes.

Every operation runs as its own transaction. Nothing locks across calls:
read-modify-write sequences are the caller's to order.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..models.note import Note


class StoreHandle(BaseModel):
    """Describes an open note store."""

    name: str
    location: str
    version: int = Field(description="Declared schema version now in effect")
    previous_version: Optional[int] = Field(
        default=None, description="Version found on disk before opening"
    )

    @property
    def migrated(self) -> bool:
        return self.previous_version != self.version


class NoteStore(ABC):
    """Abstract base class for note stores."""

    @abstractmethod
    def open(self) -> StoreHandle:
        """Connect, migrating if the stored version is behind.

        Raises:
            StorageUnavailable: The platform refused the connection
            MigrationFailed: Upgrade failed and was rolled back
        """
        pass

    @abstractmethod
    def put(self, note: Note) -> None:
        """Insert or overwrite the note with ``note.id``.

        Raises:
            WriteFailed: Nothing was written
        """
        pass

    @abstractmethod
    def get_all(self) -> List[Note]:
        """Get every note, in no particular order."""
        pass

    @abstractmethod
    def get_by_id(self, note_id: str) -> Optional[Note]:
        """Get a note by id, or None."""
        pass

    @abstractmethod
    def delete_by_id(self, note_id: str) -> None:
        """Delete a note. Deleting an unknown id succeeds."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Delete every note in one transaction.

        Raises:
            WriteFailed: No note was deleted
        """
        pass

    def count(self) -> int:
        return len(self.get_all())

    def stats(self) -> Dict[str, Any]:
        """Get store statistics."""
        handle = self.open()
        return {
            "name": handle.name,
            "location": handle.location,
            "version": handle.version,
            "notes": self.count(),
        }

    def close(self) -> None:
        """Release the underlying connection, if any."""

    def __enter__(self) -> "NoteStore":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
