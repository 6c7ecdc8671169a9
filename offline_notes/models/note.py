"""Note record models for Offline Notes."""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


class GeoPoint(BaseModel):
    """Coordinate pair attached to a note."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90.0, le=90.0, description="Latitude in degrees")
    lon: float = Field(ge=-180.0, le=180.0, description="Longitude in degrees")


class Note(BaseModel):
    """A persisted note record.

    ``created`` and ``updated`` are epoch milliseconds. ``image`` holds a
    self-contained ``data:`` URL, never a reference to an external file.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, description="Opaque primary key")
    title: str = Field(default="")
    body: str = Field(default="")
    image: Optional[str] = Field(default=None, description="Encoded image payload")
    geo: Optional[GeoPoint] = Field(default=None)
    created: int = Field(ge=0, description="First save, epoch ms")
    updated: int = Field(ge=0, description="Last save, epoch ms")

    @model_validator(mode="after")
    def _check_timestamps(self) -> "Note":
        if self.updated < self.created:
            raise ValueError("updated must not precede created")
        return self

    @computed_field
    @property
    def updated_datetime(self) -> datetime:
        """Get last save time as datetime object."""
        return datetime.fromtimestamp(self.updated / 1000)

    @property
    def has_image(self) -> bool:
        return self.image is not None

    def to_record(self) -> Dict[str, Any]:
        """Serialize to the persisted record shape."""
        return {
            "id": self.id,
            "title": self.title,
            "body": self.body,
            "image": self.image,
            "geo": {"lat": self.geo.lat, "lon": self.geo.lon} if self.geo else None,
            "created": self.created,
            "updated": self.updated,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Note":
        """Build a note from the persisted record shape.

        Records written before ``created`` existed fall back to ``updated``.
        """
        data = dict(record)
        if data.get("created") is None:
            data["created"] = data["updated"]
        return cls(**data)


class NoteDraft(BaseModel):
    """Editor state waiting to be saved.

    ``id`` is None for a note that has never been saved.
    """

    id: Optional[str] = None
    title: str = ""
    body: str = ""
    image: Optional[str] = None
    geo: Optional[GeoPoint] = None

    @property
    def is_blank(self) -> bool:
        """A draft with no title, no body and no image is never persisted."""
        return not self.title.strip() and not self.body.strip() and self.image is None

    @classmethod
    def from_note(cls, note: Note) -> "NoteDraft":
        return cls(
            id=note.id,
            title=note.title,
            body=note.body,
            image=note.image,
            geo=note.geo,
        )


def sort_by_updated(notes: Iterable[Note]) -> List[Note]:
    """Order notes for display, most recently saved first."""
    return sorted(notes, key=lambda n: n.updated, reverse=True)
