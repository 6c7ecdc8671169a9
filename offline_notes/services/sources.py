"""Collaborator interfaces that feed data into notes.

Dictation, camera and location are platform features; the core only sees
what they produce: finalized text segments, one encoded still image per
shot, and a best-effort coordinate pair.
"""

import base64
import logging
import mimetypes
import sys
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from pathlib import Path
from typing import IO, Iterator, Optional

from pydantic import BaseModel, Field

from ..models.note import GeoPoint

logger = logging.getLogger(__name__)

DEFAULT_MAP_URL = "https://www.google.com/maps?q={lat},{lon}"


class CapturedImage(BaseModel):
    """One encoded still image."""

    data: bytes
    mime_type: str = Field(default="image/jpeg", pattern="^image/[a-z0-9.+-]+$")

    def to_data_url(self) -> str:
        """Encode as a self-contained ``data:`` URL."""
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


class DictationSource(ABC):
    """Produces finalized dictated text, one segment at a time."""

    @abstractmethod
    def segments(self) -> Iterator[str]:
        pass


class CaptureSource(ABC):
    """Produces one encoded still image per call."""

    @abstractmethod
    def capture(self) -> CapturedImage:
        pass


class LocationSource(ABC):
    """Produces the current position, or None when it is unknown."""

    @abstractmethod
    def locate(self) -> Optional[GeoPoint]:
        pass


class StreamDictationSource(DictationSource):
    """Treats each non-empty line of a text stream as a finalized segment."""

    def __init__(self, stream: Optional[IO[str]] = None):
        self.stream = stream or sys.stdin

    def segments(self) -> Iterator[str]:
        for line in self.stream:
            text = line.strip()
            if text:
                yield text


class FileCaptureSource(CaptureSource):
    """Reads a still image from disk."""

    def __init__(self, path: str):
        self.path = Path(path).expanduser()

    def capture(self) -> CapturedImage:
        mime_type, _ = mimetypes.guess_type(self.path.name)
        if not mime_type or not mime_type.startswith("image/"):
            raise ValueError(f"Not an image file: {self.path}")
        return CapturedImage(data=self.path.read_bytes(), mime_type=mime_type)


class FixedLocationSource(LocationSource):
    """Reports a known position."""

    def __init__(self, lat: float, lon: float):
        self.point = GeoPoint(lat=lat, lon=lon)

    def locate(self) -> Optional[GeoPoint]:
        return self.point


def locate_within(source: LocationSource, timeout: float) -> Optional[GeoPoint]:
    """Ask a location source for a position, giving up after ``timeout`` seconds.

    A source that overruns the timeout or fails counts as having no
    position; a slow lookup is left to finish on its own.
    """
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="locate")
    try:
        future = executor.submit(source.locate)
        return future.result(timeout=timeout)
    except FutureTimeout:
        return None
    except Exception as e:
        logger.warning("Location lookup failed: %s", e)
        return None
    finally:
        executor.shutdown(wait=False)


def map_link(geo: GeoPoint, template: str = DEFAULT_MAP_URL) -> str:
    """Build a maps URL for a coordinate pair."""
    return template.format(lat=geo.lat, lon=geo.lon)
