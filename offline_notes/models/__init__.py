"""Data models for Offline Notes."""

from .note import GeoPoint, Note, NoteDraft, sort_by_updated
from .http import Request, RequestMode, Response

__all__ = [
    "GeoPoint",
    "Note",
    "NoteDraft",
    "sort_by_updated",
    "Request",
    "RequestMode",
    "Response",
]
