"""Services for Offline Notes."""

from .notebook import Notebook, now_ms
from .sources import (
    CapturedImage,
    CaptureSource,
    DictationSource,
    FileCaptureSource,
    FixedLocationSource,
    LocationSource,
    StreamDictationSource,
    locate_within,
    map_link,
)

__all__ = [
    "Notebook",
    "now_ms",
    "CapturedImage",
    "CaptureSource",
    "DictationSource",
    "FileCaptureSource",
    "FixedLocationSource",
    "LocationSource",
    "StreamDictationSource",
    "locate_within",
    "map_link",
]
