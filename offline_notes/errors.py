"""Error taxonomy for Offline Notes.

Storage errors propagate to the caller untouched; the CLI turns them into
user-visible messages through ``utils.error_handling``.
"""

from typing import List, Optional


class OfflineNotesError(Exception):
    """Base class for all Offline Notes errors."""


class StorageUnavailable(OfflineNotesError):
    """The platform refused a connection to the note store."""


class WriteFailed(OfflineNotesError):
    """A put or clear could not be committed (quota or I/O failure)."""


class MigrationFailed(OfflineNotesError):
    """Schema upgrade failed and was rolled back."""

    def __init__(self, message: str, from_version: Optional[int], to_version: int):
        super().__init__(message)
        self.from_version = from_version
        self.to_version = to_version


class CacheInstallFailed(OfflineNotesError):
    """One or more shell assets could not be fetched at install time."""

    def __init__(self, message: str, failed_paths: Optional[List[str]] = None):
        super().__init__(message)
        self.failed_paths = list(failed_paths or [])


class NetworkUnavailable(OfflineNotesError):
    """Network fetch failed and no cached fallback exists."""

    def __init__(self, url: str, reason: str = ""):
        message = f"Network unavailable for {url}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.url = url
        self.reason = reason
