"""User-facing error messages for Offline Notes."""

from ..errors import (
    CacheInstallFailed,
    MigrationFailed,
    NetworkUnavailable,
    StorageUnavailable,
    WriteFailed,
)


def create_user_friendly_error(error: Exception) -> str:
    """Turn an exception into a message fit to show the user.

    Args:
        error: Exception raised by a command

    Returns:
        Short explanation with a hint at what to do next
    """
    if isinstance(error, WriteFailed):
        return "Storage is full. Delete old notes or attachments to continue."
    if isinstance(error, MigrationFailed):
        return (
            f"Could not upgrade the note store to version {error.to_version}. "
            "Your notes were left unchanged."
        )
    if isinstance(error, StorageUnavailable):
        return f"Note storage is not available: {error}"
    if isinstance(error, CacheInstallFailed):
        if error.failed_paths:
            paths = ", ".join(error.failed_paths)
            return f"Offline copy was not updated; unreachable: {paths}"
        return f"Offline copy was not updated: {error}"
    if isinstance(error, NetworkUnavailable):
        return f"You are offline and {error.url} is not cached."
    if isinstance(error, FileNotFoundError):
        return f"File not found: {error.filename}"
    if isinstance(error, PermissionError):
        return f"Permission denied: {error.filename}"
    if isinstance(error, ValueError):
        return str(error)
    return f"{type(error).__name__}: {error}"
