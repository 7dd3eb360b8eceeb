"""
Custom exception hierarchy for the dance library.

Low-level parse and lookup problems are absorbed where they happen; only
operation-level failures (edit, organize, import, delete) surface as these.
"""
from typing import Optional


class DanceLibraryError(Exception):
    """Base exception for all dance library errors."""
    pass


class StepNotFoundError(DanceLibraryError):
    """Raised when an explicit user action targets a file that no longer exists."""
    pass


class UnsupportedMediaError(DanceLibraryError):
    """Raised when a file's extension is not accepted for intake."""
    pass


class FileOperationError(DanceLibraryError):
    """Raised when a vault read/write/rename/delete fails."""
    pass


class MetadataUpdateError(FileOperationError):
    """
    Raised when a sidecar upsert fails part way.

    `path` is where the media file lives now, which differs from the
    requested path if the rename already went through.
    """
    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class OrganizeError(FileOperationError):
    """Raised when copying a video into the library fails."""
    pass
