"""Exceptions raised by pygdrive."""

from pathlib import Path
from typing import Optional


class GDriveError(Exception):
    """Base class for all pygdrive errors."""


class GDriveConfigError(GDriveError):
    """Raised when the client is missing required configuration."""


# =========================
# Remote API errors
# =========================


class GDriveAPIError(GDriveError):
    """Raised when the remote API reports a failure."""

    transient = False


class GDriveAuthenticationError(GDriveAPIError):
    """Raised on HTTP 401 (missing, invalid or expired access token)."""


class GDrivePermissionError(GDriveAPIError):
    """Raised on HTTP 403 (insufficient scope, quota exceeded, ...)."""


class GDriveNotFoundError(GDriveAPIError):
    """Raised on HTTP 404."""


class GDriveInvalidResponseError(GDriveAPIError):
    """Raised when the server returns something that is not the expected JSON."""


class GDriveUploadError(GDriveAPIError):
    """Raised when an upload cannot be completed."""


class GDriveRateLimitError(GDriveAPIError):
    """Raised on HTTP 429."""

    transient = True


class GDriveServerError(GDriveAPIError):
    """Raised on HTTP 5xx responses."""

    transient = True


class GDriveNetworkError(GDriveAPIError):
    """Raised when the request never got an HTTP response."""

    transient = True


# =========================
# Path resolution errors
# =========================


class PathResolutionError(GDriveError):
    """Base class for remote path resolution failures."""


class InvalidPathError(PathResolutionError):
    """Raised for malformed remote paths."""

    def __init__(self, path: str, reason: str = "Invalid path provided"):
        self.path = path
        super().__init__(f"{reason}: {path!r}")


class PathNotFoundError(PathResolutionError):
    """Raised when a path segment does not exist remotely.

    Only the first missing segment is reported, not the whole path.
    """

    def __init__(self, segment: str):
        self.segment = segment
        super().__init__(f"Path component not found: {segment}")


class InvalidWildcardError(PathResolutionError):
    """Raised when a wildcard segment cannot be compiled."""

    def __init__(self, pattern: str, reason: str):
        self.pattern = pattern
        super().__init__(f"Invalid wildcard pattern '{pattern}': {reason}")


class NoMatchesFoundError(PathResolutionError):
    """Raised when a wildcard segment matched no entry (or the folder is empty)."""

    def __init__(self, pattern: str):
        self.pattern = pattern
        super().__init__(f"No files matching pattern: {pattern}")


class CreateDirectoryError(PathResolutionError):
    """Raised when the remote API refused to create a folder."""

    def __init__(self, name: str, reason: str):
        self.name = name
        super().__init__(f"Failed to create directory '{name}': {reason}")


class MissingIdError(PathResolutionError):
    """Raised when a folder was created but the response carried no id."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Folder '{name}' created on drive does not have an id")


class NotAFolderError(PathResolutionError):
    """Raised when a destination path resolves to something that is not a folder."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"'{path}' exists but is not a directory")


# =========================
# Transfer errors
# =========================


class TransferError(GDriveError):
    """Base class for local-to-remote transfer failures."""


class LocalIOError(TransferError):
    """Raised when a local file or directory cannot be read."""

    def __init__(
        self, path: Path, error: Optional[OSError] = None, action: str = "open"
    ):
        self.path = path
        self.error = error
        message = f"Failed to {action} '{path}'"
        if error is not None:
            message = f"{message}: {error.strerror or error}"
        super().__init__(message)


class IsDirectoryError(TransferError):
    """Raised when a directory is pushed without the recursive flag."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(
            f"'{path}' is a directory. Use --recursive to upload directories."
        )


class TreeConsistencyError(TransferError):
    """Raised when a folder id that must already exist is missing."""


class IncompleteTransferError(TransferError):
    """Raised after a tree upload in which some files failed."""

    def __init__(self, failed: int):
        self.failed = failed
        super().__init__(f"{failed} files failed to upload")
