"""PyGDrive - CLI tool for pushing files and directories to Google Drive."""

from importlib.metadata import PackageNotFoundError, version

from .api import DriveClient
from .exceptions import (
    CreateDirectoryError,
    GDriveAPIError,
    GDriveAuthenticationError,
    GDriveConfigError,
    GDriveError,
    GDriveInvalidResponseError,
    GDriveNetworkError,
    GDriveNotFoundError,
    GDrivePermissionError,
    GDriveRateLimitError,
    GDriveServerError,
    GDriveUploadError,
    IncompleteTransferError,
    InvalidPathError,
    InvalidWildcardError,
    IsDirectoryError,
    LocalIOError,
    MissingIdError,
    NoMatchesFoundError,
    NotAFolderError,
    PathNotFoundError,
    TreeConsistencyError,
)
from .paths import PathResolver
from .retry import BackoffPolicy
from .transfer import TransferConfig, TransferEngine, TransferReport
from .tree import LocalTree

try:
    __version__ = version("pygdrive")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "BackoffPolicy",
    "DriveClient",
    "LocalTree",
    "PathResolver",
    "TransferConfig",
    "TransferEngine",
    "TransferReport",
    "CreateDirectoryError",
    "GDriveAPIError",
    "GDriveAuthenticationError",
    "GDriveConfigError",
    "GDriveError",
    "GDriveInvalidResponseError",
    "GDriveNetworkError",
    "GDriveNotFoundError",
    "GDrivePermissionError",
    "GDriveRateLimitError",
    "GDriveServerError",
    "GDriveUploadError",
    "IncompleteTransferError",
    "InvalidPathError",
    "InvalidWildcardError",
    "IsDirectoryError",
    "LocalIOError",
    "MissingIdError",
    "NoMatchesFoundError",
    "NotAFolderError",
    "PathNotFoundError",
    "TreeConsistencyError",
]
