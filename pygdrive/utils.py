"""Utility functions for pygdrive."""

import re
from datetime import datetime
from typing import Optional

# =============================================================================
# Constants for file operations
# =============================================================================

MIB: int = 1024 * 1024

# Chunk size for resumable uploads (8 MiB)
DEFAULT_CHUNK_SIZE: int = 8 * MIB

# Chunk sizes accepted on the command line, in MiB
ALLOWED_CHUNK_SIZES_MB: tuple[int, ...] = (
    1, 2, 4, 8, 16, 32, 64, 128, 256, 512, 1024, 2048, 4096, 8192,
)

# Resumable upload chunks must be a multiple of this (256 KiB)
RESUMABLE_CHUNK_GRANULARITY: int = 256 * 1024

# Listing limits
SEGMENT_LOOKUP_LIMIT: int = 1
OVERWRITE_CHECK_LIMIT: int = 100
WILDCARD_LIST_LIMIT: int = 1000

# Retry configuration for transient errors while uploading chunks
DEFAULT_UPLOAD_MAX_RETRIES: int = 100000
DEFAULT_UPLOAD_MIN_DELAY: float = 1.0  # seconds
DEFAULT_UPLOAD_MAX_DELAY: float = 60.0  # seconds

# Retry configuration for ordinary API requests
DEFAULT_MAX_RETRIES: int = 3
DEFAULT_RETRY_DELAY: float = 1.0  # seconds
DEFAULT_MAX_RETRY_DELAY: float = 30.0  # seconds

FOLDER_MIME_TYPE: str = "application/vnd.google-apps.folder"
DEFAULT_MIME_TYPE: str = "application/octet-stream"

WILDCARD_CHARS: str = "*?"


# =============================================================================
# Timestamp parsing utilities
# =============================================================================


def parse_iso_timestamp(timestamp_str: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp as returned by the Drive API.

    Args:
        timestamp_str: Timestamp string (e.g., "2025-01-15T10:30:00.000Z")

    Returns:
        Naive datetime in local time, or None if parsing fails
    """
    if not timestamp_str:
        return None

    if timestamp_str.endswith("Z"):
        timestamp_str = timestamp_str[:-1] + "+00:00"

    try:
        dt = datetime.fromisoformat(timestamp_str)
    except ValueError:
        # Older interpreters reject fractional seconds with 3 digits
        if "." not in timestamp_str:
            return None
        head, _, tail = timestamp_str.partition(".")
        offset = tail[tail.find("+") :] if "+" in tail else ""
        try:
            dt = datetime.fromisoformat(head + offset)
        except ValueError:
            return None

    if dt.tzinfo is not None:
        return datetime.fromtimestamp(dt.timestamp())
    return dt


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"


def chunk_size_from_mb(size_mb: int) -> int:
    """Convert a chunk size given in MiB to bytes.

    Args:
        size_mb: Chunk size in MiB, must be a power of two in
            ALLOWED_CHUNK_SIZES_MB

    Returns:
        Chunk size in bytes

    Raises:
        ValueError: If the size is not an allowed power of two
    """
    if size_mb not in ALLOWED_CHUNK_SIZES_MB:
        allowed = "|".join(str(s) for s in ALLOWED_CHUNK_SIZES_MB)
        raise ValueError(f"Chunk size must be one of {allowed} MB, got {size_mb}")
    return size_mb * MIB


# =============================================================================
# Query and path utilities
# =============================================================================


def escape_query_value(value: str) -> str:
    """Escape a string literal for use inside a Drive search query.

    Examples:
        >>> escape_query_value("it's")
        "it\\\\'s"
    """
    return value.replace("\\", "\\\\").replace("'", "\\'")


def split_path(path: str) -> list[str]:
    """Split a slash-separated remote path into its non-empty segments.

    Examples:
        >>> split_path("/a//b/")
        ['a', 'b']
        >>> split_path("///")
        []
    """
    return [segment for segment in path.split("/") if segment]


def is_wildcard_pattern(segment: str) -> bool:
    """Check whether a path segment contains wildcard characters.

    Only ``*`` and ``?`` are wildcards.

    Examples:
        >>> is_wildcard_pattern("*.jpg")
        True
        >>> is_wildcard_pattern("[ab].txt")
        False
    """
    return any(char in segment for char in WILDCARD_CHARS)


def wildcard_to_regex(pattern: str) -> str:
    """Translate a wildcard segment into an anchored regular expression.

    ``*`` matches any run of characters (including none), ``?`` matches
    exactly one character, every other character matches itself.

    Examples:
        >>> wildcard_to_regex("*.jpg")
        '^.*\\\\.jpg$'
    """
    parts = ["^"]
    for char in pattern:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    parts.append("$")
    return "".join(parts)


def compile_wildcard(pattern: str) -> re.Pattern[str]:
    """Compile a wildcard segment into a regex pattern object.

    Raises:
        re.error: If the translated pattern is not a valid expression
    """
    return re.compile(wildcard_to_regex(pattern), re.DOTALL)
