"""Resolution of slash-separated remote paths to Drive entries."""

import logging
import re
from typing import Optional

from .api import DriveClient
from .exceptions import (
    CreateDirectoryError,
    GDriveAPIError,
    InvalidPathError,
    InvalidWildcardError,
    MissingIdError,
    NoMatchesFoundError,
    PathNotFoundError,
)
from .models import DriveEntry, root_entry
from .utils import (
    SEGMENT_LOOKUP_LIMIT,
    WILDCARD_LIST_LIMIT,
    compile_wildcard,
    is_wildcard_pattern,
    split_path,
)

logger = logging.getLogger(__name__)


def parse_path(path: str) -> list[str]:
    """Split a remote path into segments and reject malformed ones.

    Leading, trailing and repeated slashes are ignored. An empty result
    denotes the root folder.

    Args:
        path: Remote path such as "/backup/photos"

    Returns:
        List of path segments

    Raises:
        InvalidPathError: If a segment is "." or ".."
    """
    segments = split_path(path)
    for segment in segments:
        if segment in (".", ".."):
            raise InvalidPathError(path, "Relative segments are not supported")
    return segments


def split_parent(path: str) -> tuple[str, str]:
    """Split a remote path into its parent path and its final segment.

    Examples:
        >>> split_parent("/x/y/z.txt")
        ('/x/y', 'z.txt')
        >>> split_parent("z.txt")
        ('/', 'z.txt')

    Raises:
        InvalidPathError: If the path has no segment at all
    """
    segments = parse_path(path)
    if not segments:
        raise InvalidPathError(path, "Path does not name an entry")
    return "/" + "/".join(segments[:-1]), segments[-1]


class PathResolver:
    """Walks remote paths one segment at a time.

    Every step is a single ``find`` call against the parent resolved in the
    previous step. When several entries share a name, the first one returned
    by the API wins; the listing order is unspecified.

    Examples:
        >>> resolver = PathResolver(client)
        >>> entry = resolver.resolve("/backup/photos")
        >>> folder = resolver.resolve_or_create("/backup/2024/march")
        >>> matches = resolver.resolve_wildcard("/backup/photos/*.jpg")
    """

    def __init__(self, client: DriveClient):
        """Initialize the resolver.

        Args:
            client: Drive API client
        """
        self.client = client

    def _find_child(self, parent: DriveEntry, segment: str) -> Optional[DriveEntry]:
        entries = self.client.find(
            parent.id, name=segment, trashed=False, limit=SEGMENT_LOOKUP_LIMIT
        )
        if not entries:
            return None
        logger.debug("Resolved segment %r to %s", segment, entries[0].id)
        return entries[0]

    def _walk(self, segments: list[str]) -> DriveEntry:
        current = root_entry()
        for segment in segments:
            child = self._find_child(current, segment)
            if child is None:
                raise PathNotFoundError(segment)
            current = child
        return current

    def resolve(self, path: str) -> DriveEntry:
        """Resolve a path to an existing entry.

        Args:
            path: Remote path; "" and "/" denote the root folder

        Returns:
            The entry reached by following every segment

        Raises:
            PathNotFoundError: Naming the first segment that does not exist
            GDriveAPIError: If a lookup fails
        """
        return self._walk(parse_path(path))

    def resolve_or_create(self, path: str) -> DriveEntry:
        """Resolve a path, creating missing folders along the way.

        Running this twice with the same path reuses the folders created by
        the first call. Two concurrent runs may still both create a missing
        folder, since the store has no locking.

        Args:
            path: Remote folder path

        Returns:
            The entry for the last segment

        Raises:
            CreateDirectoryError: If the API refuses to create a folder
            MissingIdError: If a created folder has no id
            GDriveAPIError: If a lookup fails
        """
        current = root_entry()
        for segment in parse_path(path):
            child = self._find_child(current, segment)
            if child is None:
                logger.debug("Creating missing folder %r in %s", segment, current.id)
                try:
                    child = self.client.create_folder(segment, current.id)
                except GDriveAPIError as e:
                    raise CreateDirectoryError(segment, str(e)) from e
                if not child.id:
                    raise MissingIdError(segment)
            current = child
        return current

    def resolve_wildcard(self, path: str) -> list[DriveEntry]:
        """Resolve a path whose last segment may contain ``*`` or ``?``.

        Wildcards are only recognized in the last segment. Without a wildcard
        the path is resolved like :meth:`resolve`.

        Args:
            path: Remote path, e.g. "/photos/2024/*.jpg"

        Returns:
            Matching entries in listing order

        Raises:
            PathNotFoundError: If a directory segment does not exist
            InvalidWildcardError: If the pattern cannot be compiled
            NoMatchesFoundError: If nothing matched, including an empty folder
        """
        segments = parse_path(path)
        if not segments or not is_wildcard_pattern(segments[-1]):
            return [self._walk(segments)]

        pattern = segments[-1]
        directory = self._walk(segments[:-1])

        try:
            regex = compile_wildcard(pattern)
        except re.error as e:
            raise InvalidWildcardError(pattern, str(e)) from e

        children = self.client.find(
            directory.id, trashed=False, limit=WILDCARD_LIST_LIMIT
        )
        matches = [entry for entry in children if regex.fullmatch(entry.name)]
        if not matches:
            raise NoMatchesFoundError(pattern)
        return matches
