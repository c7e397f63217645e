"""In-memory snapshot of a local directory tree."""

import logging
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Iterator, Optional

from .exceptions import LocalIOError

logger = logging.getLogger(__name__)


@dataclass
class LocalFileNode:
    """A regular file found while scanning."""

    path: Path
    """Path to the file on disk"""

    relative_path: str
    """Path relative to the tree root, with forward slashes"""

    size: int
    """File size in bytes at scan time"""

    parent: int
    """Index of the containing folder in LocalTree.folders"""

    @property
    def name(self) -> str:
        """File name."""
        return PurePosixPath(self.relative_path).name


@dataclass
class LocalFolderNode:
    """A directory found while scanning (the tree root included)."""

    path: Path
    """Path to the directory on disk"""

    relative_path: str
    """Path relative to the tree root ("" for the root itself)"""

    parent: Optional[int] = None
    """Index of the parent folder in LocalTree.folders, None for the root"""

    folders: list[int] = field(default_factory=list)
    """Indexes of child folders in LocalTree.folders"""

    files: list[int] = field(default_factory=list)
    """Indexes of child files in LocalTree.files"""

    @property
    def is_root(self) -> bool:
        """Check if this is the tree root."""
        return self.parent is None

    @property
    def name(self) -> str:
        """Directory name (the directory's own name for the root)."""
        if self.is_root:
            return self.path.name
        return PurePosixPath(self.relative_path).name


@dataclass(frozen=True)
class TreeInfo:
    """Aggregate statistics of a scanned tree."""

    file_count: int
    folder_count: int
    total_file_size: int


class LocalTree:
    """Flat, index-linked table of the folders and files below a directory.

    Folders are stored breadth-first with the root at index 0, so iterating
    ``folders`` always visits a parent before any of its children. Nodes
    refer to their parent by index; the tree owns every node.

    Examples:
        >>> tree = LocalTree.from_path(Path("photos"))
        >>> info = tree.info()
        >>> print(info.file_count, info.folder_count, info.total_file_size)
    """

    def __init__(self, root: Path):
        self.root_path = root
        self.folders: list[LocalFolderNode] = []
        self.files: list[LocalFileNode] = []

    @property
    def root(self) -> LocalFolderNode:
        """The root folder node."""
        return self.folders[0]

    @classmethod
    def from_path(cls, root_dir: Path) -> "LocalTree":
        """Scan ``root_dir`` recursively.

        Directory symlinks are not followed, which keeps the tree finite.
        Entries that are neither regular files nor directories are skipped.

        Args:
            root_dir: Directory to scan

        Returns:
            LocalTree snapshot

        Raises:
            LocalIOError: If a directory cannot be listed or a file
                cannot be stat'ed
        """
        root_dir = Path(root_dir).resolve()
        if not root_dir.is_dir():
            raise LocalIOError(root_dir, action="scan directory (not a directory)")

        tree = cls(root_dir)
        tree.folders.append(LocalFolderNode(path=root_dir, relative_path=""))

        pending = deque([0])
        while pending:
            folder_index = pending.popleft()
            folder = tree.folders[folder_index]
            try:
                children = sorted(folder.path.iterdir(), key=lambda p: p.name)
            except OSError as e:
                raise LocalIOError(folder.path, e, action="read directory") from e

            for item in children:
                relative_path = item.relative_to(root_dir).as_posix()
                if item.is_symlink() and item.is_dir():
                    logger.warning("Skipping directory symlink: %s", relative_path)
                    continue
                if item.is_dir():
                    tree.folders.append(
                        LocalFolderNode(
                            path=item,
                            relative_path=relative_path,
                            parent=folder_index,
                        )
                    )
                    child_index = len(tree.folders) - 1
                    folder.folders.append(child_index)
                    pending.append(child_index)
                elif item.is_file():
                    try:
                        size = item.stat().st_size
                    except OSError as e:
                        raise LocalIOError(item, e, action="stat") from e
                    tree.files.append(
                        LocalFileNode(
                            path=item,
                            relative_path=relative_path,
                            size=size,
                            parent=folder_index,
                        )
                    )
                    folder.files.append(len(tree.files) - 1)
                else:
                    logger.debug("Skipping special file: %s", relative_path)

        logger.debug(
            "Scanned %s: %d folders, %d files",
            root_dir,
            len(tree.folders),
            len(tree.files),
        )
        return tree

    def parent_of(
        self, node: "LocalFolderNode | LocalFileNode"
    ) -> Optional[LocalFolderNode]:
        """Return the folder containing ``node`` (None for the root)."""
        if node.parent is None:
            return None
        return self.folders[node.parent]

    def iter_folders(self) -> Iterator[LocalFolderNode]:
        """Iterate folders so that every parent comes before its children."""
        return iter(self.folders)

    def iter_files(self) -> Iterator[LocalFileNode]:
        """Iterate files in scan order."""
        return iter(self.files)

    def top_level_entries(self) -> list[tuple[str, bool]]:
        """Return (name, is_directory) for every direct child of the root."""
        root = self.root
        entries = [(self.folders[i].name, True) for i in root.folders]
        entries.extend((self.files[i].name, False) for i in root.files)
        return entries

    def info(self) -> TreeInfo:
        """Compute aggregate statistics."""
        return TreeInfo(
            file_count=len(self.files),
            folder_count=len(self.folders),
            total_file_size=sum(f.size for f in self.files),
        )
