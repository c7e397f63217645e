"""Upload of local files and directory trees to Drive."""

import logging
import mimetypes
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from .api import DriveClient
from .exceptions import (
    CreateDirectoryError,
    GDriveAPIError,
    GDriveError,
    IsDirectoryError,
    LocalIOError,
    MissingIdError,
    TreeConsistencyError,
)
from .models import DriveEntry
from .output import OutputFormatter
from .retry import BackoffPolicy
from .tree import LocalFileNode, LocalTree
from .utils import DEFAULT_CHUNK_SIZE, DEFAULT_MIME_TYPE

logger = logging.getLogger(__name__)


def detect_mime_type(path: Path, override: Optional[str] = None) -> str:
    """Guess the MIME type of a local file from its extension.

    Args:
        path: Local file path
        override: Explicit MIME type that wins over the guess

    Returns:
        MIME type string, "application/octet-stream" when unknown
    """
    if override:
        return override
    mime_type, _ = mimetypes.guess_type(path.name)
    return mime_type or DEFAULT_MIME_TYPE


class FolderIdMap:
    """Maps local folder paths (relative to the tree root) to remote ids."""

    def __init__(self) -> None:
        self._ids: dict[str, str] = {}

    def bind(self, relative_path: str, folder_id: str) -> None:
        self._ids[relative_path] = folder_id

    def get(self, relative_path: str) -> str:
        """Return the remote id bound to a local folder.

        Raises:
            TreeConsistencyError: If the folder has not been materialized
        """
        try:
            return self._ids[relative_path]
        except KeyError:
            raise TreeConsistencyError(
                f"No remote folder id for local folder '{relative_path or '.'}'"
            ) from None

    def __contains__(self, relative_path: str) -> bool:
        return relative_path in self._ids

    def __len__(self) -> int:
        return len(self._ids)


@dataclass
class TransferOutcome:
    """Result of pushing one file."""

    relative_path: str
    size: int
    entry: Optional[DriveEntry] = None
    error: Optional[GDriveError] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class TransferReport:
    """Summary of an ``upload_tree`` run."""

    destination_id: str
    folders_created: int = 0
    outcomes: list[TransferOutcome] = field(default_factory=list)

    @property
    def uploaded(self) -> list[TransferOutcome]:
        return [o for o in self.outcomes if o.succeeded]

    @property
    def failed(self) -> list[TransferOutcome]:
        return [o for o in self.outcomes if not o.succeeded]

    @property
    def uploaded_size(self) -> int:
        return sum(o.size for o in self.uploaded)

    @property
    def succeeded(self) -> bool:
        return not self.failed


@dataclass
class TransferConfig:
    """Settings shared by every upload of a run."""

    chunk_size: int = DEFAULT_CHUNK_SIZE
    mime_type: Optional[str] = None
    """Explicit MIME type for every file (None to guess per file)"""
    backoff: BackoffPolicy = field(default_factory=BackoffPolicy.for_uploads)
    continue_on_error: bool = False
    print_chunk_info: bool = False
    print_chunk_errors: bool = False


class TransferEngine:
    """Pushes local content to Drive.

    A directory push runs in two phases. First every local folder is
    created remotely, parents before children, and its id recorded in a
    :class:`FolderIdMap`. Then every file is uploaded into the folder id
    recorded for its parent. The tree root is never created: it is bound to
    the destination folder resolved by the caller.

    Examples:
        >>> engine = TransferEngine(client, out, TransferConfig())
        >>> tree = LocalTree.from_path(Path("photos"))
        >>> report = engine.upload_tree(tree, destination.id)
        >>> print(len(report.uploaded), report.uploaded_size)
    """

    def __init__(
        self,
        client: DriveClient,
        output: Optional[OutputFormatter] = None,
        config: Optional[TransferConfig] = None,
    ):
        """Initialize the engine.

        Args:
            client: Drive API client
            output: Output formatter for status and chunk messages
            config: Upload settings (default: TransferConfig())
        """
        self.client = client
        self.output = output or OutputFormatter()
        self.config = config or TransferConfig()

    def upload_tree(self, tree: LocalTree, destination_id: str) -> TransferReport:
        """Mirror a scanned directory into a remote folder.

        Args:
            tree: Scanned local directory
            destination_id: Remote folder that receives the tree root's
                contents

        Returns:
            TransferReport listing every file outcome

        Raises:
            CreateDirectoryError: If a folder could not be created
            MissingIdError: If a created folder has no id
            TreeConsistencyError: If a parent folder id is missing
            GDriveError: On the first file failure, unless
                continue_on_error is set
        """
        report = TransferReport(destination_id=destination_id)
        folder_ids = FolderIdMap()

        self._materialize_folders(tree, destination_id, folder_ids, report)
        self._transfer_files(tree, folder_ids, report)

        logger.debug(
            "Pushed %d of %d files (%d folders created)",
            len(report.uploaded),
            len(report.outcomes),
            report.folders_created,
        )
        return report

    def _materialize_folders(
        self,
        tree: LocalTree,
        destination_id: str,
        folder_ids: FolderIdMap,
        report: TransferReport,
    ) -> None:
        for folder in tree.iter_folders():
            parent = tree.parent_of(folder)
            if parent is None:
                folder_ids.bind(folder.relative_path, destination_id)
                continue

            parent_id = folder_ids.get(parent.relative_path)
            logger.debug("Creating folder %s in %s", folder.relative_path, parent_id)
            try:
                entry = self.client.create_folder(folder.name, parent_id)
            except GDriveAPIError as e:
                raise CreateDirectoryError(folder.relative_path, str(e)) from e
            if not entry.id:
                raise MissingIdError(folder.relative_path)

            folder_ids.bind(folder.relative_path, entry.id)
            report.folders_created += 1

    def _transfer_files(
        self, tree: LocalTree, folder_ids: FolderIdMap, report: TransferReport
    ) -> None:
        for node in tree.iter_files():
            parent = tree.parent_of(node)
            parent_id = folder_ids.get(parent.relative_path)
            outcome = TransferOutcome(relative_path=node.relative_path, size=node.size)
            try:
                outcome.entry = self._push_node(node, parent_id)
            except GDriveError as e:
                if not self.config.continue_on_error:
                    raise
                logger.error("Failed to upload %s: %s", node.relative_path, e)
                self.output.error(f"Failed to upload {node.relative_path}: {e}")
                outcome.error = e
            report.outcomes.append(outcome)

    def _push_node(self, node: LocalFileNode, parent_id: str) -> DriveEntry:
        self.output.progress_message(
            f"Uploading {node.relative_path} ({self.output.format_size(node.size)})"
        )
        return self._push_file(node.path, node.name, parent_id)

    def upload_single(
        self,
        path: Path,
        parent_id: str,
        name: Optional[str] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> DriveEntry:
        """Upload one regular file.

        Args:
            path: Local file
            parent_id: Remote folder that receives the file
            name: Remote file name (default: the local name)
            progress_callback: Optional callback(bytes_uploaded, total_bytes)

        Returns:
            The created file

        Raises:
            IsDirectoryError: If ``path`` is a directory
            LocalIOError: If the file cannot be read
        """
        if path.is_dir():
            raise IsDirectoryError(path)
        return self._push_file(path, name or path.name, parent_id, progress_callback)

    def _push_file(
        self,
        path: Path,
        name: str,
        parent_id: str,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> DriveEntry:
        """Open ``path`` and upload its current content."""
        try:
            stream = path.open("rb")
        except OSError as e:
            raise LocalIOError(path, e) from e

        with stream:
            try:
                size = os.fstat(stream.fileno()).st_size
            except OSError as e:
                raise LocalIOError(path, e, action="stat") from e

            mime_type = detect_mime_type(path, self.config.mime_type)
            logger.debug(
                "Uploading %s as %r (%s, %d bytes)", path, name, mime_type, size
            )
            try:
                return self.client.create_or_update_file(
                    name=name,
                    parent_id=parent_id,
                    mime_type=mime_type,
                    size=size,
                    stream=stream,
                    chunk_size=self.config.chunk_size,
                    backoff=self.config.backoff,
                    progress_callback=progress_callback,
                    message_callback=self._on_chunk_error,
                    chunk_callback=self._on_chunk,
                )
            except OSError as e:
                raise LocalIOError(path, e, action="read") from e

    def _on_chunk(self, start: int, end: int, total: int) -> None:
        if self.config.print_chunk_info:
            self.output.info(f"Uploaded chunk {start}-{end}/{total}")

    def _on_chunk_error(self, message: str) -> None:
        if self.config.print_chunk_errors:
            self.output.warning(message)
