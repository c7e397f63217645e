"""Shared fixtures for pygdrive tests."""

from typing import Any, Optional

import pytest

from pygdrive.models import ROOT_ID, DriveEntry, EntryKind
from pygdrive.output import OutputFormatter
from pygdrive.utils import FOLDER_MIME_TYPE

WRITE_CALLS = ("create_folder", "create_or_update_file")


class FakeDrive:
    """In-memory stand-in for DriveClient.

    Entries are kept in insertion order, which is also the listing order.
    Every gateway call is recorded in ``calls`` as (name, args) tuples.
    """

    def __init__(self) -> None:
        self.entries: dict[str, DriveEntry] = {}
        self.contents: dict[str, bytes] = {}
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.upload_errors: dict[str, Exception] = {}
        self.folder_errors: dict[str, Exception] = {}
        self.omit_folder_ids = False
        self._counter = 0

    # Test helpers

    def _new_id(self) -> str:
        self._counter += 1
        return f"id{self._counter}"

    def add_folder(self, name: str, parent_id: str = ROOT_ID) -> DriveEntry:
        entry = DriveEntry(
            id=self._new_id(),
            name=name,
            kind=EntryKind.FOLDER,
            parents=[parent_id],
            mime_type=FOLDER_MIME_TYPE,
        )
        self.entries[entry.id] = entry
        return entry

    def add_file(
        self, name: str, parent_id: str = ROOT_ID, content: bytes = b""
    ) -> DriveEntry:
        entry = DriveEntry(
            id=self._new_id(),
            name=name,
            kind=EntryKind.FILE,
            parents=[parent_id],
            mime_type="text/plain",
            size=len(content),
        )
        self.entries[entry.id] = entry
        self.contents[entry.id] = content
        return entry

    def children(self, parent_id: str) -> list[DriveEntry]:
        return [e for e in self.entries.values() if parent_id in e.parents]

    def child(self, parent_id: str, name: str) -> Optional[DriveEntry]:
        for entry in self.children(parent_id):
            if entry.name == name:
                return entry
        return None

    @property
    def writes(self) -> list[tuple[str, tuple[Any, ...]]]:
        return [call for call in self.calls if call[0] in WRITE_CALLS]

    # DriveClient interface

    def __enter__(self) -> "FakeDrive":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        pass

    def find(
        self,
        parent_id: str,
        name: Optional[str] = None,
        trashed: bool = False,
        limit: int = 100,
    ) -> list[DriveEntry]:
        self.calls.append(("find", (parent_id, name)))
        matches = [
            e
            for e in self.children(parent_id)
            if (name is None or e.name == name)
            and e.trashed == trashed
        ]
        return matches[:limit]

    def get_entry(self, file_id: str) -> DriveEntry:
        self.calls.append(("get_entry", (file_id,)))
        return self.entries[file_id]

    def create_folder(self, name: str, parent_id: str) -> DriveEntry:
        self.calls.append(("create_folder", (name, parent_id)))
        if name in self.folder_errors:
            raise self.folder_errors[name]
        entry = self.add_folder(name, parent_id)
        if self.omit_folder_ids:
            del self.entries[entry.id]
            entry.id = ""
        return entry

    def create_or_update_file(
        self,
        name: str,
        parent_id: str,
        mime_type: str,
        size: int,
        stream: Any,
        chunk_size: int,
        file_id: Optional[str] = None,
        backoff: Any = None,
        progress_callback: Any = None,
        message_callback: Any = None,
        chunk_callback: Any = None,
    ) -> DriveEntry:
        self.calls.append(("create_or_update_file", (name, parent_id)))
        if name in self.upload_errors:
            raise self.upload_errors[name]
        content = stream.read()
        assert len(content) == size
        entry = self.add_file(name, parent_id, content)
        entry.mime_type = mime_type
        if chunk_callback:
            chunk_callback(0, size - 1, size)
        if progress_callback:
            progress_callback(size, size)
        return entry


@pytest.fixture
def drive():
    """Provide an empty in-memory drive."""
    return FakeDrive()


@pytest.fixture
def quiet_out():
    """Provide an output formatter that only prints errors and prompts."""
    return OutputFormatter(quiet=True)


@pytest.fixture
def sample_tree(tmp_path):
    """Create root/{a.txt, sub/b.txt} with 15 bytes of content."""
    root = tmp_path / "root"
    (root / "sub").mkdir(parents=True)
    (root / "a.txt").write_bytes(b"hello")
    (root / "sub" / "b.txt").write_bytes(b"0123456789")
    return root
