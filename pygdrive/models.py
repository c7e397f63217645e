"""Data models for remote Drive entries."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .utils import FOLDER_MIME_TYPE, format_size

# Fields requested for every entry returned by the API
ENTRY_FIELDS = (
    "id,name,mimeType,size,parents,trashed,createdTime,modifiedTime,"
    "md5Checksum,webViewLink"
)


class EntryKind(str, Enum):
    """Kind of a remote entry."""

    FOLDER = "folder"
    FILE = "file"
    OTHER = "other"

    @classmethod
    def from_mime_type(cls, mime_type: Optional[str]) -> "EntryKind":
        """Derive the entry kind from its MIME type.

        Google-native documents (``application/vnd.google-apps.*`` other than
        folders) have no binary content and are reported as OTHER.
        """
        if mime_type == FOLDER_MIME_TYPE:
            return cls.FOLDER
        if mime_type and mime_type.startswith("application/vnd.google-apps."):
            return cls.OTHER
        return cls.FILE


@dataclass
class DriveEntry:
    """Snapshot of a remote file or folder.

    Names are unique within a parent only by convention; the store does not
    enforce it.
    """

    id: str
    name: str
    kind: EntryKind
    parents: list[str] = field(default_factory=list)
    trashed: bool = False
    mime_type: Optional[str] = None
    size: Optional[int] = None
    created_time: Optional[str] = None
    modified_time: Optional[str] = None
    md5_checksum: Optional[str] = None
    web_view_link: Optional[str] = None

    @property
    def is_folder(self) -> bool:
        """Check if this entry is a folder."""
        return self.kind == EntryKind.FOLDER

    @property
    def display_size(self) -> str:
        """Human-readable size, or '-' for entries without content."""
        if self.size is None:
            return "-"
        return format_size(self.size)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DriveEntry":
        """Create a DriveEntry from an API ``File`` resource.

        Args:
            data: JSON object as returned by the API

        Returns:
            DriveEntry instance
        """
        mime_type = data.get("mimeType")
        size = data.get("size")
        return cls(
            id=data.get("id") or "",
            name=data.get("name", ""),
            kind=EntryKind.from_mime_type(mime_type),
            parents=list(data.get("parents") or []),
            trashed=bool(data.get("trashed", False)),
            mime_type=mime_type,
            # The API encodes int64 values as strings
            size=int(size) if size is not None else None,
            created_time=data.get("createdTime"),
            modified_time=data.get("modifiedTime"),
            md5_checksum=data.get("md5Checksum"),
            web_view_link=data.get("webViewLink"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind.value,
            "mime_type": self.mime_type,
            "size": self.size,
            "parents": self.parents,
            "trashed": self.trashed,
            "created_time": self.created_time,
            "modified_time": self.modified_time,
            "md5_checksum": self.md5_checksum,
            "web_view_link": self.web_view_link,
        }


ROOT_ID = "root"


def root_entry() -> DriveEntry:
    """Return the root folder, addressed through the "root" alias."""
    return DriveEntry(id=ROOT_ID, name="My Drive", kind=EntryKind.FOLDER)


@dataclass
class FileListPage:
    """One page of a ``files.list`` response."""

    entries: list[DriveEntry]
    next_page_token: Optional[str] = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "FileListPage":
        """Parse a ``files.list`` response body."""
        files = data.get("files") or []
        return cls(
            entries=[DriveEntry.from_dict(item) for item in files],
            next_page_token=data.get("nextPageToken"),
        )
