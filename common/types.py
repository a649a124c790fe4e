"""Shared data type definitions (FileInfo, DirectoryEntry)."""

from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class FileInfo:
    """
    Metadata for a stored file as reported after upload or reassembly.
    """
    name: str
    path: str
    size: int
    is_video: bool
    created: datetime
    modified: datetime

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["created"] = self.created.isoformat()
        data["modified"] = self.modified.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FileInfo":
        return cls(
            name=data["name"],
            path=data["path"],
            size=int(data["size"]),
            is_video=bool(data.get("is_video", False)),
            created=datetime.fromisoformat(data["created"]),
            modified=datetime.fromisoformat(data["modified"]),
        )


@dataclass(frozen=True)
class DirectoryEntry:
    """
    One file or folder in a directory listing.
    """
    name: str
    path: str
    size: int
    is_video: bool
    created: datetime
    modified: datetime
    type: str
