"""
Serializable records for version control.

Defines version snapshots and per-file tracking metadata.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Any, Mapping
from datetime import datetime
from enum import Enum
import json
import uuid


class FileStatus(str, Enum):
    """Tracking status of a working-tree file."""

    UNTRACKED = "untracked"
    TRACKED = "tracked"
    MODIFIED = "modified"
    DELETED = "deleted"
    STAGED = "staged"
    CONFLICTED = "conflicted"


@dataclass(frozen=True)
class Version:
    """
    An immutable snapshot mapping file paths to blob hashes.

    Attributes:
        version_id: Unique identifier (UUID4 string)
        message: Version message
        author: Who created the version
        timestamp: When the version was created
        file_hashes: Path -> blob hash (read-only)
    """

    version_id: str
    message: str
    author: str
    timestamp: datetime
    file_hashes: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "file_hashes", MappingProxyType(dict(self.file_hashes)))

    def to_dict(self) -> Dict[str, Any]:
        """Convert version to dictionary for serialization."""
        return {
            "version_id": self.version_id,
            "message": self.message,
            "author": self.author,
            "timestamp": self.timestamp.isoformat(),
            "file_hashes": dict(self.file_hashes),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Version":
        """Create version from dictionary."""
        return cls(
            version_id=data["version_id"],
            message=data["message"],
            author=data["author"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            file_hashes=dict(data.get("file_hashes", {})),
        )

    def to_json(self) -> str:
        """Convert version to JSON string."""
        return json.dumps(self.to_dict(), indent=2, sort_keys=True)

    @classmethod
    def from_json(cls, json_str: str) -> "Version":
        """Create version from JSON string."""
        return cls.from_dict(json.loads(json_str))

    def summary(self) -> str:
        """Get a one-line summary of this version."""
        return (
            f"{self.version_id[:8]} {self.timestamp:%Y-%m-%d %H:%M:%S} "
            f"{self.author}: {self.message} ({len(self.file_hashes)} files)"
        )


@dataclass
class FileMetadata:
    """Tracking state of a single working-tree file."""

    path: str
    current_hash: str
    last_modified: datetime = field(default_factory=datetime.now)
    versions: List[str] = field(default_factory=list)
    status: FileStatus = FileStatus.TRACKED

    def set_current_hash(self, new_hash: str) -> None:
        """Record a new content hash, marking the file modified if it changed."""
        if new_hash != self.current_hash:
            self.status = FileStatus.MODIFIED
        self.current_hash = new_hash
        self.last_modified = datetime.now()

    def add_version(self, version_id: str) -> None:
        """Record that the file was committed in a version."""
        self.versions.append(version_id)
        self.status = FileStatus.TRACKED

    def to_dict(self) -> Dict[str, Any]:
        """Convert metadata to dictionary for serialization."""
        return {
            "path": self.path,
            "current_hash": self.current_hash,
            "last_modified": self.last_modified.isoformat(),
            "versions": list(self.versions),
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileMetadata":
        """Create metadata from dictionary."""
        return cls(
            path=data["path"],
            current_hash=data["current_hash"],
            last_modified=datetime.fromisoformat(data["last_modified"]),
            versions=list(data.get("versions", [])),
            status=FileStatus(data.get("status", FileStatus.TRACKED.value)),
        )


def create_version_id() -> str:
    """Generate a unique version ID."""
    return str(uuid.uuid4())
