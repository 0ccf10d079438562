"""
Working-tree file tracking.

Supplies the (path, current hash) pairs that version snapshots are built
from, and notifies listeners when a tracked file changes state.
"""

import json
import threading
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from minivcs.errors import FileOperationError
from minivcs.logging import get_vcs_logger
from minivcs.models import FileMetadata, FileStatus, Version
from minivcs.storage import ObjectStore, atomic_write, hash_file

logger = get_vcs_logger("tracking")

FileChangeListener = Callable[[str], None]


class FileTracker:
    """
    Tracks working-tree files by path.

    Paths are stored as given; relative paths are resolved against the
    repository root when the file itself is read.
    """

    def __init__(self, root: Path, object_store: ObjectStore):
        """
        Initialize the tracker.

        Args:
            root: Repository root directory
            object_store: Store that receives tracked file content
        """
        self.root = Path(root)
        self.object_store = object_store
        self._metadata: Dict[str, FileMetadata] = {}
        self._lock = threading.Lock()
        self._listeners: List[FileChangeListener] = []

    def resolve(self, path: str) -> Path:
        """Location of a tracked path on disk."""
        candidate = Path(path)
        return candidate if candidate.is_absolute() else self.root / candidate

    def track_file(self, path: str) -> FileMetadata:
        """
        Start tracking a file and store its current content.

        Args:
            path: File path

        Returns:
            Metadata recorded for the file

        Raises:
            FileOperationError: If the path is not an existing regular file
        """
        live_path = self.resolve(path)
        if not live_path.is_file():
            raise FileOperationError(f"Invalid file: {path}")

        file_hash = self.object_store.put_file(live_path)
        metadata = FileMetadata(path=path, current_hash=file_hash)
        with self._lock:
            self._metadata[path] = metadata

        logger.debug(f"Tracking {path} at {file_hash[:12]}")
        self._notify(path)
        return metadata

    def track_files(self, paths: Iterable[str]) -> List[FileMetadata]:
        """
        Track several files in order.

        Stops at the first file that cannot be tracked; files before it stay
        tracked.

        Raises:
            FileOperationError: If a path is not an existing regular file
        """
        return [self.track_file(path) for path in paths]

    def untrack_file(self, path: str) -> None:
        """Stop tracking a file. Unknown paths are ignored."""
        with self._lock:
            self._metadata.pop(path, None)
        self._notify(path)

    def tracked_files(self) -> List[str]:
        """List tracked paths."""
        with self._lock:
            return sorted(self._metadata)

    def get_metadata(self, path: str) -> Optional[FileMetadata]:
        """Get tracking metadata for a path, or None when untracked."""
        return self._metadata.get(path)

    def file_hash(self, path: str) -> Optional[str]:
        """Get the last stored hash for a path."""
        metadata = self._metadata.get(path)
        return metadata.current_hash if metadata else None

    def file_statuses(self) -> Dict[str, FileStatus]:
        """Get the status of every tracked file."""
        with self._lock:
            return {path: metadata.status for path, metadata in self._metadata.items()}

    def update_file_status(self, path: str) -> Optional[FileStatus]:
        """
        Refresh a tracked file's status from disk.

        A missing file is marked DELETED; changed content is stored and the
        file marked MODIFIED.

        Returns:
            New status, or None when the path is not tracked
        """
        metadata = self._metadata.get(path)
        if metadata is None:
            return None

        live_path = self.resolve(path)
        if not live_path.exists():
            metadata.status = FileStatus.DELETED
        else:
            new_hash = self.object_store.put_file(live_path)
            metadata.set_current_hash(new_hash)

        self._notify(path)
        return metadata.status

    def commit_file(self, path: str, version_id: str) -> None:
        """Record that a tracked file was included in a version."""
        metadata = self._metadata.get(path)
        if metadata is not None:
            metadata.add_version(version_id)
            self._notify(path)

    def is_file_modified(self, path: str) -> bool:
        """Check whether a tracked file differs from its stored content."""
        metadata = self._metadata.get(path)
        if metadata is None:
            return False

        live_path = self.resolve(path)
        if not live_path.exists():
            return True
        return hash_file(live_path) != metadata.current_hash

    def set_file_hash(self, path: str, file_hash: str) -> None:
        """Point a tracked file at a new hash (after revert or resolution)."""
        metadata = self._metadata.get(path)
        if metadata is not None:
            metadata.set_current_hash(file_hash)

    def load_from_version(self, version: Version) -> None:
        """Rehydrate tracking metadata from a version snapshot."""
        with self._lock:
            for path, file_hash in version.file_hashes.items():
                self._metadata[path] = FileMetadata(
                    path=path,
                    current_hash=file_hash,
                    last_modified=version.timestamp,
                    versions=[version.version_id],
                )
        logger.debug(
            f"Loaded {len(version.file_hashes)} tracked files from {version.version_id[:8]}"
        )

    def save_index(self, index_path: Path) -> None:
        """
        Persist tracking metadata as JSON.

        Raises:
            FileOperationError: If the index cannot be written
        """
        with self._lock:
            entries = [self._metadata[path].to_dict() for path in sorted(self._metadata)]
        try:
            with atomic_write(Path(index_path), mode="w") as f:
                json.dump(entries, f, indent=2)
        except OSError as e:
            raise FileOperationError(f"Failed to write index {index_path}: {e}") from e

    def load_index(self, index_path: Path) -> bool:
        """
        Replace tracking metadata with a saved index.

        Returns:
            False when no index exists or it cannot be parsed
        """
        index_path = Path(index_path)
        if not index_path.is_file():
            return False
        try:
            entries = json.loads(index_path.read_text(encoding="utf-8"))
            loaded = [FileMetadata.from_dict(entry) for entry in entries]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring unreadable index {index_path.name}: {e}")
            return False

        with self._lock:
            self._metadata = {metadata.path: metadata for metadata in loaded}
        logger.debug(f"Loaded {len(loaded)} tracked files from {index_path.name}")
        return True

    def add_listener(self, listener: FileChangeListener) -> None:
        """Register a callback invoked with the path of every changed file."""
        self._listeners.append(listener)

    def remove_listener(self, listener: FileChangeListener) -> None:
        """Unregister a change callback."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, path: str) -> None:
        for listener in list(self._listeners):
            listener(path)
