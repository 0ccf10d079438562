"""
Version control facade.

Wires the object store, version store, file tracker, diff engine and merge
engine around one repository root and exposes the repository-level
operations used by the CLI.
"""

from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from minivcs.config import Config, config as default_config
from minivcs.diff import ChangedLines, DiffEngine, DiffResult
from minivcs.errors import (
    FileOperationError,
    InvalidVersionError,
    MergeConflictError,
    VersionNotFoundError,
)
from minivcs.logging import get_vcs_logger
from minivcs.merge import ConflictInfo, ConflictResolution, MergeEngine, MergeReport
from minivcs.models import FileMetadata, FileStatus, Version
from minivcs.storage import ObjectStore, VersionStore, atomic_write
from minivcs.tracking import FileTracker

logger = get_vcs_logger("system")


class VersionControl:
    """
    Repository-level version control.

    Provides operations for:
    - Tracking working-tree files
    - Creating versions from the tracked files
    - Reverting the working tree to a version
    - Diffing versions and working files
    - Scanning merges and resolving conflicts

    Tracking metadata is persisted to the repository index after every
    change, so separate processes see the same tracked set. A repository
    without an index starts from its latest version.
    """

    def __init__(self, root: Path = Path("."), settings: Optional[Config] = None):
        """
        Open (or create) a repository.

        Args:
            root: Repository root directory
            settings: Configuration (defaults to the global config)
        """
        self.settings = settings or default_config
        self.root = Path(root)
        self.index_path = self.settings.repository.index_path(self.root)

        self.object_store = ObjectStore(self.root, self.settings)
        self.version_store = VersionStore(self.root, self.settings)
        self.tracker = FileTracker(self.root, self.object_store)
        self.diff_engine = DiffEngine(self.object_store, self.version_store, self.tracker)
        self.merge_engine = MergeEngine(
            self.object_store, self.version_store, self.root, self.settings
        )
        self._listeners: List[Callable[[str], None]] = []

        if not self.tracker.load_index(self.index_path):
            current = self.version_store.current_version()
            if current is not None:
                self.tracker.load_from_version(current)

    @property
    def metadata_dir(self) -> Path:
        """Repository metadata directory."""
        return self.settings.repository.metadata_path(self.root)

    # Tracking

    def track_file(self, path: str) -> FileMetadata:
        """
        Start tracking a file.

        Raises:
            FileOperationError: If the path is not an existing regular file
        """
        metadata = self.tracker.track_file(path)
        self._save_index()
        self._notify(path)
        return metadata

    def track_files(self, paths: Iterable[str]) -> List[FileMetadata]:
        """
        Track several files in order.

        Files tracked before a failing path stay tracked.

        Raises:
            FileOperationError: If a path is not an existing regular file
        """
        tracked: List[FileMetadata] = []
        try:
            for path in paths:
                tracked.append(self.tracker.track_file(path))
                self._notify(path)
        finally:
            self._save_index()
        return tracked

    def track_directory(self, directory: str) -> List[str]:
        """
        Track every regular file directly inside a directory.

        Returns:
            Tracked paths

        Raises:
            FileOperationError: If the path is not a directory
        """
        live_dir = self.tracker.resolve(directory)
        if not live_dir.is_dir():
            raise FileOperationError(f"Not a directory: {directory}")

        tracked = []
        for child in sorted(live_dir.iterdir()):
            if child.is_file():
                path = str(Path(directory) / child.name)
                self.tracker.track_file(path)
                tracked.append(path)
                self._notify(path)
        self._save_index()
        return tracked

    def untrack_file(self, path: str) -> None:
        """Stop tracking a file."""
        self.tracker.untrack_file(path)
        self._save_index()
        self._notify(path)

    def tracked_files(self) -> List[str]:
        """List tracked paths."""
        return self.tracker.tracked_files()

    def file_statuses(self) -> Dict[str, FileStatus]:
        """Recorded status of every tracked file."""
        return self.tracker.file_statuses()

    def working_statuses(self) -> Dict[str, FileStatus]:
        """
        Status of every tracked file against the working tree.

        Reads live files without storing anything: missing files are
        DELETED, files whose bytes differ from the stored hash are MODIFIED.
        """
        statuses = {}
        for path, status in self.tracker.file_statuses().items():
            if not self.tracker.resolve(path).is_file():
                statuses[path] = FileStatus.DELETED
            elif self.tracker.is_file_modified(path):
                statuses[path] = FileStatus.MODIFIED
            else:
                statuses[path] = status
        return statuses

    # Versions

    def create_version(self, message: Optional[str]) -> str:
        """
        Snapshot the tracked files into a new version.

        Live content of every tracked file is stored first; files missing
        from the working tree are left out of the snapshot.

        Args:
            message: Version message

        Returns:
            Version ID

        Raises:
            InvalidVersionError: If the message is None or blank
            MergeConflictError: If merge conflicts are still pending
        """
        if not isinstance(message, str) or not message.strip():
            raise InvalidVersionError("Version message cannot be None or blank")
        pending = self.merge_engine.pending_conflicts()
        if pending:
            raise MergeConflictError(
                f"Cannot create a version with {len(pending)} unresolved conflicts"
            )

        file_hashes: Dict[str, str] = {}
        for path in self.tracker.tracked_files():
            status = self.tracker.update_file_status(path)
            if status == FileStatus.DELETED:
                continue
            file_hash = self.tracker.file_hash(path)
            if file_hash is not None:
                file_hashes[path] = file_hash

        version_id = self.version_store.create_version(message, file_hashes)
        for path in file_hashes:
            self.tracker.commit_file(path, version_id)
        self._save_index()
        return version_id

    def revert_to_version(self, version_id: str) -> None:
        """
        Restore every file of a version into the working tree.

        Raises:
            VersionNotFoundError: If the version is unknown
            FileOperationError: If a file cannot be written
        """
        version = self.version_store.get_version(version_id)
        if version is None:
            raise VersionNotFoundError(version_id)

        for path, file_hash in sorted(version.file_hashes.items()):
            data = self.object_store.get(file_hash)
            live_path = self.tracker.resolve(path)
            try:
                live_path.parent.mkdir(parents=True, exist_ok=True)
                with atomic_write(live_path) as f:
                    f.write(data)
            except OSError as e:
                raise FileOperationError(f"Failed to restore {path}: {e}") from e

            self.tracker.set_file_hash(path, file_hash)
            self._notify(path)

        self._save_index()
        logger.info(f"Reverted working tree to {version_id[:8]}")

    def get_version(self, version_id: str) -> Optional[Version]:
        """Look up a version by id."""
        return self.version_store.get_version(version_id)

    def history(self) -> List[Version]:
        """Versions in creation order."""
        return self.version_store.history()

    def current_version(self) -> Optional[Version]:
        """Most recent version, if any."""
        return self.version_store.current_version()

    def find_version(self, predicate: Callable[[Version], bool]) -> Optional[Version]:
        """Oldest version matching a predicate, if any."""
        return self.version_store.find_version(predicate)

    def versions_by_author(self, author: str) -> List[Version]:
        """Versions created by an author, in creation order."""
        return self.version_store.versions_by_author(author)

    # Diff

    def diff(self, old_version_id: str, new_version_id: str) -> DiffResult:
        """Diff two versions."""
        return self.diff_engine.diff_versions(old_version_id, new_version_id)

    def diff_working_file(self, path: str) -> DiffResult:
        """Diff a tracked file's stored content against the working tree."""
        return self.diff_engine.diff_working_file(path)

    def changed_lines(self, path: str) -> Dict[str, ChangedLines]:
        """Working-tree changes for a path; empty when untracked or unchanged."""
        return self.diff_engine.changed_lines(path)

    # Merge

    def scan_merge(self, source_version_id: str, target_version_id: str) -> MergeReport:
        """Scan two versions for conflicts without recording them."""
        return self.merge_engine.scan(source_version_id, target_version_id)

    def merge(self, source_version_id: str, target_version_id: str) -> bool:
        """
        Scan two versions and record their conflicts as pending.

        Returns:
            True iff no conflicts were found
        """
        return self.merge_engine.merge(source_version_id, target_version_id)

    def pending_conflicts(self) -> List[ConflictInfo]:
        """Unresolved conflicts from the last merge."""
        return self.merge_engine.pending_conflicts()

    def resolve_conflict(self, path: str, resolution: Optional[ConflictResolution]) -> str:
        """
        Resolve a pending conflict and write the result to the working tree.

        Returns:
            Hash of the resolved content
        """
        resolved_hash = self.merge_engine.resolve_conflict(path, resolution)
        if self.tracker.get_metadata(path) is not None:
            self.tracker.set_file_hash(path, resolved_hash)
            self._save_index()
        self._notify(path)
        return resolved_hash

    # Listeners

    def add_listener(self, listener: Callable[[str], None]) -> None:
        """Register a callback invoked with the path of every changed file."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[str], None]) -> None:
        """Unregister a change callback."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, path: str) -> None:
        for listener in list(self._listeners):
            listener(path)

    def _save_index(self) -> None:
        self.tracker.save_index(self.index_path)
