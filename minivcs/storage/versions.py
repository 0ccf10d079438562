"""
Storage backend for version records.

Handles persistence of versions to disk and the in-memory history index.
"""

import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional

from minivcs.config import Config, config as default_config
from minivcs.errors import CorruptedVersionError, FileOperationError, InvalidVersionError
from minivcs.logging import get_vcs_logger
from minivcs.models import Version, create_version_id
from minivcs.storage.objects import atomic_write

logger = get_vcs_logger("versions")


class VersionStore:
    """
    File-based storage for versions.

    Stores each version as a JSON file named by its id:
    - .vcs/
      - versions/
        - {version_id}

    All records are loaded into memory on construction; unreadable records
    are skipped with a warning.
    """

    def __init__(self, root: Path, settings: Optional[Config] = None):
        """
        Initialize storage.

        Args:
            root: Repository root directory
            settings: Configuration (defaults to the global config)
        """
        self.settings = settings or default_config
        self.root = Path(root)
        self.versions_dir = self.settings.repository.versions_path(self.root)
        self.versions_dir.mkdir(parents=True, exist_ok=True)

        self._lock = threading.Lock()
        self._index: Dict[str, Version] = {}
        self._history: List[Version] = []

        self._load_history()

    def _load_history(self) -> None:
        """Load every version record from disk, oldest first."""
        loaded: List[Version] = []
        for path in self.versions_dir.iterdir():
            if not path.is_file() or path.name.startswith("."):
                continue
            try:
                loaded.append(self._load_version_file(path))
            except (CorruptedVersionError, FileOperationError) as e:
                logger.warning(f"Skipping version file {path.name}: {e}")

        loaded.sort(key=lambda v: (v.timestamp, v.version_id))
        for version in loaded:
            self._index[version.version_id] = version
            self._history.append(version)

        if loaded:
            logger.debug(f"Loaded {len(loaded)} versions from {self.versions_dir}")

    def _load_version_file(self, path: Path) -> Version:
        """
        Parse a single version record.

        Raises:
            CorruptedVersionError: If the record cannot be parsed
            FileOperationError: If the file cannot be read
        """
        try:
            data = path.read_bytes()
        except OSError as e:
            raise FileOperationError(f"Failed to read version file {path}: {e}") from e

        try:
            version = Version.from_json(data.decode("utf-8"))
        except (ValueError, KeyError, TypeError) as e:
            raise CorruptedVersionError(
                f"Corrupted version record {path.name}: {e}", path.name
            ) from e

        if version.version_id != path.name:
            raise CorruptedVersionError(
                f"Version record {path.name} holds id {version.version_id}", path.name
            )
        if not isinstance(version.message, str) or not isinstance(version.author, str):
            raise CorruptedVersionError(
                f"Version record {path.name} has a non-text message or author", path.name
            )
        # Naive timestamps cannot be ordered against the rest of the history
        if version.timestamp.tzinfo is None:
            raise CorruptedVersionError(
                f"Version record {path.name} has no timezone on its timestamp", path.name
            )
        if not all(
            isinstance(file_path, str) and isinstance(file_hash, str)
            for file_path, file_hash in version.file_hashes.items()
        ):
            raise CorruptedVersionError(
                f"Version record {path.name} has a malformed file map", path.name
            )
        return version

    def create_version(
        self,
        message: Optional[str],
        file_hashes: Optional[Mapping[str, str]] = None,
        author: Optional[str] = None,
    ) -> str:
        """
        Create and persist a new version.

        Hashes are not checked against the object store; callers store blobs
        first.

        Args:
            message: Version message
            file_hashes: Path -> blob hash snapshot
            author: Author (defaults to the configured author)

        Returns:
            Version ID

        Raises:
            InvalidVersionError: If the message is None or blank
            FileOperationError: If the record cannot be written
        """
        if message is None:
            raise InvalidVersionError("Version message cannot be None")
        if not isinstance(message, str) or not message.strip():
            raise InvalidVersionError("Version message cannot be blank")

        # Timestamps strictly increase within a store
        with self._lock:
            timestamp = datetime.now(timezone.utc)
            if self._history and timestamp <= self._history[-1].timestamp:
                timestamp = self._history[-1].timestamp + timedelta(microseconds=1)

            version = Version(
                version_id=create_version_id(),
                message=message,
                author=author or self.settings.repository.author,
                timestamp=timestamp,
                file_hashes=dict(file_hashes or {}),
            )

            version_file = self.versions_dir / version.version_id
            try:
                with atomic_write(version_file, mode="w") as f:
                    f.write(version.to_json())
            except OSError as e:
                logger.error(f"Failed to save version {version.version_id}: {e}")
                raise FileOperationError(f"Could not save version: {e}") from e

            self._index[version.version_id] = version
            self._history.append(version)

        logger.bind(version_id=version.version_id, files=len(version.file_hashes)).info(
            f"Created version {version.version_id[:8]}: {message}"
        )
        return version.version_id

    def get_version(self, version_id: str) -> Optional[Version]:
        """
        Look up a version.

        Args:
            version_id: ID of version to load

        Returns:
            Version if found, None otherwise
        """
        return self._index.get(version_id)

    def history(self) -> List[Version]:
        """
        List all versions.

        Returns:
            Versions in creation order
        """
        with self._lock:
            return list(self._history)

    def current_version(self) -> Optional[Version]:
        """Get the most recently created version."""
        with self._lock:
            return self._history[-1] if self._history else None

    def find_version(self, predicate: Callable[[Version], bool]) -> Optional[Version]:
        """
        Find the oldest version matching a predicate.

        Args:
            predicate: Test applied to each version in creation order

        Returns:
            First matching version, or None
        """
        return next((v for v in self.history() if predicate(v)), None)

    def versions_by_author(self, author: str) -> List[Version]:
        """Get every version created by an author, in creation order."""
        return [v for v in self.history() if v.author == author]

    def __len__(self) -> int:
        return len(self._history)

    def __contains__(self, version_id: object) -> bool:
        return version_id in self._index
