"""
Content-addressed blob storage.

Blobs live under ``<root>/.vcs/objects/<hex-sha256>`` and are never rewritten
once present.
"""

import hashlib
import os
import re
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, IO

from minivcs.config import Config, config as default_config
from minivcs.errors import FileOperationError, ObjectNotFoundError
from minivcs.logging import get_vcs_logger

logger = get_vcs_logger("objects")

_HASH_PATTERN = re.compile(r"^[0-9a-f]{64}$")
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def hash_bytes(data: bytes) -> str:
    """SHA-256 of exact byte content, lowercase hex."""
    return hashlib.sha256(data).hexdigest()


def hash_file(path: Path) -> str:
    """Hash a file on disk without loading it whole."""
    digest = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(65536), b""):
                digest.update(chunk)
    except OSError as e:
        raise FileOperationError(f"Failed to hash file {path}: {e}") from e
    return digest.hexdigest()


def split_lines(text: str) -> List[str]:
    """
    Split text into lines on \\n, \\r\\n or \\r.

    A trailing line break does not produce a trailing empty line, so
    ``"a\\nb\\n"`` and ``"a\\nb"`` both give ``["a", "b"]`` and ``""`` gives ``[]``.
    """
    if not text:
        return []
    lines = _LINE_BREAK.split(text)
    if lines[-1] == "":
        lines.pop()
    return lines


def decode_lines(data: bytes) -> List[str]:
    """
    Decode blob bytes into lines.

    Content that is not valid UTF-8 degrades to a single line holding the
    uppercase hex dump of the raw bytes.
    """
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError:
        return [data.hex().upper()]
    return split_lines(text)


@contextmanager
def atomic_write(filepath: Path, mode: str = "wb") -> Iterator[IO]:
    """
    Context manager for atomic file write operations (overwrite mode).

    Args:
        filepath: Target file path
        mode: File mode for the temporary file ("wb" or "w")

    Yields:
        File object for writing
    """
    temp_fd, temp_path = tempfile.mkstemp(
        dir=filepath.parent, prefix=f".{filepath.name}.", suffix=".tmp"
    )

    try:
        with os.fdopen(temp_fd, mode) as f:
            yield f

        # Atomic rename
        os.replace(temp_path, filepath)

    except BaseException:
        try:
            os.unlink(temp_path)
        except FileNotFoundError:
            pass
        raise


class ObjectStore:
    """
    File-based content-addressed storage.

    Layout:
    - .vcs/
      - objects/
        - {sha256}  (raw blob bytes)
    """

    def __init__(self, root: Path, settings: Optional[Config] = None):
        """
        Initialize storage.

        Args:
            root: Repository root directory
            settings: Configuration (defaults to the global config)
        """
        settings = settings or default_config
        self.root = Path(root)
        self.objects_dir = settings.repository.objects_path(self.root)
        self.objects_dir.mkdir(parents=True, exist_ok=True)

    def object_path(self, object_hash: str) -> Path:
        """Path of the blob file for a hash."""
        return self.objects_dir / object_hash

    def exists(self, object_hash: str) -> bool:
        """Check whether a blob is stored under the hash."""
        if not _HASH_PATTERN.match(object_hash or ""):
            return False
        return self.object_path(object_hash).is_file()

    def put(self, data: bytes) -> str:
        """
        Store a blob.

        Idempotent: when an object with the same hash already exists the write
        is skipped. Concurrent writers of the same content each write to a
        private temporary file and rename it into place.

        Args:
            data: Blob content

        Returns:
            Hex SHA-256 of the content
        """
        object_hash = hash_bytes(data)
        target = self.object_path(object_hash)
        if target.exists():
            logger.debug(f"Object {object_hash[:12]} already stored")
            return object_hash

        try:
            with atomic_write(target) as f:
                f.write(data)
        except OSError as e:
            logger.error(f"Failed to store object {object_hash[:12]}: {e}")
            raise FileOperationError(f"Could not store object {object_hash}: {e}") from e

        logger.debug(f"Stored object {object_hash[:12]}", size=len(data))
        return object_hash

    def put_file(self, path: Path) -> str:
        """Store the content of a file on disk."""
        try:
            data = Path(path).read_bytes()
        except OSError as e:
            raise FileOperationError(f"Failed to read file {path}: {e}") from e
        return self.put(data)

    def get(self, object_hash: str) -> bytes:
        """
        Load a blob.

        Args:
            object_hash: Hash returned by ``put``

        Returns:
            Blob bytes

        Raises:
            ObjectNotFoundError: If nothing is stored under the hash
        """
        if not self.exists(object_hash):
            raise ObjectNotFoundError(object_hash)
        try:
            return self.object_path(object_hash).read_bytes()
        except FileNotFoundError as e:
            raise ObjectNotFoundError(object_hash) from e
        except OSError as e:
            raise FileOperationError(f"Failed to read object {object_hash}: {e}") from e

    def get_lines(self, object_hash: str) -> List[str]:
        """Load a blob as a sequence of text lines."""
        return decode_lines(self.get(object_hash))

    def list_objects(self) -> List[str]:
        """List all stored hashes."""
        return sorted(
            f.name for f in self.objects_dir.iterdir() if _HASH_PATTERN.match(f.name)
        )
