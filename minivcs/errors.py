"""
Exceptions for the version-control core.

Each class carries an ``error_code`` identifying its failure family.
"""

from __future__ import annotations


class VCSError(Exception):
    """Base exception for all version-control errors."""

    error_code = "VCS_ERR_GENERIC"

    def __init__(self, message: str, error_code: str | None = None):
        super().__init__(message)
        if error_code is not None:
            self.error_code = error_code


class FileOperationError(VCSError):
    """A read or write against the repository or working tree failed."""

    error_code = "VCS_ERR_FILE_OP"


class ObjectNotFoundError(FileOperationError):
    """No blob is stored under the requested hash."""

    def __init__(self, object_hash: str):
        super().__init__(f"Object not found: {object_hash}")
        self.object_hash = object_hash


class NotTrackedError(FileOperationError):
    """The path has no tracking metadata."""

    def __init__(self, path: str):
        super().__init__(f"File is not tracked: {path}")
        self.path = path


class FileNotFoundVCSError(FileOperationError):
    """A working-tree file expected on disk is missing."""

    def __init__(self, path: str):
        super().__init__(f"File does not exist: {path}")
        self.path = path


class VersionError(VCSError):
    """Base exception for version errors."""

    error_code = "VCS_ERR_VERSION"

    def __init__(self, message: str, version_id: str | None = None):
        super().__init__(message)
        self.version_id = version_id


class VersionNotFoundError(VersionError):
    """No version is recorded under the requested id."""

    def __init__(self, version_id: str):
        super().__init__(f"Version not found: {version_id}", version_id)


class InvalidVersionError(VersionError):
    """A version could not be created from the given input."""

    pass


class CorruptedVersionError(VersionError):
    """A persisted version record could not be parsed."""

    pass


class InvalidInputError(VCSError, ValueError):
    """An argument is missing or outside its allowed values."""

    pass


class MergeConflictError(VCSError):
    """Raised for conflict bookkeeping failures during merge and resolution."""

    error_code = "VCS_ERR_MERGE_CONFLICT"

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path
