"""
Unit tests for the version control facade.

Tests tracking, version creation, revert, diff, and merge through VersionControl.
"""

import tempfile
from pathlib import Path

import pytest

from minivcs.errors import (
    FileOperationError,
    InvalidVersionError,
    MergeConflictError,
    VersionNotFoundError,
)
from minivcs.merge import ConflictResolution
from minivcs.models import FileStatus
from minivcs.storage import hash_bytes
from minivcs.version_control import VersionControl


class TestVersionControl:
    """Tests for VersionControl class."""

    def test_initialization_creates_layout(self) -> None:
        """Test opening a repository creates the metadata layout."""
        with tempfile.TemporaryDirectory() as tmpdir:
            vcs = VersionControl(Path(tmpdir))
            assert (Path(tmpdir) / ".vcs" / "objects").is_dir()
            assert (Path(tmpdir) / ".vcs" / "versions").is_dir()
            assert vcs.metadata_dir == Path(tmpdir) / ".vcs"
            assert vcs.history() == []
            assert vcs.current_version() is None

    def test_track_and_create_version(self) -> None:
        """Test versions snapshot tracked file hashes."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "a.txt").write_text("alpha")
            (root / "b.txt").write_text("beta")
            vcs = VersionControl(root)
            vcs.track_file("a.txt")
            vcs.track_file("b.txt")

            version_id = vcs.create_version("Initial commit")

            version = vcs.get_version(version_id)
            assert version.file_hashes == {
                "a.txt": hash_bytes(b"alpha"),
                "b.txt": hash_bytes(b"beta"),
            }
            assert vcs.current_version().version_id == version_id
            assert vcs.tracker.get_metadata("a.txt").versions == [version_id]

    def test_create_version_picks_up_edits(self) -> None:
        """Test live content is captured when creating a version."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "a.txt").write_text("one")
            vcs = VersionControl(root)
            vcs.track_file("a.txt")
            (root / "a.txt").write_text("two")

            version_id = vcs.create_version("Edit")
            assert vcs.get_version(version_id).file_hashes["a.txt"] == hash_bytes(b"two")
            assert vcs.file_statuses()["a.txt"] == FileStatus.TRACKED

    def test_create_version_skips_deleted_files(self) -> None:
        """Test files missing from disk are left out of the snapshot."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "a.txt").write_text("one")
            (root / "b.txt").write_text("two")
            vcs = VersionControl(root)
            vcs.track_file("a.txt")
            vcs.track_file("b.txt")
            (root / "b.txt").unlink()

            version_id = vcs.create_version("Without b")
            assert list(vcs.get_version(version_id).file_hashes) == ["a.txt"]

    def test_create_version_requires_message(self) -> None:
        """Test None and blank messages are rejected."""
        with tempfile.TemporaryDirectory() as tmpdir:
            vcs = VersionControl(Path(tmpdir))
            with pytest.raises(InvalidVersionError):
                vcs.create_version(None)
            with pytest.raises(InvalidVersionError):
                vcs.create_version("  ")
            assert vcs.history() == []

    def test_track_missing_file(self) -> None:
        """Test tracking a missing file fails."""
        with tempfile.TemporaryDirectory() as tmpdir:
            vcs = VersionControl(Path(tmpdir))
            with pytest.raises(FileOperationError):
                vcs.track_file("missing.txt")

    def test_track_files(self) -> None:
        """Test several files are tracked, indexed, and announced."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "a.txt").write_text("alpha")
            (root / "b.txt").write_text("beta")
            vcs = VersionControl(root)
            seen = []
            vcs.add_listener(seen.append)

            tracked = vcs.track_files(["a.txt", "b.txt"])
            assert [m.path for m in tracked] == ["a.txt", "b.txt"]
            assert seen == ["a.txt", "b.txt"]
            assert VersionControl(root).tracked_files() == ["a.txt", "b.txt"]

    def test_track_files_keeps_earlier_files_on_failure(self) -> None:
        """Test files before a missing one are tracked and indexed."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "a.txt").write_text("alpha")
            vcs = VersionControl(root)

            with pytest.raises(FileOperationError):
                vcs.track_files(["a.txt", "missing.txt"])
            assert VersionControl(root).tracked_files() == ["a.txt"]

    def test_find_version_and_versions_by_author(self) -> None:
        """Test version queries go through the facade."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "a.txt").write_text("one")
            vcs = VersionControl(root)
            vcs.track_file("a.txt")
            first = vcs.create_version("first")
            vcs.version_store.create_version("imported", {}, author="importer")
            (root / "a.txt").write_text("two")
            third = vcs.create_version("third")

            found = vcs.find_version(lambda v: v.file_hashes.get("a.txt") == hash_bytes(b"two"))
            assert found.version_id == third
            assert vcs.find_version(lambda v: v.message == "nope") is None

            author = vcs.settings.repository.author
            assert [v.version_id for v in vcs.versions_by_author(author)] == [first, third]
            assert [v.message for v in vcs.versions_by_author("importer")] == ["imported"]

    def test_track_directory(self) -> None:
        """Test every regular file in a directory is tracked."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "src").mkdir()
            (root / "src" / "one.txt").write_text("1")
            (root / "src" / "two.txt").write_text("2")
            (root / "src" / "nested").mkdir()
            vcs = VersionControl(root)

            tracked = vcs.track_directory("src")
            expected = [str(Path("src") / "one.txt"), str(Path("src") / "two.txt")]
            assert tracked == expected
            assert vcs.tracked_files() == expected

    def test_track_directory_not_a_directory(self) -> None:
        """Test tracking a file as a directory fails."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "a.txt").write_text("x")
            with pytest.raises(FileOperationError, match="Not a directory"):
                VersionControl(root).track_directory("a.txt")

    def test_untrack_file(self) -> None:
        """Test untracked files are excluded from new versions."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "a.txt").write_text("x")
            vcs = VersionControl(root)
            vcs.track_file("a.txt")
            vcs.untrack_file("a.txt")

            version_id = vcs.create_version("Empty")
            assert vcs.get_version(version_id).file_hashes == {}

    def test_working_statuses(self) -> None:
        """Test working statuses reflect live files without storing them."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            for name in ("same.txt", "edited.txt", "gone.txt"):
                (root / name).write_text(name)
            vcs = VersionControl(root)
            for name in ("same.txt", "edited.txt", "gone.txt"):
                vcs.track_file(name)
            (root / "edited.txt").write_text("changed")
            (root / "gone.txt").unlink()

            assert vcs.working_statuses() == {
                "same.txt": FileStatus.TRACKED,
                "edited.txt": FileStatus.MODIFIED,
                "gone.txt": FileStatus.DELETED,
            }
            assert not vcs.object_store.exists(hash_bytes(b"changed"))

    def test_revert_to_version(self) -> None:
        """Test reverting restores file content."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "a.txt").write_text("version one")
            vcs = VersionControl(root)
            vcs.track_file("a.txt")
            v1 = vcs.create_version("v1")
            (root / "a.txt").write_text("version two")
            vcs.create_version("v2")

            vcs.revert_to_version(v1)
            assert (root / "a.txt").read_text() == "version one"
            assert vcs.tracker.file_hash("a.txt") == hash_bytes(b"version one")

    def test_revert_restores_deleted_file(self) -> None:
        """Test reverting recreates missing files and directories."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "sub").mkdir()
            (root / "sub" / "a.txt").write_text("keep me")
            vcs = VersionControl(root)
            vcs.track_file("sub/a.txt")
            v1 = vcs.create_version("v1")
            (root / "sub" / "a.txt").unlink()
            (root / "sub").rmdir()

            vcs.revert_to_version(v1)
            assert (root / "sub" / "a.txt").read_text() == "keep me"

    def test_revert_unknown_version(self) -> None:
        """Test reverting to an unknown version fails."""
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(VersionNotFoundError):
                VersionControl(Path(tmpdir)).revert_to_version("missing")

    def test_diff(self) -> None:
        """Test diffing two versions."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "a.txt").write_text("a\nb\nc")
            vcs = VersionControl(root)
            vcs.track_file("a.txt")
            v1 = vcs.create_version("v1")
            (root / "a.txt").write_text("a\nx\nc")
            v2 = vcs.create_version("v2")

            result = vcs.diff(v1, v2)
            assert result.changes["a.txt"].modifications[0].summary() == "M 2: b -> x"

    def test_diff_working_file_and_changed_lines(self) -> None:
        """Test working-tree diffs go through the facade."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "a.txt").write_text("a\nb")
            vcs = VersionControl(root)
            vcs.track_file("a.txt")
            (root / "a.txt").write_text("a\nb\nc")

            result = vcs.diff_working_file("a.txt")
            assert result.changes["a.txt"].additions[0].new_content == "c"
            assert list(vcs.changed_lines("a.txt")) == ["a.txt"]

    def test_merge_and_resolve(self) -> None:
        """Test conflicts are found and resolved through the facade."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "file.txt").write_text("base\ncommon\nend")
            vcs = VersionControl(root)
            vcs.track_file("file.txt")
            base = vcs.create_version("base")
            (root / "file.txt").write_text("source\ncommon\nend")
            source = vcs.create_version("source")

            assert vcs.merge(source, base) is False
            assert [c.file_path for c in vcs.pending_conflicts()] == ["file.txt"]
            assert not vcs.scan_merge(source, base).clean

            resolved_hash = vcs.resolve_conflict(
                "file.txt", ConflictResolution.custom("file.txt", {0: "resolved"})
            )
            assert (root / "file.txt").read_text() == "resolved\ncommon\nend"
            assert vcs.tracker.file_hash("file.txt") == resolved_hash
            assert vcs.pending_conflicts() == []

    def test_pending_conflicts_block_new_versions(self) -> None:
        """Test versions cannot be created while conflicts are pending."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "file.txt").write_text("base")
            vcs = VersionControl(root)
            vcs.track_file("file.txt")
            base = vcs.create_version("base")
            (root / "file.txt").write_text("source")
            source = vcs.create_version("source")
            vcs.merge(source, base)

            with pytest.raises(MergeConflictError):
                vcs.create_version("blocked")

            vcs.resolve_conflict("file.txt", ConflictResolution.keep_target("file.txt"))
            version_id = vcs.create_version("after resolution")
            assert vcs.get_version(version_id).file_hashes["file.txt"] == hash_bytes(b"base")

    def test_resolve_without_conflict(self) -> None:
        """Test resolving with nothing pending fails."""
        with tempfile.TemporaryDirectory() as tmpdir:
            vcs = VersionControl(Path(tmpdir))
            with pytest.raises(MergeConflictError):
                vcs.resolve_conflict("a.txt", ConflictResolution.keep_source("a.txt"))

    def test_listeners(self) -> None:
        """Test listeners hear about tracked, reverted, and untracked files."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "a.txt").write_text("x")
            vcs = VersionControl(root)
            seen = []

            def listener(path: str) -> None:
                seen.append(path)

            vcs.add_listener(listener)
            vcs.track_file("a.txt")
            v1 = vcs.create_version("v1")
            vcs.revert_to_version(v1)
            vcs.untrack_file("a.txt")
            vcs.remove_listener(listener)
            vcs.track_file("a.txt")

            assert seen == ["a.txt", "a.txt", "a.txt"]

    def test_reopen_uses_index(self) -> None:
        """Test a reopened repository keeps the tracked set."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "a.txt").write_text("x")
            VersionControl(root).track_file("a.txt")

            reopened = VersionControl(root)
            assert reopened.tracked_files() == ["a.txt"]
            assert (root / ".vcs" / "index").is_file()

    def test_reopen_without_index_uses_current_version(self) -> None:
        """Test a repository without an index starts from its latest version."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "a.txt").write_text("x")
            vcs = VersionControl(root)
            vcs.track_file("a.txt")
            version_id = vcs.create_version("v1")
            (root / ".vcs" / "index").unlink()

            reopened = VersionControl(root)
            assert reopened.tracked_files() == ["a.txt"]
            assert reopened.tracker.get_metadata("a.txt").versions == [version_id]
            assert [v.version_id for v in reopened.history()] == [version_id]
