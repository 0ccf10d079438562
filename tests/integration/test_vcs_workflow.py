"""
Integration tests for a complete repository workflow.

Exercises tracking, versioning, diffing, merging, resolution, and revert
across separately opened repository instances sharing one directory.
"""

import tempfile
from pathlib import Path

from minivcs.diff import apply_changes
from minivcs.merge import ConflictResolution, ConflictStatus
from minivcs.storage import split_lines
from minivcs.version_control import VersionControl


class TestRepositoryWorkflow:
    """End-to-end repository workflow."""

    def test_full_workflow(self) -> None:
        """Test track, version, diff, merge, resolve, and revert together."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "notes.txt").write_text("title\nfirst draft\nfooter\n")
            (root / "config.ini").write_text("[core]\nname=demo\n")

            vcs = VersionControl(root)
            vcs.track_file("notes.txt")
            vcs.track_file("config.ini")
            v1 = vcs.create_version("Initial import")

            (root / "notes.txt").write_text("title\nrewritten from scratch\nfooter\nappendix\n")
            v2 = vcs.create_version("Rewrite notes")

            # Separate instance sees the same history and tracked files
            other = VersionControl(root)
            assert [v.version_id for v in other.history()] == [v1, v2]
            assert other.tracked_files() == ["config.ini", "notes.txt"]

            diff = other.diff(v1, v2)
            assert list(diff.changes) == ["notes.txt"]
            changed = diff.changes["notes.txt"]
            old_lines = other.object_store.get_lines(
                other.get_version(v1).file_hashes["notes.txt"]
            )
            new_lines = other.object_store.get_lines(
                other.get_version(v2).file_hashes["notes.txt"]
            )
            assert apply_changes(old_lines, changed) == new_lines

            # Merging the rewrite onto the original conflicts in two blocks
            assert other.merge(v2, v1) is False
            conflict = other.pending_conflicts()[0]
            assert conflict.file_path == "notes.txt"
            assert [(b.start_line, b.end_line) for b in conflict.blocks] == [(1, 1), (3, 3)]

            other.resolve_conflict(
                "notes.txt",
                ConflictResolution.custom("notes.txt", {1: "merged draft", 3: "appendix v2"}),
            )
            assert conflict.status == ConflictStatus.RESOLVED_CUSTOM
            assert split_lines((root / "notes.txt").read_text()) == [
                "title",
                "merged draft",
                "footer",
                "appendix v2",
            ]

            v3 = other.create_version("Merge resolution")
            assert other.current_version().version_id == v3

            other.revert_to_version(v1)
            assert (root / "notes.txt").read_text() == "title\nfirst draft\nfooter\n"
            assert (root / "config.ini").read_text() == "[core]\nname=demo\n"

            # Objects are shared and deduplicated across versions
            config_hashes = {other.get_version(v).file_hashes["config.ini"] for v in (v1, v2, v3)}
            assert len(config_hashes) == 1

    def test_binary_file_round_trip(self) -> None:
        """Test binary files are versioned and restored byte for byte."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            payload = bytes(range(256))
            (root / "blob.bin").write_bytes(payload)

            vcs = VersionControl(root)
            vcs.track_file("blob.bin")
            v1 = vcs.create_version("binary")
            (root / "blob.bin").write_bytes(payload[::-1])
            v2 = vcs.create_version("reversed")

            changed = vcs.diff(v1, v2).changes["blob.bin"]
            assert len(changed.modifications) == 1
            assert changed.modifications[0].old_content == payload.hex().upper()

            vcs.revert_to_version(v1)
            assert (root / "blob.bin").read_bytes() == payload
