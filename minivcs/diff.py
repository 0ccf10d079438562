"""
Line-level diff computation.

Computes classified differences between two line sequences with a
longest-common-subsequence walk, and lifts that to version snapshots and
working-tree files.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

from minivcs.errors import (
    FileNotFoundVCSError,
    FileOperationError,
    InvalidInputError,
    NotTrackedError,
    VersionNotFoundError,
)
from minivcs.logging import get_vcs_logger, performance_monitor
from minivcs.storage import ObjectStore, VersionStore, decode_lines, hash_bytes

if TYPE_CHECKING:
    from minivcs.tracking import FileTracker

logger = get_vcs_logger("diff")


class ChangeType(str, Enum):
    """Type of change in a diff."""

    ADDITION = "addition"
    DELETION = "deletion"
    MODIFICATION = "modification"


class OpType(str, Enum):
    """Edit-script operation produced by the LCS walk."""

    MATCH = "match"
    ADD = "add"
    DELETE = "delete"


@dataclass(frozen=True)
class DiffOp:
    """A single edit-script step with its 1-based line numbers."""

    op_type: OpType
    text: str
    old_line: Optional[int]
    new_line: Optional[int]


@dataclass(frozen=True)
class LineChange:
    """
    A change to a single line.

    ``line_number`` is 1-based on the relevant side: the new side for
    additions, the old side for deletions and modifications.
    """

    line_number: int
    old_content: Optional[str]
    new_content: Optional[str]
    change_type: ChangeType

    def __post_init__(self) -> None:
        if self.change_type == ChangeType.ADDITION:
            valid = self.old_content is None and self.new_content is not None
        elif self.change_type == ChangeType.DELETION:
            valid = self.old_content is not None and self.new_content is None
        else:
            valid = self.old_content is not None and self.new_content is not None
        if not valid:
            raise InvalidInputError(f"Inconsistent content for {self.change_type.value} change")

    def summary(self) -> str:
        """Get a one-line summary of this change."""
        if self.change_type == ChangeType.ADDITION:
            return f"+ {self.line_number}: {self.new_content}"
        elif self.change_type == ChangeType.DELETION:
            return f"- {self.line_number}: {self.old_content}"
        return f"M {self.line_number}: {self.old_content} -> {self.new_content}"


@dataclass
class ChangedLines:
    """Additions, deletions and modifications for one file, in processing order."""

    additions: List[LineChange] = field(default_factory=list)
    deletions: List[LineChange] = field(default_factory=list)
    modifications: List[LineChange] = field(default_factory=list)

    def is_empty(self) -> bool:
        """Check if no line changed."""
        return not (self.additions or self.deletions or self.modifications)

    def total(self) -> int:
        """Total number of line changes."""
        return len(self.additions) + len(self.deletions) + len(self.modifications)


@dataclass
class DiffResult:
    """
    Complete diff between two snapshots.

    Only paths with at least one line change are present in ``changes``.
    """

    from_label: str
    to_label: str
    changes: Dict[str, ChangedLines] = field(default_factory=dict)

    def has_changes(self) -> bool:
        """Check if there are any changes."""
        return len(self.changes) > 0

    def total_changes(self) -> int:
        """Count line changes across all files."""
        return sum(changed.total() for changed in self.changes.values())

    def count_by_type(self) -> Dict[str, int]:
        """Count changes by type."""
        counts = {change_type.value: 0 for change_type in ChangeType}
        for changed in self.changes.values():
            counts[ChangeType.ADDITION.value] += len(changed.additions)
            counts[ChangeType.DELETION.value] += len(changed.deletions)
            counts[ChangeType.MODIFICATION.value] += len(changed.modifications)
        return counts

    def summary(self) -> str:
        """Generate a summary of the diff."""
        if not self.has_changes():
            return "No changes"

        counts = self.count_by_type()
        parts = [f"{len(self.changes)} files changed"]
        if counts["addition"] > 0:
            parts.append(f"{counts['addition']} lines added")
        if counts["deletion"] > 0:
            parts.append(f"{counts['deletion']} lines deleted")
        if counts["modification"] > 0:
            parts.append(f"{counts['modification']} lines modified")
        return ", ".join(parts)

    def format(self) -> str:
        """
        Format diff for display.

        Returns:
            Formatted diff string
        """
        lines = []
        lines.append("=" * 60)
        lines.append(f"Diff: {self.from_label} -> {self.to_label}")
        lines.append("=" * 60)
        lines.append("")
        lines.append(f"Summary: {self.summary()}")
        lines.append("")

        for path in sorted(self.changes):
            changed = self.changes[path]
            lines.append(path)
            lines.append("-" * 60)
            for change in changed.modifications:
                lines.append(change.summary())
            for change in changed.deletions:
                lines.append(change.summary())
            for change in changed.additions:
                lines.append(change.summary())
            lines.append("")

        lines.append("=" * 60)
        return "\n".join(lines)


def compute_diff_ops(old_lines: Sequence[str], new_lines: Sequence[str]) -> List[DiffOp]:
    """
    Compute the edit script between two line sequences.

    The LCS table is filled from the bottom-right corner; the forward walk
    prefers DELETE over ADD when both keep the LCS length.

    Args:
        old_lines: Old side
        new_lines: New side

    Returns:
        MATCH/ADD/DELETE operations in walk order
    """
    m, n = len(old_lines), len(new_lines)
    dp = [[0] * (n + 1) for _ in range(m + 1)]
    for i in range(m - 1, -1, -1):
        row, below = dp[i], dp[i + 1]
        old_line = old_lines[i]
        for j in range(n - 1, -1, -1):
            if old_line == new_lines[j]:
                row[j] = below[j + 1] + 1
            else:
                row[j] = max(below[j], row[j + 1])

    ops: List[DiffOp] = []
    i = j = 0
    while i < m and j < n:
        if old_lines[i] == new_lines[j]:
            ops.append(DiffOp(OpType.MATCH, old_lines[i], i + 1, j + 1))
            i += 1
            j += 1
        elif dp[i + 1][j] >= dp[i][j + 1]:
            ops.append(DiffOp(OpType.DELETE, old_lines[i], i + 1, None))
            i += 1
        else:
            ops.append(DiffOp(OpType.ADD, new_lines[j], None, j + 1))
            j += 1
    while i < m:
        ops.append(DiffOp(OpType.DELETE, old_lines[i], i + 1, None))
        i += 1
    while j < n:
        ops.append(DiffOp(OpType.ADD, new_lines[j], None, j + 1))
        j += 1
    return ops


def group_edit_blocks(ops: Sequence[DiffOp]) -> List[List[DiffOp]]:
    """Split an edit script into maximal runs of non-MATCH operations."""
    blocks: List[List[DiffOp]] = []
    current: List[DiffOp] = []
    for op in ops:
        if op.op_type == OpType.MATCH:
            if current:
                blocks.append(current)
                current = []
        else:
            current.append(op)
    if current:
        blocks.append(current)
    return blocks


def _addition(op: DiffOp) -> LineChange:
    return LineChange(op.new_line, None, op.text, ChangeType.ADDITION)


def _deletion(op: DiffOp) -> LineChange:
    return LineChange(op.old_line, op.text, None, ChangeType.DELETION)


def classify_block(block: Sequence[DiffOp], changed: ChangedLines) -> None:
    """
    Classify one edit block into additions, deletions and modifications.

    Pure blocks map one-to-one onto additions or deletions. Mixed blocks pair
    the k-th DELETE with the k-th ADD as a modification positioned at the
    deleted line; unpaired operations become additions or deletions.
    """
    adds = [op for op in block if op.op_type == OpType.ADD]
    dels = [op for op in block if op.op_type == OpType.DELETE]

    if not adds or not dels:
        for op in block:
            if op.op_type == OpType.ADD:
                changed.additions.append(_addition(op))
            else:
                changed.deletions.append(_deletion(op))
        return

    paired = min(len(adds), len(dels))
    for add_op, del_op in zip(adds, dels):
        changed.modifications.append(
            LineChange(del_op.old_line, del_op.text, add_op.text, ChangeType.MODIFICATION)
        )

    leftover_adds = adds[paired:]
    leftover_dels = dels[paired:]

    # A mixed block of unequal size must not report an empty leftover side
    # while that side still holds unpaired operations; pad with the first
    # paired operation of that kind.
    if not leftover_dels and len(dels) > paired and len(adds) > len(dels):
        leftover_dels.append(dels[0])
    if not leftover_adds and len(adds) > paired and len(dels) > len(adds):
        leftover_adds.append(adds[0])

    changed.additions.extend(_addition(op) for op in leftover_adds)
    changed.deletions.extend(_deletion(op) for op in leftover_dels)


def diff_lines(old_lines: Sequence[str], new_lines: Sequence[str]) -> ChangedLines:
    """
    Compute classified line changes between two sequences.

    Example:
        >>> changed = diff_lines(["a", "b", "c"], ["a", "x", "c"])
        >>> changed.modifications[0].summary()
        'M 2: b -> x'
    """
    changed = ChangedLines()
    for block in group_edit_blocks(compute_diff_ops(old_lines, new_lines)):
        classify_block(block, changed)
    return changed


def apply_changes(old_lines: Sequence[str], changed: ChangedLines) -> List[str]:
    """
    Rebuild the new side of a diff from the old side and its changes.

    Deletions and modifications are applied by old line number, then
    additions are inserted at their new line numbers in ascending order.
    """
    deleted = {change.line_number for change in changed.deletions}
    modified = {change.line_number: change.new_content for change in changed.modifications}

    result: List[str] = []
    for number, line in enumerate(old_lines, start=1):
        if number in deleted:
            continue
        result.append(modified[number] if number in modified else line)

    for change in sorted(changed.additions, key=lambda c: c.line_number):
        result.insert(change.line_number - 1, change.new_content)
    return result


class DiffEngine:
    """
    Diffs stored snapshots and live working files.

    Blob content is fetched from the object store by hash; an absent hash
    diffs as empty content.
    """

    def __init__(
        self,
        object_store: ObjectStore,
        version_store: VersionStore,
        tracker: Optional["FileTracker"] = None,
    ):
        self.object_store = object_store
        self.version_store = version_store
        self.tracker = tracker

    def diff(self, old_lines: Sequence[str], new_lines: Sequence[str]) -> ChangedLines:
        """Diff two in-memory line sequences."""
        return diff_lines(old_lines, new_lines)

    def diff_hashes(self, old_hash: Optional[str], new_hash: Optional[str]) -> ChangedLines:
        """Diff two stored blobs; None stands for an absent file."""
        old_lines = self.object_store.get_lines(old_hash) if old_hash else []
        new_lines = self.object_store.get_lines(new_hash) if new_hash else []
        return diff_lines(old_lines, new_lines)

    @performance_monitor(threshold_ms=1000.0)
    def diff_versions(self, old_version_id: str, new_version_id: str) -> DiffResult:
        """
        Compute diff between two versions.

        Args:
            old_version_id: Old version ID
            new_version_id: New version ID

        Returns:
            DiffResult keyed by every path whose content changed

        Raises:
            VersionNotFoundError: If either version is unknown
        """
        old_version = self.version_store.get_version(old_version_id)
        if old_version is None:
            raise VersionNotFoundError(old_version_id)
        new_version = self.version_store.get_version(new_version_id)
        if new_version is None:
            raise VersionNotFoundError(new_version_id)

        old_hashes = old_version.file_hashes
        new_hashes = new_version.file_hashes

        changes: Dict[str, ChangedLines] = {}
        for path in sorted(set(old_hashes) | set(new_hashes)):
            old_hash = old_hashes.get(path)
            new_hash = new_hashes.get(path)
            if old_hash == new_hash:
                continue
            changed = self.diff_hashes(old_hash, new_hash)
            if not changed.is_empty():
                changes[path] = changed

        result = DiffResult(old_version_id, new_version_id, changes)
        logger.debug(
            f"Diff {old_version_id[:8]} -> {new_version_id[:8]}: {result.summary()}"
        )
        return result

    def diff_working_file(self, path: str) -> DiffResult:
        """
        Diff the stored blob of a tracked file against its live content.

        Args:
            path: Tracked path

        Returns:
            DiffResult labelled "current" -> "working"

        Raises:
            FileNotFoundVCSError: If the live file is missing
            NotTrackedError: If the path has no tracking metadata
        """
        if self.tracker is None:
            raise NotTrackedError(path)

        live_path = self.tracker.resolve(path)
        if not live_path.is_file():
            raise FileNotFoundVCSError(path)

        metadata = self.tracker.get_metadata(path)
        if metadata is None:
            raise NotTrackedError(path)

        changes: Dict[str, ChangedLines] = {}
        changed = self._diff_live(metadata.current_hash, live_path)
        if changed is not None and not changed.is_empty():
            changes[path] = changed
        return DiffResult("current", "working", changes)

    def changed_lines(self, path: str) -> Dict[str, ChangedLines]:
        """
        Working-tree changes for a path.

        Returns an empty map for untracked, missing or unchanged files.
        """
        if self.tracker is None:
            return {}
        metadata = self.tracker.get_metadata(path)
        live_path = self.tracker.resolve(path)
        if metadata is None or not live_path.is_file():
            return {}

        changed = self._diff_live(metadata.current_hash, live_path)
        if changed is None or changed.is_empty():
            return {}
        return {path: changed}

    def _diff_live(self, stored_hash: str, live_path: Path) -> Optional[ChangedLines]:
        """Diff a stored blob against file content; None when the bytes match."""
        try:
            live_data = live_path.read_bytes()
        except OSError as e:
            raise FileOperationError(f"Failed to read {live_path}: {e}") from e

        if hash_bytes(live_data) == stored_hash:
            return None
        return diff_lines(self.object_store.get_lines(stored_hash), decode_lines(live_data))
