"""
Two-way merge conflict detection and resolution.

A merge scan aligns the files of two versions position by position, scores
each run of misaligned lines by normalized Levenshtein similarity, and
records low-similarity runs as conflicts. Resolving a conflict rebuilds the
file from the source version, substitutes the conflicting ranges per the
chosen strategy, and writes the result to the object store and the working
tree.

Concurrency: one engine holds one pending-conflict set. ``merge`` and
``resolve_conflict`` must not run concurrently on the same engine; callers
serialize them. The internal lock only keeps the pending list intact.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from minivcs.config import Config, config as default_config
from minivcs.errors import (
    FileOperationError,
    InvalidInputError,
    MergeConflictError,
    VersionNotFoundError,
)
from minivcs.logging import get_vcs_logger, performance_monitor, track_operation
from minivcs.models import Version
from minivcs.storage import ObjectStore, VersionStore, atomic_write

logger = get_vcs_logger("merge")


class ResolutionStrategy(str, Enum):
    """How a conflicting range is filled when a conflict is resolved."""

    KEEP_SOURCE = "keep_source"
    KEEP_TARGET = "keep_target"
    CUSTOM = "custom"


class ConflictStatus(str, Enum):
    """Lifecycle of a conflict."""

    UNRESOLVED = "unresolved"
    RESOLVED_KEEP_SOURCE = "resolved_keep_source"
    RESOLVED_KEEP_TARGET = "resolved_keep_target"
    RESOLVED_CUSTOM = "resolved_custom"


@dataclass(frozen=True)
class ConflictBlock:
    """
    A conflicting range of 0-based line indices (inclusive on both ends).

    Attributes:
        start_line: First index of the range
        end_line: Last index of the range
        source_content: Source lines in the range, newline-joined
        target_content: Target lines in the range, newline-joined
    """

    start_line: int
    end_line: int
    source_content: str
    target_content: str

    def __post_init__(self) -> None:
        if self.start_line < 0 or self.end_line < self.start_line:
            raise InvalidInputError(
                f"Invalid line range [{self.start_line}, {self.end_line}]"
            )
        if self.source_content is None or self.target_content is None:
            raise InvalidInputError("Source and target content cannot be None")


@dataclass
class ConflictInfo:
    """All conflicting ranges found for one file by a merge scan."""

    file_path: str
    source_hash: str
    target_hash: str
    blocks: List[ConflictBlock]
    status: ConflictStatus = ConflictStatus.UNRESOLVED

    def summary(self) -> str:
        """Get a one-line summary of this conflict."""
        ranges = ", ".join(f"{b.start_line}-{b.end_line}" for b in self.blocks)
        return f"{self.file_path}: {len(self.blocks)} conflict blocks [{ranges}] ({self.status.value})"


@dataclass(frozen=True)
class ConflictResolution:
    """
    A caller's decision for one conflicted file.

    ``custom_lines`` maps absolute 0-based line indices to replacement text
    and is only consulted for the CUSTOM strategy.
    """

    file_path: str
    strategy: ResolutionStrategy
    custom_lines: Dict[int, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.strategy, ResolutionStrategy):
            raise InvalidInputError(f"Invalid resolution strategy: {self.strategy!r}")
        if self.custom_lines is None:
            raise InvalidInputError("custom_lines cannot be None")

    @classmethod
    def keep_source(cls, file_path: str) -> "ConflictResolution":
        return cls(file_path, ResolutionStrategy.KEEP_SOURCE)

    @classmethod
    def keep_target(cls, file_path: str) -> "ConflictResolution":
        return cls(file_path, ResolutionStrategy.KEEP_TARGET)

    @classmethod
    def custom(cls, file_path: str, custom_lines: Dict[int, str]) -> "ConflictResolution":
        return cls(file_path, ResolutionStrategy.CUSTOM, dict(custom_lines))


@dataclass
class MergeReport:
    """Outcome of scanning two versions for conflicts."""

    source_version_id: str
    target_version_id: str
    conflicts: List[ConflictInfo] = field(default_factory=list)
    accepted_blocks: Dict[str, List[ConflictBlock]] = field(default_factory=dict)

    @property
    def clean(self) -> bool:
        """True when no file has a conflict."""
        return not self.conflicts


def levenshtein_distance(s1: str, s2: str) -> int:
    """Classic edit distance with unit insert, delete and substitute costs."""
    if len(s1) < len(s2):
        s1, s2 = s2, s1
    previous = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1, start=1):
        current = [i]
        for j, c2 in enumerate(s2, start=1):
            cost = 0 if c1 == c2 else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def similarity(s1: str, s2: str) -> float:
    """1 - distance / longer length; 1.0 when both strings are empty."""
    max_len = max(len(s1), len(s2))
    if max_len == 0:
        return 1.0
    return 1.0 - levenshtein_distance(s1, s2) / max_len


def content_slice(lines: Sequence[str], start: int, end: int) -> str:
    """Newline-joined lines[start..end], clipped to the sequence."""
    if start >= len(lines):
        return ""
    return "\n".join(lines[start : min(end + 1, len(lines))])


def find_candidate_blocks(
    source_lines: Sequence[str], target_lines: Sequence[str]
) -> List[Tuple[int, int]]:
    """
    Find maximal runs of positions where the two sequences disagree.

    Positions past the end of the shorter sequence are folded into one
    trailing run that reaches the end of the longer sequence.
    """
    shorter = min(len(source_lines), len(target_lines))
    longer = max(len(source_lines), len(target_lines))

    blocks: List[Tuple[int, int]] = []
    start: Optional[int] = None
    for i in range(shorter):
        if source_lines[i] != target_lines[i]:
            if start is None:
                start = i
        elif start is not None:
            blocks.append((start, i - 1))
            start = None

    if longer > shorter:
        blocks.append((shorter if start is None else start, longer - 1))
    elif start is not None:
        blocks.append((start, shorter - 1))
    return blocks


def detect_conflicts(
    source_lines: Sequence[str],
    target_lines: Sequence[str],
    threshold: float = 0.5,
) -> Tuple[List[ConflictBlock], List[ConflictBlock]]:
    """
    Score candidate blocks between two line sequences.

    Args:
        source_lines: Source file lines
        target_lines: Target file lines
        threshold: Blocks with similarity below this are conflicts

    Returns:
        (conflicting blocks, accepted near-match blocks)
    """
    conflicts: List[ConflictBlock] = []
    accepted: List[ConflictBlock] = []
    for start, end in find_candidate_blocks(source_lines, target_lines):
        block = ConflictBlock(
            start,
            end,
            content_slice(source_lines, start, end),
            content_slice(target_lines, start, end),
        )
        if similarity(block.source_content, block.target_content) < threshold:
            conflicts.append(block)
        else:
            accepted.append(block)
    return conflicts, accepted


def _keep_source(
    block: ConflictBlock, source: Sequence[str], target: Sequence[str], custom: Dict[int, str]
) -> List[str]:
    return list(source[block.start_line : block.end_line + 1])


def _keep_target(
    block: ConflictBlock, source: Sequence[str], target: Sequence[str], custom: Dict[int, str]
) -> List[str]:
    return list(target[block.start_line : block.end_line + 1])


def _custom(
    block: ConflictBlock, source: Sequence[str], target: Sequence[str], custom: Dict[int, str]
) -> List[str]:
    lines = []
    for index in range(block.start_line, block.end_line + 1):
        if index in custom:
            lines.append(custom[index])
        elif index < len(source):
            lines.append(source[index])
    return lines


BlockResolver = Callable[[ConflictBlock, Sequence[str], Sequence[str], Dict[int, str]], List[str]]

_RESOLVERS: Dict[ResolutionStrategy, Tuple[BlockResolver, ConflictStatus]] = {
    ResolutionStrategy.KEEP_SOURCE: (_keep_source, ConflictStatus.RESOLVED_KEEP_SOURCE),
    ResolutionStrategy.KEEP_TARGET: (_keep_target, ConflictStatus.RESOLVED_KEEP_TARGET),
    ResolutionStrategy.CUSTOM: (_custom, ConflictStatus.RESOLVED_CUSTOM),
}


def apply_resolution(
    conflict: ConflictInfo,
    resolution: ConflictResolution,
    source_lines: Sequence[str],
    target_lines: Sequence[str],
) -> List[str]:
    """
    Rebuild a conflicted file.

    Lines outside every block are copied from the source; lines inside a
    block come from the strategy's resolver.
    """
    resolver, _ = _RESOLVERS[resolution.strategy]
    resolved: List[str] = []
    current = 0
    for block in conflict.blocks:
        resolved.extend(source_lines[current : block.start_line])
        resolved.extend(resolver(block, source_lines, target_lines, resolution.custom_lines))
        current = block.end_line + 1
    resolved.extend(source_lines[current:])
    return resolved


class MergeEngine:
    """
    Scans version pairs for conflicts and applies resolutions.

    Near-match blocks (similarity at or above the threshold) are reported in
    the scan's ``MergeReport.accepted_blocks`` and otherwise left alone: a
    clean merge means "no conflicts found", not "files were fused".
    """

    def __init__(
        self,
        object_store: ObjectStore,
        version_store: VersionStore,
        root: Path,
        settings: Optional[Config] = None,
    ):
        """
        Initialize the merge engine.

        Args:
            object_store: Blob storage for file content
            version_store: Version lookup
            root: Repository root; relative conflict paths resolve against it
            settings: Configuration (defaults to the global config)
        """
        settings = settings or default_config
        self.object_store = object_store
        self.version_store = version_store
        self.root = Path(root)
        self.similarity_threshold = settings.merge.similarity_threshold
        self._pending: List[ConflictInfo] = []
        self._lock = threading.Lock()
        self._listeners: List[Callable[[str], None]] = []

    def _require_version(self, version_id: str) -> Version:
        version = self.version_store.get_version(version_id)
        if version is None:
            raise VersionNotFoundError(version_id)
        return version

    def scan(self, source_version_id: str, target_version_id: str) -> MergeReport:
        """
        Scan two versions for conflicts without touching engine state.

        Only paths present in both versions with different hashes are
        compared; paths missing from the target are pure additions.

        Raises:
            VersionNotFoundError: If either version is unknown
        """
        source = self._require_version(source_version_id)
        target = self._require_version(target_version_id)

        report = MergeReport(source_version_id, target_version_id)
        for path in sorted(source.file_hashes):
            source_hash = source.file_hashes[path]
            target_hash = target.file_hashes.get(path)
            if target_hash is None or target_hash == source_hash:
                continue

            conflicts, accepted = detect_conflicts(
                self.object_store.get_lines(source_hash),
                self.object_store.get_lines(target_hash),
                self.similarity_threshold,
            )
            if conflicts:
                report.conflicts.append(ConflictInfo(path, source_hash, target_hash, conflicts))
            if accepted:
                report.accepted_blocks[path] = accepted
                logger.debug(f"Accepted {len(accepted)} near-match blocks in {path}")

        return report

    @performance_monitor(threshold_ms=1000.0)
    @track_operation("merge", component="merge")
    def merge(self, source_version_id: str, target_version_id: str) -> bool:
        """
        Scan two versions and replace the pending conflicts with the result.

        Args:
            source_version_id: Version whose files are merged
            target_version_id: Version merged into

        Returns:
            True iff no conflicts were found

        Raises:
            VersionNotFoundError: If either version is unknown
        """
        self._require_version(source_version_id)
        self._require_version(target_version_id)
        with self._lock:
            self._pending.clear()

        report = self.scan(source_version_id, target_version_id)
        with self._lock:
            self._pending.extend(report.conflicts)

        if report.clean:
            logger.info(
                f"Merge {source_version_id[:8]} -> {target_version_id[:8]}: no conflicts"
            )
        else:
            logger.warning(
                f"Merge {source_version_id[:8]} -> {target_version_id[:8]}: "
                f"{len(report.conflicts)} files in conflict"
            )
        return report.clean

    def pending_conflicts(self) -> List[ConflictInfo]:
        """Get the unresolved conflicts from the last merge."""
        with self._lock:
            return list(self._pending)

    def get_conflict(self, path: str) -> Optional[ConflictInfo]:
        """Get the pending conflict for a path, if any."""
        with self._lock:
            for conflict in self._pending:
                if conflict.file_path == path:
                    return conflict
        return None

    @track_operation("resolve_conflict", component="merge")
    def resolve_conflict(self, path: str, resolution: Optional[ConflictResolution]) -> str:
        """
        Resolve a pending conflict and write the result.

        The resolved content is stored as a new blob and written over the
        working file at ``path``. The conflict's status moves to the matching
        RESOLVED_* value and it leaves the pending set.

        Args:
            path: Conflicted file path
            resolution: Strategy (and custom lines) to apply

        Returns:
            Hash of the resolved content

        Raises:
            InvalidInputError: If the resolution is missing or malformed
            MergeConflictError: If no conflict is pending for the path
            FileOperationError: If the working file cannot be written
        """
        conflict = self.get_conflict(path)
        if conflict is None:
            raise MergeConflictError(f"No conflict found for file: {path}", path)

        if resolution is None:
            raise InvalidInputError("Resolution cannot be None")
        if resolution.strategy not in _RESOLVERS:
            raise InvalidInputError(f"Invalid resolution strategy: {resolution.strategy!r}")
        if resolution.file_path != path:
            logger.bind(resolution_path=resolution.file_path).debug(
                f"Applying a resolution labelled for another path to {path}"
            )

        source_lines = self.object_store.get_lines(conflict.source_hash)
        target_lines = self.object_store.get_lines(conflict.target_hash)
        content = "\n".join(apply_resolution(conflict, resolution, source_lines, target_lines))
        data = content.encode("utf-8")
        resolved_hash = self.object_store.put(data)

        working_path = Path(path) if Path(path).is_absolute() else self.root / path
        try:
            working_path.parent.mkdir(parents=True, exist_ok=True)
            with atomic_write(working_path) as f:
                f.write(data)
        except OSError as e:
            raise FileOperationError(f"Failed to write resolved file {path}: {e}") from e

        _, status = _RESOLVERS[resolution.strategy]
        with self._lock:
            conflict.status = status
            if conflict in self._pending:
                self._pending.remove(conflict)

        logger.bind(resolved_hash=resolved_hash).info(
            f"Resolved {path} with {resolution.strategy.value}"
        )
        for listener in list(self._listeners):
            listener(path)
        return resolved_hash

    def add_listener(self, listener: Callable[[str], None]) -> None:
        """Register a callback invoked with the path of every resolved file."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[str], None]) -> None:
        """Unregister a resolution callback."""
        if listener in self._listeners:
            self._listeners.remove(listener)
