"""
Command-line interface for minivcs.

Usage:
    minivcs init
    minivcs track notes.txt src/main.py
    minivcs commit -m "Initial version"
    minivcs status
    minivcs log
    minivcs diff <old-version> <new-version>
    minivcs diff-file notes.txt
    minivcs merge <source-version> <target-version> --strategy keep-source
    minivcs revert <version>

Paths are relative to the repository root (``--root``, default ".").
Version arguments accept a full id or an unambiguous prefix.
"""

import sys
from pathlib import Path
from typing import Optional

import click

from minivcs.config import config
from minivcs.errors import VCSError, VersionNotFoundError
from minivcs.logging import initialize_logging
from minivcs.merge import ConflictResolution, ResolutionStrategy
from minivcs.version_control import VersionControl

STRATEGIES = {
    "keep-source": ResolutionStrategy.KEEP_SOURCE,
    "keep-target": ResolutionStrategy.KEEP_TARGET,
}


def _open_repository(root: Path) -> VersionControl:
    if not config.repository.metadata_path(root).is_dir():
        click.echo(
            f"Error: not a minivcs repository: {root} (run 'minivcs init')", err=True
        )
        sys.exit(1)
    return VersionControl(root)


def _resolve_version_id(vcs: VersionControl, ref: str) -> str:
    """Expand a version id prefix to the full id."""
    if vcs.get_version(ref) is not None:
        return ref
    matches = [v.version_id for v in vcs.history() if v.version_id.startswith(ref)]
    if len(matches) != 1:
        raise VersionNotFoundError(ref)
    return matches[0]


@click.group()
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    help="Repository root directory",
)
@click.option(
    "--log-level",
    type=click.Choice(["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    default=None,
    help="Console logging level (defaults to LOG_LEVEL)",
)
@click.pass_context
def cli(ctx: click.Context, root: Path, log_level: Optional[str]) -> None:
    """Minimal content-addressed version control."""
    log_settings = config.logging
    initialize_logging(
        log_dir=Path(log_settings.log_dir),
        level=log_level or log_settings.level,
        format_string=log_settings.format,
        rotation=log_settings.rotation,
        retention=log_settings.retention,
        enable_file_logging=log_settings.enable_file_logging,
        enable_console_logging=log_settings.enable_console_logging,
    )
    ctx.ensure_object(dict)
    ctx.obj["root"] = root


@cli.command()
@click.pass_context
def init(ctx: click.Context) -> None:
    """Create the repository metadata directory."""
    root = ctx.obj["root"]
    existed = config.repository.metadata_path(root).is_dir()
    try:
        vcs = VersionControl(root)
    except VCSError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if existed:
        click.echo(f"Reinitialized existing repository in {vcs.metadata_dir}")
    else:
        click.echo(f"Initialized empty repository in {vcs.metadata_dir}")


@cli.command()
@click.argument("paths", nargs=-1, required=True)
@click.pass_context
def track(ctx: click.Context, paths: tuple) -> None:
    """
    Start tracking files.

    PATHS: Files (or directories, tracked one level deep) to track
    """
    vcs = _open_repository(ctx.obj["root"])
    directories = [p for p in paths if vcs.tracker.resolve(p).is_dir()]
    files = [p for p in paths if p not in directories]
    try:
        for metadata in vcs.track_files(files):
            click.echo(f"Tracking {metadata.path} ({metadata.current_hash[:12]})")
        for directory in directories:
            for tracked in vcs.track_directory(directory):
                click.echo(f"Tracking {tracked}")
    except VCSError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument("paths", nargs=-1, required=True)
@click.pass_context
def untrack(ctx: click.Context, paths: tuple) -> None:
    """
    Stop tracking files.

    PATHS: Tracked files to forget
    """
    vcs = _open_repository(ctx.obj["root"])
    for path in paths:
        vcs.untrack_file(path)
        click.echo(f"Untracked {path}")


@cli.command()
@click.option("--message", "-m", required=True, help="Version message")
@click.pass_context
def commit(ctx: click.Context, message: str) -> None:
    """Create a version from the tracked files."""
    vcs = _open_repository(ctx.obj["root"])
    try:
        version_id = vcs.create_version(message)
    except VCSError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    version = vcs.get_version(version_id)
    click.echo(f"Created version {version_id}")
    if version is not None:
        click.echo(f"  {len(version.file_hashes)} files: {message}")


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the status of tracked files."""
    vcs = _open_repository(ctx.obj["root"])
    current = vcs.current_version()
    click.echo(f"Current version: {current.version_id if current else '(none)'}")

    statuses = vcs.working_statuses()
    if not statuses:
        click.echo("No tracked files")
        return

    click.echo("")
    for path in sorted(statuses):
        click.echo(f"  {statuses[path].value:<10} {path}")


@cli.command()
@click.option("--limit", "-n", type=int, default=None, help="Show at most N versions")
@click.pass_context
def log(ctx: click.Context, limit: Optional[int]) -> None:
    """Show version history, newest first."""
    vcs = _open_repository(ctx.obj["root"])
    versions = list(reversed(vcs.history()))
    if limit is not None:
        versions = versions[:limit]

    if not versions:
        click.echo("No versions")
        return

    for version in versions:
        click.echo(version.summary())


@cli.command()
@click.argument("old_version")
@click.argument("new_version")
@click.pass_context
def diff(ctx: click.Context, old_version: str, new_version: str) -> None:
    """
    Show line changes between two versions.

    OLD_VERSION: Older version id (or prefix)
    NEW_VERSION: Newer version id (or prefix)
    """
    vcs = _open_repository(ctx.obj["root"])
    try:
        result = vcs.diff(
            _resolve_version_id(vcs, old_version), _resolve_version_id(vcs, new_version)
        )
    except VCSError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(result.format())


@cli.command(name="diff-file")
@click.argument("path")
@click.pass_context
def diff_file(ctx: click.Context, path: str) -> None:
    """
    Show working-tree changes to a tracked file.

    PATH: Tracked file path
    """
    vcs = _open_repository(ctx.obj["root"])
    try:
        result = vcs.diff_working_file(path)
    except VCSError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(result.format())


@cli.command()
@click.argument("source_version")
@click.argument("target_version")
@click.option(
    "--strategy",
    type=click.Choice(sorted(STRATEGIES)),
    default=None,
    help="Resolve every conflict with this strategy",
)
@click.pass_context
def merge(
    ctx: click.Context, source_version: str, target_version: str, strategy: Optional[str]
) -> None:
    """
    Scan two versions for conflicts, optionally resolving them.

    SOURCE_VERSION: Version whose files are merged (id or prefix)
    TARGET_VERSION: Version merged into (id or prefix)

    Exits with status 1 while conflicts remain unresolved.
    """
    vcs = _open_repository(ctx.obj["root"])
    try:
        clean = vcs.merge(
            _resolve_version_id(vcs, source_version),
            _resolve_version_id(vcs, target_version),
        )
    except VCSError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if clean:
        click.echo("No conflicts")
        return

    conflicts = vcs.pending_conflicts()
    click.echo(f"{len(conflicts)} files in conflict:")
    for conflict in conflicts:
        click.echo(f"  {conflict.summary()}")
        for block in conflict.blocks:
            click.echo(f"    <<< source [{block.start_line}-{block.end_line}]")
            click.echo(f"    {block.source_content}")
            click.echo("    >>> target")
            click.echo(f"    {block.target_content}")

    if strategy is None:
        sys.exit(1)

    try:
        for conflict in conflicts:
            resolution = ConflictResolution(conflict.file_path, STRATEGIES[strategy])
            resolved_hash = vcs.resolve_conflict(conflict.file_path, resolution)
            click.echo(f"Resolved {conflict.file_path} with {strategy} ({resolved_hash[:12]})")
    except VCSError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument("version")
@click.pass_context
def revert(ctx: click.Context, version: str) -> None:
    """
    Restore the working tree to a version.

    VERSION: Version id (or prefix)
    """
    vcs = _open_repository(ctx.obj["root"])
    try:
        version_id = _resolve_version_id(vcs, version)
        vcs.revert_to_version(version_id)
    except VCSError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    restored = vcs.get_version(version_id)
    count = len(restored.file_hashes) if restored else 0
    click.echo(f"Reverted {count} files to {version_id}")


def main() -> None:
    """Entry point for the minivcs command."""
    cli()


if __name__ == "__main__":
    main()
