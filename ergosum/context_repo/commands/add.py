"""ergosum add — stage files for the next commit.

Path arguments:

- ``.`` or ``--all`` stages every file not matched by an ignore pattern;
- an argument containing ``*`` filters that file list by pattern;
- a directory stages every listed file beneath it;
- a plain file is staged if it exists (``--force`` stages it even when it
  matches an ignore pattern).

Each file is stored as a content object and upserted into the index with
``staged=True``.  Files that cannot be read, or exceed ``max_file_size``,
are reported and skipped; the rest are still staged.

Exit codes:
  0 — success (even when some files were skipped)
  1 — no paths given
  2 — not inside a repository
"""
from __future__ import annotations

import logging
import pathlib

import typer

from ergosum.context_repo._repo import require_repo
from ergosum.context_repo.builder import StageResult, stage
from ergosum.context_repo.commands._common import exit_on_error
from ergosum.context_repo.errors import ExitCode

logger = logging.getLogger(__name__)


def _render(result: StageResult) -> None:
    verb = "Would stage" if result.dry_run else "Staged"
    for path in result.staged:
        typer.echo(f"  {'would add' if result.dry_run else 'added'}: {path}")
    for path, reason in result.skipped:
        typer.echo(f"  ⚠️ skipped: {path} ({reason})")
    typer.echo(f"✅ {verb} {len(result.staged)} file(s)")


def add(
    paths: list[str] = typer.Argument(None, help="Files, directories or * patterns to stage."),
    all_files: bool = typer.Option(False, "--all", "-A", help="Stage every non-ignored file."),
    force: bool = typer.Option(
        False, "--force", "-f", help="Stage explicitly named files even if ignored."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", "-n", help="Show what would be staged without writing."
    ),
) -> None:
    """Add file contents to the staging area."""
    patterns = list(paths or [])
    if not patterns and not all_files:
        typer.echo("❌ Nothing specified, nothing added. Try `ergosum add .`")
        raise typer.Exit(code=int(ExitCode.USER_ERROR))

    with exit_on_error("add"):
        root = require_repo()
        result = stage(
            root,
            patterns,
            all_files=all_files,
            force=force,
            dry_run=dry_run,
            cwd=pathlib.Path.cwd(),
        )
    _render(result)
