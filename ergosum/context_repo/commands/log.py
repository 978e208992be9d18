"""ergosum log — commit history of the current branch, newest first.

Default::

    commit 3f9a1c0e...  (HEAD -> main)
    Author: ErgoSum CLI User
    Date:   2026-03-01 12:00:00+00:00

        Update documentation

``--oneline``::

    3f9a1c0e Update documentation
"""
from __future__ import annotations

import logging

import typer

from ergosum.context_repo._repo import require_repo
from ergosum.context_repo.builder import history
from ergosum.context_repo.commands._common import exit_on_error
from ergosum.context_repo.refs import read_head

logger = logging.getLogger(__name__)

app = typer.Typer()


@app.callback(invoke_without_command=True)
def log(
    limit: int | None = typer.Option(
        None, "--max-count", "-n", min=1, help="Show at most N commits."
    ),
    oneline: bool = typer.Option(False, "--oneline", help="One line per commit."),
) -> None:
    """Show commit history."""
    with exit_on_error("log"):
        root = require_repo()
        branch = read_head(root)
        commits = history(root, limit)

    if not commits:
        typer.echo(f"No commits yet on branch {branch}")
        return

    for i, c in enumerate(commits):
        if oneline:
            typer.echo(f"{c.id[:8]} {c.message}")
            continue
        head_marker = f"  (HEAD -> {branch})" if i == 0 else ""
        typer.echo(f"commit {c.id}{head_marker}")
        typer.echo(f"Author: {c.author}")
        typer.echo(f"Date:   {c.timestamp.isoformat(sep=' ', timespec='seconds')}")
        typer.echo("")
        typer.echo(f"    {c.message}")
        typer.echo("")
