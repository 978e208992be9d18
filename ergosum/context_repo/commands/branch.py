"""ergosum branch — list local branches; the current one is starred."""
from __future__ import annotations

import typer

from ergosum.context_repo._repo import require_repo
from ergosum.context_repo.commands._common import exit_on_error
from ergosum.context_repo.refs import list_branches, read_branch, read_head

app = typer.Typer()


@app.callback(invoke_without_command=True)
def branch(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show the commit each branch points at."),
) -> None:
    """List branches."""
    with exit_on_error("branch"):
        root = require_repo()
        current = read_head(root)
        names = list_branches(root)

    for name in names:
        marker = "*" if name == current else " "
        if verbose:
            ref = read_branch(root, name)
            commit_id = (ref.commit_id[:8] if ref and ref.commit_id else "(no commits)")
            typer.echo(f"{marker} {name} {commit_id}")
        else:
            typer.echo(f"{marker} {name}")
