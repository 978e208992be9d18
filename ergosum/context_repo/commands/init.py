"""ergosum init — create a new context repository in the current directory.

Creates ``.ergosum/`` with an empty object store, a ``main`` branch with no
commits, ``HEAD`` pointing at it and an empty index.  The owner id is taken
from the ``user_id`` setting.  ``--remote`` links the new repository to an
existing remote repository id without contacting the remote.

Exit codes:
  0 — success
  1 — a repository already exists here, or the directory is not writable
  3 — unexpected error
"""
from __future__ import annotations

import logging
import pathlib

import typer

from ergosum.context_repo.commands._common import exit_on_error, settings_from_context
from ergosum.context_repo.errors import ExitCode
from ergosum.context_repo.models import Repository
from ergosum.context_repo.repository import init_repository, set_remote_repository

logger = logging.getLogger(__name__)

app = typer.Typer()


def run_init(
    root: pathlib.Path,
    *,
    name: str | None = None,
    description: str | None = None,
    remote: str | None = None,
    owner_id: str = "",
) -> Repository:
    """Initialise *root* and optionally link it; returns the final config."""
    repo = init_repository(root, name=name, description=description, owner_id=owner_id)
    if remote:
        repo = set_remote_repository(root, remote)
    return repo


@app.callback(invoke_without_command=True)
def init(
    ctx: typer.Context,
    name: str | None = typer.Option(
        None, "--name", "-n", help="Repository name. Defaults to the directory name."
    ),
    description: str | None = typer.Option(
        None, "--description", "-d", help="Free-text repository description."
    ),
    remote: str | None = typer.Option(
        None, "--remote", help="Link to an existing remote repository id."
    ),
) -> None:
    """Initialise an empty ErgoSum repository in the current directory."""
    settings = settings_from_context(ctx)
    root = pathlib.Path.cwd()

    with exit_on_error("init"):
        try:
            repo = run_init(
                root,
                name=name,
                description=description,
                remote=remote,
                owner_id=settings.user_id,
            )
        except PermissionError:
            typer.echo(f"❌ Permission denied: cannot create .ergosum/ in {root}")
            raise typer.Exit(code=int(ExitCode.USER_ERROR))

    typer.echo(f"✅ Initialized empty ErgoSum repository '{repo.name}' in {root / '.ergosum'}")
    typer.echo(f"   branch: {repo.default_branch}")
    if repo.remote_url:
        typer.echo(f"   remote: {repo.remote_url}")
