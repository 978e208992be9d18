"""ergosum clone — create a local repository from a remote repository id.

Algorithm
---------
1. Fail if the target directory already holds ``.ergosum/``.
2. Read the remote repository record.
3. ``init`` the target (name from ``--name`` or the remote), link the
   remote id, run a full fetch.
4. Point ``HEAD`` at the remote's default branch.

The target directory defaults to the current directory and is created if
missing.

Exit codes:
  0 — success
  1 — target already a repository, or not authenticated
  3 — remote / network error
"""
from __future__ import annotations

import asyncio
import logging
import pathlib

import typer

from ergosum.context_repo.commands._common import exit_on_error, hub_client, settings_from_context
from ergosum.context_repo.config import CLISettings
from ergosum.context_repo.remote import RemoteAPI
from ergosum.context_repo.sync import CloneResult, clone_from_remote

logger = logging.getLogger(__name__)


async def _clone_async(
    *,
    target: pathlib.Path,
    remote_id: str,
    settings: CLISettings,
    name: str | None = None,
    remote: RemoteAPI | None = None,
) -> CloneResult:
    if remote is None:
        async with hub_client(settings) as hub:
            return await _clone_async(
                target=target, remote_id=remote_id, settings=settings, name=name, remote=hub
            )

    result = await clone_from_remote(
        target, remote, remote_id, name=name, owner_id=settings.user_id
    )
    typer.echo(
        f"✅ Cloned {result.repository.name} ({remote_id}) into {result.root} "
        f"[{len(result.fetch.commits)} commit(s), branch {result.branch}]"
    )
    return result


def clone(
    ctx: typer.Context,
    remote_id: str = typer.Argument(..., help="Remote repository id to clone."),
    directory: str | None = typer.Argument(
        None, help="Directory to clone into. Defaults to the current directory."
    ),
    name: str | None = typer.Option(
        None, "--name", "-n", help="Local repository name. Defaults to the remote's."
    ),
) -> None:
    """Clone a remote repository."""
    settings = settings_from_context(ctx)
    target = pathlib.Path(directory).resolve() if directory else pathlib.Path.cwd()
    with exit_on_error("clone"):
        asyncio.run(
            _clone_async(target=target, remote_id=remote_id, settings=settings, name=name)
        )
