"""ergosum pull — fetch, then move the current branch to the remote's commit.

There is no merge: when the remote reports a different commit for the
current branch, the local branch is simply set to it.  The working tree is
not modified.

Exit codes:
  0 — success (updated or already up to date)
  1 — not linked, not authenticated, or current branch missing
  2 — not inside a repository
  3 — remote / network error
"""
from __future__ import annotations

import asyncio
import logging
import pathlib

import typer

from ergosum.context_repo._repo import require_repo
from ergosum.context_repo.commands._common import exit_on_error, hub_client, settings_from_context
from ergosum.context_repo.config import CLISettings
from ergosum.context_repo.remote import RemoteAPI
from ergosum.context_repo.sync import PullResult, pull_from_remote

logger = logging.getLogger(__name__)

app = typer.Typer()


async def _pull_async(
    *,
    root: pathlib.Path,
    settings: CLISettings,
    remote: RemoteAPI | None = None,
) -> PullResult:
    if remote is None:
        async with hub_client(settings) as hub:
            return await _pull_async(root=root, settings=settings, remote=hub)

    result = await pull_from_remote(root, remote)
    if result.updated:
        typer.echo(
            f"✅ {result.branch}: {result.previous_commit_id[:8] or '(empty)'} → "
            f"{result.commit_id[:8]}"
        )
    else:
        typer.echo(f"✅ Already up to date on {result.branch}")
    return result


@app.callback(invoke_without_command=True)
def pull(ctx: typer.Context) -> None:
    """Fetch from the remote and fast-forward the current branch."""
    settings = settings_from_context(ctx)
    with exit_on_error("pull"):
        root = require_repo()
        asyncio.run(_pull_async(root=root, settings=settings))
