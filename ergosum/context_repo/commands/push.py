"""ergosum push — upload local commits and objects to the remote.

Push algorithm
--------------
1. Resolve the repo root; require an auth token.
2. If ``config.json`` has no remote, create a remote repository from the
   local name, description, owner, default branch and settings, then record
   its id.
3. Collect every stored object and commit whose id is not in
   ``pushed_objects`` / ``pushed_commits``.
4. Nothing to send → ``Everything up-to-date``.
5. Push objects, mark them; push commits parent-first, mark them.

The tracking files are a local, optimistic record of what the remote has.
A remote that loses data is not detected.

Exit codes:
  0 — success
  1 — not authenticated
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
from ergosum.context_repo.errors import NotAuthenticatedError
from ergosum.context_repo.remote import RemoteAPI
from ergosum.context_repo.sync import PushResult, push_to_remote

logger = logging.getLogger(__name__)

app = typer.Typer()


async def _push_async(
    *,
    root: pathlib.Path,
    settings: CLISettings,
    remote: RemoteAPI | None = None,
) -> PushResult:
    """Run a push and print its outcome.

    *remote* defaults to a :class:`~ergosum.context_repo.remote.HubClient`
    built from *settings*.
    """
    if not settings.is_authenticated:
        raise NotAuthenticatedError()
    if remote is None:
        async with hub_client(settings) as hub:
            return await _push_async(root=root, settings=settings, remote=hub)

    result = await push_to_remote(root, remote)

    if result.created_remote:
        typer.echo(f"✅ Created remote repository {result.remote_id}")
    if result.up_to_date:
        typer.echo("✅ Everything up-to-date")
    else:
        typer.echo(
            f"✅ Pushed {result.commits_pushed} commit(s) and "
            f"{result.objects_pushed} object(s) → {result.remote_id}"
        )
    return result


@app.callback(invoke_without_command=True)
def push(ctx: typer.Context) -> None:
    """Push local commits and objects to the remote repository.

    Creates the remote repository on first push.
    """
    settings = settings_from_context(ctx)
    with exit_on_error("push"):
        root = require_repo()
        asyncio.run(_push_async(root=root, settings=settings))
