"""ergosum fetch — download remote commits, objects and branches.

Stores everything the remote returns without touching the working tree.
Remote branch refs overwrite local refs of the same name.  Only data newer
than the last successful fetch is requested unless ``--since`` is given.

Exit codes:
  0 — success
  1 — not linked to a remote, not authenticated, or bad ``--since``
  2 — not inside a repository
  3 — remote / network error
"""
from __future__ import annotations

import asyncio
import logging
import pathlib
from datetime import datetime

import typer

from ergosum.context_repo._repo import require_repo
from ergosum.context_repo.commands._common import exit_on_error, hub_client, settings_from_context
from ergosum.context_repo.config import CLISettings
from ergosum.context_repo.errors import ExitCode
from ergosum.context_repo.remote import RemoteAPI
from ergosum.context_repo.sync import FetchResult, fetch_from_remote

logger = logging.getLogger(__name__)

app = typer.Typer()


async def _fetch_async(
    *,
    root: pathlib.Path,
    settings: CLISettings,
    since: datetime | None = None,
    remote: RemoteAPI | None = None,
) -> FetchResult:
    if remote is None:
        async with hub_client(settings) as hub:
            return await _fetch_async(root=root, settings=settings, since=since, remote=hub)

    result = await fetch_from_remote(root, remote, since=since)
    typer.echo(
        f"✅ Fetched {len(result.commits)} commit(s), {len(result.objects)} object(s), "
        f"{len(result.branches)} branch(es) from {result.remote_id}"
    )
    return result


@app.callback(invoke_without_command=True)
def fetch(
    ctx: typer.Context,
    since: str | None = typer.Option(
        None, "--since", help="ISO-8601 timestamp; overrides the last-fetch marker."
    ),
) -> None:
    """Download objects and refs from the remote repository."""
    settings = settings_from_context(ctx)
    since_dt: datetime | None = None
    if since:
        try:
            since_dt = datetime.fromisoformat(since)
        except ValueError:
            typer.echo(f"❌ Invalid --since value: {since!r} (expected ISO-8601)")
            raise typer.Exit(code=int(ExitCode.USER_ERROR))

    with exit_on_error("fetch"):
        root = require_repo()
        asyncio.run(_fetch_async(root=root, settings=settings, since=since_dt))
