"""ErgoSum CLI — Typer application root.

Entry point for the ``ergosum`` console script.  The root callback builds
the process-wide :class:`~ergosum.context_repo.config.CLISettings` (unless
the caller already supplied one as the Click context object) and configures
logging; every subcommand reads the settings from the context.
"""
from __future__ import annotations

import logging

import typer

from ergosum.context_repo.commands import (
    add,
    branch,
    clone,
    commit,
    fetch,
    init,
    log,
    pull,
    push,
    status,
)
from ergosum.context_repo.config import CLISettings, load_settings

cli = typer.Typer(
    name="ergosum",
    help="ErgoSum — Git-style version control for AI context.",
    no_args_is_help=True,
)


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@cli.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """ErgoSum context repository commands."""
    if not isinstance(ctx.obj, CLISettings):
        ctx.obj = load_settings()
    configure_logging(verbose or ctx.obj.debug)


cli.add_typer(init.app, name="init", help="Create an empty context repository.")
# add and clone take positional arguments followed by options; as plain
# commands Click parses options in any position (a Group would not).
cli.command("add", help="Stage files for the next commit.")(add.add)
cli.add_typer(commit.app, name="commit", help="Record staged changes.")
cli.add_typer(status.app, name="status", help="Show staged, tracked and untracked files.")
cli.add_typer(log.app, name="log", help="Show commit history.")
cli.add_typer(branch.app, name="branch", help="List branches.")
cli.add_typer(push.app, name="push", help="Upload commits and objects to the remote.")
cli.add_typer(fetch.app, name="fetch", help="Download commits, objects and branches.")
cli.add_typer(pull.app, name="pull", help="Fetch and fast-forward the current branch.")
cli.command("clone", help="Create a local repository from a remote one.")(clone.clone)


if __name__ == "__main__":
    cli()
