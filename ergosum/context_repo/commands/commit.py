"""ergosum commit — record the staged entries as a new commit.

Without ``-m`` the message is derived from the staged file types
(``Update documentation``, ``Update code`` or ``Add N files``).
``--ai-message`` asks the configured message generator instead; when none
is installed the derived message is used.  ``--all`` first re-stages every
tracked file whose content changed.

Exit codes:
  0 — success
  1 — nothing staged
  2 — not inside a repository
"""
from __future__ import annotations

import logging
import pathlib

import typer

from ergosum.context_repo._repo import require_repo
from ergosum.context_repo.builder import MessageGenerator, commit as build_commit
from ergosum.context_repo.commands._common import exit_on_error, settings_from_context
from ergosum.context_repo.config import CLISettings
from ergosum.context_repo.models import ContextCommit

logger = logging.getLogger(__name__)

app = typer.Typer()


def run_commit(
    root: pathlib.Path,
    settings: CLISettings,
    *,
    message: str | None = None,
    author: str | None = None,
    ai_message: bool = False,
    all_tracked: bool = False,
    message_generator: MessageGenerator | None = None,
) -> ContextCommit:
    """Commit using *settings* for the default author.

    *message_generator* is supplied by AI integrations; without one
    ``--ai-message`` falls back to the derived message.
    """
    if ai_message and message_generator is None and not message:
        logger.warning("⚠️ No AI message generator configured — using derived message")
    return build_commit(
        root,
        message=message,
        author=author or settings.author,
        ai_message=ai_message,
        message_generator=message_generator,
        all_tracked=all_tracked,
    )


@app.callback(invoke_without_command=True)
def commit(
    ctx: typer.Context,
    message: str | None = typer.Option(None, "--message", "-m", help="Commit message."),
    author: str | None = typer.Option(None, "--author", help="Override the commit author."),
    ai_message: bool = typer.Option(
        False, "--ai-message", help="Generate the message with the configured AI tool."
    ),
    all_tracked: bool = typer.Option(
        False, "--all", "-a", help="Re-stage modified tracked files before committing."
    ),
) -> None:
    """Record staged changes in history."""
    settings = settings_from_context(ctx)
    with exit_on_error("commit"):
        root = require_repo()
        new_commit = run_commit(
            root,
            settings,
            message=message,
            author=author,
            ai_message=ai_message,
            all_tracked=all_tracked,
        )
    typer.echo(f"✅ [{new_commit.id[:8]}] {new_commit.message}")
    typer.echo(
        f"   {new_commit.metadata.files_changed} file(s) changed, "
        f"{new_commit.metadata.additions} byte(s) added"
    )
