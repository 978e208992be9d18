"""Plumbing shared by every command callback."""
from __future__ import annotations

import contextlib
import logging
from collections.abc import Iterator

import typer

from ergosum.context_repo.config import CLISettings, load_settings
from ergosum.context_repo.errors import ErgoSumError, ExitCode
from ergosum.context_repo.remote import HubClient

logger = logging.getLogger(__name__)


def settings_from_context(ctx: typer.Context) -> CLISettings:
    """Return the process settings placed on the context by the root callback.

    Falls back to a freshly loaded instance when a sub-app is invoked on its
    own (e.g. in tests that call ``init.app`` directly).
    """
    settings = ctx.find_object(CLISettings)
    if settings is None:
        settings = load_settings()
        ctx.obj = settings
    return settings


def hub_client(settings: CLISettings) -> HubClient:
    return HubClient(
        base_url=settings.api_url,
        token=settings.auth_token,
        timeout=settings.timeout,
    )


@contextlib.contextmanager
def exit_on_error(command: str) -> Iterator[None]:
    """Translate exceptions into a ``❌`` line and the matching exit code.

    Typed errors exit with their own code; anything else is logged with a
    traceback and exits ``INTERNAL_ERROR``.
    """
    try:
        yield
    except typer.Exit:
        raise
    except ErgoSumError as exc:
        typer.echo(f"❌ {exc.message}")
        logger.debug("❌ ergosum %s: %s", command, exc.message)
        raise typer.Exit(code=int(exc.exit_code))
    except Exception as exc:
        typer.echo(f"❌ ergosum {command} failed: {exc}")
        logger.error("❌ ergosum %s unexpected error: %s", command, exc, exc_info=True)
        raise typer.Exit(code=int(ExitCode.INTERNAL_ERROR))
