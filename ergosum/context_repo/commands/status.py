"""ergosum status — show staged, tracked and untracked paths.

Output modes
------------

**Default**::

    On branch main

    Changes to be committed:
            staged:    notes.md (120 bytes)

    Tracked, not staged:
            tracked:   old.txt

    Untracked files:
            script.js

**--short** (counts only)::

    ## main  staged=1 unstaged=1 untracked=1

**--porcelain** (one path per line, stable for scripting)::

    ## main
    A  notes.md
    T  old.txt
    ?? script.js
"""
from __future__ import annotations

import logging

import typer

from ergosum.context_repo._repo import require_repo
from ergosum.context_repo.builder import RepoStatus, status as repo_status
from ergosum.context_repo.commands._common import exit_on_error

logger = logging.getLogger(__name__)

app = typer.Typer()


def render_short(st: RepoStatus) -> str:
    return (
        f"## {st.branch}  staged={len(st.staged)} "
        f"unstaged={len(st.unstaged)} untracked={len(st.untracked)}"
    )


def render_porcelain(st: RepoStatus) -> list[str]:
    lines = [f"## {st.branch}"]
    lines.extend(f"A  {e.path}" for e in st.staged)
    lines.extend(f"T  {e.path}" for e in st.unstaged)
    lines.extend(f"?? {p}" for p in st.untracked)
    return lines


def render_verbose(st: RepoStatus) -> list[str]:
    lines = [f"On branch {st.branch}"]
    if not (st.staged or st.unstaged or st.untracked):
        lines.append("\nnothing to commit, working tree clean")
        return lines
    if st.staged:
        lines.append("\nChanges to be committed:")
        lines.extend(f"\tstaged:    {e.path} ({e.size} bytes)" for e in st.staged)
    if st.unstaged:
        lines.append("\nTracked, not staged:")
        lines.extend(f"\ttracked:   {e.path}" for e in st.unstaged)
    if st.untracked:
        lines.append("\nUntracked files:")
        lines.append('  (use "ergosum add <file>..." to stage)')
        lines.extend(f"\t{p}" for p in st.untracked)
    return lines


@app.callback(invoke_without_command=True)
def status(
    short: bool = typer.Option(False, "--short", "-s", help="Print counts only."),
    porcelain: bool = typer.Option(
        False, "--porcelain", help="Machine-readable output, one path per line."
    ),
) -> None:
    """Show the working tree status."""
    with exit_on_error("status"):
        root = require_repo()
        st = repo_status(root)

    if porcelain:
        for line in render_porcelain(st):
            typer.echo(line)
    elif short:
        typer.echo(render_short(st))
    else:
        for line in render_verbose(st):
            typer.echo(line)
