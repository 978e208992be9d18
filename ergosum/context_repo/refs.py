"""HEAD and branch refs.

``.ergosum/HEAD`` holds the current branch name as plain text.
``.ergosum/refs/heads/<name>`` holds the JSON form of a
:class:`~ergosum.context_repo.models.ContextBranch`.
"""
from __future__ import annotations

import logging
import pathlib

from ergosum.context_repo._repo import metadata_dir
from ergosum.context_repo._storage import read_model, write_model
from ergosum.context_repo.models import DEFAULT_BRANCH, ContextBranch, utcnow

logger = logging.getLogger(__name__)


def heads_dir(repo_root: pathlib.Path) -> pathlib.Path:
    return metadata_dir(repo_root) / "refs" / "heads"


def read_head(repo_root: pathlib.Path) -> str:
    """Return the current branch name, ``main`` when HEAD is missing or empty."""
    head = metadata_dir(repo_root) / "HEAD"
    if not head.is_file():
        return DEFAULT_BRANCH
    return head.read_text(encoding="utf-8").strip() or DEFAULT_BRANCH


def write_head(repo_root: pathlib.Path, branch: str) -> None:
    if not is_valid_branch_name(branch):
        raise ValueError(f"Invalid branch name: {branch!r}")
    (metadata_dir(repo_root) / "HEAD").write_text(f"{branch}\n", encoding="utf-8")
    logger.debug("✅ HEAD → %s", branch)


def is_valid_branch_name(name: str) -> bool:
    """Return ``True`` when *name* is a relative ref path that stays in ``refs/heads``.

    Names may nest (``feature/x``) but may not be absolute, contain a
    backslash, or have an empty, ``.`` or ``..`` segment.
    """
    if not name or name.startswith("/") or "\\" in name:
        return False
    return all(part not in ("", ".", "..") for part in name.split("/"))


def ref_path(repo_root: pathlib.Path, name: str) -> pathlib.Path:
    """Return the ref file for branch *name*.

    Raises:
        ValueError: *name* is not a valid branch name.
    """
    if not is_valid_branch_name(name):
        raise ValueError(f"Invalid branch name: {name!r}")
    return heads_dir(repo_root) / name


def write_branch(repo_root: pathlib.Path, branch: ContextBranch) -> None:
    """Write *branch* to its ref file, replacing whatever was there."""
    write_model(ref_path(repo_root, branch.name), branch)
    logger.debug("✅ Branch %s → %s", branch.name, branch.commit_id[:8] or "(empty)")


def read_branch(repo_root: pathlib.Path, name: str) -> ContextBranch | None:
    if not is_valid_branch_name(name):
        return None
    return read_model(ref_path(repo_root, name), ContextBranch)


def list_branches(repo_root: pathlib.Path) -> list[str]:
    """Return every branch name under ``refs/heads``, sorted.

    Names containing ``/`` (``feature/x``) are stored as nested files and
    reported with POSIX separators.
    """
    root = heads_dir(repo_root)
    if not root.is_dir():
        return []
    return sorted(
        p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file()
    )


def advance_branch(repo_root: pathlib.Path, branch: ContextBranch, commit_id: str) -> ContextBranch:
    """Point *branch* at *commit_id* (no ancestry check) and persist it."""
    updated = branch.model_copy(update={"commit_id": commit_id, "updated_at": utcnow()})
    write_branch(repo_root, updated)
    return updated
