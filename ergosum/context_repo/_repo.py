"""Repository detection utilities.

Walking up the directory tree to locate a ``.ergosum/`` directory is the
most-called internal primitive; every subcommand except ``init`` and
``clone`` uses it.  ``find_repo_root`` returns ``None`` on a miss and never
raises; ``require_repo`` turns the miss into :class:`NotARepositoryError`.
The ``ERGOSUM_REPO_ROOT`` env-var override exists for tests and wrappers.
"""
from __future__ import annotations

import logging
import os
import pathlib

from ergosum.context_repo.errors import NotARepositoryError

logger = logging.getLogger(__name__)

METADATA_DIR = ".ergosum"


def metadata_dir(repo_root: pathlib.Path) -> pathlib.Path:
    """Return ``<repo_root>/.ergosum``."""
    return repo_root / METADATA_DIR


def is_repository(path: pathlib.Path) -> bool:
    """True iff *path* contains a ``.ergosum`` directory."""
    return metadata_dir(path).is_dir()


def find_repo_root(start: pathlib.Path | None = None) -> pathlib.Path | None:
    """Walk up from *start* (default ``Path.cwd()``) looking for ``.ergosum/``.

    Returns the first directory that contains ``.ergosum/``, or ``None``
    when the filesystem root is reached without a match.
    """
    if env_root := os.environ.get("ERGOSUM_REPO_ROOT"):
        p = pathlib.Path(env_root).resolve()
        logger.debug("⚠️ ERGOSUM_REPO_ROOT override active: %s", p)
        return p if is_repository(p) else None

    current = (start or pathlib.Path.cwd()).resolve()
    while True:
        if is_repository(current):
            return current
        parent = current.parent
        if parent == current:
            return None
        current = parent


def require_repo(start: pathlib.Path | None = None) -> pathlib.Path:
    """Return the repo root or raise :class:`NotARepositoryError`."""
    root = find_repo_root(start)
    if root is None:
        raise NotARepositoryError()
    return root
