"""Working-tree enumeration with ignore patterns.

Pattern semantics are deliberately coarse:

- a pattern containing ``*`` becomes a regex (``*`` → ``.*``, everything
  else literal) searched anywhere in the relative path;
- any other pattern matches when the relative path *contains* it.

A directory that matches is pruned with everything beneath it, which is how
``node_modules`` excludes a whole dependency tree.
"""
from __future__ import annotations

import logging
import pathlib
import re
from collections.abc import Iterable, Sequence

from ergosum.context_repo.models import DEFAULT_IGNORE_PATTERNS

logger = logging.getLogger(__name__)


def _pattern_regex(pattern: str) -> re.Pattern[str]:
    return re.compile(".*".join(re.escape(part) for part in pattern.split("*")))


def should_ignore(rel_path: str, patterns: Iterable[str]) -> bool:
    """Return ``True`` if *rel_path* matches any ignore pattern."""
    for pattern in patterns:
        if "*" in pattern:
            if _pattern_regex(pattern).search(rel_path):
                return True
        elif pattern in rel_path:
            return True
    return False


def list_files(
    root: pathlib.Path,
    ignore_patterns: Sequence[str] = DEFAULT_IGNORE_PATTERNS,
) -> list[str]:
    """Return POSIX paths (relative to *root*) of every non-ignored regular file.

    Symlinks are not followed.  An unreadable directory raises ``OSError``
    and aborts the whole listing.
    """
    files: list[str] = []
    _walk(root, root, tuple(ignore_patterns), files)
    logger.debug("✅ Listed %d file(s) under %s", len(files), root)
    return files


def _walk(root: pathlib.Path, current: pathlib.Path, patterns: tuple[str, ...], out: list[str]) -> None:
    for entry in sorted(current.iterdir(), key=lambda p: p.name):
        rel = entry.relative_to(root).as_posix()
        if should_ignore(rel, patterns):
            continue
        if entry.is_symlink():
            continue
        if entry.is_dir():
            _walk(root, entry, patterns, out)
        elif entry.is_file():
            out.append(rel)


def match_files(files: Iterable[str], pattern: str) -> list[str]:
    """Filter *files* with a ``*`` pattern, using the ignore-pattern regex rules."""
    regex = _pattern_regex(pattern)
    return [f for f in files if regex.search(f)]
