"""The staging area, persisted as a JSON array in ``.ergosum/index``.

The index is the ordered set of every tracked path.  ``staged=True`` marks
the entries that go into the next commit.  Writes always replace the whole
file; helpers here are pure list transforms so callers read, transform,
then write once.
"""
from __future__ import annotations

import pathlib

from ergosum.context_repo._repo import metadata_dir
from ergosum.context_repo._storage import read_json, write_json
from ergosum.context_repo.models import IndexEntry


def index_path(repo_root: pathlib.Path) -> pathlib.Path:
    return metadata_dir(repo_root) / "index"


def read_index(repo_root: pathlib.Path) -> list[IndexEntry]:
    """Return all index entries in stored order (empty when no index yet)."""
    data = read_json(index_path(repo_root))
    if not isinstance(data, list):
        return []
    return [IndexEntry.model_validate(item) for item in data]


def write_index(repo_root: pathlib.Path, entries: list[IndexEntry]) -> None:
    write_json(index_path(repo_root), [e.model_dump(mode="json") for e in entries])


def upsert_entry(entries: list[IndexEntry], entry: IndexEntry) -> list[IndexEntry]:
    """Return a copy of *entries* with *entry* replacing the one at the same path.

    New paths are appended, so the index keeps first-staged order.
    """
    result = list(entries)
    for i, existing in enumerate(result):
        if existing.path == entry.path:
            result[i] = entry
            return result
    result.append(entry)
    return result


def staged_entries(entries: list[IndexEntry]) -> list[IndexEntry]:
    return [e for e in entries if e.staged]


def clear_staged(entries: list[IndexEntry]) -> list[IndexEntry]:
    """Every entry with ``staged=False``; tracked paths are kept."""
    return [e.model_copy(update={"staged": False}) for e in entries]
