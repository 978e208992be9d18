"""Tests for the staging index helpers."""
from __future__ import annotations

import pathlib

from ergosum.context_repo.index import (
    clear_staged,
    read_index,
    staged_entries,
    upsert_entry,
    write_index,
)
from ergosum.context_repo.models import IndexEntry


def _entry(path: str, object_id: str = "o1", staged: bool = True) -> IndexEntry:
    return IndexEntry(path=path, object_id=object_id, size=3, staged=staged)


def test_new_repository_has_empty_index(repo_root: pathlib.Path) -> None:
    assert read_index(repo_root) == []


def test_upsert_appends_new_paths_in_order() -> None:
    entries = upsert_entry([], _entry("a.md"))
    entries = upsert_entry(entries, _entry("b.md"))
    assert [e.path for e in entries] == ["a.md", "b.md"]


def test_upsert_replaces_same_path_in_place() -> None:
    entries = [_entry("a.md", "old"), _entry("b.md")]
    updated = upsert_entry(entries, _entry("a.md", "new"))
    assert [e.path for e in updated] == ["a.md", "b.md"]
    assert updated[0].object_id == "new"
    assert entries[0].object_id == "old"


def test_clear_staged_keeps_entries() -> None:
    cleared = clear_staged([_entry("a.md"), _entry("b.md", staged=False)])
    assert [e.path for e in cleared] == ["a.md", "b.md"]
    assert staged_entries(cleared) == []


def test_write_then_read(repo_root: pathlib.Path) -> None:
    write_index(repo_root, [_entry("a.md"), _entry("b.md", staged=False)])
    loaded = read_index(repo_root)
    assert [(e.path, e.staged) for e in loaded] == [("a.md", True), ("b.md", False)]
