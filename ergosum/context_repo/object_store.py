"""Content-addressed object store for the context repository.

Every command that reads or writes blobs, trees or commits goes through
this module.  No command may build its own object paths.

Layout
------
Three namespaces live under ``<repo_root>/.ergosum/objects/``::

    .ergosum/objects/blobs/<id[:2]>/<id[2:]>
    .ergosum/objects/trees/<id[:2]>/<id[2:]>
    .ergosum/objects/commits/<id[:2]>/<id[2:]>

Each file holds the JSON form of the corresponding model.  Sharding is
physical only; logically each namespace is a flat ``id → object`` keyspace.
Namespaces are kept apart because ids are only unique within one.

Blobs and trees are content-addressed, so writing an id that already
exists is skipped.  Commits are overwritten whole: a commit record fetched
from the remote replaces the local copy with the same id.

Reads of a missing id return ``None``; so do reads of an id that is not
lowercase hex, which could never have been written.  Writing such an id
raises :class:`ValueError`.
"""
from __future__ import annotations

import logging
import pathlib
import re
from collections.abc import Iterator
from typing import Literal

from ergosum.context_repo._repo import metadata_dir
from ergosum.context_repo._storage import read_model, write_model
from ergosum.context_repo.models import ContentObject, ContextCommit, ContextTree

logger = logging.getLogger(__name__)

Namespace = Literal["blobs", "trees", "commits"]

_OBJECTS_DIR = "objects"
NAMESPACES: tuple[Namespace, ...] = ("blobs", "trees", "commits")

_OBJECT_ID_RE = re.compile(r"[0-9a-f]{4,}")


def is_valid_object_id(object_id: str) -> bool:
    """Return ``True`` for a lowercase hex id of at least four characters."""
    return _OBJECT_ID_RE.fullmatch(object_id) is not None


def objects_dir(repo_root: pathlib.Path) -> pathlib.Path:
    """Return ``<repo_root>/.ergosum/objects/`` (may not yet exist)."""
    return metadata_dir(repo_root) / _OBJECTS_DIR


def object_path(repo_root: pathlib.Path, namespace: Namespace, object_id: str) -> pathlib.Path:
    """Return the canonical on-disk path for *object_id* in *namespace*.

    Args:
        repo_root: Root of the repository (the directory containing ``.ergosum/``).
        namespace: One of ``"blobs"``, ``"trees"``, ``"commits"``.
        object_id: Hex identifier of the object.

    Returns:
        Absolute path to the object file (may not yet exist).

    Raises:
        ValueError: *object_id* is not a lowercase hex id.
    """
    if not is_valid_object_id(object_id):
        raise ValueError(f"Invalid object id: {object_id!r}")
    return objects_dir(repo_root) / namespace / object_id[:2] / object_id[2:]


def _list_ids(repo_root: pathlib.Path, namespace: Namespace) -> list[str]:
    root = objects_dir(repo_root) / namespace
    if not root.is_dir():
        return []
    ids: list[str] = []
    for shard in sorted(root.iterdir()):
        if not shard.is_dir():
            continue
        for entry in sorted(shard.iterdir()):
            if entry.is_file():
                ids.append(shard.name + entry.name)
    return ids


# ---------------------------------------------------------------------------
# Blobs
# ---------------------------------------------------------------------------


def has_object(repo_root: pathlib.Path, object_id: str) -> bool:
    if not is_valid_object_id(object_id):
        return False
    return object_path(repo_root, "blobs", object_id).exists()


def write_object(repo_root: pathlib.Path, obj: ContentObject) -> str:
    """Persist *obj* under its id and return the id.

    If a blob with the same id is already stored the write is skipped:
    same id means same content.
    """
    dest = object_path(repo_root, "blobs", obj.id)
    if dest.exists():
        logger.debug("⚠️ Object %s already in store — skipped", obj.id[:8])
        return obj.id
    write_model(dest, obj)
    logger.debug("✅ Stored object %s (%d bytes)", obj.id[:8], obj.size)
    return obj.id


def read_object(repo_root: pathlib.Path, object_id: str) -> ContentObject | None:
    """Return the blob for *object_id*, or ``None`` when it is not stored."""
    if not is_valid_object_id(object_id):
        return None
    obj = read_model(object_path(repo_root, "blobs", object_id), ContentObject)
    if obj is None:
        logger.debug("⚠️ Object %s not found in local store", object_id[:8])
    return obj


def list_object_ids(repo_root: pathlib.Path) -> list[str]:
    return _list_ids(repo_root, "blobs")


def iter_objects(repo_root: pathlib.Path) -> Iterator[ContentObject]:
    """Yield every stored blob, in id order."""
    for object_id in list_object_ids(repo_root):
        obj = read_object(repo_root, object_id)
        if obj is not None:
            yield obj


# ---------------------------------------------------------------------------
# Trees
# ---------------------------------------------------------------------------


def write_tree(repo_root: pathlib.Path, tree: ContextTree) -> str:
    dest = object_path(repo_root, "trees", tree.id)
    if dest.exists():
        logger.debug("⚠️ Tree %s already in store — skipped", tree.id[:8])
        return tree.id
    write_model(dest, tree)
    logger.debug("✅ Stored tree %s (%d entries)", tree.id[:8], len(tree.entries))
    return tree.id


def read_tree(repo_root: pathlib.Path, tree_id: str) -> ContextTree | None:
    if not is_valid_object_id(tree_id):
        return None
    return read_model(object_path(repo_root, "trees", tree_id), ContextTree)


# ---------------------------------------------------------------------------
# Commits
# ---------------------------------------------------------------------------


def write_commit(repo_root: pathlib.Path, commit: ContextCommit) -> str:
    """Persist *commit*, replacing any stored record with the same id."""
    write_model(object_path(repo_root, "commits", commit.id), commit)
    logger.debug("✅ Stored commit %s", commit.id[:8])
    return commit.id


def read_commit(repo_root: pathlib.Path, commit_id: str) -> ContextCommit | None:
    if not is_valid_object_id(commit_id):
        return None
    return read_model(object_path(repo_root, "commits", commit_id), ContextCommit)


def list_commit_ids(repo_root: pathlib.Path) -> list[str]:
    return _list_ids(repo_root, "commits")


def iter_commits(repo_root: pathlib.Path) -> Iterator[ContextCommit]:
    """Yield every stored commit, in id order (not history order)."""
    for commit_id in list_commit_ids(repo_root):
        commit = read_commit(repo_root, commit_id)
        if commit is not None:
            yield commit
