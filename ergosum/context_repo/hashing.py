"""Identifier derivation for the context store.

ID contract:

    object_id = sha1(raw_bytes).hexdigest()
    tree_id   = sha1("\\n".join(f"{mode} {name} {object_id}" for entry in entries)).hexdigest()
    commit_id = 20 random bytes, hex encoded (not reproducible)

Tree ids depend on entry order: the same entries supplied in a different
order produce a different tree id.
"""
from __future__ import annotations

import hashlib
import pathlib
import secrets
import uuid
from collections.abc import Iterable

from ergosum.context_repo.models import TreeEntry


def hash_content(data: bytes) -> str:
    """Return the SHA-1 hex digest of *data*."""
    return hashlib.sha1(data).hexdigest()


def hash_file(path: pathlib.Path) -> str:
    """Return the SHA-1 hex digest of a file, read in chunks.

    Equal to ``hash_content(path.read_bytes())`` without loading the file.
    """
    h = hashlib.sha1()
    with path.open("rb") as fh:
        for chunk in iter(lambda: fh.read(65536), b""):
            h.update(chunk)
    return h.hexdigest()


def compute_tree_id(entries: Iterable[TreeEntry]) -> str:
    """Hash the ``mode name object_id`` lines of *entries* in supplied order."""
    lines = "\n".join(f"{e.mode} {e.name} {e.object_id}" for e in entries)
    return hash_content(lines.encode("utf-8"))


def generate_commit_id() -> str:
    return secrets.token_hex(20)


def generate_id() -> str:
    """UUID4 string used for repository and branch records."""
    return str(uuid.uuid4())
