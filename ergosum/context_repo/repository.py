"""Repository lifecycle and repository-level metadata.

``init_repository`` lays out a fresh ``.ergosum/`` directory::

    .ergosum/
        config.json          serialized Repository
        HEAD                 current branch name ("main")
        index                staging area (JSON array, initially empty)
        objects/blobs/       content objects
        objects/trees/       tree snapshots
        objects/commits/     commit records
        refs/heads/main      default branch, empty commit_id
        refs/tags/
        hooks/

The skeleton is assembled in a sibling temporary directory and renamed into
place last, so ``is_repository`` never sees a half-built store.

The same module owns the remote link (``remote_url`` in ``config.json``),
the push-tracking sets and the last-fetch marker used by the sync engine.
"""
from __future__ import annotations

import logging
import pathlib
import secrets
import shutil
from datetime import datetime

from ergosum.context_repo._repo import METADATA_DIR, is_repository, metadata_dir
from ergosum.context_repo._storage import read_json, read_model, write_json, write_model
from ergosum.context_repo.errors import AlreadyExistsError, NotARepositoryError
from ergosum.context_repo.hashing import generate_id
from ergosum.context_repo.models import (
    DEFAULT_BRANCH,
    DEFAULT_IGNORE_PATTERNS,
    ContextBranch,
    RepoSettings,
    Repository,
    utcnow,
)
from ergosum.context_repo.refs import is_valid_branch_name

logger = logging.getLogger(__name__)

REMOTE_URL_PREFIX = "ergosum://repository/"

_SKELETON_DIRS = (
    "objects/blobs",
    "objects/trees",
    "objects/commits",
    "refs/heads",
    "refs/tags",
    "hooks",
)

_PUSHED_COMMITS = "pushed_commits"
_PUSHED_OBJECTS = "pushed_objects"
_LAST_FETCH = "last_fetch"


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


def init_repository(
    root: pathlib.Path,
    *,
    name: str | None = None,
    description: str | None = None,
    owner_id: str = "",
    default_branch: str = DEFAULT_BRANCH,
    settings: RepoSettings | None = None,
) -> Repository:
    """Create an empty repository in *root* and return its config.

    Raises:
        AlreadyExistsError: *root* already contains ``.ergosum/``.
        ValueError: *default_branch* is not a valid branch name.
        OSError: the skeleton could not be created; nothing is left behind.
    """
    if is_repository(root):
        raise AlreadyExistsError(root)
    if not is_valid_branch_name(default_branch):
        raise ValueError(f"Invalid branch name: {default_branch!r}")

    now = utcnow()
    repo = Repository(
        id=generate_id(),
        name=name or root.resolve().name,
        description=description,
        owner_id=owner_id,
        default_branch=default_branch,
        created_at=now,
        updated_at=now,
        settings=settings or RepoSettings(),
    )
    branch = ContextBranch(
        id=generate_id(),
        repo_id=repo.id,
        name=default_branch,
        commit_id="",
        created_at=now,
        updated_at=now,
    )

    staging = root / f"{METADATA_DIR}.tmp-{secrets.token_hex(4)}"
    try:
        for rel in _SKELETON_DIRS:
            (staging / rel).mkdir(parents=True)
        write_model(staging / "config.json", repo)
        write_model(staging / "refs" / "heads" / default_branch, branch)
        (staging / "HEAD").write_text(f"{default_branch}\n", encoding="utf-8")
        write_json(staging / "index", [])
        staging.rename(metadata_dir(root))
    except BaseException:
        shutil.rmtree(staging, ignore_errors=True)
        raise

    logger.info("✅ Initialized repository %s (%s) in %s", repo.name, repo.id, root)
    return repo


# ---------------------------------------------------------------------------
# config.json
# ---------------------------------------------------------------------------


def config_path(repo_root: pathlib.Path) -> pathlib.Path:
    return metadata_dir(repo_root) / "config.json"


def read_config(repo_root: pathlib.Path) -> Repository:
    """Return the repository config.

    Raises:
        NotARepositoryError: ``config.json`` is missing.
    """
    repo = read_model(config_path(repo_root), Repository)
    if repo is None:
        raise NotARepositoryError(
            f"Repository config missing at {config_path(repo_root)}"
        )
    return repo


def write_config(repo_root: pathlib.Path, repo: Repository) -> None:
    write_model(config_path(repo_root), repo)


def ignore_patterns(repo_root: pathlib.Path) -> list[str]:
    """Ignore patterns from ``config.json``, or the defaults before one exists."""
    repo = read_model(config_path(repo_root), Repository)
    if repo is None:
        return list(DEFAULT_IGNORE_PATTERNS)
    return list(repo.settings.ignore_patterns)


# ---------------------------------------------------------------------------
# Remote link
# ---------------------------------------------------------------------------


def set_remote_repository(repo_root: pathlib.Path, remote_id: str) -> Repository:
    """Record *remote_id* as this repository's remote and return the new config."""
    repo = read_config(repo_root)
    repo = repo.model_copy(
        update={"remote_url": f"{REMOTE_URL_PREFIX}{remote_id}", "updated_at": utcnow()}
    )
    write_config(repo_root, repo)
    logger.info("✅ Linked %s to remote repository %s", repo.name, remote_id)
    return repo


def get_remote_repository_id(repo_root: pathlib.Path) -> str | None:
    """Return the linked remote id, or ``None`` when the repository is unlinked."""
    remote_url = read_config(repo_root).remote_url
    if not remote_url or not remote_url.startswith(REMOTE_URL_PREFIX):
        return None
    return remote_url[len(REMOTE_URL_PREFIX):] or None


# ---------------------------------------------------------------------------
# Push tracking and fetch marker
# ---------------------------------------------------------------------------


def _read_id_list(path: pathlib.Path) -> list[str]:
    data = read_json(path)
    if not isinstance(data, list):
        return []
    return [str(item) for item in data]


def _append_ids(path: pathlib.Path, ids: list[str]) -> None:
    current = _read_id_list(path)
    known = set(current)
    for item in ids:
        if item not in known:
            current.append(item)
            known.add(item)
    write_json(path, current)


def pushed_commit_ids(repo_root: pathlib.Path) -> set[str]:
    return set(_read_id_list(metadata_dir(repo_root) / _PUSHED_COMMITS))


def pushed_object_ids(repo_root: pathlib.Path) -> set[str]:
    return set(_read_id_list(metadata_dir(repo_root) / _PUSHED_OBJECTS))


def mark_commits_pushed(repo_root: pathlib.Path, commit_ids: list[str]) -> None:
    _append_ids(metadata_dir(repo_root) / _PUSHED_COMMITS, commit_ids)


def mark_objects_pushed(repo_root: pathlib.Path, object_ids: list[str]) -> None:
    _append_ids(metadata_dir(repo_root) / _PUSHED_OBJECTS, object_ids)


def read_last_fetch(repo_root: pathlib.Path) -> datetime | None:
    """Timestamp of the last successful fetch, ``None`` before the first one."""
    path = metadata_dir(repo_root) / _LAST_FETCH
    if not path.is_file():
        return None
    raw = path.read_text(encoding="utf-8").strip()
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        logger.warning("⚠️ Ignoring malformed last_fetch marker: %r", raw)
        return None


def write_last_fetch(repo_root: pathlib.Path, when: datetime) -> None:
    (metadata_dir(repo_root) / _LAST_FETCH).write_text(
        when.isoformat() + "\n", encoding="utf-8"
    )
