"""Sync engine: fetch, pull, push and clone against a :class:`RemoteAPI`.

A repository is *unlinked* until ``config.json`` records a remote id
(``ergosum://repository/<id>``), then *linked*.  Fetch and pull require a
link; push creates the remote repository when there is none.

What the remote already has is tracked locally and optimistically in
``.ergosum/pushed_commits`` and ``.ergosum/pushed_objects``.  Ids land there
after a successful push or fetch; the remote is never asked.  If the remote
loses data, or the tracking files are edited, push will not notice.

No operation retries.  Any :class:`RemoteOperationFailedError` propagates;
local writes made before the failing call stay in place, and re-running the
command picks up where it stopped because already-tracked ids are skipped.
"""
from __future__ import annotations

import asyncio
import logging
import pathlib
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TypeVar

from ergosum.context_repo._repo import is_repository
from ergosum.context_repo.errors import AlreadyExistsError, NotLinkedError, ObjectNotFoundError
from ergosum.context_repo.models import (
    DEFAULT_BRANCH,
    ContentObject,
    ContextBranch,
    ContextCommit,
    Repository,
    utcnow,
)
from ergosum.context_repo.object_store import (
    is_valid_object_id,
    iter_commits,
    iter_objects,
    write_commit,
    write_object,
)
from ergosum.context_repo.refs import (
    advance_branch,
    is_valid_branch_name,
    read_branch,
    read_head,
    write_branch,
)
from ergosum.context_repo.remote import RemoteAPI
from ergosum.context_repo.repository import (
    get_remote_repository_id,
    init_repository,
    mark_commits_pushed,
    mark_objects_pushed,
    pushed_commit_ids,
    pushed_object_ids,
    read_config,
    read_last_fetch,
    set_remote_repository,
    write_last_fetch,
)

logger = logging.getLogger(__name__)

_Record = TypeVar("_Record")


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FetchResult:
    """Everything a fetch stored locally.

    Attributes:
        remote_id: Remote repository id fetched from.
        since:     Lower bound sent to the remote, ``None`` for a full fetch.
        commits:   Commit records written to the local store.
        objects:   Content objects written to the local store.
        branches:  Branch refs overwritten with the remote's version.
    """

    remote_id: str
    since: datetime | None = None
    commits: list[ContextCommit] = field(default_factory=list)
    objects: list[ContentObject] = field(default_factory=list)
    branches: list[ContextBranch] = field(default_factory=list)


@dataclass(frozen=True)
class PullResult:
    branch: str
    updated: bool
    previous_commit_id: str
    commit_id: str
    fetch: FetchResult


@dataclass(frozen=True)
class PushResult:
    remote_id: str
    commits_pushed: int = 0
    objects_pushed: int = 0
    created_remote: bool = False

    @property
    def up_to_date(self) -> bool:
        return self.commits_pushed == 0 and self.objects_pushed == 0


@dataclass(frozen=True)
class CloneResult:
    root: pathlib.Path
    repository: Repository
    remote_id: str
    branch: str
    fetch: FetchResult


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _require_link(repo_root: pathlib.Path) -> str:
    remote_id = get_remote_repository_id(repo_root)
    if remote_id is None:
        raise NotLinkedError()
    return remote_id


def order_parent_first(commits: list[ContextCommit]) -> list[ContextCommit]:
    """Sort *commits* so every parent in the list precedes its children.

    Parents outside the list are treated as already satisfied.  Ties are
    broken by timestamp then id so the order is stable.
    """
    by_id = {c.id: c for c in commits}
    ordered: list[ContextCommit] = []
    placed: set[str] = set()
    for start in sorted(commits, key=lambda c: (c.timestamp, c.id)):
        chain: list[ContextCommit] = []
        chain_ids: set[str] = set()
        current: ContextCommit | None = start
        while current is not None and current.id not in placed and current.id not in chain_ids:
            chain.append(current)
            chain_ids.add(current.id)
            current = by_id.get(current.parent_id or "")
        for c in reversed(chain):
            ordered.append(c)
            placed.add(c.id)
    return ordered


def unpushed_commits(repo_root: pathlib.Path) -> list[ContextCommit]:
    """Local commits absent from the tracking set, parent-first."""
    pushed = pushed_commit_ids(repo_root)
    return order_parent_first([c for c in iter_commits(repo_root) if c.id not in pushed])


def unpushed_objects(repo_root: pathlib.Path) -> list[ContentObject]:
    pushed = pushed_object_ids(repo_root)
    return [o for o in iter_objects(repo_root) if o.id not in pushed]


def _drop_invalid(
    records: list[_Record],
    kind: str,
    key: Callable[[_Record], str],
    is_valid: Callable[[str], bool],
) -> list[_Record]:
    """Return *records* minus those whose *key* cannot name a local file."""
    kept: list[_Record] = []
    for record in records:
        if is_valid(key(record)):
            kept.append(record)
        else:
            logger.warning("⚠️ Ignoring remote %s with invalid name %r", kind, key(record))
    return kept


# ---------------------------------------------------------------------------
# Fetch
# ---------------------------------------------------------------------------


async def fetch_from_remote(
    repo_root: pathlib.Path,
    remote: RemoteAPI,
    *,
    since: datetime | None = None,
) -> FetchResult:
    """Download commits, objects and branches from the linked remote.

    The three reads run concurrently; each one's results are written as soon
    as it resolves.  The ``last_fetch`` marker moves only after all three
    succeed, and records the time the fetch *started* so nothing created
    during the fetch is skipped next time.

    Raises:
        NotLinkedError: no remote id is recorded.
        RemoteOperationFailedError: any remote read failed.
    """
    remote_id = _require_link(repo_root)
    effective_since = since or read_last_fetch(repo_root)
    started_at = utcnow()

    async def _commits() -> list[ContextCommit]:
        commits = _drop_invalid(
            await remote.fetch_commits(remote_id, effective_since),
            "commit",
            lambda c: c.id,
            is_valid_object_id,
        )
        for c in commits:
            write_commit(repo_root, c)
        mark_commits_pushed(repo_root, [c.id for c in commits])
        return commits

    async def _objects() -> list[ContentObject]:
        objects = _drop_invalid(
            await remote.fetch_objects(remote_id, effective_since),
            "object",
            lambda o: o.id,
            is_valid_object_id,
        )
        for o in objects:
            write_object(repo_root, o)
        mark_objects_pushed(repo_root, [o.id for o in objects])
        return objects

    async def _branches() -> list[ContextBranch]:
        branches = _drop_invalid(
            await remote.fetch_branches(remote_id),
            "branch",
            lambda b: b.name,
            is_valid_branch_name,
        )
        for b in branches:
            write_branch(repo_root, b)
        return branches

    # A failed read cancels its siblings before the remote client is closed.
    try:
        async with asyncio.TaskGroup() as tg:
            commits_task = tg.create_task(_commits())
            objects_task = tg.create_task(_objects())
            branches_task = tg.create_task(_branches())
    except ExceptionGroup as group:
        first, *others = group.exceptions
        for exc in others:
            logger.warning("⚠️ Fetch from %s also failed: %s", remote_id, exc)
        raise first from None
    commits, objects, branches = commits_task.result(), objects_task.result(), branches_task.result()
    write_last_fetch(repo_root, started_at)

    logger.info(
        "✅ Fetched %d commit(s), %d object(s), %d branch(es) from %s",
        len(commits),
        len(objects),
        len(branches),
        remote_id,
    )
    return FetchResult(
        remote_id=remote_id,
        since=effective_since,
        commits=commits,
        objects=objects,
        branches=branches,
    )


# ---------------------------------------------------------------------------
# Pull
# ---------------------------------------------------------------------------


async def pull_from_remote(repo_root: pathlib.Path, remote: RemoteAPI) -> PullResult:
    """Fetch, then force the current branch to the remote's commit.

    No ancestry check and no working-tree update: the branch pointer simply
    takes the remote value when it differs.

    Raises:
        ObjectNotFoundError: the current branch has no local ref.
        NotLinkedError: no remote id is recorded.
    """
    branch_name = read_head(repo_root)
    local = read_branch(repo_root, branch_name)
    if local is None:
        raise ObjectNotFoundError(f"Current branch '{branch_name}' not found")

    fetched = await fetch_from_remote(repo_root, remote)

    remote_branch = next((b for b in fetched.branches if b.name == branch_name), None)
    if remote_branch is None or not remote_branch.commit_id:
        logger.info("✅ Remote has no commits on %s — nothing to pull", branch_name)
        current = read_branch(repo_root, branch_name) or local
        return PullResult(branch_name, False, local.commit_id, current.commit_id, fetched)

    if remote_branch.commit_id == local.commit_id:
        logger.info("✅ %s already up to date (%s)", branch_name, local.commit_id[:8])
        return PullResult(branch_name, False, local.commit_id, local.commit_id, fetched)

    advance_branch(repo_root, local, remote_branch.commit_id)
    logger.info(
        "✅ %s: %s → %s",
        branch_name,
        local.commit_id[:8] or "(empty)",
        remote_branch.commit_id[:8],
    )
    return PullResult(branch_name, True, local.commit_id, remote_branch.commit_id, fetched)


# ---------------------------------------------------------------------------
# Push
# ---------------------------------------------------------------------------


async def push_to_remote(repo_root: pathlib.Path, remote: RemoteAPI) -> PushResult:
    """Send every commit and object not yet in the tracking sets.

    Objects go first so the remote never receives a commit before the
    objects it references.  Each batch is marked as pushed right after it
    is accepted.
    """
    created = False
    remote_id = get_remote_repository_id(repo_root)
    if remote_id is None:
        local = read_config(repo_root)
        created_repo = await remote.create_repository(local)
        remote_id = created_repo.id
        set_remote_repository(repo_root, remote_id)
        created = True
        logger.info("✅ Created remote repository %s (%s)", created_repo.name, remote_id)

    commits = unpushed_commits(repo_root)
    objects = unpushed_objects(repo_root)

    if not commits and not objects:
        logger.info("✅ Everything up-to-date with %s", remote_id)
        return PushResult(remote_id=remote_id, created_remote=created)

    if objects:
        await remote.push_objects(remote_id, objects)
        mark_objects_pushed(repo_root, [o.id for o in objects])

    if commits:
        await remote.push_commits(remote_id, commits)
        mark_commits_pushed(repo_root, [c.id for c in commits])

    logger.info(
        "✅ Pushed %d commit(s) and %d object(s) to %s", len(commits), len(objects), remote_id
    )
    return PushResult(
        remote_id=remote_id,
        commits_pushed=len(commits),
        objects_pushed=len(objects),
        created_remote=created,
    )


# ---------------------------------------------------------------------------
# Clone
# ---------------------------------------------------------------------------


async def clone_from_remote(
    target: pathlib.Path,
    remote: RemoteAPI,
    remote_id: str,
    *,
    name: str | None = None,
    owner_id: str = "",
) -> CloneResult:
    """Create a repository in *target* populated from *remote_id*.

    *target* is created if it does not exist.

    Raises:
        AlreadyExistsError: *target* is already a repository.
    """
    if is_repository(target):
        raise AlreadyExistsError(target)

    remote_repo = await remote.get_repository(remote_id)

    branch = remote_repo.default_branch or DEFAULT_BRANCH
    if not is_valid_branch_name(branch):
        logger.warning("⚠️ Remote default branch %r is invalid — using %s", branch, DEFAULT_BRANCH)
        branch = DEFAULT_BRANCH

    target.mkdir(parents=True, exist_ok=True)
    init_repository(
        target,
        name=name or remote_repo.name,
        description=remote_repo.description,
        owner_id=owner_id,
        default_branch=branch,
    )
    repo = set_remote_repository(target, remote_id)

    fetched = await fetch_from_remote(target, remote)

    logger.info("✅ Cloned %s into %s (branch %s)", remote_id, target, branch)
    return CloneResult(
        root=target, repository=repo, remote_id=remote_id, branch=branch, fetch=fetched
    )
