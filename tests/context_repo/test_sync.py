"""Tests for the sync engine against an in-memory remote.

- fetch requires a linked remote, stores everything, and moves last_fetch
  only after success.
- A failing read cancels the other reads; records whose names would land
  outside ``.ergosum`` are skipped.
- pull is a no-op when commit ids match and force-sets the branch otherwise.
- push creates the remote on first use, sends objects before commits,
  orders commits parent-first and reports zero counts when nothing is new.
- A push that fails on commits keeps the objects marked, so a retry only
  sends the commits.
- clone initialises, links, fetches and checks out the default branch.
"""
from __future__ import annotations

import asyncio
import pathlib
from datetime import datetime, timedelta, timezone

import pytest

from ergosum.context_repo.builder import commit, stage
from ergosum.context_repo.errors import (
    AlreadyExistsError,
    NotLinkedError,
    ObjectNotFoundError,
    RemoteOperationFailedError,
)
from ergosum.context_repo.models import (
    ContentObject,
    ContextBranch,
    ContextCommit,
    Repository,
)
from ergosum.context_repo.object_store import read_commit, read_object
from ergosum.context_repo.refs import list_branches, read_branch, read_head, write_head
from ergosum.context_repo.repository import (
    get_remote_repository_id,
    pushed_commit_ids,
    pushed_object_ids,
    read_config,
    read_last_fetch,
    set_remote_repository,
)
from ergosum.context_repo.sync import (
    clone_from_remote,
    fetch_from_remote,
    order_parent_first,
    pull_from_remote,
    push_to_remote,
)

_T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _make_commit(commit_id: str, parent_id: str | None = None, minutes: int = 0) -> ContextCommit:
    return ContextCommit(
        id=commit_id,
        repo_id="remote-repo",
        message=f"commit {commit_id}",
        parent_id=parent_id,
        tree_id="t" * 40,
        author="remote author",
        timestamp=_T0 + timedelta(minutes=minutes),
    )


def _seed_remote(fake_remote, remote_id: str = "remote-repo", head: str = "c2" * 20) -> None:
    fake_remote.add_repository(
        Repository(id=remote_id, name="shared-notes", description="team", default_branch="main")
    )
    fake_remote.commits[remote_id] = [
        _make_commit("c1" * 20),
        _make_commit(head, parent_id="c1" * 20, minutes=1),
    ]
    fake_remote.objects[remote_id] = [
        ContentObject(id="ab" * 20, content="hello", size=5)
    ]
    fake_remote.branches[remote_id] = [
        ContextBranch(id="b-main", repo_id=remote_id, name="main", commit_id=head)
    ]


def _commit_file(root: pathlib.Path, rel: str, content: str, message: str) -> ContextCommit:
    (root / rel).write_text(content)
    stage(root, [rel])
    return commit(root, message=message)


# ---------------------------------------------------------------------------
# fetch
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_fetch_requires_link(repo_root: pathlib.Path, fake_remote) -> None:
    with pytest.raises(NotLinkedError):
        await fetch_from_remote(repo_root, fake_remote)
    assert fake_remote.calls == []


@pytest.mark.anyio
async def test_fetch_stores_everything(repo_root: pathlib.Path, fake_remote) -> None:
    _seed_remote(fake_remote)
    set_remote_repository(repo_root, "remote-repo")

    result = await fetch_from_remote(repo_root, fake_remote)

    assert len(result.commits) == 2
    assert read_commit(repo_root, "c2" * 20) is not None
    assert read_object(repo_root, "ab" * 20) is not None
    branch = read_branch(repo_root, "main")
    assert branch is not None
    assert branch.commit_id == "c2" * 20
    assert read_last_fetch(repo_root) is not None
    assert result.since is None
    # Fetched ids are known to the remote, so push will not resend them.
    assert "c1" * 20 in pushed_commit_ids(repo_root)
    assert "ab" * 20 in pushed_object_ids(repo_root)


@pytest.mark.anyio
async def test_second_fetch_sends_since(repo_root: pathlib.Path, fake_remote) -> None:
    _seed_remote(fake_remote)
    set_remote_repository(repo_root, "remote-repo")

    await fetch_from_remote(repo_root, fake_remote)
    marker = read_last_fetch(repo_root)
    await fetch_from_remote(repo_root, fake_remote)

    since_args = [args[1] for args in fake_remote.called("fetch_commits")]
    assert since_args == [None, marker]


@pytest.mark.anyio
async def test_explicit_since_overrides_marker(repo_root: pathlib.Path, fake_remote) -> None:
    _seed_remote(fake_remote)
    set_remote_repository(repo_root, "remote-repo")
    await fetch_from_remote(repo_root, fake_remote, since=_T0)
    assert fake_remote.called("fetch_objects") == [("remote-repo", _T0)]


@pytest.mark.anyio
async def test_failed_fetch_keeps_marker(repo_root: pathlib.Path, fake_remote) -> None:
    _seed_remote(fake_remote)
    set_remote_repository(repo_root, "remote-repo")
    fake_remote.fail_on = "fetch_branches"

    with pytest.raises(RemoteOperationFailedError):
        await fetch_from_remote(repo_root, fake_remote)

    assert read_last_fetch(repo_root) is None


@pytest.mark.anyio
async def test_fetch_failure_cancels_other_reads(repo_root: pathlib.Path, fake_remote) -> None:
    _seed_remote(fake_remote)
    set_remote_repository(repo_root, "remote-repo")
    fake_remote.fail_on = "fetch_branches"
    cancelled: list[str] = []

    async def _hang(repo_id: str, since: datetime | None = None) -> list[ContextCommit]:
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            cancelled.append(repo_id)
            raise
        return []

    fake_remote.fetch_commits = _hang

    with pytest.raises(RemoteOperationFailedError):
        await fetch_from_remote(repo_root, fake_remote)

    assert cancelled == ["remote-repo"]
    assert read_last_fetch(repo_root) is None


@pytest.mark.anyio
async def test_fetch_skips_branch_names_outside_refs(repo_root: pathlib.Path, fake_remote) -> None:
    _seed_remote(fake_remote)
    set_remote_repository(repo_root, "remote-repo")
    fake_remote.branches["remote-repo"].extend(
        [
            ContextBranch(id="b-evil", repo_id="remote-repo", name="../../HEAD", commit_id="c1" * 20),
            ContextBranch(id="b-abs", repo_id="remote-repo", name="/tmp/x", commit_id="c1" * 20),
        ]
    )

    result = await fetch_from_remote(repo_root, fake_remote)

    assert read_head(repo_root) == "main"
    assert [b.name for b in result.branches] == ["main"]
    assert list_branches(repo_root) == ["main"]


@pytest.mark.anyio
async def test_fetch_skips_non_hex_ids(repo_root: pathlib.Path, fake_remote) -> None:
    _seed_remote(fake_remote)
    set_remote_repository(repo_root, "remote-repo")
    fake_remote.commits["remote-repo"].append(_make_commit("../../../config.json"))
    fake_remote.objects["remote-repo"].append(ContentObject(id="../../HEAD", content="x", size=1))

    result = await fetch_from_remote(repo_root, fake_remote)

    assert [c.id for c in result.commits] == ["c1" * 20, "c2" * 20]
    assert [o.id for o in result.objects] == ["ab" * 20]
    assert read_head(repo_root) == "main"
    assert read_config(repo_root).name == "work"
    assert "../../HEAD" not in pushed_object_ids(repo_root)


# ---------------------------------------------------------------------------
# pull
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_pull_no_op_when_equal(repo_root: pathlib.Path, fake_remote) -> None:
    local = _commit_file(repo_root, "a.md", "x", "local")
    _seed_remote(fake_remote, head=local.id)
    set_remote_repository(repo_root, "remote-repo")

    result = await pull_from_remote(repo_root, fake_remote)

    assert result.updated is False
    branch = read_branch(repo_root, "main")
    assert branch is not None
    assert branch.commit_id == local.id


@pytest.mark.anyio
async def test_pull_force_sets_branch(repo_root: pathlib.Path, fake_remote) -> None:
    local = _commit_file(repo_root, "a.md", "x", "local")
    _seed_remote(fake_remote)
    set_remote_repository(repo_root, "remote-repo")

    result = await pull_from_remote(repo_root, fake_remote)

    assert result.updated is True
    assert result.previous_commit_id == local.id
    assert result.commit_id == "c2" * 20
    branch = read_branch(repo_root, "main")
    assert branch is not None
    assert branch.commit_id == "c2" * 20


@pytest.mark.anyio
async def test_pull_without_remote_branch(repo_root: pathlib.Path, fake_remote) -> None:
    _seed_remote(fake_remote)
    fake_remote.branches["remote-repo"] = []
    set_remote_repository(repo_root, "remote-repo")
    result = await pull_from_remote(repo_root, fake_remote)
    assert result.updated is False


@pytest.mark.anyio
async def test_pull_missing_current_branch(repo_root: pathlib.Path, fake_remote) -> None:
    set_remote_repository(repo_root, "remote-repo")
    write_head(repo_root, "ghost")
    with pytest.raises(ObjectNotFoundError):
        await pull_from_remote(repo_root, fake_remote)


# ---------------------------------------------------------------------------
# push
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_push_creates_remote_and_sends_everything(
    repo_root: pathlib.Path, fake_remote
) -> None:
    first = _commit_file(repo_root, "a.md", "one", "one")
    second = _commit_file(repo_root, "b.md", "two", "two")

    result = await push_to_remote(repo_root, fake_remote)

    assert result.created_remote is True
    assert get_remote_repository_id(repo_root) == result.remote_id
    assert result.commits_pushed == 2
    assert result.objects_pushed == 2

    order = [name for name, _ in fake_remote.calls]
    assert order == ["create_repository", "push_objects", "push_commits"]
    created = fake_remote.called("create_repository")[0][0]
    assert created.name == read_config(repo_root).name

    pushed = fake_remote.commits[result.remote_id]
    assert [c.id for c in pushed] == [first.id, second.id]


@pytest.mark.anyio
async def test_push_twice_is_up_to_date(repo_root: pathlib.Path, fake_remote) -> None:
    _commit_file(repo_root, "a.md", "one", "one")
    await push_to_remote(repo_root, fake_remote)

    again = await push_to_remote(repo_root, fake_remote)

    assert again.up_to_date
    assert again.commits_pushed == 0
    assert again.objects_pushed == 0
    assert again.created_remote is False
    assert len(fake_remote.called("push_commits")) == 1


@pytest.mark.anyio
async def test_failed_commit_push_retries_only_commits(
    repo_root: pathlib.Path, fake_remote
) -> None:
    _commit_file(repo_root, "a.md", "one", "one")
    fake_remote.fail_on = "push_commits"

    with pytest.raises(RemoteOperationFailedError):
        await push_to_remote(repo_root, fake_remote)
    assert len(pushed_object_ids(repo_root)) == 1
    assert pushed_commit_ids(repo_root) == set()

    fake_remote.fail_on = None
    retry = await push_to_remote(repo_root, fake_remote)
    assert retry.objects_pushed == 0
    assert retry.commits_pushed == 1


def test_order_parent_first() -> None:
    root = _make_commit("a" * 40, minutes=5)
    child = _make_commit("b" * 40, parent_id="a" * 40, minutes=0)
    grandchild = _make_commit("c" * 40, parent_id="b" * 40, minutes=1)
    orphan_parent = _make_commit("d" * 40, parent_id="z" * 40, minutes=2)

    ordered = order_parent_first([grandchild, orphan_parent, child, root])
    ids = [c.id for c in ordered]

    assert ids.index("a" * 40) < ids.index("b" * 40) < ids.index("c" * 40)
    assert sorted(ids) == sorted(["a" * 40, "b" * 40, "c" * 40, "d" * 40])


# ---------------------------------------------------------------------------
# clone
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_clone(tmp_path: pathlib.Path, fake_remote) -> None:
    _seed_remote(fake_remote)
    fake_remote.repositories["remote-repo"] = fake_remote.repositories[
        "remote-repo"
    ].model_copy(update={"default_branch": "main"})
    target = tmp_path / "clone-here"

    result = await clone_from_remote(target, fake_remote, "remote-repo", owner_id="u1")

    assert result.repository.name == "shared-notes"
    assert result.repository.description == "team"
    assert get_remote_repository_id(target) == "remote-repo"
    assert read_head(target) == "main"
    branch = read_branch(target, "main")
    assert branch is not None
    assert branch.commit_id == "c2" * 20
    assert read_commit(target, "c1" * 20) is not None


@pytest.mark.anyio
async def test_clone_uses_remote_default_branch(tmp_path: pathlib.Path, fake_remote) -> None:
    _seed_remote(fake_remote)
    fake_remote.repositories["remote-repo"] = fake_remote.repositories[
        "remote-repo"
    ].model_copy(update={"default_branch": "trunk"})
    fake_remote.branches["remote-repo"] = [
        ContextBranch(id="b-trunk", repo_id="remote-repo", name="trunk", commit_id="c2" * 20)
    ]

    result = await clone_from_remote(tmp_path, fake_remote, "remote-repo", name="mine")

    assert result.repository.name == "mine"
    assert result.branch == "trunk"
    assert read_head(tmp_path) == "trunk"
    assert read_config(tmp_path).default_branch == "trunk"
    # No stray empty ``main`` ref next to the remote's default.
    assert list_branches(tmp_path) == ["trunk"]
    trunk = read_branch(tmp_path, "trunk")
    assert trunk is not None
    assert trunk.commit_id == "c2" * 20


@pytest.mark.anyio
async def test_clone_into_repository_fails(repo_root: pathlib.Path, fake_remote) -> None:
    _seed_remote(fake_remote)
    with pytest.raises(AlreadyExistsError):
        await clone_from_remote(repo_root, fake_remote, "remote-repo")
    assert fake_remote.calls == []
