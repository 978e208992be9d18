"""Shared fixtures for context repository tests.

``fake_remote`` is an in-memory :class:`~ergosum.context_repo.remote.RemoteAPI`
that records every call, so sync tests never touch the network.
"""
from __future__ import annotations

import pathlib
import types
from datetime import datetime

import pytest

from ergosum.context_repo.config import CLISettings
from ergosum.context_repo.errors import RemoteOperationFailedError
from ergosum.context_repo.models import (
    ContentObject,
    ContextBranch,
    ContextCommit,
    Repository,
)
from ergosum.context_repo.repository import init_repository


class FakeRemote:
    """In-memory remote service.

    ``fail_on`` names a method that raises ``RemoteOperationFailedError``.
    ``calls`` records ``(method, args)`` in call order.
    """

    def __init__(self) -> None:
        self.repositories: dict[str, Repository] = {}
        self.commits: dict[str, list[ContextCommit]] = {}
        self.objects: dict[str, list[ContentObject]] = {}
        self.branches: dict[str, list[ContextBranch]] = {}
        self.calls: list[tuple[str, tuple[object, ...]]] = []
        self.fail_on: str | None = None
        self._next_id = 1

    def _record(self, method: str, *args: object) -> None:
        self.calls.append((method, args))
        if self.fail_on == method:
            raise RemoteOperationFailedError(f"{method} failed", status_code=500)

    def add_repository(self, repo: Repository) -> None:
        self.repositories[repo.id] = repo
        self.commits.setdefault(repo.id, [])
        self.objects.setdefault(repo.id, [])
        self.branches.setdefault(repo.id, [])

    async def __aenter__(self) -> FakeRemote:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        return None

    async def create_repository(self, repo: Repository) -> Repository:
        self._record("create_repository", repo)
        created = repo.model_copy(update={"id": f"remote-{self._next_id}"})
        self._next_id += 1
        self.add_repository(created)
        return created

    async def get_repository(self, repo_id: str) -> Repository:
        self._record("get_repository", repo_id)
        if repo_id not in self.repositories:
            raise RemoteOperationFailedError("Repository not found", status_code=404)
        return self.repositories[repo_id]

    async def push_commits(self, repo_id: str, commits: list[ContextCommit]) -> None:
        self._record("push_commits", repo_id, commits)
        self.commits.setdefault(repo_id, []).extend(commits)

    async def push_objects(self, repo_id: str, objects: list[ContentObject]) -> None:
        self._record("push_objects", repo_id, objects)
        self.objects.setdefault(repo_id, []).extend(objects)

    async def fetch_commits(
        self, repo_id: str, since: datetime | None = None
    ) -> list[ContextCommit]:
        self._record("fetch_commits", repo_id, since)
        return list(self.commits.get(repo_id, []))

    async def fetch_objects(
        self, repo_id: str, since: datetime | None = None
    ) -> list[ContentObject]:
        self._record("fetch_objects", repo_id, since)
        return list(self.objects.get(repo_id, []))

    async def fetch_branches(self, repo_id: str) -> list[ContextBranch]:
        self._record("fetch_branches", repo_id)
        return list(self.branches.get(repo_id, []))

    def called(self, method: str) -> list[tuple[object, ...]]:
        return [args for name, args in self.calls if name == method]


@pytest.fixture(autouse=True)
def _isolate_settings(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's ~/.ergosum/config.toml and ERGOSUM_* env out of tests."""
    config_dir = tmp_path_factory.mktemp("user-config")
    monkeypatch.setenv("ERGOSUM_CONFIG_FILE", str(config_dir / "config.toml"))
    for var in (
        "ERGOSUM_API_URL",
        "ERGOSUM_AUTH_TOKEN",
        "ERGOSUM_USER_ID",
        "ERGOSUM_AUTHOR",
        "ERGOSUM_TIMEOUT",
        "ERGOSUM_DEBUG",
        "ERGOSUM_REPO_ROOT",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def repo_root(tmp_path: pathlib.Path) -> pathlib.Path:
    """An initialised, empty repository in ``tmp_path/work``."""
    root = tmp_path / "work"
    root.mkdir()
    init_repository(root, name="work")
    return root


@pytest.fixture
def settings() -> CLISettings:
    return CLISettings(
        api_url="https://api.example.test",
        auth_token="test-token",
        user_id="user-1",
    )


@pytest.fixture
def fake_remote() -> FakeRemote:
    return FakeRemote()
