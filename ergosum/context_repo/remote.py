"""Remote service access for the sync engine.

:class:`RemoteAPI` is the whole contract the sync engine relies on: seven
async operations.  :class:`HubClient` implements it over HTTP with
``httpx``; tests substitute an in-memory implementation.

Usage::

    async with HubClient(base_url=settings.api_url, token=settings.auth_token) as hub:
        repo = await hub.get_repository("remote-repo-id")

The bearer token is injected into every request and never logged; log
lines use ``"Bearer ***"``.  A missing token raises
:class:`NotAuthenticatedError` before any request is made.

Error mapping (every failure becomes :class:`RemoteOperationFailedError`):

- 401 → authentication failed
- 403 → access denied
- 5xx → server error
- any other non-2xx → API error with the status and body
- timeouts and transport errors → network error (``status_code=None``)

The client does not retry.
"""
from __future__ import annotations

import logging
import types
from datetime import datetime
from typing import Protocol, runtime_checkable

import httpx

from ergosum import __version__
from ergosum.context_repo.errors import NotAuthenticatedError, RemoteOperationFailedError
from ergosum.context_repo.models import ContentObject, ContextBranch, ContextCommit, Repository

logger = logging.getLogger(__name__)


@runtime_checkable
class RemoteAPI(Protocol):
    """Operations the sync engine needs from the remote service."""

    async def create_repository(self, repo: Repository) -> Repository: ...

    async def get_repository(self, repo_id: str) -> Repository: ...

    async def push_commits(self, repo_id: str, commits: list[ContextCommit]) -> None: ...

    async def push_objects(self, repo_id: str, objects: list[ContentObject]) -> None: ...

    async def fetch_commits(
        self, repo_id: str, since: datetime | None = None
    ) -> list[ContextCommit]: ...

    async def fetch_objects(
        self, repo_id: str, since: datetime | None = None
    ) -> list[ContentObject]: ...

    async def fetch_branches(self, repo_id: str) -> list[ContextBranch]: ...


def _error_for_response(response: httpx.Response) -> RemoteOperationFailedError:
    status = response.status_code
    if status == 401:
        msg = "Authentication failed. Please log in again to reauthenticate."
    elif status == 403:
        msg = "Access denied. Please check your permissions."
    elif status >= 500:
        msg = "Server error. Please try again later."
    else:
        msg = f"Remote API error (HTTP {status}): {response.text}"
    return RemoteOperationFailedError(msg, status_code=status)


def _items(payload: object, key: str) -> list[object]:
    """Accept either a bare JSON array or ``{key: [...]}``."""
    if isinstance(payload, dict):
        payload = payload.get(key, [])
    if not isinstance(payload, list):
        raise RemoteOperationFailedError(f"Malformed {key} response from remote")
    return payload


def _since_params(since: datetime | None) -> dict[str, str]:
    return {"since": since.isoformat()} if since is not None else {}


class HubClient:
    """HTTP implementation of :class:`RemoteAPI`.

    Args:
        base_url: API base URL (e.g. ``"https://api.ergosum.cc"``).
        token:    Bearer token; required.
        timeout:  Request timeout in seconds (default 30).
    """

    def __init__(self, base_url: str, token: str | None, timeout: float = 30.0) -> None:
        self._base_url = base_url
        self._token = token
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _build_headers(self) -> dict[str, str]:
        """Return auth + identification headers or raise when no token is set."""
        if not self._token:
            raise NotAuthenticatedError()
        logger.debug("✅ HubClient auth header set (Bearer ***)")
        return {
            "Authorization": f"Bearer {self._token}",
            "User-Agent": f"ergosum-cli/{__version__}",
        }

    def _require_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("HubClient must be used as an async context manager.")
        return self._client

    async def _request(self, method: str, path: str, **kwargs: object) -> object:
        client = self._require_client()
        try:
            response = await client.request(method, path, **kwargs)  # type: ignore[arg-type]  # httpx stubs use Any for kwargs
        except httpx.TimeoutException as exc:
            logger.error("❌ %s %s timed out", method, path)
            raise RemoteOperationFailedError(
                f"Request to {self._base_url}{path} timed out"
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("❌ %s %s network error: %s", method, path, exc)
            raise RemoteOperationFailedError(f"Network error: {exc}") from exc

        if response.is_error:
            logger.error("❌ %s %s → HTTP %d", method, path, response.status_code)
            raise _error_for_response(response)
        if not response.content:
            return None
        return response.json()

    # ------------------------------------------------------------------
    # Async context manager
    # ------------------------------------------------------------------

    async def __aenter__(self) -> HubClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._build_headers(),
            timeout=self._timeout,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # RemoteAPI
    # ------------------------------------------------------------------

    async def create_repository(self, repo: Repository) -> Repository:
        body = {
            "name": repo.name,
            "description": repo.description,
            "owner_id": repo.owner_id,
            "default_branch": repo.default_branch,
            "settings": repo.settings.model_dump(mode="json"),
        }
        data = await self._request("POST", "/repositories", json=body)
        return Repository.model_validate(data)

    async def get_repository(self, repo_id: str) -> Repository:
        data = await self._request("GET", f"/repositories/{repo_id}")
        return Repository.model_validate(data)

    async def push_commits(self, repo_id: str, commits: list[ContextCommit]) -> None:
        await self._request(
            "POST",
            f"/repositories/{repo_id}/commits",
            json={"commits": [c.model_dump(mode="json") for c in commits]},
        )

    async def push_objects(self, repo_id: str, objects: list[ContentObject]) -> None:
        await self._request(
            "POST",
            f"/repositories/{repo_id}/objects",
            json={"objects": [o.model_dump(mode="json") for o in objects]},
        )

    async def fetch_commits(
        self, repo_id: str, since: datetime | None = None
    ) -> list[ContextCommit]:
        data = await self._request(
            "GET", f"/repositories/{repo_id}/commits", params=_since_params(since)
        )
        return [ContextCommit.model_validate(item) for item in _items(data, "commits")]

    async def fetch_objects(
        self, repo_id: str, since: datetime | None = None
    ) -> list[ContentObject]:
        data = await self._request(
            "GET", f"/repositories/{repo_id}/objects", params=_since_params(since)
        )
        return [ContentObject.model_validate(item) for item in _items(data, "objects")]

    async def fetch_branches(self, repo_id: str) -> list[ContextBranch]:
        data = await self._request("GET", f"/repositories/{repo_id}/branches")
        return [ContextBranch.model_validate(item) for item in _items(data, "branches")]


__all__ = ["HubClient", "RemoteAPI"]
