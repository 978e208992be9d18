"""Pydantic v2 models for everything persisted under ``.ergosum/``.

The same models are the wire format exchanged with the remote service:
field names are snake_case on disk and on the wire, datetimes serialise as
ISO-8601 strings via ``model_dump(mode="json")``.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

DEFAULT_BRANCH = "main"
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024
DEFAULT_IGNORE_PATTERNS: tuple[str, ...] = (
    ".git",
    ".ergosum",
    "node_modules",
    "*.log",
    ".env",
    ".env.local",
    "dist",
    "build",
    ".DS_Store",
)

ObjectType = Literal["file", "directory", "embedding"]
ObjectEncoding = Literal["utf8", "binary", "base64"]


def utcnow() -> datetime:
    """Timezone-aware now; every timestamp in the store is UTC."""
    return datetime.now(timezone.utc)


# ── Repository ────────────────────────────────────────────────────────────────


class AIIntegration(BaseModel):
    generate_summaries: bool = True
    optimize_for: str = "general"


class RepoSettings(BaseModel):
    """Per-repository settings, fixed at init time."""

    auto_embed: bool = True
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    ignore_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_IGNORE_PATTERNS)
    )
    ai_integration: AIIntegration = Field(default_factory=AIIntegration)


class Repository(BaseModel):
    """Serialized into ``.ergosum/config.json``; one per working directory."""

    id: str
    name: str
    description: str | None = None
    owner_id: str = ""
    remote_url: str | None = None
    default_branch: str = DEFAULT_BRANCH
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    settings: RepoSettings = Field(default_factory=RepoSettings)


# ── Content-addressed objects ─────────────────────────────────────────────────


class ContentObject(BaseModel):
    """A blob. ``id`` is the SHA-1 of the raw file bytes."""

    id: str
    type: ObjectType = "file"
    content: str
    encoding: ObjectEncoding = "utf8"
    size: int
    mime_type: str | None = None
    embedding: list[float] | None = None
    created_at: datetime = Field(default_factory=utcnow)


class TreeEntry(BaseModel):
    mode: str
    name: str
    object_id: str
    type: ObjectType = "file"


class ContextTree(BaseModel):
    """Snapshot of staged paths; ``id`` is derived from the entry lines."""

    id: str
    entries: list[TreeEntry] = Field(default_factory=list)


class CommitMetadata(BaseModel):
    files_changed: int = 0
    additions: int = 0
    # Always 0: deletions are not tracked.
    deletions: int = 0
    embeddings_count: int | None = None
    ai_summary: str | None = None


class ContextCommit(BaseModel):
    """A commit.  ``id`` is random, not content-derived."""

    id: str
    repo_id: str
    message: str
    parent_id: str | None = None
    tree_id: str
    author: str
    timestamp: datetime = Field(default_factory=utcnow)
    metadata: CommitMetadata = Field(default_factory=CommitMetadata)


class ContextBranch(BaseModel):
    """Branch ref.  ``commit_id`` is empty until the first commit."""

    id: str
    repo_id: str
    name: str
    commit_id: str = ""
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


# ── Staging area ──────────────────────────────────────────────────────────────


class IndexEntry(BaseModel):
    path: str
    object_id: str
    mode: str = "100644"
    size: int
    modified_time: datetime = Field(default_factory=utcnow)
    staged: bool = True
