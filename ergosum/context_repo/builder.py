"""Staging, commit construction, status and history.

Staging is best-effort per file: an unreadable file is logged and reported
in :attr:`StageResult.skipped` and never aborts the batch.  Commit is
all-or-nothing up to the final index rewrite.

Commit algorithm
----------------
1. Read the index; raise :class:`NothingStagedError` when nothing is staged.
2. Build a tree from the staged entries in index order and store it.
3. Resolve the parent from the current branch's ``commit_id``.
4. Store the commit (random id), advance the branch to it.
5. Rewrite the index with every entry unstaged.
"""
from __future__ import annotations

import base64
import logging
import pathlib
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone

from ergosum.context_repo import index as index_mod
from ergosum.context_repo.errors import NothingStagedError, UnreadableFileError
from ergosum.context_repo.hashing import (
    compute_tree_id,
    generate_commit_id,
    generate_id,
    hash_content,
    hash_file,
)
from ergosum.context_repo.models import (
    DEFAULT_MAX_FILE_SIZE,
    CommitMetadata,
    ContentObject,
    ContextBranch,
    ContextCommit,
    ContextTree,
    IndexEntry,
    TreeEntry,
    utcnow,
)
from ergosum.context_repo.object_store import read_commit, write_commit, write_object, write_tree
from ergosum.context_repo.refs import advance_branch, read_branch, read_head, write_branch
from ergosum.context_repo.repository import ignore_patterns, read_config
from ergosum.context_repo.walker import list_files, match_files, should_ignore

logger = logging.getLogger(__name__)

DEFAULT_AUTHOR = "ErgoSum CLI User"
FILE_MODE = "100644"

MessageGenerator = Callable[[Sequence[IndexEntry]], str]

_MIME_TYPES: dict[str, str] = {
    ".md": "text/markdown",
    ".txt": "text/plain",
    ".js": "text/javascript",
    ".ts": "text/typescript",
    ".json": "application/json",
    ".py": "text/x-python",
    ".html": "text/html",
    ".css": "text/css",
}
_CODE_SUFFIXES = (".js", ".ts", ".py")


@dataclass(frozen=True)
class StageResult:
    """Outcome of :func:`stage`.

    Attributes:
        staged:  Repo-relative paths written to the index (or that would be,
                 for a dry run), in resolution order.
        skipped: ``(path, reason)`` pairs for every path that was left out.
        dry_run: ``True`` when nothing was written.
    """

    staged: list[str] = field(default_factory=list)
    skipped: list[tuple[str, str]] = field(default_factory=list)
    dry_run: bool = False


@dataclass(frozen=True)
class RepoStatus:
    branch: str
    staged: list[IndexEntry] = field(default_factory=list)
    unstaged: list[IndexEntry] = field(default_factory=list)
    untracked: list[str] = field(default_factory=list)


def mime_type_for(path: str) -> str:
    return _MIME_TYPES.get(pathlib.PurePosixPath(path).suffix.lower(), "application/octet-stream")


# ---------------------------------------------------------------------------
# Reading working-tree files
# ---------------------------------------------------------------------------


def read_file(
    repo_root: pathlib.Path,
    rel_path: str,
    max_file_size: int = DEFAULT_MAX_FILE_SIZE,
) -> ContentObject:
    """Load *rel_path* into an unsaved :class:`ContentObject`.

    UTF-8 text is kept as text; any other bytes are stored base64-encoded.
    The id is always the SHA-1 of the raw bytes.

    Raises:
        UnreadableFileError: the file cannot be read or exceeds *max_file_size*.
    """
    try:
        data = (repo_root / rel_path).read_bytes()
    except OSError as exc:
        raise UnreadableFileError(rel_path, exc.strerror or str(exc)) from exc
    if len(data) > max_file_size:
        raise UnreadableFileError(
            rel_path, f"{len(data)} bytes exceeds max_file_size ({max_file_size})"
        )
    try:
        content, encoding = data.decode("utf-8"), "utf8"
    except UnicodeDecodeError:
        content, encoding = base64.b64encode(data).decode("ascii"), "base64"
    return ContentObject(
        id=hash_content(data),
        type="file",
        content=content,
        encoding=encoding,
        size=len(data),
        mime_type=mime_type_for(rel_path),
    )


def _file_mtime(repo_root: pathlib.Path, rel_path: str) -> datetime:
    try:
        st = (repo_root / rel_path).stat()
    except OSError as exc:
        raise UnreadableFileError(rel_path, exc.strerror or str(exc)) from exc
    return datetime.fromtimestamp(st.st_mtime, tz=timezone.utc)


# ---------------------------------------------------------------------------
# Stage
# ---------------------------------------------------------------------------


def resolve_paths(
    repo_root: pathlib.Path,
    patterns: Sequence[str],
    *,
    all_files: bool = False,
    force: bool = False,
    cwd: pathlib.Path | None = None,
) -> tuple[list[str], list[tuple[str, str]]]:
    """Expand CLI path arguments into repo-relative file paths.

    ``.`` (or *all_files*) means every listed file.  A pattern containing
    ``*`` filters the listed files.  A directory expands to the listed files
    beneath it.  A plain file is used as-is; with *force* it is used even
    when it matches an ignore pattern.

    Returns ``(paths, skipped)`` with duplicates removed, first match wins.
    """
    root = repo_root.resolve()
    base = (cwd or root).resolve()
    patterns_cfg = ignore_patterns(repo_root)
    resolved: list[str] = []
    skipped: list[tuple[str, str]] = []
    listed: list[str] | None = None

    def _listed() -> list[str]:
        nonlocal listed
        if listed is None:
            listed = list_files(root, patterns_cfg)
        return listed

    if all_files or "." in patterns:
        resolved.extend(_listed())
        patterns = [p for p in patterns if p != "."]

    for pattern in patterns:
        if "*" in pattern:
            resolved.extend(match_files(_listed(), pattern))
            continue
        candidate = (base / pattern).resolve()
        try:
            rel = candidate.relative_to(root).as_posix()
        except ValueError:
            skipped.append((pattern, "outside repository"))
            continue
        if candidate.is_dir():
            prefix = "" if rel == "." else rel + "/"
            resolved.extend(f for f in _listed() if f.startswith(prefix))
        elif candidate.is_file():
            if should_ignore(rel, patterns_cfg) and not force:
                skipped.append((rel, "ignored"))
                continue
            resolved.append(rel)
        else:
            skipped.append((pattern, "did not match any files"))

    return list(dict.fromkeys(resolved)), skipped


def stage(
    repo_root: pathlib.Path,
    patterns: Sequence[str],
    *,
    all_files: bool = False,
    force: bool = False,
    dry_run: bool = False,
    cwd: pathlib.Path | None = None,
) -> StageResult:
    """Store each resolved file as a blob and mark it staged in the index."""
    paths, skipped = resolve_paths(
        repo_root, patterns, all_files=all_files, force=force, cwd=cwd
    )
    for path, reason in skipped:
        logger.warning("⚠️ Skipping %s: %s", path, reason)
    if dry_run:
        return StageResult(staged=paths, skipped=skipped, dry_run=True)

    max_size = read_config(repo_root).settings.max_file_size
    entries = index_mod.read_index(repo_root)
    staged: list[str] = []
    for path in paths:
        try:
            obj = read_file(repo_root, path, max_size)
            mtime = _file_mtime(repo_root, path)
        except UnreadableFileError as exc:
            logger.warning("⚠️ Failed to add file: %s", exc)
            skipped.append((path, exc.reason))
            continue
        write_object(repo_root, obj)
        entries = index_mod.upsert_entry(
            entries,
            IndexEntry(
                path=path,
                object_id=obj.id,
                mode=FILE_MODE,
                size=obj.size,
                modified_time=mtime,
                staged=True,
            ),
        )
        staged.append(path)

    index_mod.write_index(repo_root, entries)
    logger.info("✅ Staged %d file(s), skipped %d", len(staged), len(skipped))
    return StageResult(staged=staged, skipped=skipped)


def restage_modified(repo_root: pathlib.Path) -> list[str]:
    """Stage every tracked file whose content differs from its index entry.

    Tracked files that no longer exist are left alone.  A tracked file that
    cannot be hashed is handed to :func:`stage` anyway, which reports it in
    ``skipped`` instead of aborting the batch.
    """
    changed: list[str] = []
    for e in index_mod.read_index(repo_root):
        path = repo_root / e.path
        if not path.is_file():
            continue
        try:
            digest = hash_file(path)
        except OSError as exc:
            logger.warning("⚠️ Cannot hash %s: %s", e.path, exc)
            changed.append(e.path)
            continue
        if digest != e.object_id:
            changed.append(e.path)
    if not changed:
        return []
    return stage(repo_root, changed, force=True).staged


# ---------------------------------------------------------------------------
# Commit
# ---------------------------------------------------------------------------


def default_commit_message(staged: Sequence[IndexEntry]) -> str:
    """Summarise *staged* by file type when no message was given."""
    suffixes = {pathlib.PurePosixPath(e.path).suffix.lower() for e in staged}
    if ".md" in suffixes:
        return "Update documentation"
    if suffixes.intersection(_CODE_SUFFIXES):
        return "Update code"
    return f"Add {len(staged)} files"


def build_tree(staged: Sequence[IndexEntry]) -> ContextTree:
    entries = [
        TreeEntry(mode=e.mode, name=e.path, object_id=e.object_id, type="file")
        for e in staged
    ]
    return ContextTree(id=compute_tree_id(entries), entries=entries)


def commit(
    repo_root: pathlib.Path,
    *,
    message: str | None = None,
    author: str | None = None,
    ai_message: bool = False,
    message_generator: MessageGenerator | None = None,
    all_tracked: bool = False,
) -> ContextCommit:
    """Record the staged entries as a new commit on the current branch.

    ``message_generator`` stands in for the AI message collaborator; it is
    only consulted when *ai_message* is set and no *message* was given.

    Raises:
        NothingStagedError: no index entry is staged.
    """
    if all_tracked:
        restage_modified(repo_root)

    entries = index_mod.read_index(repo_root)
    staged = index_mod.staged_entries(entries)
    if not staged:
        raise NothingStagedError()

    if not message:
        if ai_message and message_generator is not None:
            message = message_generator(staged)
        else:
            message = default_commit_message(staged)

    tree = build_tree(staged)
    write_tree(repo_root, tree)

    repo = read_config(repo_root)
    branch_name = read_head(repo_root)
    branch = read_branch(repo_root, branch_name)
    parent_id = (branch.commit_id or None) if branch is not None else None

    new_commit = ContextCommit(
        id=generate_commit_id(),
        repo_id=repo.id,
        message=message,
        parent_id=parent_id,
        tree_id=tree.id,
        author=author or DEFAULT_AUTHOR,
        timestamp=utcnow(),
        metadata=CommitMetadata(
            files_changed=len(staged),
            additions=sum(e.size for e in staged),
            deletions=0,
        ),
    )
    write_commit(repo_root, new_commit)

    # ── Advance branch ───────────────────────────────────────────────────
    if branch is None:
        write_branch(
            repo_root,
            ContextBranch(
                id=generate_id(), repo_id=repo.id, name=branch_name, commit_id=new_commit.id
            ),
        )
    else:
        advance_branch(repo_root, branch, new_commit.id)

    index_mod.write_index(repo_root, index_mod.clear_staged(entries))
    logger.info(
        "✅ Commit %s on %s (%d file(s))", new_commit.id[:8], branch_name, len(staged)
    )
    return new_commit


# ---------------------------------------------------------------------------
# Status / history
# ---------------------------------------------------------------------------


def status(repo_root: pathlib.Path) -> RepoStatus:
    """Classify every path as staged, tracked-but-unstaged, or untracked."""
    entries = index_mod.read_index(repo_root)
    tracked = {e.path for e in entries}
    untracked = [
        f for f in list_files(repo_root, ignore_patterns(repo_root)) if f not in tracked
    ]
    return RepoStatus(
        branch=read_head(repo_root),
        staged=[e for e in entries if e.staged],
        unstaged=[e for e in entries if not e.staged],
        untracked=untracked,
    )


def history(repo_root: pathlib.Path, limit: int | None = None) -> list[ContextCommit]:
    """Walk the parent chain from the current branch head, newest first.

    A parent that is not stored locally ends the walk.
    """
    branch = read_branch(repo_root, read_head(repo_root))
    commits: list[ContextCommit] = []
    seen: set[str] = set()
    commit_id = branch.commit_id if branch is not None else ""
    while commit_id and commit_id not in seen:
        if limit is not None and len(commits) >= limit:
            break
        current = read_commit(repo_root, commit_id)
        if current is None:
            logger.debug("⚠️ Commit %s not stored locally — history truncated", commit_id[:8])
            break
        commits.append(current)
        seen.add(commit_id)
        commit_id = current.parent_id or ""
    return commits
