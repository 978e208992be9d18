"""Exit-code contract and exception types for the context repository."""
from __future__ import annotations

import enum


class ExitCode(enum.IntEnum):
    """Standardised CLI exit codes.

    0 — success
    1 — user error (bad arguments, invalid state)
    2 — repo-not-found
    3 — remote / internal error
    """

    SUCCESS = 0
    USER_ERROR = 1
    REPO_NOT_FOUND = 2
    INTERNAL_ERROR = 3


class ErgoSumError(Exception):
    """Base exception for context repository errors."""

    def __init__(self, message: str, exit_code: ExitCode = ExitCode.INTERNAL_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code


class AlreadyExistsError(ErgoSumError):
    """Raised by init/clone when the target is already a repository."""

    def __init__(self, path: object) -> None:
        super().__init__(
            f"Repository already exists in {path}", exit_code=ExitCode.USER_ERROR
        )


class NotARepositoryError(ErgoSumError):
    """Raised when no ``.ergosum/`` directory is found above the start path."""

    def __init__(
        self, message: str = "Not an ErgoSum repository. Run `ergosum init`."
    ) -> None:
        super().__init__(message, exit_code=ExitCode.REPO_NOT_FOUND)


class NothingStagedError(ErgoSumError):
    def __init__(
        self,
        message: str = "No changes staged for commit. Use `ergosum add` to stage files.",
    ) -> None:
        super().__init__(message, exit_code=ExitCode.USER_ERROR)


class NotLinkedError(ErgoSumError):
    """Raised by fetch/pull when no remote repository id is recorded."""

    def __init__(
        self,
        message: str = "No remote repository configured. Run `ergosum push` to create one.",
    ) -> None:
        super().__init__(message, exit_code=ExitCode.USER_ERROR)


class NotAuthenticatedError(ErgoSumError):
    def __init__(
        self,
        message: str = (
            "No auth token configured. Set ERGOSUM_AUTH_TOKEN or add "
            '`auth_token = "..."` to ~/.ergosum/config.toml.'
        ),
    ) -> None:
        super().__init__(message, exit_code=ExitCode.USER_ERROR)


class ObjectNotFoundError(ErgoSumError):
    """Raised only where a missing object makes the operation impossible.

    Ordinary lookups return ``None`` instead.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message, exit_code=ExitCode.USER_ERROR)


class RemoteOperationFailedError(ErgoSumError):
    """Raised when a call to the remote service fails.

    ``status_code`` is ``None`` for transport errors and timeouts.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message, exit_code=ExitCode.INTERNAL_ERROR)
        self.status_code = status_code


class UnreadableFileError(ErgoSumError):
    """Raised when a single working-tree file cannot be staged."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot read {path}: {reason}", exit_code=ExitCode.USER_ERROR)
        self.path = path
        self.reason = reason
