"""Custom exceptions for blobtrack.

Core operations raise these; only the CLI turns them into messages and
exit codes.
"""

from pathlib import Path
from typing import Optional, Union


class TrackerError(RuntimeError):
    """Base class for all blobtrack errors."""
    pass


# Working tree errors
class NotFoundError(TrackerError, FileNotFoundError):
    """Target path does not exist."""

    def __init__(self, path: Union[str, Path]):
        self.path = str(path)
        super().__init__(f"pathspec '{path}' did not match any files")

    def __str__(self) -> str:
        return self.args[0]


class TargetIsDirectoryError(TrackerError, IsADirectoryError):
    """Add target is a directory, not a regular file."""

    def __init__(self, path: Union[str, Path]):
        self.path = str(path)
        super().__init__(f"'{path}' is a directory, not a regular file")

    def __str__(self) -> str:
        return self.args[0]


# Storage errors
class StorageError(TrackerError):
    """Filesystem read/write/create failure for objects, index or ignore file."""

    def __init__(
        self,
        message: str,
        path: Optional[Union[str, Path]] = None,
        cause: Optional[BaseException] = None,
    ):
        self.path = str(path) if path is not None else None
        self.cause = cause
        super().__init__(message)

    @classmethod
    def wrap(cls, action: str, path: Union[str, Path], cause: OSError) -> "StorageError":
        """Build an error for a failed filesystem action on ``path``."""
        reason = cause.strerror or str(cause)
        return cls(f"Failed to {action} {path}: {reason}", path=path, cause=cause)


class ObjectNotFoundError(StorageError):
    """No object stored under the requested address."""

    def __init__(self, address: str, path: Union[str, Path]):
        self.address = address
        super().__init__(f"Object not found: {address}", path=path)


class LockTimeoutError(StorageError):
    """Could not acquire the index lock in time."""

    def __init__(self, path: Union[str, Path], timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Timed out after {timeout:g}s waiting for lock {path}. "
            f"Another blobtrack process may be running.",
            path=path,
        )


# Ignore errors
class PatternError(TrackerError, ValueError):
    """Ignore pattern is not a valid glob."""

    def __init__(self, pattern: str, reason: str):
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Invalid ignore pattern {pattern!r}: {reason}")


# Repository errors
class RepositoryError(TrackerError):
    """Base class for repository layout errors."""
    pass


class NotARepositoryError(RepositoryError):
    """No repository found at or above the starting directory."""

    def __init__(self, start: Union[str, Path]):
        self.start = str(start)
        super().__init__(
            f"Not inside a blobtrack repository (no .blobtrack found above {start})"
        )


class AlreadyInitializedError(RepositoryError):
    """Repository metadata directory already exists."""

    def __init__(self, root: Union[str, Path]):
        self.root = str(root)
        super().__init__(f"Repository already initialized in `{root}` (.blobtrack exists)")


class InvalidMetadataError(RepositoryError):
    """Metadata file is present but malformed."""
    pass


# Configuration errors
class ConfigError(TrackerError):
    """Repository configuration could not be parsed or validated."""
    pass


class PathOutsideRepositoryError(TrackerError, ValueError):
    """Path resolves outside the repository root."""

    def __init__(self, path: Union[str, Path], root: Union[str, Path]):
        self.path = str(path)
        self.root = str(root)
        super().__init__(f"'{path}' is outside repository at '{root}'")
