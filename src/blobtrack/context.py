"""Repository context for managing paths and repository discovery."""

import logging
import os
from pathlib import Path
from typing import Optional, Union

from .config import RepoConfig, load_repo_config, save_repo_config
from .constants import (
    BLOBTRACK_DIR,
    CONFIG_FILE,
    DEFAULT_DESCRIPTION,
    DESCRIPTION_FILE,
    HEAD_FILE,
    HEADS_PREFIX,
    INDEX_FILE,
    INDEX_LOCK_FILE,
    OBJECTS_DIR,
    REF_PREFIX,
)
from .errors import (
    AlreadyInitializedError,
    InvalidMetadataError,
    NotARepositoryError,
    PathOutsideRepositoryError,
    StorageError,
)
from .ignore import IgnoreSpec
from .index import StagingIndex
from .object_store import ObjectStore

logger = logging.getLogger(__name__)


class RepositoryContext:
    """Manages repository root discovery and path resolution.

    Everything a command needs (object store, index, ignore patterns,
    config) is reached through the context; nothing is held at module level.
    """

    def __init__(self, start_path: Optional[Path] = None):
        """Find the repository root at or above ``start_path``.

        Raises:
            NotARepositoryError: If no ``.blobtrack`` directory is found
        """
        start = Path(start_path) if start_path is not None else Path.cwd()
        root = self._find_root(start)
        if root is None:
            raise NotARepositoryError(start)
        self.root = root
        self._ignore_spec: Optional[IgnoreSpec] = None
        self._config: Optional[RepoConfig] = None
        self._index: Optional[StagingIndex] = None

    @classmethod
    def init(cls, path: Optional[Path] = None, branch: Optional[str] = None) -> "RepositoryContext":
        """Create the metadata layout for a new repository.

        Creates ``HEAD``, ``config``, ``description``, an empty ``index``
        and the ``objects/`` directory.

        Raises:
            AlreadyInitializedError: If ``.blobtrack`` already exists
            StorageError: If the layout can't be created
        """
        target = Path(path) if path is not None else Path.cwd()
        storage = target / BLOBTRACK_DIR
        if storage.exists():
            raise AlreadyInitializedError(target.resolve())

        config = RepoConfig()
        if branch:
            config.default_branch = branch

        try:
            (storage / OBJECTS_DIR).mkdir(parents=True)
            (storage / HEAD_FILE).write_text(
                f"{REF_PREFIX}{HEADS_PREFIX}{config.default_branch}\n", encoding="utf-8"
            )
            (storage / DESCRIPTION_FILE).write_text(DEFAULT_DESCRIPTION, encoding="utf-8")
            (storage / INDEX_FILE).touch()
            save_repo_config(config, storage / CONFIG_FILE)
        except OSError as e:
            raise StorageError.wrap("initialize repository in", storage, e) from e

        logger.info("Initialized empty blobtrack repository in %s", storage)
        return cls(target)

    def _find_root(self, start: Path) -> Optional[Path]:
        """Walk up directory tree to find repository root."""
        current = start.resolve()

        while current != current.parent:
            if (current / BLOBTRACK_DIR).is_dir():
                return current
            current = current.parent

        # Check filesystem root
        if (current / BLOBTRACK_DIR).is_dir():
            return current
        return None

    def to_repo_relative(self, path: Union[str, Path]) -> str:
        """Convert a path (absolute or relative to CWD) to a repository-relative POSIX path.

        Raises:
            PathOutsideRepositoryError: If the path is outside the repository
        """
        p = Path(path)
        if not p.is_absolute():
            p = Path.cwd() / p
        normalized = Path(os.path.abspath(p))

        try:
            rel = normalized.relative_to(self.root)
        except ValueError:
            # Retry through symlinks (e.g. /tmp -> /private/tmp)
            try:
                rel = normalized.resolve().relative_to(self.root)
            except ValueError:
                raise PathOutsideRepositoryError(path, self.root)
        return rel.as_posix()

    def absolute(self, repo_path: Union[str, Path]) -> Path:
        """Get absolute path from repository-relative path."""
        return self.root / repo_path

    @property
    def storage_dir(self) -> Path:
        """Get the repository metadata directory."""
        return self.root / BLOBTRACK_DIR

    @property
    def head_path(self) -> Path:
        return self.storage_dir / HEAD_FILE

    @property
    def config_path(self) -> Path:
        return self.storage_dir / CONFIG_FILE

    @property
    def index_path(self) -> Path:
        return self.storage_dir / INDEX_FILE

    @property
    def objects_dir(self) -> Path:
        return self.storage_dir / OBJECTS_DIR

    @property
    def config(self) -> RepoConfig:
        """Get the repository configuration (memoized)."""
        if self._config is None:
            self._config = load_repo_config(self.config_path)
        return self._config

    @property
    def object_store(self) -> ObjectStore:
        return ObjectStore(self.objects_dir)

    @property
    def index(self) -> StagingIndex:
        """Get the staging index (memoized, so its lock is shared by callers)."""
        if self._index is None:
            self._index = StagingIndex(
                self.index_path,
                self.storage_dir / INDEX_LOCK_FILE,
                lock_timeout=self.config.index.lock_timeout,
            )
        return self._index

    def get_ignore_spec(self) -> IgnoreSpec:
        """Get the ignore specification (memoized)."""
        if self._ignore_spec is None:
            self._ignore_spec = IgnoreSpec(self.root)
        return self._ignore_spec

    def should_ignore(self, relpath: Union[str, Path]) -> bool:
        """Check if a repository-relative path should be ignored."""
        if isinstance(relpath, Path):
            relpath = relpath.as_posix()
        return self.get_ignore_spec().is_ignored(relpath)

    def current_branch(self) -> str:
        """Read the branch name from the HEAD symbolic reference.

        Raises:
            StorageError: If HEAD can't be read
            InvalidMetadataError: If HEAD lacks the ``ref: `` prefix
        """
        try:
            content = self.head_path.read_text(encoding="utf-8").strip()
        except OSError as e:
            raise StorageError.wrap("read", self.head_path, e) from e

        if not content.startswith(REF_PREFIX):
            raise InvalidMetadataError(
                f"HEAD at {self.head_path} is not a symbolic reference "
                f"(expected '{REF_PREFIX}<ref>', got {content!r})"
            )
        ref = content[len(REF_PREFIX):].strip()
        if ref.startswith(HEADS_PREFIX):
            return ref[len(HEADS_PREFIX):]
        return ref
