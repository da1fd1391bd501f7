"""Core operations for blobtrack.

These orchestrate the object store, the staging index and the diff engine.
They raise TrackerError subclasses and never print; presentation is the
CLI's job.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, Optional, Union

from .constants import BLOBTRACK_DIR
from .context import RepositoryContext
from .core import AddFailure, AddResult, StatusResult
from .diffing import compute_status
from .errors import (
    NotFoundError,
    StorageError,
    TargetIsDirectoryError,
)
from .hashing import hash_file
from .ignore import is_hidden
from .snapshot import walk_files

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


# ============= Repository =============

def init_repository(path: Optional[PathLike] = None, branch: Optional[str] = None) -> RepositoryContext:
    """Create a new repository at ``path`` (default: current directory).

    Raises:
        StorageError: If the directory can't be created
        AlreadyInitializedError: If ``.blobtrack`` already exists
    """
    target = Path(path) if path is not None else Path.cwd()
    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageError.wrap("create", target, e) from e
    return RepositoryContext.init(target, branch=branch)


# ============= Add Operation =============

def _stage(ctx: RepositoryContext, relpath: str, abspath: Path) -> AddResult:
    """Store one file's content and append its index record."""
    address = ctx.object_store.put_file(abspath)
    entry = ctx.index.append(relpath, address)
    return AddResult(added=[entry])


def add_path(ctx: RepositoryContext, target: PathLike) -> AddResult:
    """Stage a single regular file.

    Ignored files, files under an ignored directory and anything inside the
    metadata directory are skipped silently and reported in
    ``skipped_ignored``.

    Raises:
        PathOutsideRepositoryError: If the target is outside the repository
        NotFoundError: If the target does not exist
        TargetIsDirectoryError: If the target is a directory
        StorageError: If the file can't be read or stored
    """
    relpath = ctx.to_repo_relative(target)
    abspath = ctx.absolute(relpath)

    if not abspath.exists():
        raise NotFoundError(target)
    if abspath.is_dir():
        raise TargetIsDirectoryError(target)
    if not abspath.is_file():
        raise StorageError(f"'{target}' is not a regular file", path=abspath)

    in_metadata = relpath == BLOBTRACK_DIR or relpath.startswith(BLOBTRACK_DIR + "/")
    if in_metadata or is_hidden(relpath, ctx.should_ignore):
        logger.debug("Skipping ignored path %s", relpath)
        return AddResult(skipped_ignored=[relpath])

    return _stage(ctx, relpath, abspath)


def add_all(ctx: RepositoryContext, fail_fast: Optional[bool] = None) -> AddResult:
    """Stage every non-ignored file under the repository root.

    Walks exactly like status does. With ``fail_fast`` (the default, from
    ``add.fail_fast`` in the repository config) the first file that can't be
    staged aborts the walk and the error propagates; files staged before it
    stay staged. Without it, failures (including directories that can't be
    listed) are collected in ``failed`` and the walk carries on.

    Raises:
        StorageError: On the first per-file failure when failing fast
    """
    if fail_fast is None:
        fail_fast = ctx.config.add.fail_fast

    result = AddResult()

    def skip_unreadable(err: OSError) -> None:
        relpath = Path(err.filename).relative_to(ctx.root).as_posix()
        error = StorageError.wrap("list directory", err.filename, err)
        logger.warning("Could not stage %s: %s", relpath, error)
        result.failed.append(AddFailure(path=relpath, error=str(error)))

    index = ctx.index
    with index.locked():
        for relpath, abspath in walk_files(
            ctx.root, ctx.should_ignore, on_error=None if fail_fast else skip_unreadable
        ):
            try:
                address = ctx.object_store.put_file(abspath)
                result.added.append(index.append(relpath, address))
            except (StorageError, ValueError) as e:
                if fail_fast:
                    raise
                logger.warning("Could not stage %s: %s", relpath, e)
                result.failed.append(AddFailure(path=relpath, error=str(e)))

    logger.info("Staged %d files", len(result.added))
    return result


def add(
    ctx: RepositoryContext,
    targets: Iterable[PathLike],
    fail_fast: Optional[bool] = None,
) -> AddResult:
    """Stage each target; the repository root (e.g. ``.`` at the root) means every file."""
    result = AddResult()
    with ctx.index.locked():
        for target in targets:
            if ctx.to_repo_relative(target) == ".":
                result.merge(add_all(ctx, fail_fast=fail_fast))
            else:
                result.merge(add_path(ctx, target))
    return result


# ============= Status =============

def status(ctx: RepositoryContext) -> StatusResult:
    """Classify the working tree against the staging index.

    Raises:
        InvalidMetadataError: If HEAD is not a symbolic reference
        PatternError: If the ignore file holds an invalid pattern
        StorageError: If the index or a working-tree file can't be read
    """
    branch = ctx.current_branch()
    staged = ctx.index.load()
    result = compute_status(ctx.root, staged, ctx.should_ignore)
    result.branch = branch
    return result


# ============= Index Maintenance =============

def list_staged(ctx: RepositoryContext) -> Dict[str, str]:
    """Return the staged path -> address mapping."""
    return ctx.index.load()


def compact_index(ctx: RepositoryContext) -> int:
    """Drop superseded index records; returns how many were dropped."""
    dropped = ctx.index.compact()
    logger.info("Compacted index (%d superseded records dropped)", dropped)
    return dropped


# ============= Objects =============

def hash_object(path: PathLike, ctx: Optional[RepositoryContext] = None) -> str:
    """Compute a file's content address, storing it when ``ctx`` is given.

    Raises:
        NotFoundError: If the file does not exist
        TargetIsDirectoryError: If the path is a directory
        StorageError: If the file can't be read or stored
    """
    p = Path(path)
    if not p.exists():
        raise NotFoundError(path)
    if p.is_dir():
        raise TargetIsDirectoryError(path)

    if ctx is not None:
        return ctx.object_store.put_file(p)

    try:
        return hash_file(p)
    except OSError as e:
        raise StorageError.wrap("read", p, e) from e


def cat_object(ctx: RepositoryContext, address: str) -> bytes:
    """Return the payload stored under ``address``.

    Raises:
        ValueError: If the address is malformed
        ObjectNotFoundError: If no such object is stored
    """
    return ctx.object_store.get(address)
