"""Working tree walk and snapshot with address computation."""

import logging
import os
from pathlib import Path
from typing import Callable, Dict, Iterator, Optional, Tuple

from pydantic import BaseModel, Field

from .constants import BLOBTRACK_DIR
from .errors import StorageError
from .hashing import hash_file

logger = logging.getLogger(__name__)

IgnorePredicate = Callable[[str], bool]
WalkErrorHandler = Callable[[OSError], None]


def never_ignored(relpath: str) -> bool:
    return False


def _raise_walk_error(err: OSError) -> None:
    raise StorageError.wrap("list directory", err.filename, err) from err


def walk_files(
    root: Path,
    is_ignored: IgnorePredicate = never_ignored,
    metadata_dir: str = BLOBTRACK_DIR,
    on_error: Optional[WalkErrorHandler] = None,
) -> Iterator[Tuple[str, Path]]:
    """Yield ``(relpath, abspath)`` for every tracked-candidate file under root.

    The metadata directory is pruned at the top level and never descended
    into. Ignored directories are pruned too, and ignored files skipped.
    Only regular files (or links to them) are yielded; directory links are
    not followed. Entries come out in sorted order, directory by directory.

    A directory that can't be listed raises ``StorageError`` unless
    ``on_error`` is given, in which case it is called with the ``OSError``
    and the walk carries on without that directory.

    Raises:
        StorageError: If a directory can't be listed and no handler is given
    """
    if on_error is None:
        on_error = _raise_walk_error

    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
        reldir = Path(dirpath).relative_to(root).as_posix()
        prefix = "" if reldir == "." else reldir + "/"

        kept = []
        for name in sorted(dirnames):
            relpath = prefix + name
            if relpath == metadata_dir:
                continue
            if is_ignored(relpath):
                logger.debug("Pruned ignored directory %s", relpath)
                continue
            kept.append(name)
        dirnames[:] = kept

        for name in sorted(filenames):
            relpath = prefix + name
            if is_ignored(relpath):
                continue
            abspath = Path(dirpath) / name
            if not abspath.is_file():
                logger.debug("Skipping non-regular file %s", relpath)
                continue
            yield relpath, abspath


class WorkingTreeSnapshot(BaseModel):
    """
    Current address of every non-ignored file in the working tree.

    This is the expensive operation - hashes every file. Never persisted.
    """

    files: Dict[str, str] = Field(default_factory=dict)  # path -> address

    @classmethod
    def scan(
        cls,
        root: Path,
        is_ignored: IgnorePredicate = never_ignored,
        metadata_dir: str = BLOBTRACK_DIR,
    ) -> "WorkingTreeSnapshot":
        """Walk the working tree and hash each surviving file.

        Raises:
            StorageError: If a file can't be read while hashing
        """
        files = {}
        for relpath, abspath in walk_files(root, is_ignored, metadata_dir):
            try:
                files[relpath] = hash_file(abspath)
            except OSError as e:
                raise StorageError.wrap("read", abspath, e) from e
        return cls(files=files)
