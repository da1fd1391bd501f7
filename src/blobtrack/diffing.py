"""Status computation - classifies working-tree files against the staging index."""

from pathlib import Path
from typing import Mapping, Optional

from .constants import BLOBTRACK_DIR
from .core import StatusResult
from .ignore import is_hidden
from .snapshot import IgnorePredicate, WorkingTreeSnapshot, never_ignored


def classify(
    snapshot: Mapping[str, str],
    index: Mapping[str, str],
    is_ignored: Optional[IgnorePredicate] = None,
) -> StatusResult:
    """
    Classify every path seen in the working tree or the index.

    Args:
        snapshot: Current path -> address for non-ignored working-tree files.
        index: Staged path -> address (last write wins already applied).
        is_ignored: Predicate used to keep ignored index paths out of
            ``deleted``; the walk never reports them, so without it a staged
            path that is now ignored would look deleted.

    Returns:
        StatusResult with sorted ``modified``, ``deleted`` and ``untracked``
        sequences, and ``staged`` set to every index key.

    Note:
        ``staged`` is the full index regardless of drift: a staged path whose
        content changed appears in both ``staged`` and ``modified``.
    """
    modified = []
    untracked = []

    for path, address in snapshot.items():
        staged_address = index.get(path)
        if staged_address is None:
            untracked.append(path)
        elif staged_address != address:
            modified.append(path)

    deleted = [
        path for path in index
        if path not in snapshot and not (is_ignored and is_hidden(path, is_ignored))
    ]

    return StatusResult(
        staged=set(index),
        modified=sorted(modified),
        deleted=sorted(deleted),
        untracked=sorted(untracked),
    )


def compute_status(
    root: Path,
    index: Mapping[str, str],
    is_ignored: IgnorePredicate = never_ignored,
    metadata_dir: str = BLOBTRACK_DIR,
) -> StatusResult:
    """
    Walk the working tree under ``root`` and classify it against ``index``.

    Raises:
        StorageError: If a working-tree file can't be read
    """
    snapshot = WorkingTreeSnapshot.scan(root, is_ignored, metadata_dir)
    return classify(snapshot.files, index, is_ignored)
