"""Filesystem helpers shared by the object store, index and config."""

import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


def fsync_dir(path: Path) -> None:
    """Flush a directory entry so a rename inside it survives a crash.

    Some platforms (Windows, a few network filesystems) can't do this; that
    is logged and otherwise ignored.
    """
    flags = os.O_RDONLY | getattr(os, "O_DIRECTORY", 0)
    try:
        fd = os.open(str(path), flags)
    except OSError:
        logger.debug("Directory fsync not supported for %s", path)
        return
    try:
        os.fsync(fd)
    except OSError:
        logger.debug("Directory fsync not supported for %s", path)
    finally:
        os.close(fd)


def atomic_write_text(path: Path, text: str) -> None:
    """Replace ``path`` with ``text`` so readers see the old or the new file, never half.

    Used for the config file and index compaction. The temp file lives next
    to the target so the rename stays on one filesystem.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        errors="surrogateescape",
        newline="\n",
        delete=False,
        dir=path.parent,
        prefix=f".{path.name}.tmp-",
    ) as f:
        tmp = Path(f.name)
        f.write(text)
        f.flush()
        os.fsync(f.fileno())

    try:
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
    fsync_dir(path.parent)
