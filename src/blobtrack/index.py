"""Staging index: an append-only log of path -> address records.

Each line of ``.blobtrack/index`` is ``<address> <path>``. Adding a path
again appends a new line rather than rewriting the old one, so reading the
index replays the log into a dict and the last record for a path wins.
``compact()`` rewrites the log down to one line per path.

Mutations hold an exclusive lock on ``.blobtrack/index.lock`` so concurrent
processes can't interleave partial writes.
"""

from __future__ import annotations
import contextlib
import logging
import re
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import portalocker

from .core import IndexEntry
from .errors import LockTimeoutError, StorageError
from .utils import atomic_write_text

logger = logging.getLogger(__name__)

_ADDRESS = re.compile(r"^[0-9a-f]{64}$")

DEFAULT_LOCK_TIMEOUT = 10.0


def parse_line(line: str) -> Optional[IndexEntry]:
    """Parse one index line, returning None for malformed records.

    The address is the first whitespace-delimited field; everything after
    the following whitespace run is the path, so paths may contain spaces.
    """
    fields = line.rstrip("\r\n").split(None, 1)
    if len(fields) != 2:
        return None
    address, path = fields
    if not _ADDRESS.fullmatch(address):
        return None
    return IndexEntry(path=path, address=address)


def _replay(entries: List[IndexEntry]) -> Dict[str, str]:
    staged: Dict[str, str] = {}
    for entry in entries:
        staged[entry.path] = entry.address
    return staged


class StagingIndex:
    """Line-based staging index with last-write-wins read-back."""

    def __init__(self, index_path: Path, lock_path: Path, lock_timeout: float = DEFAULT_LOCK_TIMEOUT):
        self.index_path = Path(index_path)
        self.lock_path = Path(lock_path)
        self.lock_timeout = lock_timeout
        self._lock_depth = 0

    @contextlib.contextmanager
    def locked(self) -> Iterator[None]:
        """Hold the exclusive index lock for the duration of the block.

        Re-entrant within one instance, so a bulk add can hold the lock
        across many appends.

        Raises:
            LockTimeoutError: If the lock isn't acquired within ``lock_timeout``
        """
        if self._lock_depth:
            self._lock_depth += 1
            try:
                yield
            finally:
                self._lock_depth -= 1
            return

        try:
            lock = portalocker.Lock(str(self.lock_path), "a", timeout=self.lock_timeout)
            lock.acquire()
        except portalocker.exceptions.LockException as e:
            raise LockTimeoutError(self.lock_path, self.lock_timeout) from e
        except OSError as e:
            raise StorageError.wrap("lock", self.lock_path, e) from e

        logger.debug("Acquired index lock %s", self.lock_path)
        self._lock_depth = 1
        try:
            yield
        finally:
            self._lock_depth = 0
            lock.release()
            logger.debug("Released index lock %s", self.lock_path)

    def entries(self) -> List[IndexEntry]:
        """Read the raw log in file order, duplicates included.

        A missing index file is an empty log.

        Raises:
            StorageError: If the index exists but can't be read
        """
        if not self.index_path.exists():
            return []

        entries = []
        try:
            with self.index_path.open("r", encoding="utf-8", errors="surrogateescape") as f:
                for lineno, line in enumerate(f, start=1):
                    entry = parse_line(line)
                    if entry is None:
                        if line.strip():
                            logger.debug("Skipping malformed index line %d: %r", lineno, line)
                        continue
                    entries.append(entry)
        except OSError as e:
            raise StorageError.wrap("read index", self.index_path, e) from e
        return entries

    def load(self) -> Dict[str, str]:
        """Replay the log into a path -> address mapping (last write wins)."""
        return _replay(self.entries())

    def append(self, path: str, address: str) -> IndexEntry:
        """Append one record, creating the index if needed.

        Earlier records for the same path are left in place; ``load()``
        resolves them.

        Raises:
            ValueError: If the path can't be represented on one index line
            StorageError: If the index can't be written
        """
        if not path or "\n" in path or "\r" in path:
            raise ValueError(f"Path can't be stored in the index: {path!r}")
        if path != path.lstrip():
            raise ValueError(f"Path with leading whitespace can't be stored in the index: {path!r}")

        entry = IndexEntry(path=path, address=address)
        with self.locked():
            try:
                with self.index_path.open("a", encoding="utf-8", errors="surrogateescape", newline="\n") as f:
                    f.write(entry.to_line() + "\n")
            except OSError as e:
                raise StorageError.wrap("write index", self.index_path, e) from e
        logger.debug("Staged %s -> %s", path, address[:12])
        return entry

    def compact(self) -> int:
        """Rewrite the log to a single record per path.

        Paths keep the position of their first appearance; the address is
        the last one recorded.

        Returns:
            Number of superseded records dropped
        """
        with self.locked():
            entries = self.entries()
            staged = _replay(entries)
            dropped = len(entries) - len(staged)
            if dropped == 0 and self.index_path.exists():
                return 0
            text = "".join(
                IndexEntry(path=path, address=address).to_line() + "\n"
                for path, address in staged.items()
            )
            try:
                atomic_write_text(self.index_path, text)
            except OSError as e:
                raise StorageError.wrap("rewrite index", self.index_path, e) from e
        logger.debug("Compacted index, dropped %d superseded records", dropped)
        return dropped
