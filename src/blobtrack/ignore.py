"""Ignore pattern matching for blobtrack.

Patterns come from ``.blobtrackignore`` at the repository root, one per line:

- blank lines and lines starting with ``#`` are skipped
- a trailing ``/`` marks a directory prefix: ``build/`` matches ``build``
  itself and anything below it
- anything else is a glob matched against the base name only, so ``*.log``
  matches ``debug.log`` and ``logs/debug.log`` alike
"""

import fnmatch
import posixpath
from pathlib import Path
from typing import Callable, Iterable, List, Sequence

from .constants import IGNORE_FILE
from .errors import PatternError, StorageError


def validate_pattern(pattern: str) -> None:
    """Reject globs with an unterminated character class or a trailing escape.

    Raises:
        PatternError: If the pattern is not a valid glob
    """
    if pattern.endswith("/"):
        return
    if pattern.endswith("\\"):
        raise PatternError(pattern, "trailing escape character")
    i, n = 0, len(pattern)
    while i < n:
        if pattern[i] == "[":
            j = i + 1
            if j < n and pattern[j] in "!^":
                j += 1
            # A leading ']' is a literal member of the class
            if j < n and pattern[j] == "]":
                j += 1
            close = pattern.find("]", j)
            if close == -1:
                raise PatternError(pattern, "unterminated character class")
            i = close + 1
        else:
            i += 1


def parse_patterns(lines: Iterable[str]) -> List[str]:
    """Extract patterns from ignore-file lines, validating each one."""
    patterns = []
    for line in lines:
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        validate_pattern(line)
        patterns.append(line)
    return patterns


def is_ignored(relpath: str, patterns: Sequence[str]) -> bool:
    """Check a repository-relative POSIX path against ``patterns``.

    First match wins.

    Raises:
        PatternError: If a glob pattern is invalid
    """
    name = posixpath.basename(relpath.rstrip("/"))
    for pattern in patterns:
        if pattern.endswith("/"):
            prefix = pattern.rstrip("/")
            if relpath == prefix or relpath.startswith(prefix + "/"):
                return True
            continue
        validate_pattern(pattern)
        if fnmatch.fnmatchcase(name, pattern):
            return True
    return False


def is_hidden(relpath: str, predicate: Callable[[str], bool]) -> bool:
    """Check whether ``relpath`` or any directory above it is ignored.

    The working-tree walk prunes ignored directories, so a file below one is
    never seen even if its own name matches nothing.
    """
    parts = relpath.split("/")
    return any(predicate("/".join(parts[:i])) for i in range(1, len(parts) + 1))


class IgnoreSpec:
    """Ignore patterns loaded for one repository."""

    def __init__(self, root: Path):
        """Load patterns from the repository's ignore file.

        A missing ignore file means nothing is ignored.

        Args:
            root: Repository root directory

        Raises:
            PatternError: If any pattern is invalid
            StorageError: If the ignore file exists but can't be read
        """
        self.root = root
        ignore_file = root / IGNORE_FILE

        lines: List[str] = []
        if ignore_file.exists():
            try:
                lines = ignore_file.read_text(encoding="utf-8").splitlines()
            except OSError as e:
                raise StorageError.wrap("read ignore file", ignore_file, e) from e

        self.patterns = parse_patterns(lines)

    def is_ignored(self, relpath: str) -> bool:
        """Check if a repository-relative POSIX path should be ignored."""
        return is_ignored(relpath, self.patterns)
