"""Core data models for blobtrack.

These are the values that flow between the index, the diff engine and the
frontend. They carry no I/O of their own.
"""

from typing import List, Optional, Set

from pydantic import BaseModel, Field


# ============= Index =============

class IndexEntry(BaseModel):
    """One staging record: a repository-relative POSIX path and its address."""

    path: str
    address: str

    def to_line(self) -> str:
        """Serialize as an index log line (without newline)."""
        return f"{self.address} {self.path}"


# ============= Change Detection =============

class StatusResult(BaseModel):
    """Result of comparing the working tree against the staging index.

    ``staged`` is always the full index key set: with no commit step, every
    staged path is pending. A staged path whose content has since drifted
    also appears in ``modified``.
    """

    staged: Set[str] = Field(default_factory=set)
    modified: List[str] = Field(default_factory=list)
    deleted: List[str] = Field(default_factory=list)
    untracked: List[str] = Field(default_factory=list)
    branch: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        """True when there is nothing staged and nothing pending."""
        return not (self.staged or self.modified or self.deleted or self.untracked)

    @property
    def has_unstaged_changes(self) -> bool:
        """True when the working tree has drifted from the index."""
        return bool(self.modified or self.deleted)


# ============= Add =============

class AddFailure(BaseModel):
    """A file that could not be staged during a best-effort bulk add."""

    path: str
    error: str


class AddResult(BaseModel):
    """Outcome of an add operation."""

    added: List[IndexEntry] = Field(default_factory=list)
    skipped_ignored: List[str] = Field(default_factory=list)
    failed: List[AddFailure] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when no file failed."""
        return not self.failed

    def merge(self, other: "AddResult") -> None:
        """Fold another result into this one, keeping order."""
        self.added.extend(other.added)
        self.skipped_ignored.extend(other.skipped_ignored)
        self.failed.extend(other.failed)
