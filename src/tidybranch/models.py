"""
Data models for the branch hygiene and rebase tool.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, FrozenSet, List, Optional, Tuple

# Receives human-readable progress messages; its return value is ignored.
ProgressCallback = Callable[[str], None]


class BranchType(Enum):
    """Kind of branch reference."""

    LOCAL = "local"
    REMOTE = "remote"


class ConflictStrategy(Enum):
    """Side to keep when blanket-resolving conflicts (passed verbatim to git)."""

    OURS = "ours"
    THEIRS = "theirs"


@dataclass(frozen=True)
class Divergence:
    """Commits ahead of / behind a comparison base."""

    ahead: int = 0
    behind: int = 0


@dataclass(frozen=True)
class BranchRecord:
    """One discovered branch with commit metadata.

    ``remote`` is set if and only if ``type`` is ``BranchType.REMOTE``.
    """

    ref: str
    name: str
    type: BranchType
    remote: Optional[str] = None
    last_commit_date: Optional[datetime] = None
    last_commit_sha: Optional[str] = None
    last_commit_subject: Optional[str] = None
    is_merged: bool = False
    ahead: int = 0
    behind: int = 0

    def __post_init__(self) -> None:
        if (self.type is BranchType.REMOTE) != (self.remote is not None):
            raise ValueError(
                f"Branch {self.ref!r}: remote must be set exactly for remote branches"
            )
        if self.ahead < 0 or self.behind < 0:
            raise ValueError(f"Branch {self.ref!r}: ahead/behind must be non-negative")

    @property
    def is_local(self) -> bool:
        return self.type is BranchType.LOCAL

    @property
    def sort_key(self) -> Tuple[int, float]:
        """Local before remote, then newest commit first (missing dates last)."""
        timestamp = self.last_commit_date.timestamp() if self.last_commit_date else 0.0
        return (0 if self.is_local else 1, -timestamp)


@dataclass(frozen=True)
class MergedSet:
    """Refs considered merged into the merge target, partitioned by type."""

    local: FrozenSet[str] = frozenset()
    remote: FrozenSet[str] = frozenset()

    def contains(self, record: BranchRecord) -> bool:
        refs = self.local if record.is_local else self.remote
        return record.ref in refs


class SessionState(Enum):
    """States of a cherry-pick rebase session."""

    IDLE = "idle"
    TEMP_BRANCH_CREATED = "temp_branch_created"
    REPLAYING = "replaying"
    CONTINUING = "continuing"
    RESOLVING = "resolving"
    FINALIZED = "finalized"
    ABORTED = "aborted"


@dataclass
class RebaseSession:
    """Transient state spanning one cherry-pick rebase invocation."""

    current_branch: str
    target_branch: str
    temp_branch: Optional[str] = None
    commit_queue: Tuple[str, ...] = ()
    cursor: int = 0
    backup_tag: Optional[str] = None
    state: SessionState = SessionState.IDLE
    skipped: List[str] = field(default_factory=list)
    _queue_loaded: bool = field(default=False, init=False, repr=False)

    def load_queue(self, commits: List[str]) -> None:
        """Set the replay queue. The queue is computed once and never re-ordered."""
        if self._queue_loaded:
            raise RebaseError("Commit queue has already been computed for this session")
        self.commit_queue = tuple(commits)
        self.cursor = 0
        self._queue_loaded = True

    @property
    def current_commit(self) -> Optional[str]:
        if self.cursor < len(self.commit_queue):
            return self.commit_queue[self.cursor]
        return None

    @property
    def remaining(self) -> int:
        return len(self.commit_queue) - self.cursor

    def advance(self) -> None:
        if self.cursor >= len(self.commit_queue):
            raise RebaseError("Cannot advance past the end of the commit queue")
        self.cursor += 1


@dataclass
class BackupEntry:
    """Structured representation of a backup tag."""

    tag: str
    branch_slug: str
    timestamp: str
    branch: Optional[str] = None


@dataclass
class PruneResult:
    """Outcome of a branch deletion pass."""

    deleted: List[BranchRecord] = field(default_factory=list)
    failed: List[Tuple[BranchRecord, str]] = field(default_factory=list)


class TidyBranchError(Exception):
    """Base exception for the tool."""

    pass


class GitRepositoryError(TidyBranchError):
    """Exception raised for Git repository related errors."""

    def __init__(self, message: str, stderr: str = "") -> None:
        super().__init__(message)
        self.stderr = stderr


class InvalidReference(TidyBranchError, ValueError):
    """A branch name failed validation; no git command was run."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Invalid branch name: {name!r}")
        self.name = name


class TargetNotFound(TidyBranchError):
    """The target branch does not exist locally or on the remote."""

    def __init__(self, branch: str) -> None:
        super().__init__(f"Target branch '{branch}' does not exist")
        self.branch = branch


class BackupFailed(TidyBranchError):
    """Creating the backup tag failed; the branch was left untouched."""

    pass


class RebaseError(TidyBranchError):
    """Base exception for rebase operations."""

    pass


class RebaseFailed(RebaseError):
    """The rebase failed and an abort was attempted."""

    pass


class RebaseContinueFailed(RebaseError):
    """Auto-resolving and continuing the rebase failed; an abort was attempted."""

    pass


class RebaseAborted(RebaseError):
    """The user aborted the rebase at a conflict."""

    pass
