"""
tidybranch - inspect, prune and safely rebase Git branches.

This package lists local and remote branches with merge status and divergence,
deletes stale ones, and rebases the current branch either with a single
`git rebase` or by replaying its commits one cherry-pick at a time.
"""

__version__ = "0.1.0"

from .models import (
    BranchRecord,
    BranchType,
    ConflictStrategy,
    Divergence,
    RebaseSession,
    SessionState,
    TidyBranchError,
    GitRepositoryError,
    InvalidReference,
    TargetNotFound,
    BackupFailed,
    RebaseError,
    RebaseFailed,
    RebaseContinueFailed,
    RebaseAborted,
)
from .config import Settings
from .git_manager import GitManager
from .branch_analyzer import BranchAnalyzer
from .branch_pruner import BranchPruner
from .backup_manager import BackupManager
from .rebase_orchestrator import CherryPickOrchestrator
from .linear_rebase import LinearRebaseOrchestrator
from .validation import is_valid_branch_name

__all__ = [
    "BranchRecord",
    "BranchType",
    "ConflictStrategy",
    "Divergence",
    "RebaseSession",
    "SessionState",
    "TidyBranchError",
    "GitRepositoryError",
    "InvalidReference",
    "TargetNotFound",
    "BackupFailed",
    "RebaseError",
    "RebaseFailed",
    "RebaseContinueFailed",
    "RebaseAborted",
    "Settings",
    "GitManager",
    "BranchAnalyzer",
    "BranchPruner",
    "BackupManager",
    "CherryPickOrchestrator",
    "LinearRebaseOrchestrator",
    "is_valid_branch_name",
]
