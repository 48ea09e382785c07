"""
Deletion review: choose branches that are safe to delete and delete them.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from .git_manager import GitManager
from .models import BranchRecord, PruneResult, TidyBranchError
from .patterns import matches_any


logger = logging.getLogger(__name__)


class BranchPruner:
    """Selects and deletes stale local and remote branches."""

    def __init__(self, git_manager: GitManager) -> None:
        self.gm = git_manager

    def select_candidates(
        self,
        records: Iterable[BranchRecord],
        current_branch: Optional[str],
        base_branch: Optional[str],
        *,
        merged_only: bool = True,
        protected: Sequence[str] = (),
    ) -> List[BranchRecord]:
        """Filter an inventory down to deletable branches.

        The checked-out branch, the base branch and protected patterns are
        never candidates. With ``merged_only`` unmerged branches are kept.
        """
        base_name = base_branch.split("/", 1)[1] if base_branch and "/" in base_branch else base_branch
        candidates = []
        for record in records:
            if record.is_local and record.ref == current_branch:
                continue
            if record.ref == base_branch:
                continue
            if not record.is_local and record.name == base_name:
                continue
            if matches_any(record.ref, protected) or matches_any(record.name, protected):
                continue
            if merged_only and not record.is_merged:
                continue
            candidates.append(record)
        return candidates

    def delete(self, records: Iterable[BranchRecord], force: bool = False) -> PruneResult:
        """Delete each branch, collecting failures instead of stopping."""
        result = PruneResult()
        for record in records:
            try:
                if record.is_local:
                    self.gm.delete_local_branch(record.name, force=force)
                else:
                    self.gm.delete_remote_branch(record.remote, record.name)
                result.deleted.append(record)
            except TidyBranchError as e:
                logger.error(f"Failed to delete {record.ref}: {e}")
                result.failed.append((record, str(e)))
        return result
