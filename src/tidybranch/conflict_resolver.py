"""
Conflict inspection and coarse resolution during cherry-picks and rebases.
"""

from __future__ import annotations

import logging
from typing import List, Tuple

from .git_manager import GitManager
from .models import ConflictStrategy


logger = logging.getLogger(__name__)


class ConflictResolver:
    """Non-interactive conflict handling bound to one repository.

    Per-file interactive resolution is left to the UI layer, which can call
    ``resolve_with_strategy`` as one of its options.
    """

    def __init__(self, git_manager: GitManager) -> None:
        self.gm = git_manager

    def get_conflict_files(self) -> List[str]:
        return self.gm.get_conflict_files()

    def resolve_with_strategy(self, strategy: ConflictStrategy) -> None:
        """Accept one side for every conflicted path and stage the result."""
        strategy = ConflictStrategy(strategy)
        conflicted = self.get_conflict_files()
        self.gm.run("checkout", f"--{strategy.value}", ".")
        self.gm.run("add", ".")
        logger.info(f"Resolved {len(conflicted)} conflicted path(s) with --{strategy.value}")

    def verify_conflicts_resolved(self) -> Tuple[bool, List[str]]:
        """Verify that no unmerged paths remain.

        Returns:
            Tuple of (is_resolved, messages). Messages are user-facing guidance.
        """
        unresolved = self.get_conflict_files()
        if unresolved:
            return False, [f"❌ Still have unresolved conflicts in: {', '.join(unresolved)}"]
        return True, []
