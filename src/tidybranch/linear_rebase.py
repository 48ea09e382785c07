"""
Linear rebase of the current branch onto a target with `git rebase`.
"""

from __future__ import annotations

import logging
from typing import Optional

from .config import Settings
from .git_manager import GitManager
from .models import (
    ConflictStrategy,
    GitRepositoryError,
    ProgressCallback,
    RebaseContinueFailed,
    RebaseFailed,
    TargetNotFound,
)
from .validation import ensure_valid_branch_name


logger = logging.getLogger(__name__)


class LinearRebaseOrchestrator:
    """Runs a single `git rebase`, optionally auto-resolving conflicts."""

    def __init__(self, git_manager: GitManager, settings: Optional[Settings] = None) -> None:
        self.gm = git_manager
        self.settings = settings or Settings()

    def perform_linear_rebase(
        self,
        current_branch: str,
        target_branch: str,
        progress: Optional[ProgressCallback] = None,
        *,
        continue_on_conflict: bool = False,
        conflict_strategy: ConflictStrategy = ConflictStrategy.OURS,
    ) -> None:
        """
        Rebase ``current_branch`` onto ``target_branch``.

        Raises:
            TargetNotFound: target is missing after fetching; nothing was checked out
            RebaseFailed: the rebase failed and an abort was attempted
            RebaseContinueFailed: auto-resolution could not finish the rebase
        """
        ensure_valid_branch_name(target_branch)
        ensure_valid_branch_name(current_branch)
        strategy = ConflictStrategy(conflict_strategy)

        def notify(message: str) -> None:
            if progress:
                progress(message)

        try:
            notify("Fetching remotes...")
            self.gm.fetch_all()
            if not self.gm.branch_exists(target_branch, self.settings.remote):
                raise TargetNotFound(target_branch)

            notify(f"Checking out {current_branch}")
            self.gm.checkout_branch(current_branch)
            target_ref = self.gm.resolve_branch_ref(target_branch, self.settings.remote)
        except GitRepositoryError as e:
            # Auto-continue only applies once `git rebase` itself has started.
            logger.error(f"Preparing rebase of {current_branch} failed: {e}")
            self._abort_quietly()
            raise RebaseFailed(str(e)) from e

        args = ["rebase"]
        if continue_on_conflict:
            args += ["-X", strategy.value]
        args.append(target_ref)

        notify(f"Rebasing {current_branch} onto {target_ref}")
        logger.info(f"Linear rebase of {current_branch} onto {target_ref}")
        try:
            self.gm.run(*args)
        except GitRepositoryError as e:
            if not continue_on_conflict:
                logger.error(f"Rebase of {current_branch} onto {target_ref} failed: {e}")
                self._abort_quietly()
                raise RebaseFailed(str(e)) from e
            logger.warning(f"Rebase stopped, resolving with --{strategy.value}: {e}")
            notify(f"Conflicts detected, keeping '{strategy.value}' side and continuing")
            self._resolve_and_continue(strategy)

        notify(f"✅ Rebased {current_branch} onto {target_ref}")
        logger.info(f"Linear rebase of {current_branch} completed")

    def _resolve_and_continue(self, strategy: ConflictStrategy) -> None:
        try:
            self.gm.run("checkout", f"--{strategy.value}", ".")
            self.gm.run("add", ".")
            self.gm.run("rebase", "--continue", env={"GIT_EDITOR": "true"})
        except GitRepositoryError as e:
            logger.error(f"Automatic conflict resolution failed: {e}")
            self._abort_quietly()
            raise RebaseContinueFailed(
                f"Automatic conflict resolution failed; rebase aborted: {e}"
            ) from e

    def _abort_quietly(self) -> None:
        try:
            self.gm.abort_rebase()
        except Exception as e:
            logger.warning(f"Failed to abort rebase: {e}")
