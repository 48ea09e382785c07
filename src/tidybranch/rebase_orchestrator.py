"""
Cherry-pick based rebase: replay a branch's own commits onto a target on a
temporary branch, then move the original branch to the result.
"""

from __future__ import annotations

import logging
import os
import uuid
from typing import List, Optional

from .backup_manager import BackupManager
from .config import Settings
from .conflict_prompt_interface import ConflictAction, ConflictPrompt, NoOpConflictPrompt
from .conflict_resolver import ConflictResolver
from .git_manager import GitManager
from .models import (
    BackupFailed,
    ConflictStrategy,
    GitRepositoryError,
    InvalidReference,
    ProgressCallback,
    RebaseAborted,
    RebaseError,
    RebaseFailed,
    RebaseSession,
    SessionState,
    TargetNotFound,
)
from .validation import ensure_valid_branch_name


logger = logging.getLogger(__name__)

TEMP_BRANCH_PREFIX = "tidybranch-temp"

_NON_INTERACTIVE_ENV = {"GIT_EDITOR": "true"}


def _ignore_progress(message: str) -> None:
    pass


class CherryPickOrchestrator:
    """Replays commits onto a target branch one cherry-pick at a time."""

    def __init__(
        self,
        git_manager: GitManager,
        conflict_prompt: Optional[ConflictPrompt] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.gm = git_manager
        self.settings = settings or Settings()
        self.conflict_prompt = conflict_prompt or NoOpConflictPrompt()
        self.conflict_resolver = ConflictResolver(git_manager)
        self.backup_manager = BackupManager(git_manager)

    # --- Primitives ---
    def _new_temp_branch_name(self) -> str:
        while True:
            name = f"{TEMP_BRANCH_PREFIX}-{os.getpid()}-{uuid.uuid4().hex[:8]}"
            if not self.gm.ref_exists(f"refs/heads/{name}"):
                return name
            logger.debug(f"Temporary branch name {name} already taken, retrying")

    def setup_cherry_pick(self, target_branch: str) -> str:
        """Create and check out a temporary branch at the target.

        Returns:
            Name of the temporary branch
        """
        ensure_valid_branch_name(target_branch)
        start_point = self.gm.resolve_branch_ref(target_branch, self.settings.remote)
        temp_branch = self._new_temp_branch_name()
        self.gm.checkout_new_branch(temp_branch, start_point)
        logger.info(f"Set up {temp_branch} at {start_point}")
        return temp_branch

    def get_merge_base(self, branch_a: str, branch_b: str) -> str:
        ensure_valid_branch_name(branch_a)
        ensure_valid_branch_name(branch_b)
        resolved = self.gm.resolve_branch_ref(branch_a, self.settings.remote)
        return self.gm.run("merge-base", resolved, branch_b).strip()

    def get_commits_to_cherry_pick(self, from_ref: str, to_ref: str) -> List[str]:
        """Non-merge commits reachable from ``to_ref`` but not ``from_ref``, oldest first."""
        output = self.gm.run("rev-list", "--reverse", "--no-merges", f"{from_ref}..{to_ref}")
        return [line.strip() for line in output.splitlines() if line.strip()]

    def cherry_pick(self, commit_sha: str, allow_empty: bool = False) -> None:
        args = ["cherry-pick"]
        if allow_empty:
            args += ["--allow-empty", "--keep-redundant-commits"]
        self.gm.run(*args, commit_sha)
        logger.debug(f"Cherry-picked {commit_sha[:8]}")

    def continue_cherry_pick(self) -> None:
        self.gm.run("cherry-pick", "--continue", env=_NON_INTERACTIVE_ENV)

    def skip_cherry_pick(self) -> None:
        self.gm.run("cherry-pick", "--skip")

    def abort_cherry_pick(self) -> None:
        try:
            self.gm.run("cherry-pick", "--abort")
            logger.info("Cherry-pick aborted")
        except Exception as e:
            logger.warning(f"Failed to abort cherry-pick: {e}")

    def resolve_conflict_with_strategy(self, strategy: ConflictStrategy) -> None:
        self.conflict_resolver.resolve_with_strategy(strategy)

    def finish_cherry_pick(
        self, current_branch: str, temp_branch: str, create_backup: bool = False
    ) -> Optional[str]:
        """Move ``current_branch`` to the tip of ``temp_branch``.

        When ``create_backup`` is set, the old tip is tagged first; if tagging
        fails, BackupFailed is raised and the branch is not reset.

        Returns:
            The backup tag name, or None when no backup was requested
        """
        self.gm.checkout_branch(current_branch)

        backup_tag = None
        if create_backup:
            try:
                backup_tag = self.backup_manager.create_backup_tag(current_branch)
            except Exception as e:
                logger.error(f"Backup of {current_branch} failed: {e}")
                raise BackupFailed(f"Could not create backup tag for {current_branch}: {e}") from e

        self.gm.run("reset", "--hard", temp_branch)
        logger.info(f"Reset {current_branch} to {temp_branch}")
        return backup_tag

    def cleanup_cherry_pick(self, temp_branch: str, original_branch: str) -> None:
        """Return to the original branch and delete the temporary one."""
        try:
            if self.gm.get_current_branch() == temp_branch:
                self.gm.checkout_branch(original_branch)
        except Exception as e:
            logger.warning(f"Could not check out {original_branch} during cleanup: {e}")
        try:
            self.gm.run("branch", "-D", temp_branch)
            logger.debug(f"Deleted temporary branch {temp_branch}")
        except Exception as e:
            logger.warning(f"Could not delete temporary branch {temp_branch}: {e}")

    # --- Session ---
    def rebase(
        self,
        current_branch: str,
        target_branch: str,
        progress: Optional[ProgressCallback] = None,
        *,
        create_backup: bool = False,
        allow_empty: bool = False,
        conflict_strategy: Optional[ConflictStrategy] = None,
    ) -> RebaseSession:
        """
        Replay the commits of ``current_branch`` onto ``target_branch``.

        Args:
            current_branch: The checked-out branch to rewrite
            target_branch: Branch to replay onto (its remote-tracking ref is preferred)
            progress: Optional callback receiving progress messages
            create_backup: Tag the old tip before resetting the branch
            allow_empty: Keep commits that become empty instead of skipping them
            conflict_strategy: Resolve every conflict with this side instead of prompting

        Returns:
            The finalized RebaseSession
        """
        notify = progress or _ignore_progress
        session = RebaseSession(current_branch=current_branch, target_branch=target_branch)
        logger.info(f"Starting cherry-pick rebase of {current_branch} onto {target_branch}")

        try:
            ensure_valid_branch_name(current_branch)
            ensure_valid_branch_name(target_branch)

            notify("Fetching remotes...")
            self.gm.fetch_all()
            if not self.gm.branch_exists(target_branch, self.settings.remote):
                raise TargetNotFound(target_branch)

            session.temp_branch = self.setup_cherry_pick(target_branch)
            session.state = SessionState.TEMP_BRANCH_CREATED

            merge_base = self.get_merge_base(target_branch, current_branch)
            session.load_queue(self.get_commits_to_cherry_pick(merge_base, current_branch))
            total = len(session.commit_queue)
            notify(f"Replaying {total} commit(s) onto {target_branch}")

            while session.current_commit is not None:
                sha = session.current_commit
                session.state = SessionState.REPLAYING
                notify(f"[{session.cursor + 1}/{total}] Cherry-picking {sha[:8]}")
                self._replay_commit(session, sha, allow_empty, conflict_strategy)
                session.advance()

            notify(f"Updating {current_branch}")
            session.backup_tag = self.finish_cherry_pick(
                current_branch, session.temp_branch, create_backup=create_backup
            )
            session.state = SessionState.FINALIZED
        except (RebaseError, BackupFailed, InvalidReference, TargetNotFound) as e:
            logger.error(f"Cherry-pick rebase failed: {e}")
            self._abort_session(session)
            raise
        except Exception as e:
            logger.error(f"Cherry-pick rebase failed: {e}")
            self._abort_session(session)
            raise RebaseFailed(
                f"Cherry-pick rebase of {current_branch} onto {target_branch} failed: {e}"
            ) from e

        self.cleanup_cherry_pick(session.temp_branch, current_branch)
        if session.skipped:
            notify(f"Skipped {len(session.skipped)} commit(s) that became empty or were skipped")
        notify(f"✅ Rebased {current_branch} onto {target_branch}")
        logger.info(
            f"Cherry-pick rebase finished: {total} commit(s), {len(session.skipped)} skipped"
        )
        return session

    def _abort_session(self, session: RebaseSession) -> None:
        if session.temp_branch is not None:
            if self.gm.is_cherry_pick_in_progress():
                self.abort_cherry_pick()
            self.cleanup_cherry_pick(session.temp_branch, session.current_branch)
        session.state = SessionState.ABORTED

    def _replay_commit(
        self,
        session: RebaseSession,
        sha: str,
        allow_empty: bool,
        conflict_strategy: Optional[ConflictStrategy],
    ) -> None:
        try:
            self.cherry_pick(sha, allow_empty=allow_empty)
            return
        except GitRepositoryError as e:
            logger.warning(f"Cherry-pick of {sha[:8]} stopped: {e}")
            failure = e

        while True:
            conflicts = self.conflict_resolver.get_conflict_files()
            if not conflicts:
                self._handle_empty_commit(session, sha, allow_empty, failure)
                return

            session.state = SessionState.RESOLVING
            action = self._choose_action(sha, conflicts, conflict_strategy)
            logger.info(f"Conflict in {sha[:8]} ({len(conflicts)} file(s)): {action.value}")

            if action is ConflictAction.ABORT:
                raise RebaseAborted(f"Rebase aborted at commit {sha[:8]}")
            if action is ConflictAction.SKIP:
                self.skip_cherry_pick()
                session.skipped.append(sha)
                return
            if action in (ConflictAction.OURS, ConflictAction.THEIRS):
                self.resolve_conflict_with_strategy(ConflictStrategy(action.value))
            else:
                resolved, messages = self.conflict_resolver.verify_conflicts_resolved()
                if not resolved:
                    self.conflict_prompt.show_messages(messages, style="red")
                    continue

            session.state = SessionState.CONTINUING
            try:
                self.continue_cherry_pick()
                return
            except GitRepositoryError as e:
                logger.warning(f"Continuing cherry-pick of {sha[:8]} failed: {e}")
                failure = e

    def _handle_empty_commit(
        self, session: RebaseSession, sha: str, allow_empty: bool, failure: Exception
    ) -> None:
        """Keep or skip a commit whose changes are already present on the target.

        A stopped cherry-pick that still has staged changes did not become
        empty (a rejecting hook, for example) and fails the session instead.
        """
        if not self.gm.is_cherry_pick_in_progress():
            raise RebaseFailed(f"Cherry-pick of {sha[:8]} failed: {failure}")
        if self.gm.has_staged_changes():
            raise RebaseFailed(f"Could not commit {sha[:8]}: {failure}")
        if allow_empty:
            self.gm.run("commit", "--allow-empty", "--no-edit", env=_NON_INTERACTIVE_ENV)
            logger.info(f"Kept empty commit {sha[:8]}")
        else:
            self.skip_cherry_pick()
            session.skipped.append(sha)
            logger.info(f"Skipped commit {sha[:8]} (no changes left)")

    def _choose_action(
        self, sha: str, conflicts: List[str], conflict_strategy: Optional[ConflictStrategy]
    ) -> ConflictAction:
        if conflict_strategy is not None:
            return ConflictAction(ConflictStrategy(conflict_strategy).value)
        try:
            subject = self.gm.get_commit_subject(sha)
        except GitRepositoryError:
            subject = ""
        return self.conflict_prompt.choose_conflict_action(sha, subject, conflicts)
