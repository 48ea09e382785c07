"""
Git command execution and shared repository primitives.
"""

from __future__ import annotations

import logging
import os
import re
import uuid
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from git import Repo, InvalidGitRepositoryError, NoSuchPathError
from git.exc import GitCommandError

from .models import GitRepositoryError
from .validation import ensure_valid_branch_name


logger = logging.getLogger(__name__)

_HEAD_BRANCH_RE = re.compile(r"HEAD branch:\s*(.+)")


class GitManager:
    """Runs git commands against one explicitly bound repository."""

    def __init__(self, repo_path: Optional[Path] = None) -> None:
        """Initialize Git manager with optional repository path (defaults to cwd)."""
        self.repo_path = Path(repo_path or Path.cwd()).resolve()
        self._repo: Optional[Repo] = None

    @property
    def repo(self) -> Repo:
        """Get the Git repository instance."""
        if self._repo is None:
            self._repo = self._discover_repository()
        return self._repo

    @property
    def working_dir(self) -> Path:
        return Path(self.repo.working_dir)

    def _discover_repository(self) -> Repo:
        """Discover the Git repository from the bound path or any parent."""
        search_path = self.repo_path

        logger.debug(f"Discovering repository in: {search_path}")
        while True:
            try:
                repo = Repo(search_path)
                logger.info(f"Found Git repository at: {search_path}")
                return repo
            except (InvalidGitRepositoryError, NoSuchPathError):
                if search_path == search_path.parent:
                    break
                search_path = search_path.parent

        raise GitRepositoryError(
            f"No Git repository found at {self.repo_path} or any parent directory"
        )

    def run(self, *args: str, env: Optional[Dict[str, str]] = None) -> str:
        """Run ``git <args>`` in the repository and return its stdout.

        Raises GitRepositoryError when git exits non-zero.
        """
        command = ["git", *args]
        logger.debug(f"Running {' '.join(command)} in {self.repo.working_dir}")
        try:
            if env:
                with self.repo.git.custom_environment(**env):
                    return self.repo.git.execute(command)
            return self.repo.git.execute(command)
        except GitCommandError as e:
            stderr = str(e.stderr or "").strip()
            raise GitRepositoryError(f"git {args[0]} failed: {e}", stderr=stderr) from e

    # --- Status ---
    def get_current_branch(self) -> str:
        """Return the checked-out branch name, or 'HEAD' when detached."""
        return self.run("rev-parse", "--abbrev-ref", "HEAD").strip() or "HEAD"

    def is_workdir_clean(self) -> bool:
        """Return True if there are no staged, unstaged or untracked changes."""
        return not self.run("status", "--porcelain").strip()

    def is_rebase_in_progress(self) -> bool:
        """Check if a rebase is currently in progress."""
        try:
            git_dir = Path(self.repo.git_dir)
            return any((git_dir / d).exists() for d in ("rebase-merge", "rebase-apply"))
        except Exception as e:
            logger.error(f"Error checking rebase status: {e}")
            return False

    def is_cherry_pick_in_progress(self) -> bool:
        try:
            return (Path(self.repo.git_dir) / "CHERRY_PICK_HEAD").exists()
        except Exception as e:
            logger.error(f"Error checking cherry-pick status: {e}")
            return False

    def get_conflict_files(self) -> List[str]:
        """Return repo-relative paths with unresolved merge conflicts."""
        output = self.run("diff", "--name-only", "--diff-filter=U")
        return [line.strip() for line in output.splitlines() if line.strip()]

    def has_staged_changes(self) -> bool:
        """Return True if the index differs from HEAD."""
        return bool(self.run("diff", "--cached", "--name-only").strip())

    # --- Refs ---
    def fetch_all(self) -> None:
        """Fetch updates from all remotes."""
        self.run("fetch", "--all")
        logger.info(f"Fetched all remotes in {self.repo.working_dir}")

    def ref_exists(self, full_ref: str) -> bool:
        try:
            self.run("show-ref", "--verify", "--quiet", full_ref)
            return True
        except GitRepositoryError:
            return False

    def branch_exists(self, branch_name: str, remote: str = "origin") -> bool:
        """Check for a remote-tracking branch first, then a local one."""
        ensure_valid_branch_name(branch_name)
        return self.ref_exists(f"refs/remotes/{remote}/{branch_name}") or self.ref_exists(
            f"refs/heads/{branch_name}"
        )

    def resolve_branch_ref(self, branch_name: str, remote: str = "origin") -> str:
        """Prefer the remote-tracking counterpart of a branch if it exists."""
        if self.ref_exists(f"refs/remotes/{remote}/{branch_name}"):
            return f"{remote}/{branch_name}"
        return branch_name

    def rev_parse(self, ref: str) -> str:
        return self.run("rev-parse", ref).strip()

    def get_commit_subject(self, sha: str) -> str:
        return self.run("show", "-s", "--format=%s", sha).strip()

    def detect_default_branch(self, remote: str = "origin") -> Optional[str]:
        """Discover the default branch of a remote.

        Errors other than an unknown remote yield None.
        """
        try:
            info = self.run("remote", "show", remote)
            match = _HEAD_BRANCH_RE.search(info)
            if match:
                name = match.group(1).strip()
                if name and name != "(unknown)":
                    return name
        except GitRepositoryError as e:
            if "No such remote" in str(e):
                raise
            logger.debug(f"'git remote show {remote}' failed: {e}")

        try:
            self.run("remote", "set-head", remote, "--auto")
            ref = self.run("symbolic-ref", f"refs/remotes/{remote}/HEAD").strip()
        except GitRepositoryError as e:
            if "No such remote" in str(e):
                raise
            logger.debug(f"Could not resolve {remote}/HEAD: {e}")
            return None
        if not ref:
            return None
        prefix = f"refs/remotes/{remote}/"
        return ref[len(prefix):] if ref.startswith(prefix) else ref.split("/")[-1]

    # --- Mutating primitives ---
    def checkout_branch(self, branch_name: str) -> None:
        """Checkout a specific branch."""
        ensure_valid_branch_name(branch_name)
        self.run("checkout", branch_name)
        logger.info(f"Checked out branch: {branch_name}")

    def checkout_new_branch(self, branch_name: str, start_point: str) -> None:
        ensure_valid_branch_name(branch_name)
        ensure_valid_branch_name(start_point)
        self.run("checkout", "-b", branch_name, start_point)
        logger.info(f"Created and checked out {branch_name} from {start_point}")

    def delete_local_branch(self, branch_name: str, force: bool = False) -> None:
        ensure_valid_branch_name(branch_name)
        self.run("branch", "-D" if force else "-d", branch_name)
        logger.info(f"Deleted local branch {branch_name}")

    def delete_remote_branch(self, remote: str, branch_name: str) -> None:
        ensure_valid_branch_name(remote)
        ensure_valid_branch_name(branch_name)
        self.run("push", remote, "--delete", branch_name)
        logger.info(f"Deleted remote branch {remote}/{branch_name}")

    def force_branch(self, branch_name: str, target: str) -> None:
        """Point a branch at target; hard-resets when it is checked out."""
        ensure_valid_branch_name(branch_name)
        if self.get_current_branch() == branch_name:
            self.run("reset", "--hard", target)
        else:
            self.run("branch", "-f", branch_name, target)
        logger.info(f"Moved branch {branch_name} -> {target}")

    def abort_rebase(self) -> None:
        self.run("rebase", "--abort")
        logger.info("Rebase aborted")

    def create_annotated_tag(self, tag_name: str, message: str, ref: str) -> None:
        self.run("tag", "-a", tag_name, "-m", message, ref)
        logger.info(f"Created tag {tag_name} at {ref}")

    def list_tags(self, pattern: str) -> List[Tuple[str, str]]:
        """Return (name, message subject) for tags matching a glob pattern."""
        output = self.run("tag", "--list", "--format=%(refname:short)%00%(contents:subject)", pattern)
        tags = []
        for line in output.splitlines():
            name, _, subject = line.partition("\0")
            if name.strip():
                tags.append((name.strip(), subject.strip()))
        return tags

    def push_with_lease(self, branch_name: str, remote: str = "origin") -> None:
        ensure_valid_branch_name(remote)
        ensure_valid_branch_name(branch_name)
        self.run("push", "-u", remote, branch_name, "--force-with-lease")
        logger.info(f"Pushed {branch_name} to {remote} with lease")

    # --- Stash ---
    def start_autostash(self) -> Optional[str]:
        """Stash local changes (including untracked) and return the stash ref.

        Returns None when there was nothing to stash.
        """
        label = f"tidybranch-{os.getpid()}-{uuid.uuid4().hex[:8]}"
        self.run("stash", "push", "-u", "-m", label)
        listing = self.run("stash", "list", "--format=%gd %gs")
        for line in listing.splitlines():
            line = line.strip()
            if label in line:
                ref = line.split(" ")[0]
                logger.info(f"Stashed local changes as {ref}")
                return ref or None
        return None

    def pop_stash(self, stash_ref: str) -> None:
        self.run("stash", "pop", stash_ref)
        logger.info(f"Restored stash {stash_ref}")
