"""
Backup tag management for branches that are about to be reset.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import List, Optional

from .git_manager import GitManager
from .models import BackupEntry, GitRepositoryError
from .validation import ensure_valid_branch_name

logger = logging.getLogger(__name__)


BACKUP_PREFIX = "tidybranch-backup"
_TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S-%f"
_BACKUP_TAG_RE = re.compile(rf"^{BACKUP_PREFIX}-(?P<slug>.+)-(?P<ts>\d{{8}}-\d{{6}}-\d{{6}})$")
_BACKUP_MESSAGE_RE = re.compile(r"^Backup before tidybranch reset: (?P<branch>\S+) @ [0-9a-f]+$")


def slugify_branch(branch: str) -> str:
    return branch.replace("/", "-")


def backup_message(branch: str, sha: str) -> str:
    return f"Backup before tidybranch reset: {branch} @ {sha}"


class BackupManager:
    """Create, list and restore backup tags in a single repository."""

    def __init__(self, git_manager: GitManager) -> None:
        self.gm = git_manager

    def make_backup_name(self, branch: str, now: Optional[datetime] = None) -> str:
        ts = (now or datetime.now()).strftime(_TIMESTAMP_FORMAT)
        return f"{BACKUP_PREFIX}-{slugify_branch(branch)}-{ts}"

    def create_backup_tag(self, branch: str) -> str:
        """Tag the current tip of ``branch`` with an annotated backup tag.

        The tag is verified to resolve to the tip before returning.
        Returns the created tag name.
        """
        sha = self.gm.rev_parse(branch)
        tag = self.make_backup_name(branch)
        self.gm.create_annotated_tag(tag, backup_message(branch, sha), sha)
        tagged = self.gm.rev_parse(f"{tag}^{{commit}}")
        if tagged != sha:
            raise GitRepositoryError(f"Backup tag {tag} points at {tagged}, expected {sha}")
        logger.info(f"Created backup tag {tag} for {branch} @ {sha[:8]}")
        return tag

    def _parse_backup_tag(self, tag: str, subject: str = "") -> Optional[BackupEntry]:
        match = _BACKUP_TAG_RE.match(tag)
        if not match:
            return None
        message = _BACKUP_MESSAGE_RE.match(subject)
        return BackupEntry(
            tag=tag,
            branch_slug=match.group("slug"),
            timestamp=match.group("ts"),
            branch=message.group("branch") if message else None,
        )

    def list_backups(self, branch: Optional[str] = None) -> List[BackupEntry]:
        """Return backup tags, newest first, optionally for one branch.

        ``feature/x`` and ``feature-x`` share a slug; the branch recorded in
        the tag message tells them apart.
        """
        entries = []
        for tag, subject in self.gm.list_tags(f"{BACKUP_PREFIX}-*"):
            entry = self._parse_backup_tag(tag, subject)
            if entry is None:
                continue
            if branch is not None:
                if entry.branch_slug != slugify_branch(branch):
                    continue
                if entry.branch is not None and entry.branch != branch:
                    continue
            entries.append(entry)
        entries.sort(key=lambda e: e.timestamp, reverse=True)
        return entries

    def get_latest_backup(self, branch: str) -> Optional[str]:
        entries = self.list_backups(branch)
        return entries[0].tag if entries else None

    def restore_branch_from_backup(self, branch: str, tag: Optional[str] = None) -> str:
        """Point ``branch`` back at a backup tag (latest for the branch by default).

        Returns the tag used.
        """
        ensure_valid_branch_name(branch)
        tag = tag or self.get_latest_backup(branch)
        if not tag:
            raise GitRepositoryError(f"No backup tag found for {branch}")
        if not self.gm.ref_exists(f"refs/tags/{tag}"):
            raise GitRepositoryError(f"Backup tag does not exist: {tag}")

        if self.gm.is_rebase_in_progress():
            logger.warning("Rebase in progress. Aborting rebase before restoring backup.")
            self.gm.abort_rebase()

        self.gm.force_branch(branch, f"{tag}^{{commit}}")
        logger.info(f"Restored {branch} from {tag}")
        return tag
