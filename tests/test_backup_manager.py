"""
Tests for backup tag naming, listing and restoring.
"""

from datetime import datetime
from unittest.mock import MagicMock

import pytest

from tidybranch.backup_manager import BACKUP_PREFIX, BackupManager, slugify_branch
from tidybranch.models import GitRepositoryError, InvalidReference


TAGS = [
    "tidybranch-backup-feature-x-20240101-120000-000001",
    "tidybranch-backup-feature-x-20240301-120000-000001",
    "tidybranch-backup-main-20240201-120000-000001",
    "tidybranch-backup-not-a-timestamp",
]
SUBJECTS = [
    "Backup before tidybranch reset: feature/x @ abc123",
    "Backup before tidybranch reset: feature/x @ def456",
    "Backup before tidybranch reset: main @ 0123ab",
    "",
]
LISTING = list(zip(TAGS, SUBJECTS))


def test_slugify_branch():
    assert slugify_branch("feature/x") == "feature-x"
    assert slugify_branch("main") == "main"


def test_make_backup_name():
    manager = BackupManager(MagicMock())
    name = manager.make_backup_name("feature/x", now=datetime(2024, 3, 1, 12, 30, 45, 123456))
    assert name == f"{BACKUP_PREFIX}-feature-x-20240301-123045-123456"


class TestCreateBackupTag:
    def test_creates_and_verifies_tag(self):
        gm = MagicMock()
        gm.rev_parse.return_value = "abc123"
        tag = BackupManager(gm).create_backup_tag("feature/x")

        assert tag.startswith("tidybranch-backup-feature-x-")
        gm.create_annotated_tag.assert_called_once_with(
            tag, "Backup before tidybranch reset: feature/x @ abc123", "abc123"
        )
        gm.rev_parse.assert_any_call(f"{tag}^{{commit}}")

    def test_mismatched_tag_raises(self):
        gm = MagicMock()
        gm.rev_parse.side_effect = ["abc123", "def456"]
        with pytest.raises(GitRepositoryError):
            BackupManager(gm).create_backup_tag("feature/x")


class TestListBackups:
    def test_newest_first_and_ignores_foreign_tags(self):
        gm = MagicMock()
        gm.list_tags.return_value = LISTING
        entries = BackupManager(gm).list_backups()
        assert [e.tag for e in entries] == [TAGS[1], TAGS[2], TAGS[0]]
        assert entries[0].branch_slug == "feature-x"
        assert entries[0].timestamp == "20240301-120000-000001"
        assert entries[0].branch == "feature/x"
        gm.list_tags.assert_called_once_with(f"{BACKUP_PREFIX}-*")

    def test_filter_by_branch(self):
        gm = MagicMock()
        gm.list_tags.return_value = LISTING
        manager = BackupManager(gm)
        assert [e.tag for e in manager.list_backups("feature/x")] == [TAGS[1], TAGS[0]]
        assert manager.get_latest_backup("main") == TAGS[2]
        assert manager.get_latest_backup("other") is None

    def test_branches_sharing_a_slug_stay_apart(self):
        slashed = "tidybranch-backup-a-b-20240101-120000-000001"
        dashed = "tidybranch-backup-a-b-20240201-120000-000001"
        untagged = "tidybranch-backup-a-b-20231201-120000-000001"
        gm = MagicMock()
        gm.list_tags.return_value = [
            (slashed, "Backup before tidybranch reset: a/b @ abc123"),
            (dashed, "Backup before tidybranch reset: a-b @ def456"),
            (untagged, "lightweight or edited message"),
        ]
        manager = BackupManager(gm)

        assert [e.tag for e in manager.list_backups("a/b")] == [slashed, untagged]
        assert [e.tag for e in manager.list_backups("a-b")] == [dashed, untagged]
        assert manager.get_latest_backup("a/b") == slashed


class TestRestore:
    def test_restores_latest_backup(self):
        gm = MagicMock()
        gm.list_tags.return_value = LISTING
        gm.ref_exists.return_value = True
        gm.is_rebase_in_progress.return_value = False

        used = BackupManager(gm).restore_branch_from_backup("feature/x")

        assert used == TAGS[1]
        gm.force_branch.assert_called_once_with("feature/x", f"{TAGS[1]}^{{commit}}")
        gm.abort_rebase.assert_not_called()

    def test_aborts_rebase_in_progress(self):
        gm = MagicMock()
        gm.ref_exists.return_value = True
        gm.is_rebase_in_progress.return_value = True

        BackupManager(gm).restore_branch_from_backup("main", TAGS[2])

        gm.abort_rebase.assert_called_once()
        gm.force_branch.assert_called_once_with("main", f"{TAGS[2]}^{{commit}}")

    def test_no_backup_raises(self):
        gm = MagicMock()
        gm.list_tags.return_value = []
        with pytest.raises(GitRepositoryError):
            BackupManager(gm).restore_branch_from_backup("main")
        gm.force_branch.assert_not_called()

    def test_missing_tag_raises(self):
        gm = MagicMock()
        gm.ref_exists.return_value = False
        with pytest.raises(GitRepositoryError):
            BackupManager(gm).restore_branch_from_backup("main", "tidybranch-backup-main-x")
        gm.force_branch.assert_not_called()

    def test_invalid_branch(self):
        gm = MagicMock()
        with pytest.raises(InvalidReference):
            BackupManager(gm).restore_branch_from_backup("bad..branch")
        gm.list_tags.assert_not_called()


def test_backup_round_trip_in_real_repository(sandbox):
    from tidybranch.git_manager import GitManager

    original = sandbox.git("rev-parse", "main").strip()
    manager = BackupManager(GitManager(sandbox.work))
    tag = manager.create_backup_tag("main")

    sandbox.commit_file("later.txt", "later\n", "Later commit")
    assert sandbox.git("rev-parse", "main").strip() != original

    assert manager.restore_branch_from_backup("main") == tag
    assert sandbox.git("rev-parse", "main").strip() == original
    assert sandbox.git("cat-file", "-t", tag).strip() == "tag"
