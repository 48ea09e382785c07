"""
Tests for deletion candidate selection and branch deletion.
"""

from unittest.mock import MagicMock

from tidybranch.branch_pruner import BranchPruner
from tidybranch.models import BranchRecord, BranchType, GitRepositoryError


def _local(name, merged=True):
    return BranchRecord(ref=name, name=name, type=BranchType.LOCAL, is_merged=merged)


def _remote(ref, merged=True):
    remote, _, name = ref.partition("/")
    return BranchRecord(ref=ref, name=name, type=BranchType.REMOTE, remote=remote, is_merged=merged)


RECORDS = [
    _local("main"),
    _local("current"),
    _local("done"),
    _local("wip", merged=False),
    _local("release/1.0"),
    _remote("origin/main"),
    _remote("origin/done"),
    _remote("origin/wip", merged=False),
]


class TestSelectCandidates:
    def test_merged_only_excludes_current_base_and_protected(self):
        pruner = BranchPruner(MagicMock())
        candidates = pruner.select_candidates(
            RECORDS, "current", "origin/main", protected=("main", "/^release\\//")
        )
        assert [r.ref for r in candidates] == ["done", "origin/done"]

    def test_local_base_branch_is_kept(self):
        pruner = BranchPruner(MagicMock())
        candidates = pruner.select_candidates(RECORDS, "current", "main")
        assert "main" not in [r.ref for r in candidates]
        assert "origin/main" not in [r.ref for r in candidates]

    def test_all_includes_unmerged(self):
        pruner = BranchPruner(MagicMock())
        candidates = pruner.select_candidates(
            RECORDS, "current", "origin/main", merged_only=False, protected=("main", "release/1.0")
        )
        assert [r.ref for r in candidates] == ["done", "wip", "origin/done", "origin/wip"]

    def test_protected_matches_remote_name(self):
        pruner = BranchPruner(MagicMock())
        candidates = pruner.select_candidates(
            RECORDS, "current", None, protected=("done", "main", "/^release/")
        )
        assert candidates == []


class TestDelete:
    def test_deletes_local_and_remote(self):
        gm = MagicMock()
        result = BranchPruner(gm).delete([_local("done"), _remote("origin/done")], force=True)
        gm.delete_local_branch.assert_called_once_with("done", force=True)
        gm.delete_remote_branch.assert_called_once_with("origin", "done")
        assert [r.ref for r in result.deleted] == ["done", "origin/done"]
        assert result.failed == []

    def test_collects_failures_and_continues(self):
        gm = MagicMock()
        gm.delete_local_branch.side_effect = [GitRepositoryError("not fully merged"), None]
        result = BranchPruner(gm).delete([_local("wip"), _local("done")])
        assert [r.ref for r in result.deleted] == ["done"]
        assert len(result.failed) == 1
        record, message = result.failed[0]
        assert record.ref == "wip"
        assert "not fully merged" in message
