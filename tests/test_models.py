"""
Tests for data models.
"""

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from tidybranch.models import (
    BackupFailed,
    BranchRecord,
    BranchType,
    ConflictStrategy,
    Divergence,
    GitRepositoryError,
    InvalidReference,
    MergedSet,
    RebaseAborted,
    RebaseContinueFailed,
    RebaseError,
    RebaseFailed,
    RebaseSession,
    SessionState,
    TargetNotFound,
    TidyBranchError,
)


def _local(name, when=None, **kwargs):
    return BranchRecord(ref=name, name=name, type=BranchType.LOCAL, last_commit_date=when, **kwargs)


def _remote(ref, when=None, **kwargs):
    remote, _, name = ref.partition("/")
    return BranchRecord(
        ref=ref, name=name, type=BranchType.REMOTE, remote=remote, last_commit_date=when, **kwargs
    )


class TestBranchRecord:
    """Test BranchRecord invariants and ordering."""

    def test_local_record(self):
        record = _local("main")
        assert record.is_local
        assert record.remote is None
        assert record.is_merged is False
        assert (record.ahead, record.behind) == (0, 0)

    def test_remote_record_requires_remote(self):
        with pytest.raises(ValueError):
            BranchRecord(ref="origin/main", name="main", type=BranchType.REMOTE)

    def test_local_record_rejects_remote(self):
        with pytest.raises(ValueError):
            BranchRecord(ref="main", name="main", type=BranchType.LOCAL, remote="origin")

    def test_negative_counts_rejected(self):
        with pytest.raises(ValueError):
            _local("main", ahead=-1)

    def test_records_are_immutable(self):
        record = _local("main")
        with pytest.raises(Exception):
            record.is_merged = True
        updated = replace(record, is_merged=True, ahead=2)
        assert updated.is_merged and updated.ahead == 2
        assert record.is_merged is False

    def test_sort_key_orders_local_first_then_newest(self):
        old = datetime(2024, 1, 1, tzinfo=timezone.utc)
        new = datetime(2024, 6, 1, tzinfo=timezone.utc)
        records = [
            _remote("origin/new", new),
            _local("undated"),
            _local("old", old),
            _local("new", new),
            _remote("origin/old", old),
        ]
        ordered = [r.ref for r in sorted(records, key=lambda r: r.sort_key)]
        assert ordered == ["new", "old", "undated", "origin/new", "origin/old"]


class TestMergedSet:
    def test_contains_uses_type_specific_set(self):
        merged = MergedSet(local=frozenset({"main"}), remote=frozenset({"origin/main"}))
        assert merged.contains(_local("main"))
        assert merged.contains(_remote("origin/main"))
        assert not merged.contains(_remote("origin/feature"))
        assert not merged.contains(_local("origin/main"))

    def test_default_is_empty(self):
        assert not MergedSet().contains(_local("main"))


class TestRebaseSession:
    """Test the cherry-pick session bookkeeping."""

    def test_initial_state(self):
        session = RebaseSession(current_branch="feature", target_branch="main")
        assert session.state is SessionState.IDLE
        assert session.commit_queue == ()
        assert session.current_commit is None
        assert session.remaining == 0
        assert session.skipped == []

    def test_queue_and_advance(self):
        session = RebaseSession(current_branch="feature", target_branch="main")
        session.load_queue(["c1", "c2"])
        assert session.current_commit == "c1"
        session.advance()
        assert session.current_commit == "c2"
        assert session.remaining == 1
        session.advance()
        assert session.current_commit is None
        with pytest.raises(RebaseError):
            session.advance()

    def test_queue_loaded_once(self):
        session = RebaseSession(current_branch="feature", target_branch="main")
        session.load_queue(["c1"])
        with pytest.raises(RebaseError):
            session.load_queue(["c2"])
        assert session.commit_queue == ("c1",)


def test_divergence_defaults():
    assert Divergence() == Divergence(ahead=0, behind=0)


def test_conflict_strategy_values():
    assert ConflictStrategy("ours") is ConflictStrategy.OURS
    assert ConflictStrategy.THEIRS.value == "theirs"


class TestExceptions:
    def test_hierarchy(self):
        for exc in (GitRepositoryError, InvalidReference, TargetNotFound, BackupFailed, RebaseError):
            assert issubclass(exc, TidyBranchError)
        for exc in (RebaseFailed, RebaseContinueFailed, RebaseAborted):
            assert issubclass(exc, RebaseError)
        assert issubclass(InvalidReference, ValueError)

    def test_messages(self):
        assert str(InvalidReference("a..b")) == "Invalid branch name: 'a..b'"
        assert str(TargetNotFound("nope")) == "Target branch 'nope' does not exist"
        err = GitRepositoryError("git push failed", stderr="rejected")
        assert err.stderr == "rejected"
