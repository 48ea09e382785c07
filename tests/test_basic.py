"""
Basic tests for the tidybranch package.
"""

import re

from tidybranch import __version__
from tidybranch import (
    BranchAnalyzer, BranchPruner, BackupManager, CherryPickOrchestrator,
    GitManager, LinearRebaseOrchestrator, Settings, is_valid_branch_name,
)


def test_version_format():
    assert isinstance(__version__, str)
    assert __version__ != ""


def test_version_matches_semver():
    semver_pattern = r"^\d+\.\d+\.\d+$"
    assert re.match(semver_pattern, __version__)


def test_import():
    """Test that the package can be imported."""
    import tidybranch
    assert tidybranch is not None


def test_all_imports():
    """Test that all main classes can be imported."""
    assert BranchAnalyzer is not None
    assert BranchPruner is not None
    assert BackupManager is not None
    assert CherryPickOrchestrator is not None
    assert GitManager is not None
    assert LinearRebaseOrchestrator is not None
    assert Settings is not None
    assert callable(is_valid_branch_name)
