"""
UI-agnostic interface for conflict resolution prompting.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import List


class ConflictAction(Enum):
    """What to do with a cherry-pick that stopped on conflicts."""

    CONTINUE = "continue"
    SKIP = "skip"
    OURS = "ours"
    THEIRS = "theirs"
    ABORT = "abort"


class ConflictPrompt(ABC):
    """Abstract interface for prompting users during conflict resolution."""

    @abstractmethod
    def choose_conflict_action(
        self, commit_sha: str, commit_subject: str, conflict_files: List[str]
    ) -> ConflictAction:
        """
        Ask how to proceed with a commit that stopped on conflicts.

        Args:
            commit_sha: The commit being replayed
            commit_subject: One-line subject of that commit
            conflict_files: Paths with unresolved conflicts

        Returns:
            ConflictAction chosen by the user
        """
        pass

    @abstractmethod
    def show_messages(self, messages: List[str], style: str = "") -> None:
        """Display generic user-facing messages from core logic.

        Args:
            messages: List of strings to display
            style: Optional style hint for UI implementations
        """
        pass


class NoOpConflictPrompt(ConflictPrompt):
    """No-operation conflict prompt that always aborts."""

    def choose_conflict_action(
        self, commit_sha: str, commit_subject: str, conflict_files: List[str]
    ) -> ConflictAction:
        return ConflictAction.ABORT

    def show_messages(self, messages: List[str], style: str = "") -> None:
        pass
