"""
UI-agnostic prompt interface for user confirmations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from .models import BranchRecord


class UserPrompt(ABC):
    """Abstract interface for prompting users for decisions."""

    @abstractmethod
    def confirm_delete_branches(self, branches: List[BranchRecord], force: bool) -> bool:
        """
        Ask user to confirm deleting the given branches.

        Args:
            branches: Branches selected for deletion
            force: Whether unmerged local branches will be force-deleted

        Returns:
            True if the user approves the deletion
        """
        pass

    @abstractmethod
    def confirm_force_push(self, branch_name: str, remote_name: str = "origin") -> bool:
        """
        Ask user to confirm overwriting the remote branch history.

        Returns:
            True if the user explicitly confirmed
        """
        pass


class NoOpPrompt(UserPrompt):
    """No-operation prompt that always returns safe defaults."""

    def confirm_delete_branches(self, branches: List[BranchRecord], force: bool) -> bool:
        return False

    def confirm_force_push(self, branch_name: str, remote_name: str = "origin") -> bool:
        return False
