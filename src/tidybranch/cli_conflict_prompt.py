"""
CLI-specific implementation of the conflict prompt interface.
"""

from __future__ import annotations

from typing import List, Optional

import click
from rich.console import Console
from rich.panel import Panel

from .conflict_prompt_interface import ConflictAction, ConflictPrompt


_CHOICES = {
    "1": ConflictAction.CONTINUE,
    "resolved": ConflictAction.CONTINUE,
    "2": ConflictAction.SKIP,
    "skip": ConflictAction.SKIP,
    "3": ConflictAction.OURS,
    "ours": ConflictAction.OURS,
    "4": ConflictAction.THEIRS,
    "theirs": ConflictAction.THEIRS,
    "5": ConflictAction.ABORT,
    "abort": ConflictAction.ABORT,
}


class CliConflictPrompt(ConflictPrompt):
    """CLI implementation of the conflict prompt interface using click and rich."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def choose_conflict_action(
        self, commit_sha: str, commit_subject: str, conflict_files: List[str]
    ) -> ConflictAction:
        self.console.print(
            f"\n🔥 **CONFLICT** while replaying {commit_sha[:8]} {commit_subject}", style="bold red"
        )
        self.console.print(f"\n📄 **File Conflicts** ({len(conflict_files)}):", style="bold yellow")
        for path in conflict_files:
            self.console.print(f"  - {path}")

        instructions = [
            "1. resolved - you fixed and staged the files (`git add <file>`), continue",
            "2. skip     - drop this commit",
            "3. ours     - keep the target branch version of every conflicted file",
            "4. theirs   - keep this commit's version of every conflicted file",
            "5. abort    - stop and restore the original branch",
        ]
        self.console.print(
            Panel(
                "\n".join(instructions),
                title="Options",
                title_align="left",
                border_style="blue",
            )
        )

        choice = click.prompt(
            "Choose an option",
            type=click.Choice(list(_CHOICES), case_sensitive=False),
            show_choices=False,
        ).lower()
        action = _CHOICES[choice]
        if action is ConflictAction.ABORT:
            self.console.print("🚫 Rebase operation aborted by user.", style="bold red")
        return action

    def show_messages(self, messages: List[str], style: str = "") -> None:
        for message in messages:
            self.console.print(message, style=style or None)
