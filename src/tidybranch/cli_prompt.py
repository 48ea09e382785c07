"""
CLI-specific implementation of the prompt interface.
"""

from __future__ import annotations

from typing import List, Optional

import click
from rich.console import Console
from rich.panel import Panel

from .models import BranchRecord
from .prompt_interface import UserPrompt


class CliPrompt(UserPrompt):
    """CLI implementation of the prompt interface using click and rich."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def confirm_delete_branches(self, branches: List[BranchRecord], force: bool) -> bool:
        """Show the branches about to be deleted and ask for a yes/no answer."""
        self.console.print(f"\n🗑️  **{len(branches)} branch(es) will be deleted**", style="bold yellow")
        for record in branches:
            where = f"remote {record.remote}" if record.remote else "local"
            self.console.print(f"  • {record.name} [dim]({where})[/dim]")
        if force:
            self.console.print(
                "Unmerged local branches will be force-deleted (git branch -D).", style="bold red"
            )
        return click.confirm("Delete these branches?", default=False)

    def confirm_force_push(self, branch_name: str, remote_name: str = "origin") -> bool:
        """Require the user to type 'FORCE PUSH' to confirm destructive push."""
        phrase = "FORCE PUSH"
        panel = Panel(
            f"[bold red]Destructive operation ahead[/bold red]\n\n"
            f"Branch: [green]{branch_name}[/green] → Remote: [yellow]{remote_name}[/yellow]\n\n"
            "This will overwrite the remote branch history (--force-with-lease).\n"
            f"To confirm, type [bold]{phrase}[/bold] exactly.",
            title="Confirm Force Push",
            border_style="red",
        )
        self.console.print(panel)

        try:
            entered = click.prompt(
                "Type the exact confirmation phrase", default="", show_default=False
            )
        except (click.Abort, KeyboardInterrupt):
            return False

        if entered.strip() == phrase:
            return True

        self.console.print("Confirmation phrase did not match. Skipping force push.", style="yellow")
        return False
