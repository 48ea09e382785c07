"""
Command-line interface for the branch hygiene and rebase tool.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
import sys
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__ as PACKAGE_VERSION
from .backup_manager import BackupManager
from .branch_analyzer import BranchAnalyzer
from .branch_pruner import BranchPruner
from .cli_conflict_prompt import CliConflictPrompt
from .cli_prompt import CliPrompt
from .config import Settings, default_log_path
from .git_manager import GitManager
from .linear_rebase import LinearRebaseOrchestrator
from .models import (
    BackupFailed,
    BranchRecord,
    ConflictStrategy,
    GitRepositoryError,
    TidyBranchError,
)
from .rebase_orchestrator import CherryPickOrchestrator


console = Console()
logger = logging.getLogger(__name__)


def _print_version(ctx, param, value):
    """Eager option callback to print version and exit."""
    if not value or ctx.resilient_parsing:
        return
    click.echo(f"tidybranch {PACKAGE_VERSION}")
    ctx.exit()


class SafeConsoleFilter(logging.Filter):
    """Replace characters the console encoding cannot represent (e.g. emoji on cp1252)."""

    def __init__(self, encoding: Optional[str] = None):
        super().__init__()
        self.encoding = encoding or getattr(sys.stderr, "encoding", None) or "utf-8"

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except Exception:
            return True
        try:
            message.encode(self.encoding, errors="strict")
        except UnicodeError:
            record.msg = message.encode(self.encoding, errors="replace").decode(
                self.encoding, errors="replace"
            )
            record.args = ()
        return True


def setup_logging(
    verbose: bool = False, console_level: Optional[str] = None, log_file: Optional[Path] = None
) -> Path:
    """Setup logging with a per-run file plus a rotating aggregate.

    - Per-run log file: <stem>-YYYYmmdd_HHMMSS.log
    - Aggregate log: <stem>.log (1 MB x 3)
    - Console logging only with --verbose or --log-level

    Returns the aggregate log path.
    """
    provided = Path(log_file) if log_file else default_log_path()
    if provided.exists() and provided.is_dir():
        base_dir = provided
        base_stem = "tidybranch"
        aggregate_path = base_dir / f"{base_stem}.log"
    else:
        base_dir = provided.parent
        base_stem = provided.stem or "tidybranch"
        aggregate_path = provided
    base_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    per_run_path = base_dir / f"{base_stem}-{timestamp}.log"

    root = logging.getLogger()
    # Clear existing handlers to avoid duplication in tests / repeated invocations
    root.handlers.clear()
    root.setLevel(logging.DEBUG)

    file_fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    run_file_handler = logging.FileHandler(str(per_run_path), encoding="utf-8")
    run_file_handler.setLevel(logging.DEBUG)
    run_file_handler.setFormatter(file_fmt)
    root.addHandler(run_file_handler)

    aggregate_handler = RotatingFileHandler(
        str(aggregate_path), maxBytes=1_000_000, backupCount=3, encoding="utf-8"
    )
    aggregate_handler.setLevel(logging.DEBUG)
    aggregate_handler.setFormatter(file_fmt)
    root.addHandler(aggregate_handler)

    if verbose or console_level:
        level_map = {
            "debug": logging.DEBUG,
            "info": logging.INFO,
            "warning": logging.WARNING,
            "error": logging.ERROR,
        }
        console_handler = RichHandler(console=console, rich_tracebacks=True)
        console_handler.setLevel(level_map.get((console_level or "info").lower(), logging.INFO))
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        console_handler.addFilter(
            SafeConsoleFilter(encoding=getattr(console.file, "encoding", None))
        )
        root.addHandler(console_handler)

    return aggregate_path


def _maybe_print_log_notice(ctx: click.Context) -> None:
    """Inform user about logging destination and how to enable console logs."""
    if ctx.obj.get("verbose") or ctx.obj.get("console_level"):
        return
    console.print(
        f"[dim]Logs are written to {ctx.obj.get('log_path')}. "
        "Use -v or --log-level to enable console logs.[/dim]"
    )


def format_date(value: Optional[datetime]) -> str:
    """Format a commit date for display (``YYYY-MM-DD``, ``--`` when unknown)."""
    if value is None:
        return "--"
    return value.strftime("%Y-%m-%d")


def _progress(message: str) -> None:
    console.print(f"[dim]{message}[/dim]")


@contextmanager
def _command_errors(action: str) -> Iterator[None]:
    """Map failures inside a command to a console message and an exit code."""
    try:
        yield
    except TidyBranchError as e:
        console.print(f"\n❌ **{action} failed:** {e}", style="bold red")
        logger.debug(f"{action} failed", exc_info=True)
        sys.exit(1)
    except (click.Abort, KeyboardInterrupt):
        console.print("\n\n🚫 **Operation cancelled by user**", style="bold yellow")
        logger.debug("Operation cancelled by user", exc_info=True)
        sys.exit(130)
    except Exception as e:
        console.print(f"\n💥 **Unexpected Error:** {e}", style="bold red")
        logger.error(f"Unexpected error during {action.lower()}", exc_info=True)
        sys.exit(1)


def _git_manager(ctx: click.Context) -> GitManager:
    return GitManager(ctx.obj.get("repo_path"))


def _branch_table(records: List[BranchRecord], current_branch: Optional[str], title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Branch", style="cyan")
    table.add_column("Type")
    table.add_column("Last commit", style="dim")
    table.add_column("Ahead", justify="right", style="green")
    table.add_column("Behind", justify="right", style="red")
    table.add_column("Merged", justify="center")
    table.add_column("Subject", style="dim", overflow="ellipsis", max_width=50)

    for record in records:
        name = record.ref
        if record.is_local and record.name == current_branch:
            name = f"[bold green]* {record.ref}[/bold green]"
        table.add_row(
            name,
            record.type.value,
            format_date(record.last_commit_date),
            str(record.ahead),
            str(record.behind),
            "✓" if record.is_merged else "",
            record.last_commit_subject or "",
        )
    return table


@click.group()
@click.option(
    "--version",
    "-V",
    is_flag=True,
    callback=_print_version,
    expose_value=False,
    is_eager=True,
    help="Show version and exit.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose console logging (INFO)")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Console log level. By default, console logging is disabled.",
)
@click.option(
    "--repo-path",
    type=click.Path(exists=True, path_type=Path),
    help="Path to repository (defaults to current directory)",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, log_level: Optional[str], repo_path: Optional[Path]) -> None:
    """tidybranch - inspect, prune and rebase Git branches safely."""
    try:
        settings = Settings.from_env()
    except ValueError as e:
        console.print(f"❌ **Invalid configuration:** {e}", style="bold red")
        sys.exit(1)

    log_path = setup_logging(verbose, console_level=log_level, log_file=settings.log_path)

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["console_level"] = log_level
    ctx.obj["log_path"] = log_path
    ctx.obj["settings"] = settings
    ctx.obj["repo_path"] = repo_path.resolve() if isinstance(repo_path, Path) else None
    logger.debug(f"CLI init: cwd={Path.cwd()} repo_path={ctx.obj['repo_path']}")


@cli.command()
@click.option("--remote", "include_remote", is_flag=True, help="Include remote-tracking branches")
@click.pass_context
def branches(ctx: click.Context, include_remote: bool) -> None:
    """Show branches with last commit, divergence from the base branch and merge status."""
    with _command_errors("Listing branches"):
        _maybe_print_log_notice(ctx)
        gm = _git_manager(ctx)
        analyzer = BranchAnalyzer(gm, ctx.obj["settings"])

        records = analyzer.list_branches(include_remote=include_remote)
        if not records:
            console.print("No branches found.")
            return

        base = analyzer.get_base_branch()
        title = f"Branches (compared with {base})" if base else "Branches"
        console.print(_branch_table(records, gm.get_current_branch(), title))


@cli.command()
@click.option("--remote", "include_remote", is_flag=True, help="Also prune remote branches")
@click.option(
    "--all", "all_branches", is_flag=True, help="Include branches that are not merged"
)
@click.option(
    "--keep",
    "keep_patterns",
    multiple=True,
    help="Never delete branches matching this name or /regex/. Repeatable.",
)
@click.option("--force", is_flag=True, help="Force-delete unmerged local branches (git branch -D)")
@click.option("--dry-run", is_flag=True, help="Show what would be deleted without deleting")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def prune(
    ctx: click.Context,
    include_remote: bool,
    all_branches: bool,
    keep_patterns: Tuple[str, ...],
    force: bool,
    dry_run: bool,
    yes: bool,
) -> None:
    """Delete merged (or, with --all, any) branches except protected ones."""
    with _command_errors("Pruning branches"):
        _maybe_print_log_notice(ctx)
        settings: Settings = ctx.obj["settings"]
        gm = _git_manager(ctx)
        analyzer = BranchAnalyzer(gm, settings)
        pruner = BranchPruner(gm)

        records = analyzer.list_branches(include_remote=include_remote)
        current = gm.get_current_branch()
        candidates = pruner.select_candidates(
            records,
            current,
            analyzer.get_base_branch(),
            merged_only=not all_branches,
            protected=tuple(settings.protected) + tuple(keep_patterns),
        )

        if not candidates:
            console.print("✨ Nothing to prune.", style="bold green")
            return

        console.print(_branch_table(candidates, current, "Branches to delete"))
        if dry_run:
            console.print(f"Dry run: {len(candidates)} branch(es) would be deleted.", style="yellow")
            return

        if not yes and not CliPrompt(console).confirm_delete_branches(candidates, force):
            console.print("Nothing deleted.", style="yellow")
            return

        result = pruner.delete(candidates, force=force)
        for record in result.deleted:
            console.print(f"🗑️  Deleted {record.ref}", style="green")
        for record, error in result.failed:
            console.print(f"❌ Could not delete {record.ref}: {error}", style="red")

        console.print(
            f"\nDeleted {len(result.deleted)} branch(es), {len(result.failed)} failure(s).",
            style="bold",
        )
        if result.failed:
            sys.exit(1)


@cli.command()
@click.argument("target", required=False)
@click.option(
    "--strategy",
    type=click.Choice(["cherry-pick", "linear"], case_sensitive=False),
    default="cherry-pick",
    show_default=True,
    help="Replay commits one by one, or run a single git rebase",
)
@click.option("--backup", is_flag=True, help="Tag the branch tip before rewriting it")
@click.option(
    "--continue-on-conflict",
    is_flag=True,
    help="Resolve conflicts automatically with --conflict-strategy instead of prompting",
)
@click.option(
    "--conflict-strategy",
    type=click.Choice([s.value for s in ConflictStrategy], case_sensitive=False),
    default=None,
    help="Side to keep when resolving conflicts automatically (default from settings)",
)
@click.option("--allow-empty", is_flag=True, help="Keep commits that become empty")
@click.option("--autostash", is_flag=True, help="Stash local changes before and restore after")
@click.option("--push", is_flag=True, help="Push the rebased branch with --force-with-lease")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for push confirmation")
@click.pass_context
def rebase(
    ctx: click.Context,
    target: Optional[str],
    strategy: str,
    backup: bool,
    continue_on_conflict: bool,
    conflict_strategy: Optional[str],
    allow_empty: bool,
    autostash: bool,
    push: bool,
    yes: bool,
) -> None:
    """
    Rebase the current branch onto TARGET (default: the remote's default branch).

    Example: tidybranch rebase main --backup
    """
    with _command_errors("Rebase"):
        _maybe_print_log_notice(ctx)
        settings: Settings = ctx.obj["settings"]
        gm = _git_manager(ctx)
        side = ConflictStrategy(conflict_strategy.lower()) if conflict_strategy else settings.conflict_strategy

        current = gm.get_current_branch()
        if current == "HEAD":
            raise TidyBranchError("HEAD is detached; check out a branch first")

        if not target:
            target = gm.detect_default_branch(settings.remote)
            if not target:
                raise TidyBranchError(
                    f"Could not detect the default branch of {settings.remote}; pass TARGET explicitly"
                )
            console.print(f"Using default branch [cyan]{target}[/cyan]")
        if target == current:
            raise TidyBranchError(f"Cannot rebase {current} onto itself")

        stash_ref = None
        if not gm.is_workdir_clean():
            if not autostash:
                raise TidyBranchError(
                    "Working tree has uncommitted changes; commit or stash them, or use --autostash"
                )
            stash_ref = gm.start_autostash()

        console.print(f"\n🔄 Rebasing [green]{current}[/green] onto [blue]{target}[/blue] ({strategy})")
        try:
            if strategy.lower() == "linear":
                if backup:
                    try:
                        tag = BackupManager(gm).create_backup_tag(current)
                    except GitRepositoryError as e:
                        raise BackupFailed(f"Could not create backup tag for {current}: {e}") from e
                    console.print(f"🔒 Backup tag: [cyan]{tag}[/cyan]")
                LinearRebaseOrchestrator(gm, settings).perform_linear_rebase(
                    current,
                    target,
                    _progress,
                    continue_on_conflict=continue_on_conflict,
                    conflict_strategy=side,
                )
            else:
                orchestrator = CherryPickOrchestrator(gm, CliConflictPrompt(console), settings)
                session = orchestrator.rebase(
                    current,
                    target,
                    _progress,
                    create_backup=backup,
                    allow_empty=allow_empty,
                    conflict_strategy=side if continue_on_conflict else None,
                )
                if session.backup_tag:
                    console.print(f"🔒 Backup tag: [cyan]{session.backup_tag}[/cyan]")
                if session.skipped:
                    console.print(f"Skipped {len(session.skipped)} commit(s).", style="yellow")
        finally:
            if stash_ref:
                try:
                    gm.pop_stash(stash_ref)
                except GitRepositoryError as e:
                    logger.warning(f"Could not restore {stash_ref}: {e}")
                    console.print(
                        f"⚠️  Local changes are still saved in {stash_ref}; restore them with git stash pop.",
                        style="yellow",
                    )

        console.print("\n🎉 **Rebase completed successfully!**", style="bold green")

        if push:
            if yes or CliPrompt(console).confirm_force_push(current, settings.remote):
                gm.push_with_lease(current, settings.remote)
                console.print(f"⬆️  Pushed {current} to {settings.remote}", style="green")


@cli.group()
@click.pass_context
def backups(ctx: click.Context) -> None:
    """Manage backup tags in the current repository."""
    pass


@backups.command("list")
@click.option("--branch", type=str, help="Only show backups of this branch")
@click.pass_context
def backups_list(ctx: click.Context, branch: Optional[str]) -> None:
    """List backup tags, newest first."""
    with _command_errors("Listing backups"):
        _maybe_print_log_notice(ctx)
        entries = BackupManager(_git_manager(ctx)).list_backups(branch)
        if not entries:
            console.print("No backup tags found.")
            return

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Tag", style="cyan")
        table.add_column("Branch", style="green")
        table.add_column("Created", style="dim")
        for entry in entries:
            created = datetime.strptime(entry.timestamp, "%Y%m%d-%H%M%S-%f")
            table.add_row(
                entry.tag,
                entry.branch or entry.branch_slug,
                created.strftime("%Y-%m-%d %H:%M:%S"),
            )
        console.print(table)


@backups.command("restore")
@click.argument("branch")
@click.option("--tag", type=str, help="Backup tag to restore (default: latest for BRANCH)")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def backups_restore(ctx: click.Context, branch: str, tag: Optional[str], yes: bool) -> None:
    """Point BRANCH back at a backup tag."""
    with _command_errors("Restoring backup"):
        _maybe_print_log_notice(ctx)
        manager = BackupManager(_git_manager(ctx))
        tag = tag or manager.get_latest_backup(branch)
        if not tag:
            console.print(f"No backup tags found for {branch}.")
            sys.exit(1)

        if not yes and not click.confirm(
            f"Reset {branch} to {tag}? Commits not in the backup will be lost.", default=False
        ):
            console.print("Restore cancelled.", style="yellow")
            return

        used = manager.restore_branch_from_backup(branch, tag)
        console.print(f"✅ Restored {branch} from {used}", style="bold green")


@cli.command()
def version() -> None:
    """Print the current tidybranch version."""
    console.print(f"tidybranch {PACKAGE_VERSION}")


def main() -> None:
    """Main entry point for the CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n\n🚫 **Operation cancelled by user**", style="bold yellow")
        logger.debug("Top-level cancellation (KeyboardInterrupt)", exc_info=True)
        sys.exit(130)
    except Exception as e:
        console.print(f"\n💥 **Unexpected error:** {e}", style="bold red")
        logger.debug("Unexpected error in main()", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
