"""Command line interface for git-tidy."""

import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from pathlib import Path
from typing import Annotated, NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from git_tidy.config import ProtectionPolicy, load_config, parse_duration
from git_tidy.errors import GitTidyError
from git_tidy.executor import DeletionOutcome, OutcomeKind, delete_branches
from git_tidy.filters import Partition, partition
from git_tidy.git import GitRepo

app = typer.Typer(help="Find stale local git branches and delete them safely")
console = Console()

OUTCOME_STYLES = {
    OutcomeKind.DELETED: "[green]deleted[/green]",
    OutcomeKind.SKIPPED: "[yellow]skipped[/yellow]",
    OutcomeKind.REFUSED: "[bright_yellow]refused[/bright_yellow]",
    OutcomeKind.FAILED: "[red]failed[/red]",
}


def setup_logging(verbose: bool) -> None:
    """Send git_tidy log records to stderr through rich."""
    logger = logging.getLogger("git_tidy")
    logger.handlers = [RichHandler(console=Console(stderr=True), show_path=False)]
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


def fail(err: GitTidyError) -> NoReturn:
    """Print the error and exit with status 1."""
    console.print(f"[red]Error:[/red] {escape(str(err))}", soft_wrap=True)
    raise typer.Exit(code=1) from err


def get_repo(path: Path) -> GitRepo:
    """Get git repository instance."""
    try:
        return GitRepo(path)
    except GitTidyError as err:
        fail(err)


def format_age(when: datetime, now: datetime) -> str:
    """Describe how long ago ``when`` was, e.g. ``3 days ago``."""
    seconds = max(int((now - when).total_seconds()), 0)
    days = seconds // 86400
    if days == 0:
        hours = seconds // 3600
        if hours == 0:
            minutes = seconds // 60
            return f"{minutes} minute{'s' if minutes != 1 else ''} ago"
        return f"{hours} hour{'s' if hours != 1 else ''} ago"
    if days == 1:
        return "1 day ago"
    if days < 30:
        return f"{days} days ago"
    if days < 365:
        months = days // 30
        return f"{months} month{'s' if months > 1 else ''} ago"
    years = days // 365
    return f"{years} year{'s' if years > 1 else ''} ago"


def create_branch_table(title: str, *columns: str) -> Table:
    """Create a table with a branch column followed by ``columns``."""
    table = Table(
        title=title,
        show_header=True,
        header_style="bold",
        title_style="bold blue",
        show_edge=True,
    )
    table.add_column("Branch", style="cyan", no_wrap=True)
    for column in columns:
        table.add_column(column, no_wrap=True)
    return table


def show_partition(result: Partition, merged: dict[str, bool], current: Optional[str], now: datetime) -> None:
    """Print the classification of every branch."""
    if result.to_delete:
        table = create_branch_table("Branches to Delete", "Last Commit", "Merged")
        for branch in result.to_delete:
            status = "[green]merged[/green]" if merged[branch.name] else "[yellow]unmerged[/yellow]"
            table.add_row(branch.name, format_age(branch.last_commit_time, now), status)
        console.print(table)

    if result.kept:
        table = create_branch_table("Kept Branches", "Last Commit", "Reason")
        for kept in result.kept:
            reasons = ", ".join(reason.value for reason in kept.reasons)
            table.add_row(kept.branch.name, format_age(kept.branch.last_commit_time, now), f"[dim]{reasons}[/dim]")
        console.print(table)

    if result.protected:
        table = create_branch_table("Protected Branches", "Reason")
        for protected in result.protected:
            display_name = protected.branch.name
            if protected.branch.name == current:
                display_name = f"{display_name} [turquoise2](current)[/turquoise2]"
            table.add_row(display_name, f"[dim]{protected.reason.value}[/dim]")
        console.print(table)


def show_outcomes(outcomes: list[DeletionOutcome]) -> None:
    """Print per-branch deletion results and a summary line."""
    table = Table(
        title="Deletion Results",
        show_header=True,
        header_style="bold",
        title_style="bold blue",
        show_edge=True,
    )
    table.add_column("Branch", style="cyan", no_wrap=True)
    table.add_column("Result", justify="center", no_wrap=True)
    table.add_column("Details")
    for outcome in outcomes:
        details = escape(str(outcome.error)) if outcome.error else ""
        table.add_row(outcome.branch, OUTCOME_STYLES[outcome.kind], details)

    console.print()
    console.print(table)

    deleted = sum(1 for outcome in outcomes if outcome.kind is OutcomeKind.DELETED)
    if deleted:
        console.print(f"\n[bold green]Successfully deleted {deleted} branch(es)[/bold green] 🧹")
    else:
        console.print("\n[yellow]No branches were deleted[/yellow] 🤔")


def confirm_deletion(prompt: str) -> bool:
    """Ask a yes/no question on the terminal, defaulting to no."""
    return typer.confirm(prompt, default=False)


@app.command()
def main(
    path: Annotated[Path, typer.Option(help="Path to git repository")] = Path("."),
    clean: Annotated[bool, typer.Option("--clean", help="Delete branches (default is a dry run)")] = False,
    merged: Annotated[bool, typer.Option("--merged", help="Only delete branches merged into main/master")] = False,
    older_than: Annotated[
        Optional[str],
        typer.Option("--older-than", help="Only delete branches older than a duration, e.g. 30d, 2w, 12h"),
    ] = None,
    force: Annotated[bool, typer.Option("--force", "-f", help="Skip confirmation prompts")] = False,
    keep_pattern: Annotated[
        Optional[str],
        typer.Option("--keep-pattern", help="Regex protecting matching branches for this run"),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")] = False,
) -> None:
    """List stale branches, and delete them with --clean."""
    setup_logging(verbose)

    age: Optional[timedelta] = None
    if older_than is not None:
        try:
            age = parse_duration(older_than)
        except ValueError as err:
            raise typer.BadParameter(str(err), param_hint="'--older-than'") from err

    # Config problems stop the run before the repository is touched
    try:
        policy = ProtectionPolicy.build(load_config(path), keep_pattern)
    except GitTidyError as err:
        fail(err)

    repo = get_repo(path)
    now = datetime.now(timezone.utc)
    is_merged = lru_cache(maxsize=None)(repo.is_merged_into_trunk)

    try:
        current = repo.current_branch()
        result = partition(
            repo.list_local_branches(),
            policy,
            current,
            merged_only=merged,
            older_than=age,
            is_merged=is_merged,
            now=now,
        )
        merge_status = {branch.name: is_merged(branch.name) for branch in result.to_delete}
    except GitTidyError as err:
        fail(err)

    show_partition(result, merge_status, current, now)

    if not result.to_delete:
        console.print(
            Panel(
                "[green]No branches to delete. Your branches are clean ✨[/green]",
                style="green",
                padding=(0, 2),
                expand=False,
            )
        )
        return

    if not clean:
        console.print(
            Panel(
                "Dry run: nothing was deleted.\nRun with [bold]--clean[/bold] to delete these branches.",
                title="Dry Run",
                title_align="left",
                padding=(0, 2),
                expand=False,
            )
        )
        return

    outcomes = delete_branches(
        repo,
        [branch.name for branch in result.to_delete],
        policy,
        current,
        force=force,
        confirm=confirm_deletion,
    )
    show_outcomes(outcomes)

    if any(outcome.kind is OutcomeKind.FAILED for outcome in outcomes):
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
