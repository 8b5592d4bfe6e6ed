"""Rich formatting helpers for the critloop CLI.

Provides functions that format run results for terminal display.
Rich auto-detects TTY and degrades gracefully when piped (no ANSI codes).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from critloop.verify import VerificationStatus

if TYPE_CHECKING:
    from critloop.models import Candidate, Verdict
    from critloop.orchestrator.models import OrchestratorResult
    from critloop.verify import VerificationOutcome


def get_console() -> Console:
    """Create a Rich Console that auto-detects TTY for graceful pipe degradation."""
    return Console(stderr=False)


def configure_logging(verbose: bool) -> None:
    """Route the ``critloop`` loggers to stderr through RichHandler."""
    handler = RichHandler(console=Console(stderr=True), show_path=False, markup=False)
    root = logging.getLogger("critloop")
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.propagate = False


def format_error(message: str, console: Console) -> None:
    """Display an error message."""
    console.print(f"[red]Error:[/red] {escape(message)}", highlight=False)


def format_candidate(candidate: Candidate, console: Console, *, title: str = "Final code") -> None:
    """Print a candidate with syntax highlighting."""
    console.print(f"[bold]{title}[/bold]")
    console.print(Syntax(candidate.source, "rust", line_numbers=True, word_wrap=True))


def format_review_round(number: int, verdicts: tuple[Verdict, ...], console: Console) -> None:
    """Display one review round as a table: reviewer, verdict, issues."""
    table = Table(title=f"Review round {number}", show_header=True, header_style="bold")
    table.add_column("Reviewer", style="cyan")
    table.add_column("Verdict", width=6)
    table.add_column("Issues")

    for verdict in verdicts:
        mark = "[green]pass[/green]" if verdict.passed else "[red]fail[/red]"
        issues = "\n".join(f"- {escape(issue)}" for issue in verdict.issues) or "[dim]none[/dim]"
        table.add_row(verdict.reviewer_name, mark, issues)

    console.print(table)


def format_result(result: OrchestratorResult, console: Console, *, show_history: bool = False) -> None:
    """Display the outcome of a run."""
    if show_history:
        for number, verdicts in enumerate(result.review_rounds, start=1):
            format_review_round(number, verdicts, console)
        for record in result.proposals:
            console.print(f"[dim]Proposal #{record.number} from {record.origin}[/dim]")

    format_candidate(result.candidate, console)
    if result.converged:
        console.print(
            f"[green]Success after {result.outcome.proposals} proposals.[/green]",
            highlight=False,
        )
    else:
        console.print(
            f"[yellow]No convergence after {result.outcome.proposals} proposals.[/yellow]",
            highlight=False,
        )


def format_verification(outcome: VerificationOutcome, console: Console) -> None:
    """Display the outcome of a standalone verification."""
    if outcome.passed:
        console.print("[green]Compiled and all tests passed.[/green]")
        if outcome.output:
            console.print(escape(outcome.output), highlight=False)
        return
    label = "Compilation failed" if outcome.status is VerificationStatus.COMPILE_FAILED else "Tests failed"
    console.print(f"[red]{label}:[/red]")
    console.print(escape(outcome.diagnostic), highlight=False)
