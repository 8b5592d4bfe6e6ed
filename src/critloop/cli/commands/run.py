"""critloop run -- converge on a verified program for one problem statement.

The process exit code reports the outcome:

- 1..254: converged, the value is the number of proposals used
- 255: the proposal budget ran out
- 0: an unrecoverable error of any kind, including bad command-line usage
"""

from __future__ import annotations

import logging
from contextlib import ExitStack
from pathlib import Path

import click

from critloop.cli.formatting import format_error, format_result, get_console
from critloop.exceptions import CritloopError
from critloop.llm.client import ClientConfig, StreamingChatClient
from critloop.orchestrator import (
    DEFAULT_MAX_PROPOSALS,
    EXIT_ERROR,
    MAX_REPORTABLE_PROPOSALS,
    ConvergenceOrchestrator,
    OrchestratorConfig,
    ReviewMode,
    RunOutcome,
)
from critloop.progress import NullProgressReporter, RichProgressReporter
from critloop.verify import VerificationRunner

logger = logging.getLogger(__name__)


class _ExitContractCommand(click.Command):
    """Command whose usage errors exit with EXIT_ERROR instead of 2.

    Exit code 2 would read as "converged after two proposals".
    """

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as e:
            e.exit_code = EXIT_ERROR
            raise


@click.command(cls=_ExitContractCommand)
@click.option(
    "-p",
    "--problem-file",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="File holding the problem statement.",
)
@click.option(
    "-n",
    "--num-reviewers",
    default=1,
    show_default=True,
    type=click.IntRange(min=1),
    help="Reviewers per kind.",
)
@click.option(
    "--general-reviewer-only",
    is_flag=True,
    help="Use general reviewers instead of design, correctness, and syntax reviewers.",
)
@click.option(
    "--max-proposals",
    default=DEFAULT_MAX_PROPOSALS,
    show_default=True,
    type=click.IntRange(1, MAX_REPORTABLE_PROPOSALS),
    help="Proposal budget before giving up.",
)
@click.option("--model", default=None, help="Model name (default: $CRITLOOP_MODEL or gpt-4o).")
@click.option("--history", is_flag=True, help="Print every review round and proposal.")
@click.option("--no-progress", is_flag=True, help="Do not render streaming progress bars.")
def run(
    problem_file: Path,
    num_reviewers: int,
    general_reviewer_only: bool,
    max_proposals: int,
    model: str | None,
    history: bool,
    no_progress: bool,
) -> None:
    """Generate, review, repair, and verify code for PROBLEM_FILE."""
    console = get_console()
    try:
        problem = problem_file.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        format_error(f"Cannot read problem file {problem_file}: {e}", console)
        raise SystemExit(EXIT_ERROR) from e
    if not problem:
        format_error(f"Problem file is empty: {problem_file}", console)
        raise SystemExit(EXIT_ERROR)

    config = OrchestratorConfig(
        reviewers_per_kind=num_reviewers,
        review_mode=ReviewMode.GENERAL if general_reviewer_only else ReviewMode.SPECIALIZED,
        max_proposals=max_proposals,
    )

    try:
        client_config = ClientConfig.from_env(model=model) if model else ClientConfig.from_env()
        with ExitStack() as stack:
            client = stack.enter_context(StreamingChatClient(config=client_config))
            progress = (
                NullProgressReporter()
                if no_progress
                else stack.enter_context(RichProgressReporter())
            )
            orchestrator = ConvergenceOrchestrator(
                client, config, verifier=VerificationRunner(), progress=progress
            )
            result = orchestrator.run(problem)
    except CritloopError as e:
        logger.debug("Run failed", exc_info=True)
        format_error(f"{type(e).__name__}: {e}", console)
        outcome = RunOutcome.failed(e)
    except Exception as e:
        logger.error("Unexpected error during run", exc_info=True)
        format_error(f"{type(e).__name__}: {e}", console)
        outcome = RunOutcome.failed(e)
    else:
        format_result(result, console, show_history=history)
        outcome = result.outcome

    raise SystemExit(outcome.exit_code)
