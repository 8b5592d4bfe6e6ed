"""critloop check -- compile and test one source file, no LLM involved."""

from __future__ import annotations

from pathlib import Path

import click

from critloop.cli.formatting import format_error, format_verification, get_console
from critloop.exceptions import CritloopError
from critloop.models import Candidate
from critloop.verify import VerificationRunner, VerifierConfig


@click.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--timeout",
    default=None,
    type=click.FloatRange(min=0, min_open=True),
    help="Seconds allowed per compile or test process.",
)
def check(source: Path, timeout: float | None) -> None:
    """Compile SOURCE and run its tests, as the verification step would."""
    console = get_console()
    runner = VerificationRunner(VerifierConfig(timeout=timeout))
    try:
        outcome = runner.verify(Candidate(source.read_text(encoding="utf-8")))
    except CritloopError as e:
        format_error(str(e), console)
        raise SystemExit(1) from None

    format_verification(outcome, console)
    if not outcome.passed:
        raise SystemExit(1)
