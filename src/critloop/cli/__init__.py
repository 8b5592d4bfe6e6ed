"""critloop CLI -- run the convergence loop from a terminal.

This module is NEVER imported from critloop/__init__.py.
It is only loaded via the ``critloop`` entry point defined in pyproject.toml.
"""

from __future__ import annotations

import click
from dotenv import load_dotenv

from critloop.cli.formatting import configure_logging


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log every state transition and verdict.")
@click.option(
    "--env-file",
    default=None,
    type=click.Path(dir_okay=False),
    help="Load environment variables from this file (default: ./.env if present).",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, env_file: str | None) -> None:
    """critloop: critique, repair, and verify LLM-written code until it converges."""
    load_dotenv(env_file)
    configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


# Register subcommands after cli group is defined
from critloop.cli.commands.check import check  # noqa: E402
from critloop.cli.commands.run import run  # noqa: E402

cli.add_command(run)
cli.add_command(check)
