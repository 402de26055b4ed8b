"""mordm command-line interface.

Entry point for the ``mordm`` CLI tool.
"""

from __future__ import annotations

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from mordm import __app_name__, __version__

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name=__app_name__)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """mordm: Many-Objective Robust Decision Making.

    Define problems, sample them, and measure sensitivity and robustness
    of candidate solutions under uncertainty.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    ctx.ensure_object(dict)
    ctx.obj["console"] = console


# Import and register sub-command groups
from mordm.cli.info_cmd import info  # noqa: E402
from mordm.cli.sample_cmd import sample  # noqa: E402
from mordm.cli.sensitivity_cmd import sensitivity  # noqa: E402
from mordm.cli.robustness_cmd import robustness  # noqa: E402
from mordm.cli.optimize_cmd import optimize  # noqa: E402

cli.add_command(info)
cli.add_command(sample)
cli.add_command(sensitivity)
cli.add_command(robustness)
cli.add_command(optimize)


def main() -> None:
    """Convenience wrapper for entry-point scripts."""
    cli()
