"""CLI command for running the external optimizer."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from mordm.cli.common import user_errors
from mordm.core.config import load_problem, save_samples
from mordm.optimization.optimizer import optimize_external


@click.command("optimize")
@click.argument("path", type=click.Path(exists=True))
@click.option("--nfe", type=int, default=10000, show_default=True, help="Maximum function evaluations.")
@click.option("--executable", default="borg.exe", show_default=True, help="Optimizer executable.")
@click.option("--output", "-o", type=click.Path(), default=None, help="Runtime output file.")
@click.option("--frequency", type=int, default=100, show_default=True, help="Runtime output frequency.")
@click.option("--save", type=click.Path(), default=None, help="Save the final set (.json or .h5).")
@click.pass_context
def optimize(
    ctx: click.Context,
    path: str,
    nfe: int,
    executable: str,
    output: str | None,
    frequency: int,
    save: str | None,
) -> None:
    """Optimize an external problem with the Borg MOEA executable."""
    console: Console = ctx.obj.get("console", Console())

    with user_errors():
        problem = load_problem(path)
        result = optimize_external(
            problem, nfe, executable=executable, output=output, output_frequency=frequency
        )

    table = Table(title=f"Pareto approximate set ({len(result)} solutions)")
    for name in result.names:
        table.add_column(name, justify="right")
    for row in result.rows():
        table.add_row(*(f"{v:.4g}" for v in row.values()))
    console.print(table)

    if save:
        save_samples(result, save)
        console.print(f"\n[dim]Saved to {save}[/dim]")
