"""CLI commands for sensitivity analysis."""

from __future__ import annotations

import json

import click
from rich.console import Console
from rich.table import Table

from mordm.cli.common import user_errors
from mordm.core.config import load_problem
from mordm.sensitivity import compute_sensitivity, get_method, list_methods


def _parse_objective(text: str) -> str | int:
    return int(text) if text.isdigit() else text


def _parse_option(text: str) -> tuple[str, object]:
    key, sep, value = text.partition("=")
    if not sep or not key:
        raise click.BadParameter(f"Expected KEY=VALUE, got {text!r}")
    lowered = value.strip().lower()
    if lowered in ("true", "false"):
        return key.strip(), lowered == "true"
    for convert in (int, float):
        try:
            return key.strip(), convert(value)
        except ValueError:
            continue
    return key.strip(), value


@click.group("sensitivity")
@click.pass_context
def sensitivity(ctx: click.Context) -> None:
    """Sensitivity analysis commands."""
    pass


@sensitivity.command("run")
@click.argument("path", type=click.Path(exists=True))
@click.option("--objective", "-f", default="0", show_default=True,
              help="Column name or 0-based objective index.")
@click.option("--method", "-m", type=click.Choice(list_methods()), default="fast99", show_default=True,
              help="Sensitivity analysis method.")
@click.option("--samples", "-n", type=int, default=1000, show_default=True,
              help="Target number of model evaluations.")
@click.option("--seed", type=int, default=None, help="Random seed.")
@click.option("--nboot", type=int, default=None, help="Bootstrap replicates for confidence intervals.")
@click.option("--conf", type=float, default=None, help="Confidence level.")
@click.option("--option", "-O", "extra", multiple=True, help="Method option as KEY=VALUE.")
@click.option("--output", "-o", type=click.Path(), default=None, help="Output file (JSON).")
@click.pass_context
def sensitivity_run(
    ctx: click.Context,
    path: str,
    objective: str,
    method: str,
    samples: int,
    seed: int | None,
    nboot: int | None,
    conf: float | None,
    extra: tuple[str, ...],
    output: str | None,
) -> None:
    """Rank decision variables by their influence on an objective."""
    console: Console = ctx.obj.get("console", Console())

    options = dict(_parse_option(item) for item in extra)
    if nboot is not None:
        options["nboot"] = nboot
    if conf is not None:
        options["conf"] = conf

    with user_errors():
        problem = load_problem(path)
        result = compute_sensitivity(
            problem, _parse_objective(objective), samples, method, seed=seed, **options
        )

    console.print(
        f"\n[bold]Sensitivity: {method} ({result.n_evaluations} evaluations)[/bold]\n"
    )

    table = Table(title=f"Sensitivity of {objective}")
    table.add_column("Rank", justify="right")
    table.add_column("Variable", style="cyan")
    table.add_column("First order", style="green", justify="right")
    if result.Ci is not None:
        table.add_column("CI", style="dim", justify="right")
    if result.has_total:
        table.add_column("Total order", style="yellow", justify="right")

    for position, i in enumerate(result.rank, start=1):
        row = [str(position), result.names[i], f"{result.Si[i]:.4f}"]
        if result.Ci is not None:
            row.append(f"[{result.Ci[i, 0]:.4f}, {result.Ci[i, 1]:.4f}]")
        if result.has_total:
            row.append(f"{result.Si_total[i]:.4f}")
        table.add_row(*row)

    console.print(table)

    if output:
        with open(output, "w") as f:
            json.dump(result.to_dict(), f, indent=2)
        console.print(f"\n[dim]Saved to {output}[/dim]")


@sensitivity.command("methods")
@click.option("--nvars", type=int, default=None, help="Show evaluations per level for this many variables.")
@click.pass_context
def sensitivity_methods(ctx: click.Context, nvars: int | None) -> None:
    """List available sensitivity analysis methods."""
    console: Console = ctx.obj.get("console", Console())
    table = Table(title="Sensitivity Methods")
    table.add_column("Method", style="cyan")
    table.add_column("Description", style="green")
    table.add_column("Options", style="yellow")
    if nvars:
        table.add_column("Evals/level", justify="right")

    for name in list_methods():
        method = get_method(name)
        row = [name, method.description, ", ".join(method.options)]
        if nvars:
            row.append(str(method.cost(nvars)))
        table.add_row(*row)
    console.print(table)
