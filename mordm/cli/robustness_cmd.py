"""CLI command for robustness of a candidate solution."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from mordm.cli.common import parse_floats, summary_table, user_errors
from mordm.core.config import load_problem
from mordm.core.evaluate import evaluate
from mordm.optimization.design import nsample
from mordm.optimization.robustness import METRICS, check_robustness


@click.command("robustness")
@click.argument("path", type=click.Path(exists=True))
@click.option("--point", "-x", required=True, help="Candidate solution, comma separated.")
@click.option("--sd", type=float, default=0.05, show_default=True,
              help="Standard deviation of the perturbations.")
@click.option("--samples", "-n", type=int, default=100, show_default=True, help="Number of perturbations.")
@click.option("--method", "-m", "methods", type=click.Choice(sorted(METRICS)), multiple=True,
              help="Robustness metric (repeatable, default: all).")
@click.option("--seed", type=int, default=None, help="Random seed.")
@click.pass_context
def robustness(
    ctx: click.Context,
    path: str,
    point: str,
    sd: float,
    samples: int,
    methods: tuple[str, ...],
    seed: int | None,
) -> None:
    """Perturb a solution with normal noise and score its robustness."""
    console: Console = ctx.obj.get("console", Console())
    solution = parse_floats(point)

    with user_errors():
        problem = load_problem(path)
        original = evaluate(solution, problem)
        cloud = nsample(solution, sd, samples, problem, seed=seed)
        names = methods or ("default", "variance", "constraints", "infogap", "distance")
        scores = {
            name: check_robustness(cloud, problem, name, original_point=original)
            for name in names
        }

    console.print(summary_table(cloud, f"Perturbed samples ({len(cloud)})"))

    table = Table(title="Robustness")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    for name, value in scores.items():
        table.add_row(name, f"{value:.6g}")
    console.print(table)
