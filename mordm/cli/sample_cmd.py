"""CLI commands for sampling a problem."""

from __future__ import annotations

import click
from rich.console import Console

from mordm.cli.common import summary_table, user_errors
from mordm.core.config import load_problem, save_samples
from mordm.optimization.design import lhsample, usample


@click.group("sample")
@click.pass_context
def sample(ctx: click.Context) -> None:
    """Generate and evaluate samples of the decision space."""
    pass


def _run(ctx: click.Context, sampler, label: str, path: str, samples: int, seed: int | None, output: str | None) -> None:
    console: Console = ctx.obj.get("console", Console())
    with user_errors():
        problem = load_problem(path)
        result = sampler(samples, problem, seed=seed)

    console.print(summary_table(result, f"{label} samples ({len(result)})"))

    if output:
        save_samples(result, output)
        console.print(f"\n[dim]Saved to {output}[/dim]")


@sample.command("uniform")
@click.argument("path", type=click.Path(exists=True))
@click.option("--samples", "-n", type=int, default=100, show_default=True, help="Number of samples.")
@click.option("--seed", "-s", type=int, default=None, help="Random seed.")
@click.option("--output", "-o", type=click.Path(), default=None, help="Output file (.json or .h5).")
@click.pass_context
def sample_uniform(ctx: click.Context, path: str, samples: int, seed: int | None, output: str | None) -> None:
    """Evaluate uniformly distributed random inputs."""
    _run(ctx, usample, "Uniform", path, samples, seed, output)


@sample.command("lhs")
@click.argument("path", type=click.Path(exists=True))
@click.option("--samples", "-n", type=int, default=100, show_default=True, help="Number of samples.")
@click.option("--seed", "-s", type=int, default=None, help="Random seed.")
@click.option("--output", "-o", type=click.Path(), default=None, help="Output file (.json or .h5).")
@click.pass_context
def sample_lhs(ctx: click.Context, path: str, samples: int, seed: int | None, output: str | None) -> None:
    """Evaluate Latin hypercube sampled inputs."""
    _run(ctx, lhsample, "Latin hypercube", path, samples, seed, output)
