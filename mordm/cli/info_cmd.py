"""CLI command for inspecting problem and sample files."""

from __future__ import annotations

import click
from rich.console import Console
from rich.tree import Tree

from mordm.cli.common import summary_table, user_errors
from mordm.core.config import load_problem, load_samples


@click.group("info")
@click.pass_context
def info(ctx: click.Context) -> None:
    """Inspect problem definitions and sample files."""
    pass


@info.command("problem")
@click.argument("path", type=click.Path(exists=True))
@click.pass_context
def info_problem(ctx: click.Context, path: str) -> None:
    """Display summary of a problem file."""
    console: Console = ctx.obj.get("console", Console())
    with user_errors():
        problem = load_problem(path)

    target = problem.target
    kind = "external" if problem.is_external else "in-process"
    label = target.command if problem.is_external else getattr(target.function, "__qualname__", "?")

    tree = Tree(f"[bold]{path}[/bold]")
    tree.add(f"[cyan]Target[/cyan] ({kind}): {label}")

    variables = tree.add(f"[cyan]Variables[/cyan] ({problem.nvars})")
    for name, lo, hi in zip(problem.variable_names, problem.lower_bounds, problem.upper_bounds):
        variables.add(f"{name}: [{lo:g}, {hi:g}]")

    objectives = tree.add(f"[cyan]Objectives[/cyan] ({problem.nobjs})")
    for i, (name, eps) in enumerate(zip(problem.objective_names, problem.epsilons)):
        sense = "maximize" if i in problem.maximize else "minimize"
        objectives.add(f"{name}: {sense}, epsilon {eps:g}")

    if problem.nconstrs:
        constraints = tree.add(f"[cyan]Constraints[/cyan] ({problem.nconstrs})")
        for name in problem.constraint_names:
            constraints.add(name)

    console.print(tree)


@info.command("samples")
@click.argument("path", type=click.Path(exists=True))
@click.pass_context
def info_samples(ctx: click.Context, path: str) -> None:
    """Display column statistics of a sample file (JSON or HDF5)."""
    console: Console = ctx.obj.get("console", Console())
    samples = load_samples(path)
    console.print(summary_table(samples, f"{path} ({len(samples)} samples)"))
