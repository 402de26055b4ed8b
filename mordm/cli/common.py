"""Helpers shared by the CLI commands."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import click
import numpy as np
from rich.table import Table

from mordm.core.errors import MORDMError
from mordm.core.evaluate import SampleSet


@contextmanager
def user_errors() -> Iterator[None]:
    """Report library errors as click usage errors instead of tracebacks."""
    try:
        yield
    except (MORDMError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc


def parse_floats(text: str) -> list[float]:
    """Parse ``"0.1,0.2,0.3"``."""
    try:
        return [float(v) for v in text.split(",") if v.strip()]
    except ValueError as exc:
        raise click.BadParameter(f"Expected comma-separated numbers, got {text!r}") from exc


def summary_table(samples: SampleSet, title: str) -> Table:
    table = Table(title=title)
    table.add_column("Column", style="cyan")
    table.add_column("Min", justify="right")
    table.add_column("Mean", style="green", justify="right")
    table.add_column("Max", justify="right")
    table.add_column("Std", style="yellow", justify="right")

    for name in samples.names:
        col = samples.column(name)
        std = col.std(ddof=1) if len(col) > 1 else 0.0
        table.add_row(
            name,
            f"{np.min(col):.4g}",
            f"{np.mean(col):.4g}",
            f"{np.max(col):.4g}",
            f"{std:.4g}",
        )
    return table
