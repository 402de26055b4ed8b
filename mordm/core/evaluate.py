"""Evaluation of decision variables against a problem.

Every sampling, sensitivity and robustness operation funnels through
:func:`evaluate`: row *i* of the design always becomes row *i* of the
returned :class:`SampleSet`.

External problems follow the MOEA Framework protocol: one line of
space-separated variables per sample, then an empty line; the process
answers with one line of objectives followed by constraints per sample.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Any, Iterator

import numpy as np

from mordm.core.errors import (
    DimensionMismatchError,
    ProtocolViolationError,
    UnknownColumnError,
)
from mordm.core.problem import External, InProcess, ProblemModel

logger = logging.getLogger(__name__)


def _frozen(array: np.ndarray) -> np.ndarray:
    array = np.array(array, dtype=float)
    array.flags.writeable = False
    return array


@dataclass(frozen=True, eq=False)
class SampleSet:
    """Evaluated samples: variables, objectives and optional constraints.

    Objective columns already reflect the maximize sign correction.
    The arrays are read-only; treat the set as a value.
    """

    variables: np.ndarray
    objectives: np.ndarray
    constraints: np.ndarray | None
    variable_names: tuple[str, ...]
    objective_names: tuple[str, ...]
    constraint_names: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "variables", _frozen(np.atleast_2d(self.variables)))
        object.__setattr__(self, "objectives", _frozen(np.atleast_2d(self.objectives)))
        if self.constraints is not None:
            object.__setattr__(self, "constraints", _frozen(np.atleast_2d(self.constraints)))

        n = self.variables.shape[0]
        if self.objectives.shape[0] != n or (
            self.constraints is not None and self.constraints.shape[0] != n
        ):
            raise DimensionMismatchError("Variables, objectives and constraints differ in rows")

    def __len__(self) -> int:
        return self.variables.shape[0]

    @property
    def names(self) -> tuple[str, ...]:
        return self.variable_names + self.objective_names + self.constraint_names

    @property
    def has_constraints(self) -> bool:
        return self.constraints is not None and self.constraints.shape[1] > 0

    @property
    def feasible(self) -> np.ndarray:
        """Boolean mask of rows whose constraints are all exactly zero."""
        if not self.has_constraints:
            return np.ones(len(self), dtype=bool)
        return np.all(self.constraints == 0.0, axis=1)

    def column(self, name: str) -> np.ndarray:
        """Return the column with the given name.

        Variables are searched first, then objectives, then constraints.
        """
        if name in self.variable_names:
            return self.variables[:, self.variable_names.index(name)]
        if name in self.objective_names:
            return self.objectives[:, self.objective_names.index(name)]
        if self.has_constraints and name in self.constraint_names:
            return self.constraints[:, self.constraint_names.index(name)]
        raise UnknownColumnError(name, self.names)

    def row(self, index: int) -> SampleSet:
        """Return a one-row SampleSet."""
        index = range(len(self))[index]
        sl = slice(index, index + 1)
        return SampleSet(
            variables=self.variables[sl],
            objectives=self.objectives[sl],
            constraints=None if self.constraints is None else self.constraints[sl],
            variable_names=self.variable_names,
            objective_names=self.objective_names,
            constraint_names=self.constraint_names,
        )

    def as_dict(self, index: int) -> dict[str, float]:
        """Return row ``index`` as a ``{name: value}`` mapping over all columns."""
        values = [self.variables[index], self.objectives[index]]
        if self.has_constraints:
            values.append(self.constraints[index])
        return dict(zip(self.names, (float(v) for v in np.concatenate(values))))

    def rows(self) -> Iterator[dict[str, float]]:
        for i in range(len(self)):
            yield self.as_dict(i)


def check_length(points: np.ndarray, problem: ProblemModel) -> np.ndarray:
    """Return ``points`` as a 2-D float array with ``problem.nvars`` columns.

    Raises:
        DimensionMismatchError: If the column count (or vector length) is wrong.
    """
    points = np.asarray(points, dtype=float)
    if points.ndim == 1:
        if points.shape[0] != problem.nvars:
            raise DimensionMismatchError(
                f"Length of vector ({points.shape[0]}) must match number of variables "
                f"({problem.nvars})"
            )
        return points.reshape(1, -1)
    if points.ndim != 2 or points.shape[1] != problem.nvars:
        raise DimensionMismatchError(
            f"Number of columns ({points.shape[-1]}) must match number of variables "
            f"({problem.nvars})"
        )
    return points


def _flatten_response(response: Any) -> np.ndarray:
    """Accept a flat sequence or an ``(objectives, constraints)`` pair."""
    if isinstance(response, (tuple, list)) and any(
        np.ndim(part) > 0 for part in response
    ):
        return np.concatenate([np.atleast_1d(np.asarray(part, dtype=float)) for part in response])
    return np.atleast_1d(np.asarray(response, dtype=float)).ravel()


def evaluate_function(points: np.ndarray, problem: ProblemModel) -> np.ndarray:
    """Evaluate an in-process problem row by row.

    Returns:
        N x (nobjs + nconstrs) response matrix.
    """
    if not isinstance(problem.target, InProcess):
        raise TypeError("evaluate_function requires an in-process problem")

    width = problem.nobjs + problem.nconstrs
    result = np.zeros((points.shape[0], width))

    for i, row in enumerate(points):
        values = _flatten_response(problem.target.function(row.copy()))
        if values.shape[0] != width:
            raise DimensionMismatchError(
                f"Function returned {values.shape[0]} values for sample {i}, expected {width}"
            )
        result[i] = values

    return result


def _parse_line(line: str, width: int, lineno: int) -> list[float]:
    try:
        values = [float(token) for token in line.split()]
    except ValueError as exc:
        raise ProtocolViolationError(f"Output line {lineno} is not numeric: {line!r}") from exc
    if len(values) != width:
        raise ProtocolViolationError(
            f"Output line {lineno} has {len(values)} values, expected {width}: {line!r}"
        )
    return values


def evaluate_external(
    points: np.ndarray, problem: ProblemModel, timeout: float | None = None
) -> np.ndarray:
    """Evaluate an external problem in one blocking round-trip.

    Args:
        points: N x nvars decision variables.
        problem: Problem whose target is an :class:`External` command.
        timeout: Optional timeout in seconds passed to ``subprocess.run``.

    Raises:
        ProtocolViolationError: If the output does not hold one line of
            nobjs + nconstrs numbers per input row.
        subprocess.CalledProcessError: If the process exits non-zero.
    """
    if not isinstance(problem.target, External):
        raise TypeError("evaluate_external requires an external problem")

    lines = [" ".join(repr(float(v)) for v in row) for row in points]
    lines.append("")
    stdin = "\n".join(lines) + "\n"

    logger.debug("Running %s on %d samples", problem.target.command, points.shape[0])
    completed = subprocess.run(
        problem.target.argv,
        input=stdin,
        capture_output=True,
        text=True,
        check=True,
        timeout=timeout,
    )

    width = problem.nobjs + problem.nconstrs
    output = [line for line in completed.stdout.splitlines() if line.strip()]
    if len(output) != points.shape[0]:
        raise ProtocolViolationError(
            f"Expected {points.shape[0]} output lines, received {len(output)}"
        )

    return np.array(
        [_parse_line(line, width, i + 1) for i, line in enumerate(output)], dtype=float
    ).reshape(points.shape[0], width)


def evaluate(
    points: np.ndarray, problem: ProblemModel, timeout: float | None = None
) -> SampleSet:
    """Evaluate the problem at the given decision variables.

    Args:
        points: N x nvars matrix (or a single nvars vector).
        problem: The problem definition.
        timeout: Timeout for external problems, in seconds.

    Returns:
        SampleSet with named, sign-corrected objectives.
    """
    points = check_length(points, problem)

    if isinstance(problem.target, InProcess):
        output = evaluate_function(points, problem)
    else:
        output = evaluate_external(points, problem, timeout=timeout)

    objectives = output[:, : problem.nobjs].copy()
    if problem.maximize:
        objectives[:, list(problem.maximize)] *= -1.0

    constraints = output[:, problem.nobjs :] if problem.nconstrs > 0 else None

    logger.debug("Evaluated %d samples", points.shape[0])
    return SampleSet(
        variables=points,
        objectives=objectives,
        constraints=constraints,
        variable_names=problem.variable_names,
        objective_names=problem.objective_names,
        constraint_names=problem.constraint_names,
    )
