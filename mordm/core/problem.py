"""Problem definition for mordm.

A problem couples the shape of a simulation model (decision variables,
objectives, constraints, bounds) with the thing that evaluates it:
either a Python callable run in-process, or an external executable that
speaks the MOEA Framework text protocol on stdin/stdout.

Usage::

    def dtlz2(x):
        ...
        return objectives, constraints

    problem = define_problem(dtlz2, nvars=11, nobjs=2, maximize=["f2"])
"""

from __future__ import annotations

import functools
import logging
import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Sequence, Union

import numpy as np

from mordm.core.errors import DimensionMismatchError, UnsupportedInputError
from mordm.utils.validation import validate_problem_definition

logger = logging.getLogger(__name__)

DEFAULT_EPSILON = 0.01

ProblemFunction = Callable[[np.ndarray], Any]


@dataclass(frozen=True)
class InProcess:
    """Evaluation target backed by a Python callable."""

    function: ProblemFunction


@dataclass(frozen=True)
class External:
    """Evaluation target backed by an external executable."""

    command: str

    @property
    def argv(self) -> list[str]:
        return shlex.split(self.command)


EvaluationTarget = Union[InProcess, External]


@dataclass(frozen=True, eq=False)
class ProblemModel:
    """Immutable description of a simulation/optimization problem.

    Args:
        target: What evaluates a row of decision variables.
        nvars: Number of decision variables.
        nobjs: Number of objectives.
        nconstrs: Number of constraints.
        bounds: 2 x nvars array (row 0 lower, row 1 upper).
        names: Variable, objective and constraint names, in that order.
        epsilons: Per-objective epsilon precision for the optimizer.
        maximize: 0-based objective indices that are maximized.
    """

    target: EvaluationTarget
    nvars: int
    nobjs: int
    nconstrs: int
    bounds: np.ndarray = field(repr=False)
    names: tuple[str, ...]
    epsilons: tuple[float, ...]
    maximize: tuple[int, ...] = ()

    def __post_init__(self) -> None:
        bounds = np.array(self.bounds, dtype=float)
        bounds.flags.writeable = False
        object.__setattr__(self, "bounds", bounds)

    @property
    def is_external(self) -> bool:
        return isinstance(self.target, External)

    @property
    def lower_bounds(self) -> np.ndarray:
        return self.bounds[0]

    @property
    def upper_bounds(self) -> np.ndarray:
        return self.bounds[1]

    @property
    def variable_names(self) -> tuple[str, ...]:
        return self.names[: self.nvars]

    @property
    def objective_names(self) -> tuple[str, ...]:
        return self.names[self.nvars : self.nvars + self.nobjs]

    @property
    def constraint_names(self) -> tuple[str, ...]:
        return self.names[self.nvars + self.nobjs :]

    def scale(self, unit_design: np.ndarray) -> np.ndarray:
        """Map a unit-cube design into the problem bounds."""
        unit_design = np.asarray(unit_design, dtype=float)
        if unit_design.ndim != 2 or unit_design.shape[1] != self.nvars:
            raise DimensionMismatchError(
                f"Design has shape {unit_design.shape}, expected (n, {self.nvars})"
            )
        return unit_design * (self.upper_bounds - self.lower_bounds) + self.lower_bounds

    def check_bounds(self, points: np.ndarray) -> bool:
        """Return True if every point lies within the problem bounds."""
        points = np.atleast_2d(np.asarray(points, dtype=float))
        if points.shape[1] != self.nvars:
            raise DimensionMismatchError(
                f"Number of columns must match number of variables ({self.nvars})"
            )
        return bool(np.all((points >= self.lower_bounds) & (points <= self.upper_bounds)))


def generate_names(nvars: int, nobjs: int, nconstrs: int = 0) -> list[str]:
    """Default column names: ``x1..``, ``f1..``, ``c1..``."""
    return (
        [f"x{i + 1}" for i in range(nvars)]
        + [f"f{i + 1}" for i in range(nobjs)]
        + [f"c{i + 1}" for i in range(nconstrs)]
    )


def adjust_command(command: str) -> str:
    """Prepend ``./`` to a bare executable found in the working directory.

    Without the prefix a POSIX shell would search ``PATH`` instead of the
    current directory.  Does nothing on Windows.
    """
    parts = command.split()
    if not parts or os.name == "nt":
        return command

    exe = Path(parts[0])
    if exe.exists() and str(exe.parent) == "." and not parts[0].startswith("."):
        parts[0] = f"./{parts[0]}"
        return " ".join(parts)
    return command


def _resolve_names(
    names: Sequence[str] | None, nvars: int, nobjs: int, nconstrs: int
) -> list[str]:
    if names is None:
        return generate_names(nvars, nobjs, nconstrs)

    names = list(names)
    if len(names) == nvars + nobjs + nconstrs:
        return names
    if len(names) == nobjs + nconstrs:
        return generate_names(nvars, 0) + names
    if len(names) == nobjs:
        return generate_names(nvars, 0) + names + [f"c{i + 1}" for i in range(nconstrs)]
    if len(names) == nvars + nobjs:
        return names + [f"c{i + 1}" for i in range(nconstrs)]

    logger.warning("Incorrect number of names (%d), using defaults", len(names))
    return generate_names(nvars, nobjs, nconstrs)


def _resolve_maximize(
    maximize: Sequence[int | str] | int | str | None, objective_names: list[str]
) -> tuple[int, ...]:
    if maximize is None:
        return ()
    if isinstance(maximize, (int, str)):
        maximize = [maximize]

    indices: list[int] = []
    for item in maximize:
        if isinstance(item, str):
            if item not in objective_names:
                raise ValueError(
                    f"Unknown objective {item!r} in maximize, valid objectives are: "
                    + ", ".join(objective_names)
                )
            indices.append(objective_names.index(item))
        else:
            indices.append(int(item))
    return tuple(sorted(set(indices)))


def define_problem(
    command: ProblemFunction | str,
    nvars: int,
    nobjs: int,
    nconstrs: int = 0,
    bounds: Sequence[Sequence[float]] | np.ndarray | None = None,
    names: Sequence[str] | None = None,
    epsilons: Sequence[float] | None = None,
    maximize: Sequence[int | str] | int | str | None = None,
) -> ProblemModel:
    """Define a new problem formulation.

    Args:
        command: A Python callable taking a 1-D array of decision variables,
                 or the command line of an external executable.
        nvars: Number of decision variables.
        nobjs: Number of objectives.
        nconstrs: Number of constraints.
        bounds: 2 x nvars lower/upper bounds.  Defaults to [0, 1].
        names: Column names; see :func:`_resolve_names` for partial lists.
        epsilons: Epsilon values for the optimizer (default 0.01 each).
        maximize: Objective indices (0-based) or names to maximize.

    Returns:
        The immutable ProblemModel.

    Raises:
        ValueError: If the definition fails validation.
    """
    if callable(command):
        target: EvaluationTarget = InProcess(command)
    elif isinstance(command, str):
        target = External(adjust_command(command))
    else:
        raise UnsupportedInputError("Command must be a Python callable or a command string")

    if bounds is None:
        bounds_arr = np.vstack([np.zeros(nvars), np.ones(nvars)])
    else:
        bounds_arr = np.asarray(bounds, dtype=float)

    all_names = _resolve_names(names, nvars, nobjs, nconstrs)
    eps = [DEFAULT_EPSILON] * nobjs if epsilons is None else [float(e) for e in epsilons]
    max_idx = _resolve_maximize(maximize, all_names[nvars : nvars + nobjs])

    result = validate_problem_definition(
        nvars, nobjs, nconstrs, bounds_arr, all_names, eps, max_idx
    )
    for msg in result.warnings:
        logger.warning("%s: %s", msg.parameter, msg.message)
    result.raise_for_errors()

    return ProblemModel(
        target=target,
        nvars=nvars,
        nobjs=nobjs,
        nconstrs=nconstrs,
        bounds=bounds_arr,
        names=tuple(all_names),
        epsilons=tuple(eps),
        maximize=max_idx,
    )


def with_parameters(function: Callable[..., Any], **params: Any) -> Callable[..., Any]:
    """Return ``function`` with the named parameters fixed."""
    return functools.partial(function, **params)


def create_uncertainty_models(
    problem: ProblemModel, factors: Sequence[dict[str, float]]
) -> list[ProblemModel]:
    """Create one problem per uncertainty parameterization.

    The factor names must match keyword arguments of the problem function.

    Args:
        problem: An in-process problem.
        factors: Parameterizations, e.g. from
                 :func:`mordm.optimization.design.sample_lhs`.
    """
    if not isinstance(problem.target, InProcess):
        raise UnsupportedInputError(
            "Uncertainty models require a problem defined by a Python function"
        )

    return [
        ProblemModel(
            target=InProcess(with_parameters(problem.target.function, **factor)),
            nvars=problem.nvars,
            nobjs=problem.nobjs,
            nconstrs=problem.nconstrs,
            bounds=problem.bounds,
            names=problem.names,
            epsilons=problem.epsilons,
            maximize=problem.maximize,
        )
        for factor in factors
    ]
