"""Optimizer adapter for mordm.

Generates a Pareto-approximate set with either an in-process backend (any
callable with the Borg shared-library signature) or the standalone Borg
MOEA executable driving an external problem over the MOEA Framework
protocol.  The search algorithm itself lives in the backend.

Usage::

    result = optimize(problem, 10000, backend=borg)
    result = optimize(external_problem, 10000, executable="./borg.exe")
"""

from __future__ import annotations

import logging
import subprocess
import tempfile
from pathlib import Path
from typing import Any, Callable

import numpy as np

from mordm.core.errors import DimensionMismatchError, UnsupportedInputError
from mordm.core.evaluate import SampleSet, evaluate_function
from mordm.core.problem import External, ProblemModel

logger = logging.getLogger(__name__)

Backend = Callable[..., Any]


def _as_samples(matrix: np.ndarray, problem: ProblemModel) -> SampleSet:
    """Split an optimizer result matrix (vars, objs[, constrs]) into a SampleSet."""
    nv, no, nc = problem.nvars, problem.nobjs, problem.nconstrs
    matrix = np.asarray(matrix, dtype=float)
    if matrix.size == 0:
        matrix = np.empty((0, nv + no + nc))
    elif matrix.ndim == 1:
        matrix = matrix.reshape(1, -1)

    if matrix.shape[0] > 0 and matrix.shape[1] < nv + no:
        raise DimensionMismatchError(
            f"Result has {matrix.shape[1]} columns, expected at least {nv + no}"
        )

    has_constraints = nc > 0 and matrix.shape[1] >= nv + no + nc
    return SampleSet(
        variables=matrix[:, :nv].reshape(-1, nv),
        objectives=matrix[:, nv : nv + no].reshape(-1, no),
        constraints=matrix[:, nv + no : nv + no + nc].reshape(-1, nc) if has_constraints else None,
        variable_names=problem.variable_names,
        objective_names=problem.objective_names,
        constraint_names=problem.constraint_names if has_constraints else (),
    )


def minimization_function(problem: ProblemModel) -> Callable[[np.ndarray], np.ndarray]:
    """Wrap an in-process problem as ``f(x) -> objectives + constraints``.

    Maximized objectives are negated so the backend always minimizes.
    """
    maximize = list(problem.maximize)

    def function(x: np.ndarray) -> np.ndarray:
        output = evaluate_function(np.atleast_2d(np.asarray(x, dtype=float)), problem)[0]
        if maximize:
            output[maximize] *= -1.0
        return output

    return function


def optimize(
    problem: ProblemModel, nfe: int, backend: Backend | None = None, **kwargs: Any
) -> SampleSet | None:
    """Optimize a problem with the backend matching its evaluation target.

    Args:
        problem: The problem definition.
        nfe: Maximum number of function evaluations.
        backend: In-process optimizer called as ``backend(nvars, nobjs,
                 nconstrs, function, nfe, epsilons, lower_bounds=...,
                 upper_bounds=..., **kwargs)`` returning the result matrix.
        **kwargs: Backend parameters, or :func:`optimize_external` options
                  for external problems.

    Returns:
        The Pareto-approximate set with objectives in minimization form.
    """
    if problem.is_external:
        return optimize_external(problem, nfe, **kwargs)

    if backend is None:
        raise UnsupportedInputError("An in-process problem requires an optimizer backend")

    logger.info("Optimizing in-process problem for %d evaluations", nfe)
    output = backend(
        problem.nvars,
        problem.nobjs,
        problem.nconstrs,
        minimization_function(problem),
        nfe,
        list(problem.epsilons),
        lower_bounds=problem.lower_bounds.tolist(),
        upper_bounds=problem.upper_bounds.tolist(),
        **kwargs,
    )
    return _as_samples(output, problem)


def _join(values: Any) -> str:
    return ",".join(repr(float(v)) for v in values)


def build_optimizer_command(
    problem: ProblemModel,
    nfe: int,
    executable: str = "borg.exe",
    output: str | Path = "",
    output_frequency: int = 100,
) -> list[str]:
    """Argument vector for the standalone optimizer executable."""
    if not isinstance(problem.target, External):
        raise UnsupportedInputError("Problem must be an external executable")

    return [
        executable,
        "-n", str(int(nfe)),
        "-v", str(problem.nvars),
        "-o", str(problem.nobjs),
        "-c", str(problem.nconstrs),
        "-l", _join(problem.lower_bounds),
        "-u", _join(problem.upper_bounds),
        "-e", _join(problem.epsilons),
        "-R", str(output),
        "-F", str(int(output_frequency)),
        *problem.target.argv,
    ]


def optimize_external(
    problem: ProblemModel,
    nfe: int,
    executable: str = "borg.exe",
    output: str | Path | None = None,
    output_frequency: int = 100,
    return_output: bool = True,
) -> SampleSet | None:
    """Run the standalone optimizer executable on an external problem.

    Args:
        problem: Problem whose target is an external command.
        nfe: Maximum number of function evaluations.
        executable: Path to the optimizer executable.
        output: Runtime output file (a temporary file if None).
        output_frequency: Evaluations between runtime snapshots.
        return_output: Read and return the final approximation set.

    Raises:
        UnsupportedInputError: If the problem is in-process.
        subprocess.CalledProcessError: If the optimizer exits non-zero.
    """
    if not problem.is_external:
        raise UnsupportedInputError("Problem must be an external executable")

    if output is None:
        with tempfile.NamedTemporaryFile(prefix="mordm_", suffix=".runtime", delete=False) as fh:
            output = fh.name

    command = build_optimizer_command(problem, nfe, executable, output, output_frequency)
    logger.info("Running command: %s", " ".join(command))
    subprocess.run(command, check=True)

    if not return_output:
        return None
    return read_results(output, problem)


def read_results(path: str | Path, problem: ProblemModel) -> SampleSet:
    """Read the last approximation set from an optimizer runtime file.

    Lines starting with ``//`` carry metadata (NFE, elapsed time, ...);
    a line starting with ``#`` ends an approximation set.  Rows hold the
    variables, then objectives, then any constraints.
    """
    sets: list[list[list[float]]] = []
    current: list[list[float]] = []

    with open(path) as fh:
        for line in fh:
            line = line.strip()
            if not line or line.startswith("//"):
                continue
            if line.startswith("#"):
                sets.append(current)
                current = []
                continue
            current.append([float(token) for token in line.split()])

    if current:
        sets.append(current)

    last = sets[-1] if sets else []
    logger.debug("Read %d approximation sets from %s", len(sets), path)

    samples = _as_samples(np.array(last, dtype=float), problem)
    if not problem.maximize or len(samples) == 0:
        return samples

    objectives = samples.objectives.copy()
    objectives[:, list(problem.maximize)] *= -1.0
    return SampleSet(
        variables=samples.variables,
        objectives=objectives,
        constraints=samples.constraints,
        variable_names=samples.variable_names,
        objective_names=samples.objective_names,
        constraint_names=samples.constraint_names,
    )
