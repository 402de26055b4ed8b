"""Design-of-experiments generators for mordm.

Unit-cube designs (uniform random and Latin hypercube), matched pairs of
independent designs, scaling into problem bounds, and the sampling
helpers that generate and evaluate in one step.
"""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from mordm.core.errors import (
    DimensionMismatchError,
    InvalidDesignError,
    UnknownMethodError,
    UnsupportedInputError,
)
from mordm.core.evaluate import SampleSet, evaluate
from mordm.core.problem import ProblemModel

logger = logging.getLogger(__name__)

SCHEMES = ("uniform", "lhs")

# rejection rounds per variable before nsample gives up
MAX_REDRAWS = 1000


def uniform_design(n: int, d: int, rng: np.random.Generator) -> np.ndarray:
    """n x d matrix of independent U[0, 1) draws."""
    return rng.random((n, d))


def latin_hypercube(n: int, d: int, rng: np.random.Generator) -> np.ndarray:
    """Random Latin hypercube on the unit cube.

    Each column places exactly one sample in each of the n equal-width
    strata of [0, 1), with the strata order permuted independently per
    column.
    """
    lhs = np.empty((n, d))
    for j in range(d):
        perm = rng.permutation(n)
        lhs[:, j] = (perm + rng.uniform(size=n)) / n
    return lhs


def unit_design(n: int, d: int, scheme: str, rng: np.random.Generator) -> np.ndarray:
    if scheme == "uniform":
        return uniform_design(n, d, rng)
    if scheme == "lhs":
        return latin_hypercube(n, d, rng)
    raise UnknownMethodError(scheme, SCHEMES)


def design_pair(
    n: int, d: int, rng: np.random.Generator, scheme: str = "uniform"
) -> tuple[np.ndarray, np.ndarray]:
    """Two independent unit designs of equal shape."""
    return unit_design(n, d, scheme, rng), unit_design(n, d, scheme, rng)


def scale_design(unit: np.ndarray, bounds: np.ndarray) -> np.ndarray:
    """Map ``unit`` into bounds: ``unit * (upper - lower) + lower``."""
    bounds = np.asarray(bounds, dtype=float)
    return np.asarray(unit, dtype=float) * (bounds[1] - bounds[0]) + bounds[0]


def scaled_design(
    nvars: int,
    nsamples: int,
    scheme: str = "uniform",
    bounds: np.ndarray | None = None,
    rng: np.random.Generator | None = None,
) -> np.ndarray:
    """Generate a design and scale it into ``bounds`` (unit cube if None)."""
    rng = rng if rng is not None else np.random.default_rng()
    design = unit_design(nsamples, nvars, scheme, rng)
    if bounds is None:
        return design
    return scale_design(design, bounds)


def usample(nsamples: int, problem: ProblemModel, seed: int | None = None) -> SampleSet:
    """Evaluate uniformly distributed random inputs."""
    rng = np.random.default_rng(seed)
    points = scaled_design(problem.nvars, nsamples, "uniform", problem.bounds, rng)
    return evaluate(points, problem)


def lhsample(nsamples: int, problem: ProblemModel, seed: int | None = None) -> SampleSet:
    """Evaluate Latin hypercube sampled inputs."""
    rng = np.random.default_rng(seed)
    points = scaled_design(problem.nvars, nsamples, "lhs", problem.bounds, rng)
    return evaluate(points, problem)


def _per_variable(value: float | Sequence[float], label: str, problem: ProblemModel) -> np.ndarray:
    arr = np.atleast_1d(np.asarray(value, dtype=float))
    if arr.ndim != 1 or arr.size not in (1, problem.nvars):
        raise DimensionMismatchError(
            f"{label} must be a scalar or have {problem.nvars} values, got shape {arr.shape}"
        )
    return np.broadcast_to(arr, (problem.nvars,))


def nsample(
    mean: float | Sequence[float],
    sd: float | Sequence[float],
    nsamples: int,
    problem: ProblemModel,
    seed: int | None = None,
) -> SampleSet:
    """Evaluate normally distributed inputs truncated to the problem bounds.

    Draws outside the bounds are rejected and redrawn.

    Args:
        mean: Scalar or per-variable mean (typically the candidate solution).
        sd: Scalar or per-variable standard deviation.
        nsamples: Number of samples.
        problem: The problem definition.
        seed: Random seed.
    """
    rng = np.random.default_rng(seed)
    mean_arr = _per_variable(mean, "mean", problem)
    sd_arr = _per_variable(sd, "sd", problem)

    points = np.empty((nsamples, problem.nvars))
    for j in range(problem.nvars):
        lower, upper = problem.bounds[0, j], problem.bounds[1, j]
        column = rng.normal(mean_arr[j], sd_arr[j], size=nsamples)
        outside = (column < lower) | (column > upper)
        rounds = 0
        while outside.any():
            rounds += 1
            if rounds > MAX_REDRAWS:
                raise InvalidDesignError(
                    f"Unable to draw {problem.variable_names[j]} within [{lower}, {upper}] "
                    f"from N({mean_arr[j]}, {sd_arr[j]}) after {MAX_REDRAWS} redraws"
                )
            column[outside] = rng.normal(mean_arr[j], sd_arr[j], size=int(outside.sum()))
            outside = (column < lower) | (column > upper)
        points[:, j] = column

    return evaluate(points, problem)


def sample_lhs(
    nsamples: int, seed: int | None = None, **params: tuple[float, float]
) -> list[dict[str, float]]:
    """Latin hypercube samples of named uncertainty parameters.

    Usage::

        factors = sample_lhs(100, a=(0, 10), b=(-1, 1))

    Returns:
        One ``{name: value}`` dict per sample.
    """
    if not params:
        raise UnsupportedInputError("Either no parameters specified or missing parameter names")

    rng = np.random.default_rng(seed)
    names = list(params)
    bounds = np.array([[min(params[p]), max(params[p])] for p in names], dtype=float).T
    factors = scale_design(latin_hypercube(nsamples, len(names), rng), bounds)

    return [
        {name: float(value) for name, value in zip(names, row)} for row in factors
    ]
