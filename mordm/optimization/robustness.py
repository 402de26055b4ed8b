"""Robustness metrics over a cloud of evaluated samples.

Robustness is a scalar where larger values are more robust.  The metrics
are on different scales, so compare values of the same metric only.

Usage::

    cloud = nsample(solution, 0.05, 500, problem, seed=3)
    score = check_robustness(cloud, problem, "default")
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Sequence

import numpy as np

from mordm.core.errors import UnknownMethodError, UnsupportedInputError
from mordm.core.evaluate import SampleSet
from mordm.core.problem import ProblemModel

logger = logging.getLogger(__name__)

RobustnessMetric = Callable[..., float]


def _first_row(point: Any, attribute: str) -> np.ndarray | None:
    if point is None:
        return None
    values = getattr(point, attribute, None)
    if values is None:
        raise UnsupportedInputError(f"original_point has no {attribute!r} attribute")
    return np.atleast_2d(np.asarray(values, dtype=float))[0]


def robustness_variance(
    samples: SampleSet,
    problem: ProblemModel,
    weights: Sequence[float] | None = None,
    original_point: Any = None,
) -> float:
    """Negative weighted sum of per-objective standard deviations."""
    weights = np.ones(problem.nobjs) if weights is None else np.asarray(weights, dtype=float)
    sd = samples.objectives.std(axis=0, ddof=1)
    for name, value in zip(samples.objective_names, sd):
        logger.debug("Objective %s stdev: %g", name, value)
    return float(-np.sum(weights * sd))


def robustness_constraints(
    samples: SampleSet,
    problem: ProblemModel,
    weights: Sequence[float] | None = None,
    original_point: Any = None,
) -> float:
    """One minus the fraction of samples violating any constraint."""
    if problem.nconstrs == 0 or not samples.has_constraints:
        return 1.0
    violated = int(np.count_nonzero(~samples.feasible))
    logger.debug("Constraint violations: %.1f %%", 100.0 * violated / len(samples))
    return 1.0 - violated / len(samples)


def robustness_distance(
    samples: SampleSet,
    problem: ProblemModel,
    weights: Sequence[float] | None = None,
    original_point: Any = None,
) -> float:
    """Negative RMS objective-space distance to the original point."""
    origin = _first_row(original_point, "objectives")
    if origin is None:
        return 0.0
    distances = np.linalg.norm(samples.objectives - origin, axis=1)
    return float(-np.sqrt(np.mean(distances**2)))


def robustness_gap(
    samples: SampleSet,
    problem: ProblemModel,
    weights: Sequence[float] | None = None,
    original_point: Any = None,
) -> float:
    """Info-gap style distance to the nearest infeasible sample.

    Approximates the distance from the original point to the constraint
    boundary using only the sampled points.  Without an original point the
    sample mean stands in for it.
    """
    if problem.nconstrs == 0 or not samples.has_constraints:
        return 1.0

    origin = _first_row(original_point, "variables")
    if origin is None:
        origin = samples.variables.mean(axis=0)

    distances = np.linalg.norm(samples.variables - origin, axis=1)
    infeasible = ~samples.feasible
    if infeasible.any():
        return float(distances[infeasible].min())
    return float(distances.max())


def robustness_default(
    samples: SampleSet,
    problem: ProblemModel,
    weights: Sequence[float] | None = None,
    original_point: Any = None,
) -> float:
    """Variance metric penalized by the constraint violation rate."""
    variance = robustness_variance(samples, problem, weights, original_point)
    return variance * (2.0 - robustness_constraints(samples, problem, weights, original_point))


METRICS: dict[str, RobustnessMetric] = {
    "default": robustness_default,
    "variance": robustness_variance,
    "constraints": robustness_constraints,
    "infogap": robustness_gap,
    "gap": robustness_gap,
    "distance": robustness_distance,
}


def check_robustness(
    samples: SampleSet,
    problem: ProblemModel,
    method: str | RobustnessMetric = "default",
    *,
    weights: Sequence[float] | None = None,
    original_point: Any = None,
) -> float:
    """Compute a robustness metric.

    Args:
        samples: Evaluated samples around a candidate solution.
        problem: The problem definition.
        method: Metric name (``default``, ``variance``, ``constraints``,
                ``infogap``/``gap``, ``distance``) or a callable invoked as
                ``method(samples, problem, weights=..., original_point=...)``.
        weights: Per-objective weights for the variance metric.
        original_point: The analysed solution; a SampleSet (first row used)
                        or anything with ``variables`` / ``objectives``.

    Raises:
        UnknownMethodError: For an unknown metric name.
        UnsupportedInputError: If ``method`` is neither a name nor callable.
    """
    if isinstance(method, str):
        if method not in METRICS:
            raise UnknownMethodError(method, list(METRICS))
        metric = METRICS[method]
    elif callable(method):
        metric = method
    else:
        raise UnsupportedInputError(
            f"Robustness method must be a name or function, got {type(method).__name__}"
        )

    robustness = float(metric(samples, problem, weights=weights, original_point=original_point))
    logger.info("Overall robustness: %g", robustness)
    return robustness
