"""Sensitivity analysis entry point.

:func:`compute_sensitivity` drives any registered method through the same
steps: size the design from the evaluation budget, build it on the unit
cube, scale it into the problem bounds, evaluate, extract the response,
hand (design, response) to the native estimator and normalize its output.

Usage::

    problem = define_problem(model, nvars=3, nobjs=2)
    result = compute_sensitivity(problem, "f1", 1000, method="sobol2007", seed=1)
    print(result.ranked_names())
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Callable, Union

import numpy as np

from mordm.core.errors import InvalidDesignError, UnknownColumnError, UnsupportedInputError
from mordm.core.evaluate import SampleSet, evaluate
from mordm.core.problem import ProblemModel
from mordm.sensitivity.methods import SensitivityResult, get_method

logger = logging.getLogger(__name__)

ObjectiveSelector = Union[str, int, Callable[..., float]]


def resolve_response(
    samples: SampleSet, objective: ObjectiveSelector, collapse: bool = True
) -> np.ndarray:
    """Extract the scalar response vector analysed by the estimator.

    Args:
        samples: Evaluated samples.
        objective: Column name (variables, then objectives, then
                   constraints), 0-based objective index, or a callable
                   applied per row.
        collapse: Pass the callable a ``{name: value}`` dict when True,
                  a one-row SampleSet when False.

    Raises:
        UnknownColumnError: Unknown name or out-of-range index.
        UnsupportedInputError: Any other selector type, or a callable that
            does not return a scalar.
    """
    if isinstance(objective, str):
        return np.asarray(samples.column(objective), dtype=float)

    if isinstance(objective, (int, np.integer)) and not isinstance(objective, bool):
        if not 0 <= objective < samples.objectives.shape[1]:
            raise UnknownColumnError(objective, samples.objective_names)
        return np.asarray(samples.objectives[:, objective], dtype=float)

    if callable(objective):
        if collapse:
            values = [objective(row) for row in samples.rows()]
        else:
            values = [objective(samples.row(i)) for i in range(len(samples))]
        try:
            response = np.asarray(values, dtype=float)
        except (TypeError, ValueError) as exc:
            raise UnsupportedInputError(
                f"Objective function must return one number per sample: {exc}"
            ) from exc
        if response.shape != (len(samples),):
            raise UnsupportedInputError(
                f"Objective function must return one number per sample, "
                f"got responses of shape {response.shape[1:]}"
            )
        return response

    raise UnsupportedInputError(
        f"Objective must be a column name, objective index or function, "
        f"got {type(objective).__name__}"
    )


def sensitivity_levels(problem: ProblemModel, nsamples: int, method: str = "fast99") -> int:
    """Number of levels (replicates) used for ``nsamples`` evaluations."""
    return get_method(method).levels(nsamples, problem.nvars)


def compute_sensitivity(
    problem: ProblemModel,
    objective: ObjectiveSelector,
    nsamples: int,
    method: str = "fast99",
    *,
    raw: bool = False,
    collapse: bool = True,
    seed: int | None = None,
    **options: Any,
) -> SensitivityResult | dict[str, Any]:
    """Compute the sensitivity of an objective to each decision variable.

    Args:
        problem: The problem definition.
        objective: Selector for the analysed response, see
                   :func:`resolve_response`.
        nsamples: Target number of model evaluations; the actual number is
                  ``ceil(nsamples / cost) * cost``.
        method: Registered method name, see :func:`list_methods`.
        raw: Return the estimator's native result dict instead of a
             :class:`SensitivityResult`.
        collapse: How a callable objective receives each row.
        seed: Seed for every random draw of the run.
        **options: Method options (``nboot``, ``conf``, ``M``, ``levels``,
                   ``rank``, ``order``, ``num_resamples``).

    Raises:
        UnknownMethodError: If ``method`` is not registered.
        UnsupportedInputError: If an option is not accepted by ``method``.
        InvalidDesignError: If the design cannot be built for this budget.
    """
    strategy = get_method(method)
    opts = strategy.resolve_options(options)
    rng = np.random.default_rng(seed)

    n = strategy.levels(nsamples, problem.nvars)
    logger.debug("Method %s: %d levels of %d evaluations", method, n, strategy.cost(problem.nvars))

    design = strategy.build_design(problem.nvars, n, opts, rng)
    if not np.all(np.isfinite(design.X)):
        raise InvalidDesignError(
            "Invalid sampling method, try a different method or increase the number of samples"
        )
    logger.debug("Design shape %s", design.X.shape)

    samples = evaluate(problem.scale(design.X), problem)
    y = resolve_response(samples, objective, collapse=collapse)

    native = strategy.analyze(design, y, opts, rng)
    logger.info("Sensitivity analysis %s completed with %d evaluations", method, len(samples))
    if raw:
        return native

    result = strategy.normalize(native, problem.nvars)
    return dataclasses.replace(
        result,
        names=problem.variable_names,
        method=method,
        n_evaluations=len(samples),
    )
