"""Nonparametric bootstrap for vector-valued statistics.

The statistic is a closure over the caller's data that receives an array
of row indices; the bootstrap only draws the indices, so the same helper
serves paired (design, response) resampling and block-structured
pick-freeze estimators alike.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import numpy as np
from scipy.stats import norm

KINDS = ("basic", "percentile", "norm")

Statistic = Callable[[np.ndarray], np.ndarray]


@dataclass(frozen=True)
class BootstrapStats:
    """Per-index bootstrap summary."""

    original: np.ndarray
    bias: np.ndarray
    std_error: np.ndarray
    low: np.ndarray
    high: np.ndarray

    @property
    def interval(self) -> np.ndarray:
        """k x 2 matrix of (min, max) confidence bounds."""
        return np.column_stack([self.low, self.high])


def bootstrap(
    n: int,
    statistic: Statistic,
    nboot: int,
    conf: float = 0.95,
    kind: str = "basic",
    rng: np.random.Generator | None = None,
) -> BootstrapStats:
    """Bootstrap ``statistic`` over ``n`` rows.

    Args:
        n: Number of rows in the data the statistic closes over.
        statistic: Maps an index array (length n) to a vector of k values.
        nboot: Number of resamples.
        conf: Confidence level of the interval.
        kind: ``"basic"`` (reflected quantiles), ``"percentile"``, or
              ``"norm"`` (bias-corrected normal approximation).
        rng: Random generator.

    Returns:
        BootstrapStats with the original estimate and its interval.
    """
    if kind not in KINDS:
        raise ValueError(f"Unknown bootstrap interval {kind!r}, expected one of {KINDS}")
    if nboot < 2:
        raise ValueError(f"nboot must be at least 2, got {nboot}")
    if not 0.0 < conf < 1.0:
        raise ValueError(f"conf must be in (0, 1), got {conf}")

    rng = rng if rng is not None else np.random.default_rng()
    t0 = np.atleast_1d(np.asarray(statistic(np.arange(n)), dtype=float))
    t = np.empty((nboot, t0.shape[0]))
    for b in range(nboot):
        t[b] = statistic(rng.integers(0, n, size=n))

    alpha = (1.0 - conf) / 2.0
    bias = t.mean(axis=0) - t0
    std_error = t.std(axis=0, ddof=1)

    if kind == "norm":
        z = norm.ppf(1.0 - alpha)
        centre = t0 - bias
        low, high = centre - z * std_error, centre + z * std_error
    else:
        q_low, q_high = np.quantile(t, [alpha, 1.0 - alpha], axis=0)
        if kind == "basic":
            low, high = 2.0 * t0 - q_high, 2.0 * t0 - q_low
        else:
            low, high = q_low, q_high

    return BootstrapStats(original=t0, bias=bias, std_error=std_error, low=low, high=high)
