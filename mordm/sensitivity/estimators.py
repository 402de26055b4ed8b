"""Native sensitivity estimators.

Two families live here:

* Pick-freeze (Sobol-type) estimators operating on the response blocks
  produced by the designs in :mod:`mordm.sensitivity.methods`, plus the
  regression-based SRC and PCC indices.  Each returns a dict with ``S``
  (first order), optionally ``T`` (total order), and ``S_conf`` /
  ``T_conf`` (k x 2 bootstrap bounds) when ``nboot > 0``.
* Thin wrappers over SALib for FAST, Morris and the delta moment-independent
  measure; these return SALib's own result dicts.

Block conventions (n base rows, p variables):

    A, B   two independent n x p unit designs
    C_i    B with column i taken from A
    y      (k, n) response blocks, one row per evaluated block
"""

from __future__ import annotations

import logging
from typing import Any, Callable

import numpy as np
from scipy import linalg
from scipy.stats import rankdata
from SALib.analyze import delta as delta_analyze
from SALib.analyze import fast as fast_analyze
from SALib.analyze import morris as morris_analyze
from SALib.sample import fast_sampler
from SALib.sample import morris as morris_sampler

from mordm.sensitivity.bootstrap import bootstrap

logger = logging.getLogger(__name__)

BlockEstimator = Callable[[np.ndarray], tuple]


# --- Pick-freeze estimators on response blocks ---


def first_order_covariance(y: np.ndarray) -> tuple[np.ndarray, None]:
    """Sobol (2001): S_i = Cov(f(A), f(C_i)) / Var(f(A)).

    Also serves the replicated designs (Mara 2008) once the second
    replicate has been re-aligned on each variable.
    """
    y0, yi = y[0], y[1:]
    s = ((yi * y0).mean(axis=1) - y0.mean() * yi.mean(axis=1)) / y0.var(ddof=1)
    return s, None


def first_order_efficient(y: np.ndarray) -> tuple[np.ndarray, None]:
    """Monod, Naud and Makowski (2006)."""
    y0, yi = y[0], y[1:]
    f0 = ((y0 + yi) / 2.0).mean(axis=1)
    variance = ((y0**2 + yi**2) / 2.0).mean(axis=1) - f0**2
    s = ((y0 * yi).mean(axis=1) - f0**2) / variance
    return s, None


def saltelli2002(y: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Saltelli (2002) first and total order."""
    ya, yb, yc = y[0], y[1], y[2:]
    variance = ya.var(ddof=1)
    f0sq = ya.mean() * yb.mean()
    s = ((ya * yc).mean(axis=1) - f0sq) / variance
    t = 1.0 - ((yb * yc).mean(axis=1) - f0sq) / variance
    return s, t


def sobol2007(y: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Sobol (2007) / Saltelli et al. (2010)."""
    ya, yb, yc = y[0], y[1], y[2:]
    variance = ya.var(ddof=1)
    s = (ya * (yc - yb)).mean(axis=1) / variance
    t = (yb * (yb - yc)).mean(axis=1) / variance
    return s, t


def jansen(y: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Jansen (1999)."""
    ya, yb, yc = y[0], y[1], y[2:]
    variance = np.concatenate([ya, yb]).var(ddof=1)
    s = (variance - ((ya - yc) ** 2).mean(axis=1) / 2.0) / variance
    t = ((yb - yc) ** 2).mean(axis=1) / (2.0 * variance)
    return s, t


def estimate_blocks(
    estimator: BlockEstimator,
    y: np.ndarray,
    nboot: int = 0,
    conf: float = 0.95,
    rng: np.random.Generator | None = None,
) -> dict[str, np.ndarray]:
    """Run a block estimator, bootstrapping over base rows when ``nboot > 0``."""
    logger.debug("Estimating %s on %d blocks of %d rows", estimator.__name__, *y.shape)
    s, t = estimator(y)
    native: dict[str, np.ndarray] = {"S": s}
    if t is not None:
        native["T"] = t

    if nboot > 0:
        k = s.shape[0]

        def statistic(idx: np.ndarray) -> np.ndarray:
            s_b, t_b = estimator(y[:, idx])
            return s_b if t_b is None else np.concatenate([s_b, t_b])

        stats = bootstrap(y.shape[1], statistic, nboot, conf=conf, rng=rng)
        native["S_conf"] = stats.interval[:k]
        if t is not None:
            native["T_conf"] = stats.interval[k:]

    return native


# --- Regression-based indices ---


def _prepare(x: np.ndarray, y: np.ndarray, rank: bool) -> tuple[np.ndarray, np.ndarray]:
    if rank:
        return rankdata(x, axis=0), rankdata(y)
    return x, y


def _src(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    xs = (x - x.mean(axis=0)) / x.std(axis=0, ddof=1)
    ys = (y - y.mean()) / y.std(ddof=1)
    design = np.column_stack([np.ones(x.shape[0]), xs])
    coef, *_ = linalg.lstsq(design, ys)
    return coef[1:]


def _pcc(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    n, p = x.shape
    result = np.empty(p)
    for i in range(p):
        design = np.column_stack([np.ones(n), np.delete(x, i, axis=1)])
        coef_x, *_ = linalg.lstsq(design, x[:, i])
        coef_y, *_ = linalg.lstsq(design, y)
        rx = x[:, i] - design @ coef_x
        ry = y - design @ coef_y
        result[i] = np.corrcoef(rx, ry)[0, 1]
    return result


def regression_indices(
    kind: str,
    x: np.ndarray,
    y: np.ndarray,
    rank: bool = False,
    nboot: int = 0,
    conf: float = 0.95,
    rng: np.random.Generator | None = None,
) -> dict[str, np.ndarray]:
    """Standardized regression (``"src"``) or partial correlation (``"pcc"``).

    With ``rank=True`` the rank-transformed variants (SRRC / PRCC) are
    computed.
    """
    func = _src if kind == "src" else _pcc
    logger.debug("Regression indices %s (rank=%s) on %d rows", kind, rank, x.shape[0])
    xr, yr = _prepare(x, y, rank)
    native: dict[str, np.ndarray] = {"S": func(xr, yr)}

    if nboot > 0:
        def statistic(idx: np.ndarray) -> np.ndarray:
            return func(*_prepare(x[idx], y[idx], rank))

        native["S_conf"] = bootstrap(x.shape[0], statistic, nboot, conf=conf, rng=rng).interval

    return native


# --- SALib wrappers ---


def unit_problem(nvars: int) -> dict[str, Any]:
    """SALib problem dict for the unit cube."""
    return {
        "num_vars": nvars,
        "names": [f"x{i + 1}" for i in range(nvars)],
        "bounds": [[0.0, 1.0]] * nvars,
    }


def _seed(rng: np.random.Generator) -> int:
    return int(rng.integers(0, 2**31 - 1))


def fast_design(nvars: int, n: int, interference: int, rng: np.random.Generator) -> np.ndarray:
    """Extended FAST search curves: n points per variable."""
    return fast_sampler.sample(unit_problem(nvars), n, M=interference, seed=_seed(rng))


def fast_indices(
    nvars: int, y: np.ndarray, interference: int, conf: float, rng: np.random.Generator
) -> dict[str, Any]:
    return fast_analyze.analyze(
        unit_problem(nvars),
        y,
        M=interference,
        conf_level=conf,
        print_to_console=False,
        seed=_seed(rng),
    )


def morris_design(nvars: int, r: int, levels: int, rng: np.random.Generator) -> np.ndarray:
    """r one-at-a-time trajectories of nvars + 1 points each."""
    return morris_sampler.sample(unit_problem(nvars), r, num_levels=levels, seed=_seed(rng))


def morris_indices(
    x: np.ndarray, y: np.ndarray, levels: int, conf: float, rng: np.random.Generator
) -> dict[str, Any]:
    return morris_analyze.analyze(
        unit_problem(x.shape[1]),
        x,
        y,
        conf_level=conf,
        print_to_console=False,
        num_levels=levels,
        seed=_seed(rng),
    )


def delta_indices(
    x: np.ndarray,
    y: np.ndarray,
    num_resamples: int,
    conf: float,
    rng: np.random.Generator,
) -> dict[str, Any]:
    """Borgonovo's delta estimated with Plischke's (2013) class partition.

    Recent SALib releases report several delta variants (``delta_raw``,
    ``delta_balanced``, ...) instead of a single ``delta``; the raw
    estimate is exposed as ``delta``/``delta_conf`` so callers see the
    same keys on every release.
    """
    native = dict(
        delta_analyze.analyze(
            unit_problem(x.shape[1]),
            x,
            y,
            num_resamples=num_resamples,
            conf_level=conf,
            print_to_console=False,
            seed=_seed(rng),
        )
    )
    if "delta" not in native:
        key = "delta_raw" if "delta_raw" in native else "delta_balanced"
        native["delta"] = native[key]
        native["delta_conf"] = native.get(f"{key}_conf")
    return native
