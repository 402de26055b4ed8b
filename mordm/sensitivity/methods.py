"""Registry of sensitivity analysis methods.

Each :class:`SensitivityMethod` bundles everything the orchestration in
:mod:`mordm.sensitivity.analysis` needs to drive one estimator:

* ``cost``: model evaluations per level (replicate), so that
  ``levels = ceil(nsamples / cost(nvars))`` reproduces the requested
  evaluation budget;
* ``build_design``: the unit-cube design to evaluate;
* ``analyze``: the native estimator call on (design, response);
* ``normalize``: conversion of the native output into a
  :class:`SensitivityResult`.

The registry is a static, read-only mapping safe to share across calls.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping

import numpy as np

from mordm.core.errors import InvalidDesignError, UnknownMethodError, UnsupportedInputError
from mordm.optimization.design import design_pair, latin_hypercube, uniform_design
from mordm.sensitivity import estimators
from mordm.sensitivity.bootstrap import bootstrap

logger = logging.getLogger(__name__)

# delta.analyze always bootstraps its own interval; nested calls discard it
_NESTED_DELTA_RESAMPLES = 2


@dataclass(frozen=True, eq=False)
class Design:
    """A unit-cube design plus the structure its estimator needs.

    Args:
        X: Full design evaluated by the model, rows in [0, 1].
        n: Number of levels / base rows.
        blocks: Number of n-row blocks stacked in ``X``.
        alignment: For replicated designs, ``(nvars, n)`` row indices that
                   realign the second replicate on each variable.
    """

    X: np.ndarray
    n: int
    blocks: int = 1
    alignment: np.ndarray | None = None


@dataclass(frozen=True, eq=False)
class SensitivityResult:
    """Standardized output shared by every method.

    ``rank`` lists variable indices from most to least sensitive.
    ``Ci`` / ``Ci_total`` hold one (min, max) row per variable.
    """

    Si: np.ndarray
    rank: np.ndarray
    Si_total: np.ndarray | None = None
    rank_total: np.ndarray | None = None
    Ci: np.ndarray | None = None
    Ci_total: np.ndarray | None = None
    names: tuple[str, ...] = ()
    method: str = ""
    n_evaluations: int = 0

    @property
    def has_total(self) -> bool:
        return self.Si_total is not None

    def ranked_names(self, total: bool = False) -> list[str]:
        order = self.rank_total if total else self.rank
        if order is None:
            return []
        return [self.names[i] for i in order]

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        return {
            key: value.tolist() if isinstance(value, np.ndarray) else value
            for key, value in data.items()
            if value is not None
        }


def rank_indices(values: np.ndarray) -> np.ndarray:
    """Permutation sorting ``values`` descending; ties keep original order."""
    return np.argsort(-np.asarray(values, dtype=float), kind="stable")


def _result(
    si: np.ndarray,
    ci: np.ndarray | None = None,
    si_total: np.ndarray | None = None,
    ci_total: np.ndarray | None = None,
) -> SensitivityResult:
    si = np.asarray(si, dtype=float)
    return SensitivityResult(
        Si=si,
        rank=rank_indices(si),
        Si_total=si_total,
        rank_total=None if si_total is None else rank_indices(si_total),
        Ci=ci,
        Ci_total=ci_total,
    )


def _half_width(values: np.ndarray, conf: np.ndarray) -> np.ndarray:
    values = np.asarray(values, dtype=float)
    conf = np.asarray(conf, dtype=float)
    return np.column_stack([values - conf, values + conf])


# --- Design builders ---


def _fast_design(nvars: int, n: int, options: Mapping[str, Any], rng: np.random.Generator) -> Design:
    try:
        x = estimators.fast_design(nvars, n, options["M"], rng)
    except ValueError as exc:
        raise InvalidDesignError(
            f"FAST design failed ({exc}), increase the number of samples"
        ) from exc
    return Design(X=x, n=n, blocks=nvars)


def _pick_freeze_design(with_b: bool) -> Callable[..., Design]:
    def build(nvars: int, n: int, options: Mapping[str, Any], rng: np.random.Generator) -> Design:
        a, b = design_pair(n, nvars, rng)
        blocks = [a, b] if with_b else [a]
        for i in range(nvars):
            c = b.copy()
            c[:, i] = a[:, i]
            blocks.append(c)
        return Design(X=np.vstack(blocks), n=n, blocks=len(blocks))

    return build


def _replicated_design(scheme: str) -> Callable[..., Design]:
    def build(nvars: int, n: int, options: Mapping[str, Any], rng: np.random.Generator) -> Design:
        if options.get("order", 1) != 1:
            raise UnsupportedInputError("Replicated designs only support first-order indices")
        a = latin_hypercube(n, nvars, rng) if scheme == "lhs" else uniform_design(n, nvars, rng)
        perms = np.array([rng.permutation(n) for _ in range(nvars)])
        replicate = np.column_stack([a[perms[i], i] for i in range(nvars)])
        alignment = np.argsort(perms, axis=1)
        return Design(X=np.vstack([a, replicate]), n=n, blocks=2, alignment=alignment)

    return build


def _morris_design(nvars: int, n: int, options: Mapping[str, Any], rng: np.random.Generator) -> Design:
    x = estimators.morris_design(nvars, n, options["levels"], rng)
    return Design(X=x, n=n, blocks=nvars + 1)


def _random_design(nvars: int, n: int, options: Mapping[str, Any], rng: np.random.Generator) -> Design:
    return Design(X=uniform_design(n, nvars, rng), n=n)


# --- Estimator calls ---


def _fast_analyze(design: Design, y: np.ndarray, options: Mapping[str, Any], rng: np.random.Generator) -> dict:
    return estimators.fast_indices(design.X.shape[1], y, options["M"], options["conf"], rng)


def _block_analyze(estimator: estimators.BlockEstimator) -> Callable[..., dict]:
    def analyze(design: Design, y: np.ndarray, options: Mapping[str, Any], rng: np.random.Generator) -> dict:
        blocks = y.reshape(design.blocks, design.n)
        return estimators.estimate_blocks(
            estimator, blocks, options["nboot"], options["conf"], rng
        )

    return analyze


def _replicated_analyze(design: Design, y: np.ndarray, options: Mapping[str, Any], rng: np.random.Generator) -> dict:
    y1, y2 = y[: design.n], y[design.n :]
    blocks = np.vstack([y1, y2[design.alignment]])
    return estimators.estimate_blocks(
        estimators.first_order_covariance, blocks, options["nboot"], options["conf"], rng
    )


def _morris_analyze(design: Design, y: np.ndarray, options: Mapping[str, Any], rng: np.random.Generator) -> dict:
    return estimators.morris_indices(design.X, y, options["levels"], options["conf"], rng)


def _regression_analyze(kind: str) -> Callable[..., dict]:
    def analyze(design: Design, y: np.ndarray, options: Mapping[str, Any], rng: np.random.Generator) -> dict:
        return estimators.regression_indices(
            kind, design.X, y, options["rank"], options["nboot"], options["conf"], rng
        )

    return analyze


def _plischke_analyze(design: Design, y: np.ndarray, options: Mapping[str, Any], rng: np.random.Generator) -> dict:
    x = design.X
    native = dict(
        estimators.delta_indices(x, y, options["num_resamples"], options["conf"], rng)
    )

    if options["nboot"] > 0:
        def statistic(idx: np.ndarray) -> np.ndarray:
            res = estimators.delta_indices(
                x[idx], y[idx], _NESTED_DELTA_RESAMPLES, options["conf"], rng
            )
            return np.asarray(res["delta"])

        logger.debug("Bootstrapping delta indices with %d resamples", options["nboot"])
        stats = bootstrap(x.shape[0], statistic, options["nboot"], conf=options["conf"], rng=rng)
        native["delta_boot"] = stats.interval

    return native


# --- Normalizers ---


def _normalize_fast(native: Mapping[str, Any], nvars: int) -> SensitivityResult:
    return _result(
        native["S1"],
        ci=_half_width(native["S1"], native["S1_conf"]) if "S1_conf" in native else None,
        si_total=np.asarray(native["ST"], dtype=float),
        ci_total=_half_width(native["ST"], native["ST_conf"]) if "ST_conf" in native else None,
    )


def _normalize_blocks(native: Mapping[str, Any], nvars: int) -> SensitivityResult:
    si_total = native.get("T")
    ci_total = native.get("T_conf")
    ci = native.get("S_conf")
    return _result(
        native["S"][:nvars],
        ci=None if ci is None else ci[:nvars],
        si_total=None if si_total is None else si_total[:nvars],
        ci_total=None if ci_total is None else ci_total[:nvars],
    )


def _normalize_morris(native: Mapping[str, Any], nvars: int) -> SensitivityResult:
    # mean elementary effect stands in for a first-order index
    return _result(native["mu"])


def _normalize_delta(native: Mapping[str, Any], nvars: int) -> SensitivityResult:
    return _result(native["delta"], ci=native.get("delta_boot"))


# --- Registry ---


@dataclass(frozen=True)
class SensitivityMethod:
    """Strategy bundle for one sensitivity analysis method."""

    name: str
    description: str
    cost: Callable[[int], int]
    build_design: Callable[[int, int, Mapping[str, Any], np.random.Generator], Design]
    analyze: Callable[[Design, np.ndarray, Mapping[str, Any], np.random.Generator], dict]
    normalize: Callable[[Mapping[str, Any], int], SensitivityResult]
    defaults: Mapping[str, Any] = field(default_factory=dict)

    @property
    def options(self) -> tuple[str, ...]:
        return tuple(self.defaults)

    def levels(self, nsamples: int, nvars: int) -> int:
        """Replicates needed to reach ``nsamples`` evaluations."""
        if nsamples < 1:
            raise ValueError(f"nsamples must be positive, got {nsamples}")
        return math.ceil(nsamples / self.cost(nvars))

    def evaluations(self, nsamples: int, nvars: int) -> int:
        """Model evaluations actually consumed for a target of ``nsamples``."""
        return self.levels(nsamples, nvars) * self.cost(nvars)

    def resolve_options(self, options: Mapping[str, Any]) -> dict[str, Any]:
        unknown = sorted(set(options) - set(self.defaults))
        if unknown:
            raise UnsupportedInputError(
                f"Method {self.name!r} does not accept options {', '.join(unknown)}; "
                f"accepted options are: {', '.join(self.options) or 'none'}"
            )
        return {**self.defaults, **options}


_BOOT = {"nboot": 0, "conf": 0.95}

_METHODS = [
    SensitivityMethod(
        "fast99", "Extended Fourier amplitude sensitivity test",
        cost=lambda p: p,
        build_design=_fast_design, analyze=_fast_analyze, normalize=_normalize_fast,
        defaults={"M": 4, "conf": 0.95},
    ),
    SensitivityMethod(
        "sobol", "Sobol (2001) first-order indices",
        cost=lambda p: p + 1,
        build_design=_pick_freeze_design(with_b=False),
        analyze=_block_analyze(estimators.first_order_covariance),
        normalize=_normalize_blocks, defaults=_BOOT,
    ),
    SensitivityMethod(
        "sobol2002", "Saltelli (2002) first and total-order indices",
        cost=lambda p: p + 2,
        build_design=_pick_freeze_design(with_b=True),
        analyze=_block_analyze(estimators.saltelli2002),
        normalize=_normalize_blocks, defaults=_BOOT,
    ),
    SensitivityMethod(
        "sobol2007", "Sobol (2007) first and total-order indices",
        cost=lambda p: p + 2,
        build_design=_pick_freeze_design(with_b=True),
        analyze=_block_analyze(estimators.sobol2007),
        normalize=_normalize_blocks, defaults=_BOOT,
    ),
    SensitivityMethod(
        "sobolEff", "Monod et al. (2006) efficient first-order indices",
        cost=lambda p: p + 1,
        build_design=_pick_freeze_design(with_b=False),
        analyze=_block_analyze(estimators.first_order_efficient),
        normalize=_normalize_blocks, defaults=_BOOT,
    ),
    SensitivityMethod(
        "soboljansen", "Jansen (1999) first and total-order indices",
        cost=lambda p: p + 2,
        build_design=_pick_freeze_design(with_b=True),
        analyze=_block_analyze(estimators.jansen),
        normalize=_normalize_blocks, defaults=_BOOT,
    ),
    SensitivityMethod(
        "sobolmara", "Mara (2008) replicated-design first-order indices",
        cost=lambda p: 2,
        build_design=_replicated_design("uniform"), analyze=_replicated_analyze,
        normalize=_normalize_blocks, defaults=_BOOT,
    ),
    SensitivityMethod(
        "sobolroalhs", "Replicated Latin hypercube first-order indices",
        cost=lambda p: 2,
        build_design=_replicated_design("lhs"), analyze=_replicated_analyze,
        normalize=_normalize_blocks, defaults={**_BOOT, "order": 1},
    ),
    SensitivityMethod(
        "morris", "Morris elementary effects screening",
        cost=lambda p: p + 1,
        build_design=_morris_design, analyze=_morris_analyze, normalize=_normalize_morris,
        defaults={"levels": 4, "conf": 0.95},
    ),
    SensitivityMethod(
        "pcc", "Partial correlation coefficients",
        cost=lambda p: 1,
        build_design=_random_design, analyze=_regression_analyze("pcc"),
        normalize=_normalize_blocks, defaults={**_BOOT, "rank": False},
    ),
    SensitivityMethod(
        "src", "Standardized regression coefficients",
        cost=lambda p: 1,
        build_design=_random_design, analyze=_regression_analyze("src"),
        normalize=_normalize_blocks, defaults={**_BOOT, "rank": False},
    ),
    SensitivityMethod(
        "plischke", "Plischke (2013) delta moment-independent measure",
        cost=lambda p: 1,
        build_design=_random_design, analyze=_plischke_analyze, normalize=_normalize_delta,
        defaults={**_BOOT, "num_resamples": 100},
    ),
]

METHODS: Mapping[str, SensitivityMethod] = MappingProxyType({m.name: m for m in _METHODS})


def list_methods() -> list[str]:
    """Names of the supported sensitivity analysis methods."""
    return list(METHODS)


def get_method(name: str) -> SensitivityMethod:
    """Look up a method by name.

    Raises:
        UnknownMethodError: Listing the valid method names.
    """
    if not isinstance(name, str) or name not in METHODS:
        raise UnknownMethodError(name, list_methods())
    return METHODS[name]
