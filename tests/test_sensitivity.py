"""Tests for the sensitivity analysis orchestration."""

import numpy as np
import pytest

from mordm.core.errors import (
    InvalidDesignError,
    UnknownColumnError,
    UnknownMethodError,
    UnsupportedInputError,
)
from mordm.core.evaluate import SampleSet
from mordm.core.problem import define_problem
from mordm.sensitivity import (
    METHODS,
    SensitivityResult,
    compute_sensitivity,
    get_method,
    list_methods,
    sensitivity_levels,
)
from mordm.sensitivity.methods import rank_indices


def _linear(x):
    return [x[0] + 2.0 * x[1], x[0] - x[2]]


@pytest.fixture
def problem():
    # centred bounds: f1 has S = (0.2, 0.8, 0)
    return define_problem(_linear, nvars=3, nobjs=2, bounds=[[-1, -1, -1], [1, 1, 1]])


class TestRegistry:
    def test_twelve_methods(self):
        assert list_methods() == [
            "fast99", "sobol", "sobol2002", "sobol2007", "sobolEff", "soboljansen",
            "sobolmara", "sobolroalhs", "morris", "pcc", "src", "plischke",
        ]

    def test_registry_read_only(self):
        with pytest.raises(TypeError):
            METHODS["new"] = METHODS["src"]

    @pytest.mark.parametrize("method, expected", [
        ("fast99", 34), ("sobol", 25), ("sobol2002", 20), ("sobol2007", 20),
        ("sobolEff", 25), ("soboljansen", 20), ("sobolmara", 50), ("sobolroalhs", 50),
        ("morris", 25), ("pcc", 100), ("src", 100), ("plischke", 100),
    ])
    def test_levels(self, problem, method, expected):
        assert sensitivity_levels(problem, 100, method) == expected

    @pytest.mark.parametrize("method", list_methods())
    def test_evaluations_follow_budget(self, method):
        strategy = get_method(method)
        cost = strategy.cost(3)
        evaluations = [strategy.evaluations(s, 3) for s in range(1, 121)]
        assert all(a <= b for a, b in zip(evaluations, evaluations[1:]))
        for s, e in enumerate(evaluations, start=1):
            assert e % cost == 0
            assert 0 <= e - s < cost

    def test_unknown_method(self, problem):
        with pytest.raises(UnknownMethodError) as err:
            get_method("sobol2020")
        assert "fast99" in str(err.value)
        with pytest.raises(UnknownMethodError):
            sensitivity_levels(problem, 100, "sobol2020")

    @pytest.mark.parametrize("method", list_methods())
    def test_design_size(self, method):
        strategy = get_method(method)
        n = 70
        options = strategy.resolve_options({})
        design = strategy.build_design(3, n, options, np.random.default_rng(0))
        assert design.X.shape == (n * strategy.cost(3), 3)
        assert np.all((design.X >= 0.0) & (design.X <= 1.0))

    def test_rejects_unknown_option(self):
        with pytest.raises(UnsupportedInputError, match="levels, conf"):
            get_method("morris").resolve_options({"nboot": 10})

    def test_rank_stable_ties(self):
        np.testing.assert_array_equal(rank_indices([0.5, 0.5, 0.1]), [0, 1, 2])
        np.testing.assert_array_equal(rank_indices([0.1, 0.3, 0.3]), [1, 2, 0])


class TestComputeSensitivity:
    @pytest.mark.parametrize("method, has_total", [
        ("sobol", False), ("sobolEff", False), ("sobolmara", False), ("sobolroalhs", False),
        ("sobol2002", True), ("sobol2007", True), ("soboljansen", True),
    ])
    def test_sobol_family(self, problem, method, has_total):
        nsamples = 5000 * get_method(method).cost(3)
        result = compute_sensitivity(problem, "f1", nsamples, method, seed=1)
        assert isinstance(result, SensitivityResult)
        np.testing.assert_allclose(result.Si, [0.2, 0.8, 0.0], atol=0.06)
        np.testing.assert_array_equal(result.rank[:2], [1, 0])
        assert result.has_total is has_total
        if has_total:
            np.testing.assert_allclose(result.Si_total, [0.2, 0.8, 0.0], atol=0.06)
            np.testing.assert_array_equal(result.rank_total[:2], [1, 0])
        assert result.Ci is None
        assert result.n_evaluations == nsamples
        assert result.names == ("x1", "x2", "x3")
        assert result.method == method

    def test_fast99(self, problem):
        result = compute_sensitivity(problem, "f1", 3000, "fast99", seed=2)
        np.testing.assert_allclose(result.Si, [0.2, 0.8, 0.0], atol=0.05)
        np.testing.assert_array_equal(result.rank, [1, 0, 2])
        assert result.Si_total is not None
        assert result.Ci.shape == (3, 2)

    def test_fast99_too_few_samples(self, problem):
        with pytest.raises(InvalidDesignError):
            compute_sensitivity(problem, "f1", 30, "fast99", seed=2)

    def test_morris_mean_effects(self, problem):
        result = compute_sensitivity(problem, "f1", 200, "morris", seed=3)
        # unit-cube effects scaled by the bound width of 2
        np.testing.assert_allclose(result.Si, [2.0, 4.0, 0.0], atol=1e-6)
        np.testing.assert_array_equal(result.rank, [1, 0, 2])
        assert result.n_evaluations == 200

    def test_src_end_to_end(self, problem):
        result = compute_sensitivity(problem, "f1", 1000, "src", seed=4)
        np.testing.assert_allclose(result.Si, [1 / np.sqrt(5), 2 / np.sqrt(5), 0.0], atol=0.05)
        np.testing.assert_array_equal(result.rank, [1, 0, 2])

    def test_pcc_with_bootstrap(self, problem):
        result = compute_sensitivity(problem, "f1", 400, "pcc", seed=5, nboot=25, rank=True)
        assert result.Ci.shape == (3, 2)
        assert result.rank[-1] == 2

    def test_plischke(self, problem):
        result = compute_sensitivity(problem, "f1", 500, "plischke", seed=6)
        assert result.Si.shape == (3,)
        assert result.rank[0] == 1
        assert result.rank[-1] == 2
        assert result.Ci is None

    def test_plischke_raw_keys(self, problem):
        native = compute_sensitivity(problem, "f1", 500, "plischke", raw=True, seed=6)
        assert "delta" in native and "delta_conf" in native

    def test_plischke_with_bootstrap(self, problem):
        result = compute_sensitivity(problem, "f1", 500, "plischke", seed=6, nboot=10)
        assert result.rank[0] == 1
        assert result.rank[-1] == 2
        assert result.Ci.shape == (3, 2)

    def test_raw_output(self, problem):
        native = compute_sensitivity(problem, "f1", 600, "fast99", raw=True, seed=7)
        assert "S1" in native and "ST" in native

    def test_rank_is_permutation(self, problem):
        result = compute_sensitivity(problem, "f2", 300, "src", seed=8)
        assert sorted(result.rank.tolist()) == [0, 1, 2]
        assert result.Si[result.rank[0]] >= result.Si[result.rank[1]] >= result.Si[result.rank[2]]

    def test_reproducible(self, problem):
        a = compute_sensitivity(problem, "f1", 400, "sobol", seed=9)
        b = compute_sensitivity(problem, "f1", 400, "sobol", seed=9)
        np.testing.assert_array_equal(a.Si, b.Si)

    def test_evaluation_count(self):
        calls = []

        def counted(x):
            calls.append(1)
            return _linear(x)

        p = define_problem(counted, nvars=3, nobjs=2)
        result = compute_sensitivity(p, 0, 10, "sobol", seed=10)
        assert len(calls) == result.n_evaluations == 12

    def test_option_rejected(self, problem):
        with pytest.raises(UnsupportedInputError):
            compute_sensitivity(problem, "f1", 100, "morris", nboot=10)

    def test_roalhs_order(self, problem):
        with pytest.raises(UnsupportedInputError):
            compute_sensitivity(problem, "f1", 100, "sobolroalhs", order=2)

    def test_non_finite_design(self, problem, monkeypatch):
        monkeypatch.setattr(
            "mordm.sensitivity.methods.uniform_design",
            lambda n, d, rng: np.full((n, d), np.nan),
        )
        with pytest.raises(InvalidDesignError, match="increase the number of samples"):
            compute_sensitivity(problem, "f1", 100, "src")

    def test_to_dict(self, problem):
        data = compute_sensitivity(problem, "f1", 200, "src", seed=11).to_dict()
        assert data["method"] == "src"
        assert len(data["Si"]) == 3
        assert "Si_total" not in data


class TestObjectiveSelector:
    def test_name_lookup_order(self):
        p = define_problem(lambda x: [x[0] * 10.0], nvars=2, nobjs=1,
                           names=["a", "b", "a_out"])
        result = compute_sensitivity(p, "a", 200, "src", seed=1)
        assert result.rank[0] == 0
        assert result.Si[0] == pytest.approx(1.0)

    def test_constraint_column(self):
        p = define_problem(lambda x: ([x[0]], [x[1]]), nvars=2, nobjs=1, nconstrs=1)
        result = compute_sensitivity(p, "c1", 200, "src", seed=2)
        assert result.rank[0] == 1

    def test_index_selector(self, problem):
        result = compute_sensitivity(problem, 1, 300, "src", seed=3)
        assert result.rank[0] == 0
        assert result.rank[-1] == 2

    def test_index_out_of_range(self, problem):
        with pytest.raises(UnknownColumnError):
            compute_sensitivity(problem, 2, 100, "src")

    def test_unknown_name(self, problem):
        with pytest.raises(UnknownColumnError, match="valid columns are"):
            compute_sensitivity(problem, "nope", 100, "src")

    def test_unsupported_selector(self, problem):
        with pytest.raises(UnsupportedInputError):
            compute_sensitivity(problem, 1.5, 100, "src")
        with pytest.raises(UnsupportedInputError):
            compute_sensitivity(problem, True, 100, "src")

    def test_callable_collapsed(self, problem):
        seen = []

        def response(row):
            seen.append(row)
            return row["f1"] - row["f2"]

        compute_sensitivity(problem, response, 50, "src", seed=4)
        assert isinstance(seen[0], dict)
        assert set(seen[0]) == {"x1", "x2", "x3", "f1", "f2"}

    def test_callable_uncollapsed(self, problem):
        seen = []

        def response(samples):
            seen.append(samples)
            return float(samples.objectives[0, 0])

        compute_sensitivity(problem, response, 50, "src", seed=5, collapse=False)
        assert isinstance(seen[0], SampleSet)
        assert len(seen[0]) == 1

    def test_callable_non_scalar(self, problem):
        with pytest.raises(UnsupportedInputError, match="one number per sample"):
            compute_sensitivity(problem, lambda row: [row["f1"], row["f2"]], 50, "src")

    def test_callable_ragged(self, problem):
        with pytest.raises(UnsupportedInputError, match="one number per sample"):
            compute_sensitivity(problem, lambda row: [] if row["x1"] > 0 else [1.0], 50, "src")


class TestAdditiveTwoVariables:
    """y = x1 + x2 on [0, 1]^2 with 100 evaluations: equal shares, tied ranks."""

    @pytest.fixture
    def additive(self):
        return define_problem(lambda x: [x[0] + x[1]], nvars=2, nobjs=1)

    def test_fast99_equal_first_order(self, additive):
        # 100 evaluations give 50 points per curve, enough for M = 2
        result = compute_sensitivity(additive, "f1", 100, "fast99", seed=1, M=2)
        assert result.n_evaluations == 100
        np.testing.assert_allclose(result.Si, [0.5, 0.5], atol=0.1)
        assert abs(result.Si[0] - result.Si[1]) < 0.05
        assert sorted(result.rank.tolist()) == [0, 1]

    def test_src_squared_is_first_order(self, additive):
        result = compute_sensitivity(additive, "f1", 100, "src", seed=1)
        assert result.n_evaluations == 100
        np.testing.assert_allclose(result.Si ** 2, [0.5, 0.5], atol=0.1)
        assert sorted(result.rank.tolist()) == [0, 1]
