"""Tests for robustness metrics."""

import numpy as np
import pytest

from mordm.core.errors import UnknownMethodError, UnsupportedInputError
from mordm.core.evaluate import SampleSet
from mordm.core.problem import define_problem
from mordm.optimization.robustness import check_robustness


def _model(x):
    return [x[0], x[1]], [0.0]


@pytest.fixture
def problem():
    return define_problem(_model, nvars=2, nobjs=2, nconstrs=1)


@pytest.fixture
def samples():
    return SampleSet(
        variables=np.array([[0.0, 0.0], [3.0, 4.0], [1.0, 0.0], [0.0, 2.0]]),
        objectives=np.array([[1.0, 2.0], [2.0, 2.0], [3.0, 2.0], [2.0, 2.0]]),
        constraints=np.array([[0.0], [1.0], [0.0], [0.5]]),
        variable_names=("x1", "x2"),
        objective_names=("f1", "f2"),
        constraint_names=("c1",),
    )


def _unconstrained(samples):
    return SampleSet(
        variables=samples.variables,
        objectives=samples.objectives,
        constraints=None,
        variable_names=samples.variable_names,
        objective_names=samples.objective_names,
    )


class TestMetrics:
    def test_variance(self, samples, problem):
        expected = -np.std([1.0, 2.0, 3.0, 2.0], ddof=1)
        assert check_robustness(samples, problem, "variance") == pytest.approx(expected)

    def test_variance_three_points(self):
        p = define_problem(lambda x: [x[0]], nvars=1, nobjs=1)
        s = SampleSet(
            variables=np.array([[1.0], [2.0], [3.0]]),
            objectives=np.array([[1.0], [2.0], [3.0]]),
            constraints=None,
            variable_names=("x1",),
            objective_names=("f1",),
        )
        assert check_robustness(s, p, "variance") == pytest.approx(-1.0)

    def test_variance_weights(self, samples, problem):
        expected = -2.0 * np.std([1.0, 2.0, 3.0, 2.0], ddof=1)
        assert check_robustness(samples, problem, "variance", weights=[2.0, 5.0]) == pytest.approx(
            expected
        )

    def test_constraints(self, samples, problem):
        assert check_robustness(samples, problem, "constraints") == pytest.approx(0.5)

    def test_constraints_without_constraints(self, samples):
        p = define_problem(lambda x: [x[0], x[1]], nvars=2, nobjs=2)
        assert check_robustness(_unconstrained(samples), p, "constraints") == 1.0

    def test_default(self, samples, problem):
        variance = check_robustness(samples, problem, "variance")
        assert check_robustness(samples, problem) == pytest.approx(variance * 1.5)

    def test_distance(self, samples, problem):
        origin = samples.row(0)
        distances = np.linalg.norm(samples.objectives - samples.objectives[0], axis=1)
        expected = -np.sqrt(np.mean(distances**2))
        assert check_robustness(samples, problem, "distance", original_point=origin) == pytest.approx(
            expected
        )

    def test_distance_without_origin(self, samples, problem):
        assert check_robustness(samples, problem, "distance") == 0.0

    def test_infogap_nearest_infeasible(self, samples, problem):
        origin = samples.row(0)
        # infeasible rows at distance 5 and 2
        assert check_robustness(samples, problem, "infogap", original_point=origin) == pytest.approx(2.0)
        assert check_robustness(samples, problem, "gap", original_point=origin) == pytest.approx(2.0)

    def test_infogap_all_feasible(self, problem):
        s = SampleSet(
            variables=np.array([[0.0, 0.0], [0.0, 3.0]]),
            objectives=np.zeros((2, 2)),
            constraints=np.zeros((2, 1)),
            variable_names=("x1", "x2"),
            objective_names=("f1", "f2"),
            constraint_names=("c1",),
        )
        # mean point (0, 1.5) stands in for the origin
        assert check_robustness(s, problem, "infogap") == pytest.approx(1.5)

    def test_infogap_without_constraints(self, samples):
        p = define_problem(lambda x: [x[0], x[1]], nvars=2, nobjs=2)
        assert check_robustness(_unconstrained(samples), p, "infogap") == 1.0


class TestDispatch:
    def test_callable(self, samples, problem):
        seen = {}

        def metric(s, p, weights=None, original_point=None):
            seen["weights"] = weights
            return 42

        assert check_robustness(samples, problem, metric, weights=[1, 2]) == 42.0
        assert seen["weights"] == [1, 2]

    def test_unknown_name(self, samples, problem):
        with pytest.raises(UnknownMethodError, match="variance"):
            check_robustness(samples, problem, "entropy")

    def test_unsupported_type(self, samples, problem):
        with pytest.raises(UnsupportedInputError):
            check_robustness(samples, problem, 3)

    def test_bad_original_point(self, samples, problem):
        with pytest.raises(UnsupportedInputError):
            check_robustness(samples, problem, "distance", original_point=object())
