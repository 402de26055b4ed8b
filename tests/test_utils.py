"""Tests for utility modules."""

import numpy as np
import pytest

from mordm.utils.validation import Severity, ValidationResult, validate_problem_definition


def _check(**overrides):
    args = dict(
        nvars=2,
        nobjs=1,
        nconstrs=0,
        bounds=np.array([[0.0, 0.0], [1.0, 1.0]]),
        names=["x1", "x2", "f1"],
        epsilons=[0.01],
        maximize=(),
    )
    args.update(overrides)
    return validate_problem_definition(**args)


class TestValidationResult:
    def test_empty_is_valid(self):
        assert ValidationResult().is_valid

    def test_error_and_warning(self):
        r = ValidationResult()
        r.warning("x", "odd")
        assert r.is_valid and r.has_warnings
        r.error("y", "bad")
        assert not r.is_valid
        assert [m.severity for m in r.messages] == [Severity.WARNING, Severity.ERROR]

    def test_raise_for_errors(self):
        r = ValidationResult()
        r.error("a", "first")
        r.error("b", "second")
        with pytest.raises(ValueError, match="first; second"):
            r.raise_for_errors()


class TestValidateProblemDefinition:
    def test_valid(self):
        assert _check().is_valid

    @pytest.mark.parametrize("overrides, parameter", [
        ({"nvars": 0, "bounds": np.zeros((2, 0)), "names": ["f1"]}, "nvars"),
        ({"nobjs": 0, "names": ["x1", "x2"], "epsilons": []}, "nobjs"),
        ({"nconstrs": -1, "names": ["x1", "x2", "f1"]}, "nconstrs"),
        ({"bounds": np.zeros((2, 3))}, "bounds"),
        ({"bounds": np.array([[0.0, np.inf], [1.0, np.inf]])}, "bounds"),
        ({"bounds": np.array([[1.0, 0.0], [0.0, 1.0]])}, "bounds"),
        ({"names": ["x1", "x1", "f1"]}, "names"),
        ({"names": ["x1", "f1"]}, "names"),
        ({"epsilons": [0.0]}, "epsilons"),
        ({"epsilons": [0.1, 0.1]}, "epsilons"),
        ({"maximize": (1,)}, "maximize"),
    ])
    def test_errors(self, overrides, parameter):
        result = _check(**overrides)
        assert not result.is_valid
        assert parameter in [m.parameter for m in result.errors]

    def test_zero_width_bounds_warn(self):
        result = _check(bounds=np.array([[0.5, 0.0], [0.5, 1.0]]))
        assert result.is_valid
        assert result.warnings[0].parameter == "bounds"
