"""Tests for the optimizer adapter."""

import numpy as np
import pytest

from mordm.core.errors import UnsupportedInputError
from mordm.core.problem import define_problem
from mordm.optimization.optimizer import (
    build_optimizer_command,
    optimize,
    optimize_external,
    read_results,
)


def _model(x):
    return [x[0], 1.0 - x[0]], [0.0]


class FakeBackend:
    """Records its call and returns the evaluated corners of the box."""

    def __call__(self, nvars, nobjs, nconstrs, function, nfe, epsilons, **kwargs):
        self.args = (nvars, nobjs, nconstrs, nfe, epsilons)
        self.kwargs = kwargs
        rows = []
        for x in (np.array([0.25, 0.0]), np.array([0.75, 1.0])):
            rows.append(np.concatenate([x, function(x)]))
        return np.array(rows)


class TestInProcess:
    def test_backend_call(self):
        p = define_problem(_model, nvars=2, nobjs=2, nconstrs=1,
                           bounds=[[0, 0], [1, 2]], epsilons=[0.1, 0.2])
        backend = FakeBackend()
        result = optimize(p, 500, backend=backend, seed=3)

        assert backend.args == (2, 2, 1, 500, [0.1, 0.2])
        assert backend.kwargs == {"lower_bounds": [0.0, 0.0], "upper_bounds": [1.0, 2.0], "seed": 3}
        assert len(result) == 2
        np.testing.assert_allclose(result.objectives, [[0.25, 0.75], [0.75, 0.25]])
        np.testing.assert_allclose(result.constraints, [[0.0], [0.0]])

    def test_maximized_objectives_handed_negated(self):
        p = define_problem(_model, nvars=2, nobjs=2, nconstrs=1, maximize=[1])
        result = optimize(p, 100, backend=FakeBackend())
        np.testing.assert_allclose(result.objectives[:, 1], [-0.75, -0.25])

    def test_requires_backend(self):
        p = define_problem(_model, nvars=2, nobjs=2, nconstrs=1)
        with pytest.raises(UnsupportedInputError):
            optimize(p, 100)


class TestExternal:
    @pytest.fixture
    def problem(self):
        return define_problem("model --fast", nvars=2, nobjs=2, nconstrs=1,
                              bounds=[[0, -1], [1, 1]], epsilons=[0.01, 0.5])

    def test_command(self, problem):
        cmd = build_optimizer_command(problem, 10000, "borg.exe", "out.txt", 50)
        assert cmd == [
            "borg.exe", "-n", "10000", "-v", "2", "-o", "2", "-c", "1",
            "-l", "0.0,-1.0", "-u", "1.0,1.0", "-e", "0.01,0.5",
            "-R", "out.txt", "-F", "50", "model", "--fast",
        ]

    def test_in_process_rejected(self):
        p = define_problem(_model, nvars=2, nobjs=2, nconstrs=1)
        with pytest.raises(UnsupportedInputError):
            optimize_external(p, 100)
        with pytest.raises(UnsupportedInputError):
            build_optimizer_command(p, 100)

    def test_runs_executable(self, problem, tmp_path, monkeypatch):
        output = tmp_path / "runtime.txt"
        calls = []

        def fake_run(command, check):
            calls.append(command)
            output.write_text("0.1 0.2 1.0 2.0 0.0\n#\n")

        monkeypatch.setattr("mordm.optimization.optimizer.subprocess.run", fake_run)
        result = optimize(problem, 100, output=output)
        assert calls[0][0] == "borg.exe"
        assert len(result) == 1

    def test_no_output(self, problem, monkeypatch):
        monkeypatch.setattr("mordm.optimization.optimizer.subprocess.run", lambda command, check: None)
        assert optimize_external(problem, 100, return_output=False) is None


class TestReadResults:
    def test_last_set(self, tmp_path):
        p = define_problem("model", nvars=2, nobjs=2, maximize=[0])
        path = tmp_path / "runtime.txt"
        path.write_text(
            "// NFE=100\n"
            "0.1 0.2 1.0 2.0\n"
            "#\n"
            "// NFE=200\n"
            "0.3 0.4 3.0 4.0\n"
            "0.5 0.6 5.0 6.0\n"
            "#\n"
        )
        result = read_results(path, p)
        assert len(result) == 2
        np.testing.assert_allclose(result.variables, [[0.3, 0.4], [0.5, 0.6]])
        np.testing.assert_allclose(result.objectives, [[-3.0, 4.0], [-5.0, 6.0]])
        assert result.constraints is None

    def test_unterminated_set(self, tmp_path):
        p = define_problem("model", nvars=1, nobjs=1)
        path = tmp_path / "runtime.txt"
        path.write_text("//header\n0.5 1.5\n")
        result = read_results(path, p)
        np.testing.assert_allclose(result.objectives, [[1.5]])

    def test_empty(self, tmp_path):
        p = define_problem("model", nvars=1, nobjs=1)
        path = tmp_path / "runtime.txt"
        path.write_text("// nothing yet\n")
        assert len(read_results(path, p)) == 0
