"""Problem files and sample persistence for mordm.

Problems are stored as JSON.  External problems keep their command line;
in-process problems reference their function as ``"package.module:attr"``
and are re-imported on load.  Sample sets are written either to JSON
(small sets, human readable) or HDF5 (large arrays).
"""

from __future__ import annotations

import importlib
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import h5py
import numpy as np

from mordm.core.errors import UnsupportedInputError
from mordm.core.evaluate import SampleSet
from mordm.core.problem import External, ProblemModel, define_problem

logger = logging.getLogger(__name__)


# --- JSON serialization ---


class _NumpyEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy types."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, (np.integer,)):
            return int(obj)
        if isinstance(obj, (np.floating,)):
            return float(obj)
        return super().default(obj)


def import_function(reference: str) -> Any:
    """Import ``"package.module:attr"`` (attr may be dotted)."""
    module_name, sep, attr = reference.partition(":")
    if not sep or not module_name or not attr:
        raise UnsupportedInputError(
            f"Function reference must look like 'package.module:attr', got {reference!r}"
        )
    obj: Any = importlib.import_module(module_name)
    for part in attr.split("."):
        obj = getattr(obj, part)
    if not callable(obj):
        raise UnsupportedInputError(f"{reference!r} is not callable")
    return obj


def function_reference(function: Any) -> str:
    """Inverse of :func:`import_function` for module-level callables."""
    module = getattr(function, "__module__", None)
    qualname = getattr(function, "__qualname__", None)
    if not module or not qualname or "<" in qualname:
        raise UnsupportedInputError(
            f"Cannot reference {function!r}; only module-level functions can be saved"
        )
    return f"{module}:{qualname}"


def problem_to_dict(problem: ProblemModel) -> dict[str, Any]:
    data: dict[str, Any] = {
        "nvars": problem.nvars,
        "nobjs": problem.nobjs,
        "nconstrs": problem.nconstrs,
        "bounds": problem.bounds,
        "names": list(problem.names),
        "epsilons": list(problem.epsilons),
        "maximize": list(problem.maximize),
    }
    if isinstance(problem.target, External):
        data["command"] = problem.target.command
    else:
        data["function"] = function_reference(problem.target.function)
    return data


def problem_from_dict(data: dict[str, Any]) -> ProblemModel:
    data = dict(data)
    command = data.pop("command", None)
    function = data.pop("function", None)
    if (command is None) == (function is None):
        raise UnsupportedInputError("Problem file needs exactly one of 'command' or 'function'")

    return define_problem(
        command if command is not None else import_function(function),
        nvars=int(data["nvars"]),
        nobjs=int(data["nobjs"]),
        nconstrs=int(data.get("nconstrs", 0)),
        bounds=data.get("bounds"),
        names=data.get("names"),
        epsilons=data.get("epsilons"),
        maximize=data.get("maximize") or None,
    )


def save_problem(problem: ProblemModel, path: str | Path) -> None:
    """Save a problem definition to a JSON file."""
    path = Path(path)
    with open(path, "w") as f:
        json.dump(problem_to_dict(problem), f, indent=2, cls=_NumpyEncoder)
    logger.info("Saved problem to %s", path)


def load_problem(path: str | Path) -> ProblemModel:
    """Load a problem definition from a JSON file."""
    path = Path(path)
    with open(path) as f:
        data = json.load(f)
    problem = problem_from_dict(data)
    logger.debug("Loaded problem %s (%d vars, %d objs)", path, problem.nvars, problem.nobjs)
    return problem


# --- Sample sets ---


def save_samples_json(samples: SampleSet, path: str | Path) -> None:
    """Save a sample set to JSON."""
    path = Path(path)
    data = {
        "variable_names": list(samples.variable_names),
        "objective_names": list(samples.objective_names),
        "constraint_names": list(samples.constraint_names),
        "variables": samples.variables,
        "objectives": samples.objectives,
        "constraints": samples.constraints,
    }
    with open(path, "w") as f:
        json.dump(data, f, indent=2, cls=_NumpyEncoder)
    logger.info("Saved %d samples to %s", len(samples), path)


def _restore(data: dict[str, Any], nrows: int) -> SampleSet:
    variable_names = tuple(data["variable_names"])
    objective_names = tuple(data["objective_names"])
    constraints = data.get("constraints")
    return SampleSet(
        variables=np.asarray(data["variables"], dtype=float).reshape(nrows, len(variable_names)),
        objectives=np.asarray(data["objectives"], dtype=float).reshape(nrows, len(objective_names)),
        constraints=None if constraints is None else np.asarray(constraints, dtype=float).reshape(nrows, -1),
        variable_names=variable_names,
        objective_names=objective_names,
        constraint_names=tuple(data.get("constraint_names", ())),
    )


def load_samples_json(path: str | Path) -> SampleSet:
    """Load a sample set written by :func:`save_samples_json`."""
    with open(Path(path)) as f:
        data = json.load(f)
    return _restore(data, len(data["variables"]))


def save_samples_hdf5(samples: SampleSet, path: str | Path) -> None:
    """Save a sample set to HDF5; column names are stored as attributes."""
    path = Path(path)
    with h5py.File(path, "w") as f:
        f.create_dataset("variables", data=samples.variables)
        f.create_dataset("objectives", data=samples.objectives)
        if samples.constraints is not None:
            f.create_dataset("constraints", data=samples.constraints)
        f.attrs["variable_names"] = json.dumps(list(samples.variable_names))
        f.attrs["objective_names"] = json.dumps(list(samples.objective_names))
        f.attrs["constraint_names"] = json.dumps(list(samples.constraint_names))
        f.attrs["created"] = datetime.now(timezone.utc).isoformat()
    logger.info("Saved %d samples to %s", len(samples), path)


def load_samples_hdf5(path: str | Path) -> SampleSet:
    """Load a sample set written by :func:`save_samples_hdf5`."""
    path = Path(path)
    with h5py.File(path, "r") as f:
        data = {
            "variables": f["variables"][:],
            "objectives": f["objectives"][:],
            "constraints": f["constraints"][:] if "constraints" in f else None,
            "variable_names": json.loads(f.attrs["variable_names"]),
            "objective_names": json.loads(f.attrs["objective_names"]),
            "constraint_names": json.loads(f.attrs["constraint_names"]),
        }
    return _restore(data, data["variables"].shape[0])


def save_samples(samples: SampleSet, path: str | Path) -> None:
    """Save by extension: ``.h5``/``.hdf5`` to HDF5, anything else to JSON."""
    if Path(path).suffix.lower() in (".h5", ".hdf5"):
        save_samples_hdf5(samples, path)
    else:
        save_samples_json(samples, path)


def load_samples(path: str | Path) -> SampleSet:
    if Path(path).suffix.lower() in (".h5", ".hdf5"):
        return load_samples_hdf5(path)
    return load_samples_json(path)
