"""Sensitivity analysis: one interface over many estimators."""

from mordm.sensitivity.analysis import compute_sensitivity, resolve_response, sensitivity_levels
from mordm.sensitivity.methods import (
    METHODS,
    SensitivityMethod,
    SensitivityResult,
    get_method,
    list_methods,
)

__all__ = [
    "METHODS",
    "SensitivityMethod",
    "SensitivityResult",
    "compute_sensitivity",
    "get_method",
    "list_methods",
    "resolve_response",
    "sensitivity_levels",
]
