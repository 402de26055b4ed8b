"""Design rule checking for problem definitions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import numpy as np


class Severity(Enum):
    """Severity level for validation messages."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class ValidationMessage:
    """A single validation finding."""

    severity: Severity
    parameter: str
    message: str
    value: Any = None


@dataclass
class ValidationResult:
    """Aggregated validation result."""

    messages: list[ValidationMessage] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not any(m.severity == Severity.ERROR for m in self.messages)

    @property
    def has_warnings(self) -> bool:
        return any(m.severity == Severity.WARNING for m in self.messages)

    @property
    def errors(self) -> list[ValidationMessage]:
        return [m for m in self.messages if m.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[ValidationMessage]:
        return [m for m in self.messages if m.severity == Severity.WARNING]

    def add(self, severity: Severity, parameter: str, message: str, **kwargs: Any) -> None:
        self.messages.append(
            ValidationMessage(severity=severity, parameter=parameter, message=message, **kwargs)
        )

    def error(self, parameter: str, message: str, **kwargs: Any) -> None:
        self.add(Severity.ERROR, parameter, message, **kwargs)

    def warning(self, parameter: str, message: str, **kwargs: Any) -> None:
        self.add(Severity.WARNING, parameter, message, **kwargs)

    def raise_for_errors(self) -> None:
        """Raise ``ValueError`` listing every error message, if any."""
        if not self.is_valid:
            raise ValueError("; ".join(m.message for m in self.errors))


def validate_problem_definition(
    nvars: int,
    nobjs: int,
    nconstrs: int,
    bounds: np.ndarray,
    names: list[str] | tuple[str, ...],
    epsilons: list[float] | tuple[float, ...],
    maximize: list[int] | tuple[int, ...] = (),
) -> ValidationResult:
    """Check the structural invariants of a problem definition.

    Errors are raised by :func:`mordm.core.problem.define_problem`;
    warnings are only logged.
    """
    result = ValidationResult()

    if nvars < 1:
        result.error("nvars", f"nvars must be at least 1, got {nvars}", value=nvars)
    if nobjs < 1:
        result.error("nobjs", f"nobjs must be at least 1, got {nobjs}", value=nobjs)
    if nconstrs < 0:
        result.error("nconstrs", f"nconstrs must be non-negative, got {nconstrs}", value=nconstrs)

    if bounds.shape != (2, nvars):
        result.error("bounds", f"bounds must have shape (2, {nvars}), got {bounds.shape}")
    else:
        if not np.all(np.isfinite(bounds)):
            result.error("bounds", "bounds must be finite")
        bad = np.flatnonzero(bounds[0] > bounds[1])
        if bad.size:
            result.error("bounds", f"lower bound exceeds upper bound for variables {bad.tolist()}")
        fixed = np.flatnonzero(bounds[0] == bounds[1])
        if fixed.size:
            result.warning("bounds", f"variables {fixed.tolist()} have zero-width bounds")

    expected = nvars + nobjs + max(nconstrs, 0)
    if len(names) != expected:
        result.error("names", f"expected {expected} names, got {len(names)}")
    if len(set(names)) != len(names):
        dupes = sorted({n for n in names if list(names).count(n) > 1})
        result.error("names", f"names must be unique, duplicated: {', '.join(dupes)}")

    if len(epsilons) != nobjs:
        result.error("epsilons", f"expected {nobjs} epsilons, got {len(epsilons)}")
    elif any(e <= 0 for e in epsilons):
        result.error("epsilons", "epsilons must be positive")

    for index in maximize:
        if not 0 <= index < nobjs:
            result.error("maximize", f"objective index {index} is outside [0, {nobjs})")

    return result
