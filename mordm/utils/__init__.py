"""Utility modules for mordm."""

from mordm.utils.validation import Severity, ValidationResult, validate_problem_definition

__all__ = ["Severity", "ValidationResult", "validate_problem_definition"]
