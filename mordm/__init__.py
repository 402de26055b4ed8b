"""mordm: Many-Objective Robust Decision Making.

Problem definition, sampling, sensitivity analysis, and robustness
metrics for simulation models driven by an external or in-process
optimizer.
"""

__app_name__ = "mordm"
__version__ = "0.1.0"
