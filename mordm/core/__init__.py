"""Core modules for mordm.

This package contains the problem model and its evaluation:
- errors: Exception hierarchy shared by every module
- problem: Problem definition (variables, objectives, constraints, bounds)
- evaluate: Batched evaluation of in-process and external problems
- config: Problem files (JSON) and sample-set persistence (JSON + HDF5)
"""
