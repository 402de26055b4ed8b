"""Sampling, optimization and robustness for mordm.

Provides design-of-experiments generators, the optimizer boundary
(Borg MOEA executable or in-process backend), and robustness metrics
for evaluated sample sets.
"""
