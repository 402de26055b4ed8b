"""mordm command-line interface package.

Supports ``python -m mordm.cli`` as an alternative to the ``mordm`` entry point.
"""

from mordm.cli.main import cli, main

__all__ = ["cli", "main"]
