"""
ubimkvol CLI Module.

Provides the command-line entry point.
"""

from ubimkvol.cli.main import main, run

__all__ = ["main", "run"]
