"""
diskpartctl CLI Module.

Provides command-line interface for diskpartctl operations.
"""

from diskpartctl.cli.main import main, cli

__all__ = ["main", "cli"]
