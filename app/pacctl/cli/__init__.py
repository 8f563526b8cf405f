"""CLI package for pacctl.

This package contains the argument parser, the terminal reporter and the
entry point.
"""

from pacctl.cli.main import main

__all__ = ["main"]
