"""Console output and subprocess helpers shared by the CLI."""

from pacctl.utils.formatting import (
    console,
    create_package_table,
    err_console,
    format_bytes,
    format_net_bytes,
    print_error,
)
from pacctl.utils.shell import command_exists, run_interactive

__all__ = [
    "command_exists",
    "console",
    "create_package_table",
    "err_console",
    "format_bytes",
    "format_net_bytes",
    "print_error",
    "run_interactive",
]
