"""Shared consoles and size/table helpers for pacctl output."""

import sys

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from pacctl.core.theme import get_theme

_SIZE_UNITS = ("B", "KiB", "MiB", "GiB", "TiB")


def _make_console(*, stderr: bool = False) -> Console:
    """Build a themed console.

    Interactive terminals get truecolor so the hex theme renders exactly;
    piped output is written without colour codes.
    """
    stream = sys.stderr if stderr else sys.stdout
    return Console(
        theme=get_theme(),
        stderr=stderr,
        color_system="truecolor" if stream.isatty() else None,
        highlight=False,
        soft_wrap=True,
    )


console = _make_console()
err_console = _make_console(stderr=True)


def format_bytes(size: int) -> str:
    """Format a byte count with binary units.

    Bytes are shown without decimals, larger units with one.

    Args:
        size: Number of bytes; negative values count as zero.

    Returns:
        Human-readable size such as ``512 B`` or ``1.5 MiB``.
    """
    value = float(max(size, 0))
    for unit in _SIZE_UNITS[:-1]:
        if value < 1024:
            break
        value /= 1024
    else:
        unit = _SIZE_UNITS[-1]
    if unit == "B":
        return f"{int(value)} B"
    return f"{value:.1f} {unit}"


def format_net_bytes(delta: int) -> str:
    """Format a size change with an explicit sign (``+0 B`` for no change)."""
    sign = "-" if delta < 0 else "+"
    return f"{sign}{format_bytes(abs(delta))}"


def create_package_table(title: str, *, verbose: bool = False) -> Table:
    """Create the table used for transaction package lists.

    Args:
        title: Table title, usually ``Packages (N)``.
        verbose: Add architecture and size columns.
    """
    table = Table(title=title, header_style="bold_header", border_style="border")
    table.add_column("Package", style="package.name", no_wrap=True)
    table.add_column("Old Version", style="muted")
    table.add_column("New Version", style="package.version")
    if verbose:
        table.add_column("Arch", style="muted")
        table.add_column("Size", style="package.size", justify="right")
    return table


def print_error(message: str) -> None:
    """Print ``error: <message>`` to stderr."""
    err_console.print(f"[error]error:[/] {escape(message)}")
