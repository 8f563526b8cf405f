"""Main CLI entry point.

pacman-style flag clusters (``-Syu``) and the literal ``--`` terminator are
handled by :mod:`pacctl.cli.parser`; this module wires the parsed command
to the orchestrator and maps failures to exit codes.
"""

import logging
import os
import sys
from collections.abc import Sequence

import typer

from pacctl import __version__
from pacctl.backends.base import PackageBackend
from pacctl.cli.display import Reporter
from pacctl.cli.parser import parse_args
from pacctl.core.config import PackageManagerConfig, effective_config
from pacctl.core.errors import (
    BackendError,
    DatabaseLockedError,
    PacctlError,
    ParseError,
    is_lock_error,
)
from pacctl.core.ledger import HistoryLedger
from pacctl.core.orchestrator import Orchestrator
from pacctl.core.policy import collect_warnings
from pacctl.core.settings import load_settings
from pacctl.models.command import GlobalOptions, OperationKind
from pacctl.utils.formatting import console, err_console, print_error
from pacctl.utils.shell import command_exists, run_interactive

logger = logging.getLogger(__name__)

AUR_FLAGS = ("--aur", "--paru")

USAGE = """\
pacctl - pacman-style package transactions for Arch Linux

Usage: pacctl <operation> [options] [targets]

Operations:
  -S [y|u|s|i|c]  Sync/upgrade, search, info or clean cache
  -Q [i|s|l|m|o|e]
                  Query installed packages
  -R [s|n]        Remove packages
  -U <pkgfile>    Install local package files
  doctor          Check the package-manager environment
  history [N | show <id>]
                  Show the transaction history

Examples:
  pacctl -Ss firefox      Search for firefox
  pacctl -S firefox       Install firefox
  pacctl -Syu             Full system upgrade
  pacctl -Q               List installed packages
  pacctl -Qe              List explicitly installed packages
  pacctl -Ql bash         List files for bash
  pacctl -Qm              List foreign packages
  pacctl -Qo /usr/bin/vi  Find owning package
  pacctl -R firefox       Remove firefox
  pacctl -Rns firefox     Remove firefox and its unused deps
  pacctl -U ./pkg.pkg.tar.zst
                          Install a local package file
  pacctl -Sc              Clean unused cache

Notes:
  Use '--' to stop option parsing, e.g. pacctl -S -- -weirdpkg
  Use '--test' (or '--dry-run') to simulate changes without committing
  Common options: --noconfirm --needed --overwrite --asdeps --asexplicit
                  --root --dbpath --cachedir
  Output options: --verbose | --compact
  Dependency options: -d/-dd (--nodeps), --noscriptlet
  Safety: --strict rejects --nodeps, --noscriptlet, --overwrite and weak SigLevels
  AUR: --aur/--paru hands the remaining arguments to paru
"""


def print_usage() -> None:
    console.print(USAGE, markup=False, highlight=False, end="")


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr; DEBUG with --verbose, WARNING otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def confirm_prompt(question: str) -> bool:
    """Ask a yes/no question; an empty answer means yes."""
    try:
        return typer.confirm(question, default=True)
    except typer.Abort:
        return False


def create_backend(config: PackageManagerConfig, options: GlobalOptions) -> PackageBackend:
    """Build the libalpm backend.

    Raises:
        BackendError: If pyalpm is not installed or the handle cannot be set up.
    """
    try:
        from pacctl.backends.alpm import AlpmBackend
    except ImportError as e:
        msg = "pyalpm is required for package operations (install pacctl[alpm])"
        raise BackendError(msg) from e
    return AlpmBackend.from_config(config, options)


def run_paru(tokens: list[str]) -> int:
    """Delegate an invocation to paru.

    Returns:
        paru's exit status, or 1 if it cannot be started.
    """
    if os.geteuid() == 0:
        print_error("--aur/--paru must be run as a regular user (do not use sudo)")
        return 1
    if not command_exists("paru"):
        print_error("paru not found in PATH (install paru or run without --aur)")
        return 1
    args = [token for token in tokens if token not in AUR_FLAGS]
    logger.debug("Delegating to paru: %s", " ".join(args))
    try:
        return run_interactive(["paru", *args])
    except OSError as e:
        print_error(f"failed to execute paru: {e}")
        return 1


def report_failure(error: PacctlError) -> None:
    """Print an error, adding a hint when the database is locked."""
    print_error(str(error))
    if is_lock_error(error):
        lock_path = error.lock_path if isinstance(error, DatabaseLockedError) else None
        target = lock_path or "the database lock file (db.lck)"
        err_console.print(
            "[info]hint:[/] another package manager may be running. If you are sure "
            f"none is, remove {target} manually.",
            highlight=False,
        )


def main(argv: Sequence[str] | None = None) -> int:
    """Run pacctl.

    Args:
        argv: Arguments without the program name. Defaults to sys.argv[1:].

    Returns:
        Process exit status: 0 on success, help, cancellation or no-op,
        1 on any failure.
    """
    tokens = list(sys.argv[1:] if argv is None else argv)
    if not tokens:
        print_usage()
        return 0
    if tokens[0] in ("--version", "-V"):
        console.print(f"pacctl version {__version__}", highlight=False)
        return 0
    if any(token in AUR_FLAGS for token in tokens):
        return run_paru(tokens)

    try:
        invocation = parse_args(tokens)
    except ParseError as e:
        print_error(str(e))
        err_console.print("Try 'pacctl --help' for more information.", highlight=False)
        return 1

    command, options = invocation.command, invocation.options
    configure_logging(options.verbose)
    if command.kind == OperationKind.HELP:
        print_usage()
        return 0

    settings = load_settings()
    reporter = Reporter(options.output, progress_width=settings.progress_width)
    reporter.policy_warnings(collect_warnings(options))

    orchestrator = Orchestrator(
        options,
        load_config=lambda: effective_config(options, settings.pacman_conf),
        backend_factory=create_backend,
        ledger=HistoryLedger(settings.history_dir, root=options.root_dir),
        reporter=reporter,
        confirm=confirm_prompt,
    )
    try:
        orchestrator.run(command)
    except PacctlError as e:
        report_failure(e)
        return 1
    return 0


def run() -> None:
    """Console-script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
