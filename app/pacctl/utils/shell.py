"""Helpers for handing an invocation over to an external program."""

import os
import shutil
import subprocess


def command_exists(name: str) -> bool:
    """Return True if ``name`` resolves to an executable on PATH."""
    return shutil.which(name) is not None


def run_interactive(args: list[str], *, env: dict[str, str] | None = None) -> int:
    """Run a program attached to the current terminal and wait for it.

    Nothing is captured: the child reads stdin and writes stdout/stderr
    directly, so it can show its own prompts and progress.

    Args:
        args: Program and arguments.
        env: Extra environment variables layered over ``os.environ``.

    Returns:
        The program's exit status.

    Raises:
        OSError: If the program cannot be started.
    """
    child_env = dict(os.environ)
    if env:
        child_env.update(env)
    completed = subprocess.run(args, check=False, env=child_env)  # nosec: B603
    return completed.returncode
