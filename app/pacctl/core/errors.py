"""Error taxonomy for pacctl.

Every failure the CLI reports is a :class:`PacctlError`. The external
package library only reports free text; :func:`classify_backend_error`
is the single place where that text is inspected.
"""

import re

_LOCKED_PATTERN = re.compile(r"database is locked|unable to lock database", re.IGNORECASE)
_ARCHITECTURE_PATTERN = re.compile(r"architecture", re.IGNORECASE)


class PacctlError(Exception):
    """Base exception for all pacctl errors."""


class ParseError(PacctlError):
    """Raised when the command line is malformed.

    Attributes:
        token: The offending token, if one can be named.
    """

    def __init__(self, message: str, token: str | None = None) -> None:
        super().__init__(message)
        self.token = token


class ConfigError(PacctlError):
    """Raised when the package-manager configuration is unusable."""


class PreflightError(PacctlError):
    """Raised when a check before opening a transaction fails."""


class DatabaseLockedError(PreflightError):
    """Raised when the package database lock is held.

    Attributes:
        lock_path: Path of the lock file, if known.
    """

    def __init__(self, message: str, lock_path: str | None = None) -> None:
        super().__init__(message)
        self.lock_path = lock_path


class TargetNotFoundError(PacctlError):
    """Raised when a target cannot be resolved to a package."""

    def __init__(self, target: str, message: str | None = None) -> None:
        super().__init__(message or f"target not found: {target}")
        self.target = target


class BackendError(PacctlError):
    """Raised by the package backend with the library's error text."""


class ResolutionError(PacctlError):
    """Raised when dependency or conflict resolution fails."""


class ArchitectureMismatchError(ResolutionError):
    """Raised when resolution fails because of package architectures.

    Attributes:
        allowed: Architectures the handle accepts.
        offenders: ``name (arch)`` strings for the rejected packages.
    """

    def __init__(self, message: str, allowed: list[str], offenders: list[str]) -> None:
        details = (
            f"{message}\n"
            f"Allowed architectures: {', '.join(allowed)}\n"
            f"Invalid package architectures: {', '.join(offenders)}"
        )
        super().__init__(details)
        self.reason = message
        self.allowed = list(allowed)
        self.offenders = list(offenders)


class CommitError(PacctlError):
    """Raised when the backend fails to apply a prepared transaction."""


def classify_backend_error(text: str) -> BackendError | DatabaseLockedError:
    """Wrap raw library error text into a typed error.

    Args:
        text: Error message reported by the package library.

    Returns:
        DatabaseLockedError for lock contention, BackendError otherwise.
    """
    if _LOCKED_PATTERN.search(text):
        return DatabaseLockedError(text)
    return BackendError(text)


def mentions_architecture(text: str) -> bool:
    """Check if a resolution failure refers to package architectures."""
    return _ARCHITECTURE_PATTERN.search(text) is not None


def is_lock_error(error: BaseException) -> bool:
    """Check if an error means the package database is locked.

    Args:
        error: Any exception raised while running a command.

    Returns:
        True for DatabaseLockedError or lock text in the message.
    """
    if isinstance(error, DatabaseLockedError):
        return True
    return _LOCKED_PATTERN.search(str(error)) is not None
