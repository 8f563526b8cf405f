"""Progress deduplication for download and transaction callbacks.

The backend reports progress through callbacks that may fire many times
with identical values. Whether an update is printed is decided by the pure
function :func:`should_emit` over (key, last-seen value) pairs; the state
objects below only hold those pairs between callback invocations.
"""

from collections.abc import Hashable, Mapping
from dataclasses import dataclass, field
from enum import Enum

_UNSEEN = object()


def should_emit(last_seen: Mapping[Hashable, object], key: Hashable, value: object) -> bool:
    """Decide whether a progress value differs from the last printed one.

    Args:
        last_seen: Last printed value per key.
        key: Progress stream key (e.g. a file name).
        value: New value for the stream.

    Returns:
        True if ``value`` was not the last value printed for ``key``.
    """
    return last_seen.get(key, _UNSEEN) != value


class ProgressEvent(Enum):
    """Transaction progress phases reported by the backend."""

    ADD = "add"
    UPGRADE = "upgrade"
    DOWNGRADE = "downgrade"
    REINSTALL = "reinstall"
    REMOVE = "remove"
    CONFLICTS = "conflicts"
    DISKSPACE = "diskspace"
    INTEGRITY = "integrity"
    LOAD = "load"
    KEYRING = "keyring"


PROGRESS_LABELS: dict[ProgressEvent, str] = {
    ProgressEvent.ADD: "Installing",
    ProgressEvent.UPGRADE: "Upgrading",
    ProgressEvent.DOWNGRADE: "Downgrading",
    ProgressEvent.REINSTALL: "Reinstalling",
    ProgressEvent.REMOVE: "Removing",
    ProgressEvent.CONFLICTS: "Checking conflicts",
    ProgressEvent.DISKSPACE: "Checking disk space",
    ProgressEvent.INTEGRITY: "Checking integrity",
    ProgressEvent.LOAD: "Loading packages",
    ProgressEvent.KEYRING: "Checking keys",
}


@dataclass
class DownloadProgressState:
    """Last printed percentage and completion flag per downloaded file."""

    last_percent: dict[str, int] = field(default_factory=dict)
    completed: set[str] = field(default_factory=set)

    def start(self, filename: str) -> None:
        """Forget everything known about a file whose download (re)starts."""
        self.last_percent.pop(filename, None)
        self.completed.discard(filename)

    def update(self, filename: str, percent: int) -> bool:
        """Record a percentage; return True if it should be printed."""
        if not should_emit(self.last_percent, filename, percent):
            return False
        self.last_percent[filename] = percent
        return True

    def complete(self, filename: str) -> bool:
        """Mark a file done; return True the first time only."""
        if filename in self.completed:
            return False
        self.completed.add(filename)
        return True


@dataclass
class TransactionProgressState:
    """Last printed transaction progress tuple."""

    last: dict[str, tuple[ProgressEvent, str, int, int, int]] = field(default_factory=dict)

    def update(
        self,
        event: ProgressEvent,
        package: str,
        percent: int,
        current: int,
        total: int,
    ) -> bool:
        """Record a progress report; return True if it should be printed.

        The whole (event, package, percent, current, total) tuple is
        compared, so any change in position or package is printed.
        """
        key = (event, package, percent, current, total)
        if not should_emit(self.last, "transaction", key):
            return False
        self.last["transaction"] = key
        return True


def progress_bar(percent: int, width: int = 28) -> str:
    """Render a fixed-width ASCII progress bar.

    Args:
        percent: Completion percentage (clamped to 0-100).
        width: Number of cells between the brackets.

    Returns:
        A bar such as ``[#######.....]``.
    """
    pct = min(max(percent, 0), 100)
    filled = (pct * width) // 100
    return "[" + "#" * filled + "." * (width - filled) + "]"


def percent_of(done: int, total: int) -> int | None:
    """Integer percentage of ``done`` over ``total``; None if total is unknown."""
    if total <= 0:
        return None
    return (done * 100) // total
