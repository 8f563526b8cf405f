"""History entry model for the transaction ledger.

Each entry is stored as one line of six ``|``-delimited fields::

    id|unix-timestamp|operation|status|targets|summary

The escape character, the field separator and newlines are escaped as
``\\\\``, ``\\p`` and ``\\n`` so that every record occupies exactly one line.
"""

from __future__ import annotations

import os
import time
from dataclasses import dataclass
from enum import Enum

FIELD_SEPARATOR = "|"
EMPTY_TARGETS = "-"

_ESCAPES = {"\\": "\\\\", "|": "\\p", "\n": "\\n"}
_UNESCAPES = {"\\": "\\", "p": "|", "n": "\n"}


class HistoryStatus(str, Enum):
    """Terminal status of a recorded operation."""

    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"
    DRY_RUN = "dry-run"
    NOOP = "noop"


def escape_field(value: str) -> str:
    """Escape a free-text field for single-line storage.

    Args:
        value: Raw field text.

    Returns:
        Text with ``\\``, ``|`` and newlines escaped.
    """
    return "".join(_ESCAPES.get(ch, ch) for ch in value)


def unescape_field(value: str) -> str:
    """Reverse :func:`escape_field`.

    Unknown escape sequences and a trailing lone backslash are kept verbatim.

    Args:
        value: Escaped field text.

    Returns:
        The original text.
    """
    out: list[str] = []
    chars = iter(value)
    for ch in chars:
        if ch != "\\":
            out.append(ch)
            continue
        nxt = next(chars, None)
        if nxt is None:
            out.append("\\")
        elif nxt in _UNESCAPES:
            out.append(_UNESCAPES[nxt])
        else:
            out.append("\\" + nxt)
    return "".join(out)


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """Immutable record of one finished operation.

    Attributes:
        id: Unique identifier (``<unix-seconds>-<pid>``).
        timestamp: Unix timestamp in seconds.
        operation: Operation name (sync, install, remove, install-local).
        status: Terminal status.
        targets: Targets the operation was invoked with.
        summary: Free-text summary.
    """

    id: str
    timestamp: int
    operation: str
    status: str
    targets: tuple[str, ...]
    summary: str

    def __post_init__(self) -> None:
        """Validate entry data after initialization."""
        if not self.id:
            msg = "History entry ID cannot be empty"
            raise ValueError(msg)
        if self.timestamp < 0:
            msg = "Timestamp cannot be negative"
            raise ValueError(msg)

    @property
    def targets_text(self) -> str:
        """Targets joined by spaces, or ``-`` when there are none."""
        return " ".join(self.targets) if self.targets else EMPTY_TARGETS

    def to_line(self) -> str:
        """Serialize to a single ledger line (no trailing newline)."""
        fields = (
            escape_field(self.id),
            str(self.timestamp),
            escape_field(self.operation),
            escape_field(self.status),
            escape_field(self.targets_text),
            escape_field(self.summary),
        )
        return FIELD_SEPARATOR.join(fields)

    @classmethod
    def from_line(cls, line: str) -> HistoryEntry:
        """Deserialize a ledger line.

        Args:
            line: One ledger line, with or without trailing newline.

        Returns:
            HistoryEntry instance.

        Raises:
            ValueError: If the line does not have six fields or the
                timestamp is not an integer.
        """
        parts = line.rstrip("\n").split(FIELD_SEPARATOR, 5)
        if len(parts) != 6:
            msg = f"Expected 6 fields, got {len(parts)}"
            raise ValueError(msg)

        targets_text = unescape_field(parts[4])
        targets = () if targets_text == EMPTY_TARGETS else tuple(targets_text.split(" "))
        return cls(
            id=unescape_field(parts[0]),
            timestamp=int(parts[1]),
            operation=unescape_field(parts[2]),
            status=unescape_field(parts[3]),
            targets=targets,
            summary=unescape_field(parts[5]),
        )


def create_history_entry(
    operation: str,
    status: HistoryStatus | str,
    targets: list[str] | tuple[str, ...],
    summary: str,
) -> HistoryEntry:
    """Factory function to create a new HistoryEntry.

    The identifier combines wall-clock seconds with the process id, so two
    invocations in the same second still get distinct ids.

    Args:
        operation: Operation name.
        status: Terminal status.
        targets: Targets of the operation.
        summary: Free-text summary.

    Returns:
        New HistoryEntry stamped with the current time.
    """
    now = int(time.time())
    status_value = status.value if isinstance(status, HistoryStatus) else status
    return HistoryEntry(
        id=f"{now}-{os.getpid()}",
        timestamp=now,
        operation=operation,
        status=status_value,
        targets=tuple(targets),
        summary=summary,
    )
