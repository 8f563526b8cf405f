"""Append-only history ledger.

This module provides the HistoryLedger class for persisting and querying
history entries. The ledger file is only ever appended to; each write opens
the file in append mode, writes one line and closes it again, so a crash
mid-write can at worst truncate the last line.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from pacctl.core.paths import HISTORY_FILENAME, get_history_dir
from pacctl.models.history import HistoryEntry, HistoryStatus, create_history_entry

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 20

# Appends up to PIPE_BUF bytes are atomic on POSIX; longer lines written
# concurrently by several processes may interleave.
ATOMIC_APPEND_LIMIT = 4096


class HistoryLedger:
    """Reads and appends entries of the history ledger file.

    Attributes:
        history_dir: Directory containing the ledger file.
    """

    def __init__(self, history_dir: Path | None = None, root: str | None = None) -> None:
        """Initialize the ledger.

        Args:
            history_dir: Explicit ledger directory.
            root: Installation root used when ``history_dir`` is None.
        """
        self._history_dir = history_dir if history_dir is not None else get_history_dir(root)

    @property
    def history_path(self) -> Path:
        """Path to the ledger file."""
        return self._history_dir / HISTORY_FILENAME

    def append(self, entry: HistoryEntry) -> None:
        """Append one entry to the ledger.

        Creates the file and parent directories if they don't exist.

        Args:
            entry: The entry to append.

        Raises:
            OSError: If the directory or file cannot be written.
        """
        self._history_dir.mkdir(parents=True, exist_ok=True)

        line = entry.to_line() + "\n"
        if len(line.encode("utf-8")) > ATOMIC_APPEND_LIMIT:
            logger.debug(
                "History line for %s exceeds %d bytes; concurrent appends may interleave",
                entry.id,
                ATOMIC_APPEND_LIMIT,
            )

        with self.history_path.open(mode="a", encoding="utf-8") as f:
            f.write(line)
            f.flush()

    def record(
        self,
        operation: str,
        status: HistoryStatus | str,
        targets: list[str] | tuple[str, ...],
        summary: str,
    ) -> HistoryEntry:
        """Create and append an entry for a finished operation.

        Args:
            operation: Operation name.
            status: Terminal status.
            targets: Targets of the operation.
            summary: Free-text summary.

        Returns:
            The appended entry.

        Raises:
            OSError: If the ledger cannot be written.
        """
        entry = create_history_entry(operation, status, targets, summary)
        self.append(entry)
        return entry

    def read(self) -> list[HistoryEntry]:
        """Read all entries in file order.

        Lines that cannot be parsed (such as a truncated final line) are
        skipped. A missing ledger file is an empty history.

        Returns:
            Entries, oldest first.
        """
        if not self.history_path.exists():
            return []

        entries: list[HistoryEntry] = []
        with self.history_path.open(encoding="utf-8", newline="\n") as f:
            for line_num, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    entries.append(HistoryEntry.from_line(line))
                except ValueError as e:
                    logger.debug("Skipping corrupt history line %d: %s", line_num, e)
        return entries

    def recent(self, limit: int = DEFAULT_HISTORY_LIMIT) -> list[HistoryEntry]:
        """Return the most recent entries, newest first.

        Args:
            limit: Maximum number of entries (at least 1).

        Returns:
            Up to ``limit`` entries in reverse file order.
        """
        entries = self.read()
        limit = max(limit, 1)
        return list(reversed(entries[-limit:]))

    def find(self, entry_id: str) -> HistoryEntry | None:
        """Find an entry by identifier.

        Args:
            entry_id: The entry ID to find.

        Returns:
            HistoryEntry if found, None otherwise.
        """
        for entry in self.read():
            if entry.id == entry_id:
                return entry
        return None

    def select(self, selector: "HistorySelector") -> list[HistoryEntry]:
        """Return the entries a selector refers to.

        Args:
            selector: Either a single entry id or a recent-entries limit.

        Returns:
            The matching entry (or nothing) for an id selector, otherwise
            the most recent entries, newest first.
        """
        if selector.entry_id is not None:
            entry = self.find(selector.entry_id)
            return [entry] if entry is not None else []
        return self.recent(selector.limit)


@dataclass(frozen=True, slots=True)
class HistorySelector:
    """What ``history`` should display.

    Attributes:
        limit: Number of recent entries to list.
        entry_id: Identifier of a single entry to show.
    """

    limit: int = DEFAULT_HISTORY_LIMIT
    entry_id: str | None = None


def parse_selector(targets: tuple[str, ...] | list[str]) -> HistorySelector | None:
    """Interpret ``history`` targets.

    Accepted forms: no targets, ``<limit>``, ``show <id>``.

    Args:
        targets: Targets given after ``history``.

    Returns:
        The selector, or None when the targets match no accepted form.
    """
    if not targets:
        return HistorySelector()
    if targets[0] == "show":
        if len(targets) < 2:
            return None
        return HistorySelector(entry_id=targets[1])
    if targets[0].isdigit():
        return HistorySelector(limit=max(int(targets[0]), 1))
    return None
