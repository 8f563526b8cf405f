"""Transaction models.

Defines the session lifecycle states, the flag set passed to the backend
when a transaction is opened, and the summaries computed from a prepared
change set.
"""

from dataclasses import dataclass, fields
from enum import Enum

from pacctl.models.command import GlobalOptions, RemoveOptions
from pacctl.models.package import Package


class SessionState(Enum):
    """Lifecycle of a transaction session.

    ``UNINITIALIZED -> OPEN -> POPULATED -> PREPARED ->
    {COMMITTED | CANCELLED | FAILED} -> CLOSED``. Any state may move to
    ``CLOSED``.
    """

    UNINITIALIZED = "uninitialized"
    OPEN = "open"
    POPULATED = "populated"
    PREPARED = "prepared"
    COMMITTED = "committed"
    CANCELLED = "cancelled"
    FAILED = "failed"
    CLOSED = "closed"


@dataclass(frozen=True, slots=True)
class TransactionFlags:
    """Flags handed to the backend when a transaction is opened."""

    needed: bool = False
    nodeps: bool = False
    nodepversion: bool = False
    noscriptlet: bool = False
    recurse: bool = False
    unneeded: bool = False
    nosave: bool = False

    @classmethod
    def for_install(cls, options: GlobalOptions) -> "TransactionFlags":
        """Build flags for sync and local-file installs.

        Args:
            options: Global options of the invocation.

        Returns:
            Flag set for an install transaction.
        """
        return cls(
            needed=options.needed,
            nodeps=options.nodeps > 0,
            nodepversion=options.nodeps > 1,
            noscriptlet=options.noscriptlet,
        )

    @classmethod
    def for_remove(cls, options: GlobalOptions, remove: RemoveOptions) -> "TransactionFlags":
        """Build flags for a removal.

        Args:
            options: Global options of the invocation.
            remove: -R specific options.

        Returns:
            Flag set for a remove transaction.
        """
        return cls(
            nodeps=options.nodeps > 0,
            nodepversion=options.nodeps > 1,
            recurse=remove.recursive,
            unneeded=remove.recursive,
            nosave=remove.nosave,
        )

    def enabled(self) -> list[str]:
        """Return the names of all enabled flags."""
        return [f.name for f in fields(self) if getattr(self, f.name)]


@dataclass(frozen=True, slots=True)
class AddSummary:
    """Counts and sizes for a prepared install/upgrade transaction.

    Attributes:
        install_count: Packages not currently installed.
        upgrade_count: Packages replacing an installed version.
        download_size: Total bytes to download.
        net_change: Change of installed size in bytes (may be negative).
    """

    install_count: int
    upgrade_count: int
    download_size: int
    net_change: int


@dataclass(frozen=True, slots=True)
class RemoveSummary:
    """Counts and sizes for a prepared removal.

    Attributes:
        remove_count: Packages to remove.
        reclaimed: Installed bytes freed by the removal.
    """

    remove_count: int
    reclaimed: int

    @property
    def net_change(self) -> int:
        """Change of installed size in bytes (never positive)."""
        return -self.reclaimed


def summarize_add(to_add: list[Package], installed: dict[str, Package]) -> AddSummary:
    """Summarize packages to be added by a transaction.

    A package counts as an upgrade when an installed version with a
    non-zero installed size exists.

    Args:
        to_add: Packages the prepared transaction will add.
        installed: Currently installed packages by name.

    Returns:
        AddSummary for the change set.
    """
    install_count = 0
    upgrade_count = 0
    download = 0
    net = 0

    for pkg in to_add:
        download += pkg.download_size
        old = installed.get(pkg.name)
        old_size = old.installed_size if old is not None else 0
        if old_size > 0:
            upgrade_count += 1
        else:
            install_count += 1
        net += pkg.installed_size - old_size

    return AddSummary(
        install_count=install_count,
        upgrade_count=upgrade_count,
        download_size=max(download, 0),
        net_change=net,
    )


def summarize_remove(to_remove: list[Package]) -> RemoveSummary:
    """Summarize packages to be removed by a transaction.

    Args:
        to_remove: Packages the prepared transaction will remove.

    Returns:
        RemoveSummary for the change set.
    """
    reclaimed = sum(pkg.installed_size for pkg in to_remove)
    return RemoveSummary(remove_count=len(to_remove), reclaimed=max(reclaimed, 0))
