"""Abstract interface to the external package-management library.

The orchestrator never talks to the library directly. A backend exposes
the local and sync databases, loads package files, refreshes repositories
and opens transactions; a transaction handle exposes the
add/remove/prepare/commit/release lifecycle. Every library failure is
raised as a :class:`~pacctl.core.errors.BackendError` (or a subclass
chosen by :func:`~pacctl.core.errors.classify_backend_error`).
"""

from abc import ABC, abstractmethod
from collections.abc import Callable

from pacctl.core.config import SigLevel
from pacctl.core.progress import ProgressEvent
from pacctl.models.package import InstallReason, Package
from pacctl.models.transaction import TransactionFlags

# (filename, event, downloaded, total); event is "init", "progress" or "completed"
DownloadCallback = Callable[[str, str, int, int], None]
# (event, package, percent, total packages, current package)
ProgressCallback = Callable[[ProgressEvent, str, int, int, int], None]


class TransactionHandle(ABC):
    """An open transaction inside the package library."""

    @abstractmethod
    def add_package(self, package: Package) -> None:
        """Queue a package for installation or upgrade."""

    @abstractmethod
    def remove_package(self, package: Package) -> None:
        """Queue an installed package for removal."""

    @abstractmethod
    def sysupgrade(self) -> None:
        """Queue upgrades for every outdated installed package."""

    @abstractmethod
    def prepare(self) -> None:
        """Resolve dependencies and check for conflicts.

        Raises:
            BackendError: If resolution fails.
        """

    @abstractmethod
    def commit(self) -> None:
        """Apply the prepared transaction.

        Raises:
            BackendError: If the library fails to apply the transaction.
        """

    @abstractmethod
    def release(self) -> None:
        """Release the transaction and its database lock."""

    @property
    @abstractmethod
    def to_add(self) -> list[Package]:
        """Packages the transaction will install or upgrade."""

    @property
    @abstractmethod
    def to_remove(self) -> list[Package]:
        """Packages the transaction will remove."""


class PackageBackend(ABC):
    """Read access to package databases plus transaction construction.

    Example:
        >>> backend = AlpmBackend.from_config(config, options)
        >>> pkg = backend.find_in_repository("core", "bash")
        >>> handle = backend.begin_transaction(TransactionFlags())
    """

    @property
    @abstractmethod
    def architectures(self) -> list[str]:
        """Architectures the handle accepts."""

    @abstractmethod
    def repositories(self) -> list[str]:
        """Names of the registered sync repositories, in registration order."""

    @abstractmethod
    def find_in_repository(self, repository: str, name: str) -> Package | None:
        """Look up a package by exact name in one sync repository."""

    @abstractmethod
    def search_repository(self, repository: str, queries: list[str]) -> list[Package]:
        """Search one sync repository by name/description regexes."""

    @abstractmethod
    def local_package(self, name: str) -> Package | None:
        """Look up an installed package by exact name."""

    @abstractmethod
    def local_packages(self) -> list[Package]:
        """Return all installed packages."""

    @abstractmethod
    def search_local(self, queries: list[str]) -> list[Package]:
        """Search installed packages by name/description regexes."""

    @abstractmethod
    def load_package_file(self, path: str, siglevel: SigLevel | None) -> Package:
        """Load and validate a local package file.

        Raises:
            BackendError: If the file cannot be loaded or fails verification.
        """

    @abstractmethod
    def refresh_databases(self) -> None:
        """Download fresh copies of the sync databases.

        Raises:
            BackendError: If synchronization fails.
        """

    @abstractmethod
    def begin_transaction(self, flags: TransactionFlags) -> TransactionHandle:
        """Open a transaction with the given flags.

        Raises:
            BackendError: If the transaction cannot be initialized.
        """

    @abstractmethod
    def set_install_reason(self, name: str, reason: InstallReason) -> None:
        """Change the install reason of an installed package."""

    def set_callbacks(
        self,
        download: DownloadCallback | None = None,
        progress: ProgressCallback | None = None,
    ) -> None:
        """Register progress callbacks. Backends without progress ignore them."""

    def find_sync_package(self, name: str) -> Package | None:
        """Look up a package across all repositories.

        Repositories are searched in registration order; the first match
        wins.

        Args:
            name: Exact package name.

        Returns:
            The first matching package, or None.
        """
        for repository in self.repositories():
            pkg = self.find_in_repository(repository, name)
            if pkg is not None:
                return pkg
        return None
