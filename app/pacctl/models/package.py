"""Package models exchanged with the package backend.

The backend translates the external library's package objects into these
plain values; ``native`` keeps the library object around so it can be
handed back to the same backend when building a transaction.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Architecture value for architecture-independent packages
ARCH_ANY = "any"


class InstallReason(Enum):
    """Why a package is installed."""

    EXPLICIT = "explicit"
    DEPEND = "depend"


@dataclass(frozen=True, slots=True)
class Package:
    """A package from the local database, a sync repository or a file.

    Attributes:
        name: Package name.
        version: Full version string (``epoch:pkgver-pkgrel``).
        arch: Package architecture (``any`` for arch-independent packages).
        repository: Name of the database the package belongs to.
        description: One-line package description.
        url: Upstream URL.
        licenses: License identifiers.
        groups: Package groups.
        depends: Dependency specifications.
        optdepends: Optional dependency specifications.
        required_by: Installed packages that depend on this one.
        reason: Install reason (local packages only).
        download_size: Download size in bytes.
        installed_size: Installed size in bytes.
        install_date: Unix timestamp of installation (local packages only).
        files: Paths owned by the package, relative to the root.
        native: Backend-specific package object.
    """

    name: str
    version: str
    arch: str = ARCH_ANY
    repository: str | None = None
    description: str | None = None
    url: str | None = None
    licenses: tuple[str, ...] = ()
    groups: tuple[str, ...] = ()
    depends: tuple[str, ...] = ()
    optdepends: tuple[str, ...] = ()
    required_by: tuple[str, ...] = ()
    reason: InstallReason | None = None
    download_size: int = 0
    installed_size: int = 0
    install_date: int | None = None
    files: tuple[str, ...] = ()
    native: Any = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        """Validate package data after initialization."""
        if not self.name:
            msg = "Package name cannot be empty"
            raise ValueError(msg)
        if not self.version:
            msg = "Package version cannot be empty"
            raise ValueError(msg)

    @property
    def is_explicit(self) -> bool:
        """Check if the package was explicitly installed."""
        return self.reason == InstallReason.EXPLICIT

    def owns(self, path: str) -> bool:
        """Check if this package owns a filesystem path.

        Args:
            path: Absolute or root-relative path.

        Returns:
            True if the path is in the package's file list.
        """
        return path.lstrip("/") in self.files
