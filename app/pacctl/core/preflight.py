"""Checks run before a mutating transaction is opened.

Preflight failures happen before any transaction state exists. The
database lock is only ever inspected here; pacctl never removes it.
"""

import logging
import os
from enum import Enum
from pathlib import Path

from pacctl.core.config import PackageManagerConfig
from pacctl.core.errors import DatabaseLockedError, PreflightError
from pacctl.core.paths import root_join

logger = logging.getLogger(__name__)

ROOT_REQUIRED_MESSAGE = "you cannot perform this operation unless you are root."


class Distro(Enum):
    """Distribution profile detected from os-release."""

    ARCH = "Arch Linux"
    CACHYOS = "CachyOS"
    OTHER = "Unknown/Other"


def detect_distro(root: str) -> Distro:
    """Detect the distribution installed under ``root``.

    Args:
        root: Installation root.

    Returns:
        The distro profile; OTHER if os-release is missing or unknown.
    """
    path = root_join(root, "/etc/os-release")
    try:
        content = path.read_text(encoding="utf-8").lower()
    except OSError:
        return Distro.OTHER
    if "id=cachyos" in content or 'id_like="cachyos' in content:
        return Distro.CACHYOS
    if "id=arch" in content or "id_like=arch" in content:
        return Distro.ARCH
    return Distro.OTHER


def gpg_path(config: PackageManagerConfig) -> Path:
    """Keyring directory of the effective configuration, below the root."""
    return root_join(config.root_dir, config.effective_gpg_dir)


def has_public_keyring(gpg_dir: Path) -> bool:
    return (gpg_dir / "pubring.kbx").exists() or (gpg_dir / "pubring.gpg").exists()


def has_local_package(db_path: str, name: str) -> bool:
    """Check the local database directory for an installed package.

    Args:
        db_path: Package database path.
        name: Package name.

    Returns:
        True if a ``<name>-<version>`` entry exists under ``local/``.
    """
    local_dir = Path(db_path) / "local"
    try:
        return any(entry.name.startswith(f"{name}-") for entry in local_dir.iterdir())
    except OSError:
        return False


def require_root() -> None:
    """Fail unless running with an effective uid of 0.

    Raises:
        PreflightError: If not running as root.
    """
    if os.geteuid() != 0:
        raise PreflightError(ROOT_REQUIRED_MESSAGE)


def ensure_db_unlocked(config: PackageManagerConfig) -> None:
    """Fail if the package database lock file exists.

    Raises:
        DatabaseLockedError: If the lock file is present.
    """
    lock_path = config.lock_path
    if lock_path.exists():
        raise DatabaseLockedError(f"database is locked (found {lock_path})", str(lock_path))


def check_keyring(config: PackageManagerConfig) -> None:
    """Verify trust infrastructure and distro keyring packages.

    Args:
        config: Effective configuration.

    Raises:
        PreflightError: If the keyring directory, public keyring or trustdb
            is missing, or a required keyring package is not installed.
    """
    gpg_dir = gpg_path(config)
    if not gpg_dir.exists():
        msg = (
            f"keyring directory missing at {gpg_dir} "
            "(run pacman-key --init and repopulate keyrings)"
        )
        raise PreflightError(msg)
    if not has_public_keyring(gpg_dir):
        msg = f"no keyring public keyring file in {gpg_dir} (expected pubring.kbx or pubring.gpg)"
        raise PreflightError(msg)
    trustdb = gpg_dir / "trustdb.gpg"
    if not trustdb.exists():
        raise PreflightError(f"keyring trustdb missing at {trustdb}")

    if not has_local_package(config.db_path, "archlinux-keyring"):
        raise PreflightError("archlinux-keyring is not installed in the local package database")
    if detect_distro(config.root_dir) == Distro.CACHYOS and not has_local_package(
        config.db_path, "cachyos-keyring"
    ):
        raise PreflightError("cachyos-keyring is not installed in the local package database")


class Preflight:
    """Preflight gate for mutating operations.

    Attributes:
        root_required: Enforce an effective uid of 0.
    """

    def __init__(self, root_required: bool = True) -> None:
        self.root_required = root_required

    def check_root(self) -> None:
        if self.root_required:
            require_root()

    def check_transaction(
        self,
        config: PackageManagerConfig,
        *,
        keyring: bool,
    ) -> None:
        """Run every check required before opening a transaction.

        Args:
            config: Effective configuration.
            keyring: Also verify trust infrastructure (sync/install paths).

        Raises:
            DatabaseLockedError: If the database is locked.
            PreflightError: If any keyring check fails.
        """
        ensure_db_unlocked(config)
        if keyring:
            check_keyring(config)
        logger.debug("Preflight passed for root=%s dbpath=%s", config.root_dir, config.db_path)
