"""libalpm backend built on the ``pyalpm`` binding.

Installed with the ``alpm`` extra. This module is imported lazily by the
CLI so that the rest of pacctl works (and is testable) without libalpm.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import pyalpm

from pacctl.backends.base import (
    DownloadCallback,
    PackageBackend,
    ProgressCallback,
    TransactionHandle,
)
from pacctl.core.config import (
    PackageManagerConfig,
    SigLevel,
    arch_variants,
    expand_server_url,
    parse_siglevel,
    resolve_architectures,
    url_architecture,
)
from pacctl.core.errors import classify_backend_error
from pacctl.core.progress import ProgressEvent
from pacctl.models.package import InstallReason, Package

if TYPE_CHECKING:
    from pacctl.models.command import GlobalOptions
    from pacctl.models.transaction import TransactionFlags

logger = logging.getLogger(__name__)

_SIGLEVEL_BITS: dict[SigLevel, int] = {
    SigLevel.PACKAGE: pyalpm.SIG_PACKAGE,
    SigLevel.PACKAGE_OPTIONAL: pyalpm.SIG_PACKAGE_OPTIONAL,
    SigLevel.DATABASE: pyalpm.SIG_DATABASE,
    SigLevel.DATABASE_OPTIONAL: pyalpm.SIG_DATABASE_OPTIONAL,
    SigLevel.USE_DEFAULT: pyalpm.SIG_USE_DEFAULT,
}

_REASONS: dict[int, InstallReason] = {
    pyalpm.PKG_REASON_EXPLICIT: InstallReason.EXPLICIT,
    pyalpm.PKG_REASON_DEPEND: InstallReason.DEPEND,
}


def to_alpm_siglevel(level: SigLevel) -> int:
    """Translate a SigLevel flag set into libalpm bits."""
    bits = 0
    for flag, value in _SIGLEVEL_BITS.items():
        if flag in level:
            bits |= value
    return bits


def to_package(native: Any) -> Package:
    """Convert a pyalpm package into a :class:`Package`."""
    db = getattr(native, "db", None)
    files = tuple(entry[0] for entry in (native.files or ()))
    return Package(
        name=native.name,
        version=native.version,
        arch=native.arch or "unknown",
        repository=db.name if db is not None else None,
        description=native.desc,
        url=native.url,
        licenses=tuple(native.licenses or ()),
        groups=tuple(native.groups or ()),
        depends=tuple(native.depends or ()),
        optdepends=tuple(native.optdepends or ()),
        required_by=tuple(native.compute_requiredby() or ()),
        reason=_REASONS.get(native.reason),
        download_size=native.size or 0,
        installed_size=native.isize or 0,
        install_date=native.installdate or None,
        files=files,
        native=native,
    )


class AlpmTransaction(TransactionHandle):
    """Transaction handle wrapping ``pyalpm.Transaction``."""

    def __init__(self, native: Any) -> None:
        self._native = native

    def add_package(self, package: Package) -> None:
        try:
            self._native.add_pkg(package.native)
        except pyalpm.error as e:
            raise classify_backend_error(str(e)) from e

    def remove_package(self, package: Package) -> None:
        try:
            self._native.remove_pkg(package.native)
        except pyalpm.error as e:
            raise classify_backend_error(str(e)) from e

    def sysupgrade(self) -> None:
        try:
            self._native.sysupgrade(False)
        except pyalpm.error as e:
            raise classify_backend_error(str(e)) from e

    def prepare(self) -> None:
        try:
            self._native.prepare()
        except pyalpm.error as e:
            raise classify_backend_error(str(e)) from e

    def commit(self) -> None:
        try:
            self._native.commit()
        except pyalpm.error as e:
            raise classify_backend_error(str(e)) from e

    def release(self) -> None:
        try:
            self._native.release()
        except pyalpm.error as e:
            raise classify_backend_error(str(e)) from e

    @property
    def to_add(self) -> list[Package]:
        return [to_package(p) for p in self._native.to_add]

    @property
    def to_remove(self) -> list[Package]:
        return [to_package(p) for p in self._native.to_remove]


class AlpmBackend(PackageBackend):
    """Package backend driving libalpm through pyalpm."""

    def __init__(self, handle: Any, architectures: list[str]) -> None:
        self._handle = handle
        self._architectures = architectures
        self._removing = False

    @classmethod
    def from_config(cls, config: PackageManagerConfig, options: GlobalOptions) -> AlpmBackend:
        """Construct and configure a handle.

        Registers every repository with its signature level and mirror
        list (URL variables substituted at registration time) and applies
        the overwrite patterns from the command line.

        Args:
            config: Effective package-manager configuration.
            options: Global options of the invocation.

        Returns:
            Configured backend.

        Raises:
            BackendError: If libalpm rejects the configuration.
        """
        try:
            handle = pyalpm.Handle(config.root_dir, config.db_path)
            handle.cachedirs = [config.cache_dir]
            handle.logfile = config.effective_log_file
            handle.gpgdir = config.effective_gpg_dir
            for hookdir in config.effective_hook_dirs:
                handle.add_hookdir(hookdir)

            architectures = resolve_architectures(config)
            for arch in architectures:
                handle.add_architecture(arch)

            arch = url_architecture(config)
            _base, arch_v3, arch_v4 = arch_variants(arch)
            for repo in config.repositories:
                level = parse_siglevel(repo.sig_level) or SigLevel.USE_DEFAULT
                db = handle.register_syncdb(repo.name, to_alpm_siglevel(level))
                db.servers = [
                    expand_server_url(server, repo.name, arch, arch_v3, arch_v4)
                    for server in repo.servers
                ]

            for pattern in options.overwrite:
                handle.add_overwrite_file(pattern)
        except pyalpm.error as e:
            raise classify_backend_error(f"failed to initialize libalpm handle: {e}") from e

        logger.debug(
            "Initialized libalpm handle root=%s dbpath=%s repos=%d",
            config.root_dir,
            config.db_path,
            len(config.repositories),
        )
        return cls(handle, architectures)

    @property
    def architectures(self) -> list[str]:
        return list(self._architectures)

    def _syncdb(self, repository: str) -> Any:
        for db in self._handle.get_syncdbs():
            if db.name == repository:
                return db
        return None

    def repositories(self) -> list[str]:
        return [db.name for db in self._handle.get_syncdbs()]

    def find_in_repository(self, repository: str, name: str) -> Package | None:
        db = self._syncdb(repository)
        native = db.get_pkg(name) if db is not None else None
        return to_package(native) if native is not None else None

    def search_repository(self, repository: str, queries: list[str]) -> list[Package]:
        db = self._syncdb(repository)
        if db is None:
            return []
        return [to_package(p) for p in db.search(*queries)]

    def local_package(self, name: str) -> Package | None:
        native = self._handle.get_localdb().get_pkg(name)
        return to_package(native) if native is not None else None

    def local_packages(self) -> list[Package]:
        return [to_package(p) for p in self._handle.get_localdb().pkgcache]

    def search_local(self, queries: list[str]) -> list[Package]:
        return [to_package(p) for p in self._handle.get_localdb().search(*queries)]

    def load_package_file(self, path: str, siglevel: SigLevel | None) -> Package:
        level = to_alpm_siglevel(siglevel or SigLevel.USE_DEFAULT)
        try:
            return to_package(self._handle.load_pkg(path, level))
        except pyalpm.error as e:
            raise classify_backend_error(f"{path}: {e}") from e

    def refresh_databases(self) -> None:
        for db in self._handle.get_syncdbs():
            try:
                db.update(False)
            except pyalpm.error as e:
                raise classify_backend_error(f"failed to update {db.name}: {e}") from e

    def begin_transaction(self, flags: TransactionFlags) -> TransactionHandle:
        self._removing = flags.recurse or flags.nosave
        try:
            native = self._handle.init_transaction(
                needed=flags.needed,
                nodeps=flags.nodeps,
                nodepversion=flags.nodepversion,
                noscriptlet=flags.noscriptlet,
                recurse=flags.recurse,
                unneeded=flags.unneeded,
                nosave=flags.nosave,
            )
        except pyalpm.error as e:
            raise classify_backend_error(str(e)) from e
        return AlpmTransaction(native)

    def set_install_reason(self, name: str, reason: InstallReason) -> None:
        native = self._handle.get_localdb().get_pkg(name)
        if native is None:
            return
        value = (
            pyalpm.PKG_REASON_DEPEND
            if reason == InstallReason.DEPEND
            else pyalpm.PKG_REASON_EXPLICIT
        )
        try:
            self._handle.set_pkgreason(native, value)
        except pyalpm.error as e:
            raise classify_backend_error(str(e)) from e

    def set_callbacks(
        self,
        download: DownloadCallback | None = None,
        progress: ProgressCallback | None = None,
    ) -> None:
        if download is not None:

            def on_download(filename: str, transferred: int, total: int) -> None:
                if transferred == 0:
                    download(filename, "init", 0, total)
                elif total > 0 and transferred >= total:
                    download(filename, "progress", transferred, total)
                    download(filename, "completed", transferred, total)
                else:
                    download(filename, "progress", transferred, total)

            self._handle.dlcb = on_download

        if progress is not None:

            def on_progress(target: str, percent: int, howmany: int, current: int) -> None:
                event = ProgressEvent.REMOVE if self._removing else ProgressEvent.ADD
                progress(event, target, percent, howmany, current)

            self._handle.progresscb = on_progress
