"""Shared pytest fixtures for pacctl tests.

Provides an in-memory package backend, captured terminal output and
factories for wiring an orchestrator without touching the real system.
"""

import io
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from pacctl.backends.base import (
    DownloadCallback,
    PackageBackend,
    ProgressCallback,
    TransactionHandle,
)
from pacctl.cli.display import Reporter
from pacctl.core.config import PackageManagerConfig, Repository, SigLevel
from pacctl.core.errors import BackendError, PacctlError
from pacctl.core.ledger import HistoryLedger
from pacctl.core.orchestrator import Orchestrator
from pacctl.core.preflight import Preflight
from pacctl.core.theme import get_theme
from pacctl.models.command import GlobalOptions, OutputMode
from pacctl.models.package import InstallReason, Package
from pacctl.models.transaction import TransactionFlags
from rich.console import Console

MiB = 1024 * 1024


class FakeTransaction(TransactionHandle):
    """Transaction handle that records every call.

    The resolved change set is what was queued, unless the owning backend
    overrides it with ``resolved_add`` / ``resolved_remove``.
    """

    def __init__(self, backend: "FakeBackend", flags: TransactionFlags) -> None:
        self.backend = backend
        self.flags = flags
        self.added: list[Package] = []
        self.removed: list[Package] = []
        self.upgraded = False
        self.prepared = False
        self.committed = False
        self.release_count = 0

    def add_package(self, package: Package) -> None:
        self.added.append(package)

    def remove_package(self, package: Package) -> None:
        self.removed.append(package)

    def sysupgrade(self) -> None:
        self.upgraded = True

    def prepare(self) -> None:
        if self.backend.prepare_error is not None:
            raise self.backend.prepare_error
        self.prepared = True

    def commit(self) -> None:
        if self.backend.commit_error is not None:
            raise self.backend.commit_error
        self.committed = True

    def release(self) -> None:
        self.release_count += 1
        if self.backend.release_error is not None:
            raise self.backend.release_error

    @property
    def to_add(self) -> list[Package]:
        if self.backend.resolved_add is not None:
            return list(self.backend.resolved_add)
        upgrades = self.backend.upgrades if self.upgraded else []
        return [*upgrades, *self.added]

    @property
    def to_remove(self) -> list[Package]:
        if self.backend.resolved_remove is not None:
            return list(self.backend.resolved_remove)
        return list(self.removed)


class FakeBackend(PackageBackend):
    """In-memory package backend for orchestrator and session tests."""

    def __init__(
        self,
        sync: dict[str, list[Package]] | None = None,
        local: list[Package] | None = None,
        *,
        architectures: list[str] | None = None,
    ) -> None:
        self.sync = sync or {}
        self.local = local or []
        self._architectures = architectures or ["x86_64"]
        self.files: dict[str, Package] = {}
        self.upgrades: list[Package] = []
        self.resolved_add: list[Package] | None = None
        self.resolved_remove: list[Package] | None = None
        self.prepare_error: PacctlError | None = None
        self.commit_error: PacctlError | None = None
        self.release_error: PacctlError | None = None
        self.refresh_count = 0
        self.transactions: list[FakeTransaction] = []
        self.reasons: dict[str, InstallReason] = {}
        self.loaded: list[tuple[str, SigLevel | None]] = []
        self.download_callback: DownloadCallback | None = None
        self.progress_callback: ProgressCallback | None = None

    @property
    def architectures(self) -> list[str]:
        return list(self._architectures)

    @property
    def transaction(self) -> FakeTransaction:
        """The most recently opened transaction."""
        return self.transactions[-1]

    def repositories(self) -> list[str]:
        return list(self.sync)

    def find_in_repository(self, repository: str, name: str) -> Package | None:
        return next((p for p in self.sync.get(repository, []) if p.name == name), None)

    def search_repository(self, repository: str, queries: list[str]) -> list[Package]:
        return [p for p in self.sync.get(repository, []) if _matches(p, queries)]

    def local_package(self, name: str) -> Package | None:
        return next((p for p in self.local if p.name == name), None)

    def local_packages(self) -> list[Package]:
        return list(self.local)

    def search_local(self, queries: list[str]) -> list[Package]:
        return [p for p in self.local if _matches(p, queries)]

    def load_package_file(self, path: str, siglevel: SigLevel | None) -> Package:
        self.loaded.append((path, siglevel))
        if path not in self.files:
            raise BackendError(f"could not load package file {path}")
        return self.files[path]

    def refresh_databases(self) -> None:
        self.refresh_count += 1

    def begin_transaction(self, flags: TransactionFlags) -> FakeTransaction:
        handle = FakeTransaction(self, flags)
        self.transactions.append(handle)
        return handle

    def set_install_reason(self, name: str, reason: InstallReason) -> None:
        self.reasons[name] = reason

    def set_callbacks(
        self,
        download: DownloadCallback | None = None,
        progress: ProgressCallback | None = None,
    ) -> None:
        self.download_callback = download
        self.progress_callback = progress


def _matches(pkg: Package, queries: list[str]) -> bool:
    text = f"{pkg.name} {pkg.description or ''}"
    return all(q in text for q in queries)


class RecordingPreflight(Preflight):
    """Preflight that never inspects the system and records its calls."""

    def __init__(self) -> None:
        super().__init__(root_required=False)
        self.root_checks = 0
        self.transaction_checks: list[bool] = []

    def check_root(self) -> None:
        self.root_checks += 1

    def check_transaction(self, config: PackageManagerConfig, *, keyring: bool) -> None:
        self.transaction_checks.append(keyring)


class Capture:
    """Pair of plain-text consoles writing to in-memory buffers."""

    def __init__(self) -> None:
        self.console = _make_console()
        self.err_console = _make_console()

    @property
    def out(self) -> str:
        return self.console.file.getvalue()  # type: ignore[attr-defined]

    @property
    def err(self) -> str:
        return self.err_console.file.getvalue()  # type: ignore[attr-defined]


def _make_console() -> Console:
    return Console(
        file=io.StringIO(),
        theme=get_theme(),
        width=200,
        color_system=None,
        highlight=False,
        soft_wrap=True,
    )


# =============================================================================
# Package fixtures
# =============================================================================


@pytest.fixture
def sync_packages() -> dict[str, list[Package]]:
    """Sync repositories in registration order."""
    return {
        "core": [
            Package(
                name="bash",
                version="5.2.026-2",
                arch="x86_64",
                repository="core",
                description="The GNU Bourne Again shell",
                download_size=2 * MiB,
                installed_size=9 * MiB,
            ),
            Package(
                name="glibc",
                version="2.40-1",
                arch="x86_64",
                repository="core",
                description="GNU C Library",
                download_size=10 * MiB,
                installed_size=48 * MiB,
            ),
        ],
        "extra": [
            Package(
                name="firefox",
                version="130.0-1",
                arch="x86_64",
                repository="extra",
                description="Fast, Private & Safe Web Browser",
                url="https://www.mozilla.org/firefox/",
                licenses=("MPL-2.0",),
                depends=("gtk3", "nss"),
                download_size=70 * MiB,
                installed_size=250 * MiB,
            ),
            Package(
                name="vim",
                version="9.1.0707-1",
                arch="x86_64",
                repository="extra",
                description="Vi Improved, a highly configurable text editor",
                download_size=2 * MiB,
                installed_size=5 * MiB,
            ),
        ],
    }


@pytest.fixture
def local_packages() -> list[Package]:
    """Installed packages: two from the repositories and one foreign."""
    return [
        Package(
            name="bash",
            version="5.2.021-1",
            arch="x86_64",
            repository="local",
            description="The GNU Bourne Again shell",
            required_by=("base",),
            reason=InstallReason.EXPLICIT,
            installed_size=8 * MiB,
            install_date=1718000000,
            files=("usr/bin/bash", "usr/share/man/man1/bash.1.gz"),
        ),
        Package(
            name="glibc",
            version="2.40-1",
            arch="x86_64",
            repository="local",
            description="GNU C Library",
            required_by=("bash", "coreutils"),
            reason=InstallReason.DEPEND,
            installed_size=48 * MiB,
            files=("usr/lib/libc.so.6",),
        ),
        Package(
            name="yay-bin",
            version="12.3.5-1",
            arch="x86_64",
            repository="local",
            description="Yet another yogurt",
            reason=InstallReason.EXPLICIT,
            installed_size=9 * MiB,
            files=("usr/bin/yay",),
        ),
    ]


@pytest.fixture
def fake_backend(
    sync_packages: dict[str, list[Package]],
    local_packages: list[Package],
) -> FakeBackend:
    """Backend with sample sync repositories and installed packages."""
    return FakeBackend(sync=sync_packages, local=local_packages)


# =============================================================================
# Output fixtures
# =============================================================================


@pytest.fixture
def capture() -> Capture:
    """Captured stdout/stderr consoles."""
    return Capture()


@pytest.fixture
def make_reporter(capture: Capture) -> Callable[..., Reporter]:
    """Factory for reporters writing to the captured consoles."""

    def factory(mode: OutputMode = OutputMode.NORMAL, **kwargs: Any) -> Reporter:
        return Reporter(
            mode,
            console=capture.console,
            err_console=capture.err_console,
            **kwargs,
        )

    return factory


@pytest.fixture
def reporter(make_reporter: Callable[..., Reporter]) -> Reporter:
    """Normal-mode reporter writing to the captured consoles."""
    return make_reporter()


# =============================================================================
# Orchestrator fixtures
# =============================================================================


@pytest.fixture
def pm_config(tmp_path: Path) -> PackageManagerConfig:
    """Configuration rooted in a temporary directory."""
    return PackageManagerConfig(
        root_dir=str(tmp_path / "root"),
        db_path=str(tmp_path / "db"),
        cache_dir=str(tmp_path / "cache"),
        repositories=[
            Repository(name="core", servers=["https://mirror.example/core/os/x86_64"]),
            Repository(name="extra", servers=["https://mirror.example/extra/os/x86_64"]),
        ],
    )


@pytest.fixture
def ledger(tmp_path: Path) -> HistoryLedger:
    """History ledger in a temporary directory."""
    return HistoryLedger(tmp_path / "history")


@pytest.fixture
def preflight() -> RecordingPreflight:
    return RecordingPreflight()


@pytest.fixture
def make_orchestrator(
    fake_backend: FakeBackend,
    pm_config: PackageManagerConfig,
    ledger: HistoryLedger,
    preflight: RecordingPreflight,
    make_reporter: Callable[..., Reporter],
) -> Callable[..., Orchestrator]:
    """Factory for orchestrators wired to the fake backend.

    Keyword arguments:
        options: Global options (default: GlobalOptions()).
        answer: Reply to every confirmation prompt (default: True).
        prompts: List that receives every prompt text.
    """

    def factory(
        options: GlobalOptions | None = None,
        *,
        answer: bool = True,
        prompts: list[str] | None = None,
    ) -> Orchestrator:
        opts = options or GlobalOptions()

        def confirm(question: str) -> bool:
            if prompts is not None:
                prompts.append(question)
            return answer

        return Orchestrator(
            opts,
            load_config=lambda: pm_config,
            backend_factory=lambda config, options: fake_backend,
            ledger=ledger,
            reporter=make_reporter(opts.output),
            confirm=confirm,
            preflight=preflight,
        )

    return factory
