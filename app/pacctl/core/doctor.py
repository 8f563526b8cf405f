"""System health checks for the ``doctor`` command.

Checks only read the filesystem and the parsed configuration; they never
open the package database.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from pacctl.core.config import PackageManagerConfig
from pacctl.core.preflight import Distro, detect_distro, gpg_path, has_public_keyring

_OPTIMIZED_MARKERS = ("$arch_v3", "$arch_v4", "x86_64_v3", "x86_64_v4")


class CheckStatus(str, Enum):
    """Outcome of a single doctor check."""

    OK = "OK"
    WARN = "WARN"
    FAIL = "FAIL"


@dataclass(frozen=True, slots=True)
class CheckResult:
    status: CheckStatus
    label: str


@dataclass
class DoctorReport:
    """Ordered check results plus the detected distro profile."""

    distro: Distro
    results: list[CheckResult] = field(default_factory=list)

    def ok(self, label: str) -> None:
        self.results.append(CheckResult(CheckStatus.OK, label))

    def warn(self, label: str) -> None:
        self.results.append(CheckResult(CheckStatus.WARN, label))

    def fail(self, label: str) -> None:
        self.results.append(CheckResult(CheckStatus.FAIL, label))

    def check(self, passed: bool, ok_label: str, bad_label: str, *, fatal: bool = True) -> None:
        """Record OK if ``passed``, otherwise FAIL (or WARN if not fatal)."""
        if passed:
            self.ok(ok_label)
        elif fatal:
            self.fail(bad_label)
        else:
            self.warn(bad_label)

    def count(self, status: CheckStatus) -> int:
        return sum(1 for r in self.results if r.status == status)

    @property
    def failed(self) -> bool:
        return self.count(CheckStatus.FAIL) > 0


def run_checks(config: PackageManagerConfig) -> DoctorReport:
    """Run every doctor check against a configuration.

    Args:
        config: Effective configuration.

    Returns:
        The report, in check order.
    """
    report = DoctorReport(distro=detect_distro(config.root_dir))

    report.check(
        Path(config.root_dir).exists(), "Root directory exists", "Root directory does not exist"
    )
    db_path = Path(config.db_path)
    report.check(
        db_path.exists(),
        "Package database path exists",
        "Package database path does not exist",
    )
    report.check(
        (db_path / "local").exists(),
        "Local package database exists",
        "Local package database is missing",
    )
    report.check(
        not config.lock_path.exists(),
        "No active database lock file",
        "Database lock file exists (possible active package manager or stale lock)",
        fatal=False,
    )
    report.check(
        Path(config.cache_dir).exists(),
        "Package cache path exists",
        "Package cache path is missing",
        fatal=False,
    )

    gpg_dir = gpg_path(config)
    report.check(gpg_dir.exists(), "GPG directory exists", "GPG directory is missing")
    report.check(
        has_public_keyring(gpg_dir),
        "Keyring public keyring file exists",
        "No keyring public keyring file found (pubring.kbx/pubring.gpg)",
    )
    report.check(
        (gpg_dir / "trustdb.gpg").exists(),
        "Keyring trustdb exists",
        "Keyring trustdb.gpg not found",
        fatal=False,
    )

    _check_repositories(report, config)
    _check_distro_baseline(report, config)
    return report


def _check_repositories(report: DoctorReport, config: PackageManagerConfig) -> None:
    report.check(
        bool(config.repositories), "Repositories configured", "No repositories configured"
    )

    insecure = 0
    for repo in config.repositories:
        if not repo.servers:
            report.fail(f"Repository '{repo.name}' has no servers")
            continue
        https_count = sum(1 for s in repo.servers if s.startswith("https://"))
        if https_count == 0:
            insecure += 1
        if https_count < len(repo.servers):
            report.warn(
                f"Repository '{repo.name}' has non-HTTPS mirrors "
                f"({len(repo.servers) - https_count} of {len(repo.servers)})"
            )

    if insecure == 0 and config.repositories:
        report.ok("All repositories include HTTPS mirrors")


def _check_distro_baseline(report: DoctorReport, config: PackageManagerConfig) -> None:
    names = {repo.name.lower() for repo in config.repositories}

    if report.distro == Distro.ARCH:
        report.check(
            {"core", "extra"} <= names,
            "Arch baseline repositories present (core, extra)",
            "Arch baseline repositories missing one of: core, extra",
            fatal=False,
        )
    elif report.distro == Distro.CACHYOS:
        report.check(
            any("cachyos" in name for name in names),
            "CachyOS repositories detected",
            "No CachyOS repositories detected (expected for optimized CachyOS setups)",
            fatal=False,
        )
        optimized = any(
            marker in server
            for repo in config.repositories
            for server in repo.servers
            for marker in _OPTIMIZED_MARKERS
        )
        report.check(
            optimized,
            "Architecture-optimized mirror patterns detected (v3/v4)",
            "No architecture-optimized mirror patterns detected (v3/v4)",
            fatal=False,
        )
    else:
        report.warn("Distro is not recognized as Arch/CachyOS; only generic checks were applied")
