"""Unit tests for doctor checks."""

from pathlib import Path

import pytest
from pacctl.core.config import PackageManagerConfig, Repository
from pacctl.core.doctor import CheckStatus, DoctorReport, run_checks
from pacctl.core.preflight import Distro


def _healthy(root: Path, os_id: str = "arch") -> PackageManagerConfig:
    (root / "etc").mkdir(parents=True)
    (root / "etc" / "os-release").write_text(f"ID={os_id}\n")
    gnupg = root / "etc" / "pacman.d" / "gnupg"
    gnupg.mkdir(parents=True)
    (gnupg / "pubring.kbx").write_text("")
    (gnupg / "trustdb.gpg").write_text("")
    db_path = root / "var" / "lib" / "pacman"
    (db_path / "local").mkdir(parents=True)
    cache = root / "var" / "cache" / "pacman" / "pkg"
    cache.mkdir(parents=True)
    return PackageManagerConfig(
        root_dir=str(root),
        db_path=str(db_path),
        cache_dir=str(cache),
        repositories=[
            Repository(name="core", servers=["https://mirror.example/core/os/$arch"]),
            Repository(name="extra", servers=["https://mirror.example/extra/os/$arch"]),
        ],
    )


def _labels(report: DoctorReport, status: CheckStatus) -> list[str]:
    return [r.label for r in report.results if r.status == status]


class TestDoctorReport:
    """Tests for DoctorReport bookkeeping."""

    def test_check_outcomes(self) -> None:
        report = DoctorReport(distro=Distro.OTHER)
        report.check(True, "good", "bad")
        report.check(False, "good", "bad")
        report.check(False, "good", "meh", fatal=False)

        assert [r.status for r in report.results] == [
            CheckStatus.OK,
            CheckStatus.FAIL,
            CheckStatus.WARN,
        ]
        assert report.count(CheckStatus.OK) == 1
        assert report.failed

    def test_warnings_do_not_fail(self) -> None:
        report = DoctorReport(distro=Distro.OTHER)
        report.warn("meh")
        assert not report.failed


class TestRunChecks:
    """Tests for run_checks."""

    def test_healthy_arch_system(self, tmp_path: Path) -> None:
        report = run_checks(_healthy(tmp_path))

        assert report.distro == Distro.ARCH
        assert not report.failed
        assert _labels(report, CheckStatus.WARN) == []
        assert "All repositories include HTTPS mirrors" in _labels(report, CheckStatus.OK)
        assert "Arch baseline repositories present (core, extra)" in _labels(
            report, CheckStatus.OK
        )

    def test_missing_paths_fail(self, tmp_path: Path) -> None:
        report = run_checks(PackageManagerConfig(root_dir=str(tmp_path / "nope")))

        failures = _labels(report, CheckStatus.FAIL)
        assert "Root directory does not exist" in failures
        assert "No repositories configured" in failures
        assert "Distro is not recognized as Arch/CachyOS; only generic checks were applied" in (
            _labels(report, CheckStatus.WARN)
        )

    def test_lock_file_is_a_warning(self, tmp_path: Path) -> None:
        config = _healthy(tmp_path)
        config.lock_path.write_text("")

        report = run_checks(config)

        assert not report.failed
        warnings = _labels(report, CheckStatus.WARN)
        assert any("Database lock file exists" in label for label in warnings)

    def test_non_https_mirrors_warn(self, tmp_path: Path) -> None:
        config = _healthy(tmp_path)
        config.repositories.append(
            Repository(name="custom", servers=["http://a.example/", "https://b.example/"])
        )

        report = run_checks(config)

        assert "Repository 'custom' has non-HTTPS mirrors (1 of 2)" in _labels(
            report, CheckStatus.WARN
        )

    def test_repository_without_servers_fails(self, tmp_path: Path) -> None:
        config = _healthy(tmp_path)
        config.repositories.append(Repository(name="bare"))

        assert "Repository 'bare' has no servers" in _labels(run_checks(config), CheckStatus.FAIL)

    @pytest.mark.parametrize(
        ("server", "optimized"),
        [
            ("https://mirror.cachyos.org/repo/$arch_v3/$repo", True),
            ("https://mirror.cachyos.org/repo/$arch/$repo", False),
        ],
    )
    def test_cachyos_baseline(self, tmp_path: Path, server: str, optimized: bool) -> None:
        config = _healthy(tmp_path, os_id="cachyos")
        config.repositories.append(Repository(name="cachyos-v3", servers=[server]))

        report = run_checks(config)

        assert report.distro == Distro.CACHYOS
        assert "CachyOS repositories detected" in _labels(report, CheckStatus.OK)
        label = "Architecture-optimized mirror patterns detected (v3/v4)"
        assert (label in _labels(report, CheckStatus.OK)) is optimized
