"""Unit tests for the terminal reporter.

Output is rendered to in-memory consoles without colour, so assertions
match the plain text a user sees.
"""

from collections.abc import Callable

import pytest
from pacctl.cli.display import Reporter, format_list, format_timestamp
from pacctl.core.config import PackageManagerConfig
from pacctl.core.doctor import DoctorReport
from pacctl.core.policy import PolicyWarning
from pacctl.core.preflight import Distro
from pacctl.core.progress import ProgressEvent
from pacctl.models.command import OutputMode
from pacctl.models.history import HistoryEntry
from pacctl.models.package import InstallReason, Package
from pacctl.models.transaction import AddSummary, RemoveSummary

MiB = 1024 * 1024


class TestHelpers:
    """Tests for module-level formatting helpers."""

    def test_format_list(self) -> None:
        assert format_list(("a", "b")) == "a  b"
        assert format_list(()) == "None"

    def test_format_timestamp_none(self) -> None:
        assert format_timestamp(None) == "None"
        assert format_timestamp(0) == "None"


class TestStatusLines:
    """Tests for one-line status output."""

    def test_step_suppressed_in_compact(
        self, make_reporter: Callable[..., Reporter], capture
    ) -> None:
        """Steps and headings are hidden in compact mode."""
        reporter = make_reporter(OutputMode.COMPACT)
        reporter.step("resolving dependencies...")
        reporter.heading("Synchronizing package databases...")
        assert capture.out == ""

    def test_step_and_heading_in_normal(self, reporter: Reporter, capture) -> None:
        reporter.step("resolving dependencies...")
        reporter.heading("Starting full system upgrade...")
        assert capture.out == "resolving dependencies...\n:: Starting full system upgrade...\n"

    def test_trace_only_in_verbose(self, make_reporter: Callable[..., Reporter], capture) -> None:
        """Trace lines appear only in verbose mode."""
        make_reporter(OutputMode.NORMAL).trace("operation=sync")
        assert capture.out == ""
        make_reporter(OutputMode.VERBOSE).trace("operation=sync")
        assert capture.out == ":: verbose: operation=sync\n"

    def test_notice_shown_in_compact(self, make_reporter: Callable[..., Reporter], capture) -> None:
        """Notices are never suppressed."""
        make_reporter(OutputMode.COMPACT).notice("--test: skipping commit")
        assert capture.out == ":: --test: skipping commit\n"

    def test_nothing_to_do(self, reporter: Reporter, capture) -> None:
        reporter.nothing_to_do()
        assert capture.out == " there is nothing to do\n"

    def test_diagnostics_go_to_stderr(self, reporter: Reporter, capture) -> None:
        """Warnings, hints and errors use the error console."""
        reporter.warning("careful")
        reporter.hint("try this")
        reporter.error("broken")
        assert capture.out == ""
        assert capture.err == "warning: careful\nhint: try this\nerror: broken\n"

    def test_markup_in_messages_is_literal(self, reporter: Reporter, capture) -> None:
        """Square brackets in user data are not interpreted as markup."""
        reporter.error("No package owns /tmp/[x]")
        assert "/tmp/[x]" in capture.err

    def test_policy_warnings(self, reporter: Reporter, capture) -> None:
        reporter.policy_warnings([PolicyWarning(option="--nodeps", message="risky")])
        assert capture.err == "warning: --nodeps: risky\n"

    def test_removal_breakage(self, reporter: Reporter, capture) -> None:
        """Dependents outside the target set trigger a warning and a hint."""
        reporter.removal_breakage({"glibc": ["bash", "coreutils"], "vim": []})
        assert "removing 'glibc' may break dependent packages: bash, coreutils" in capture.err
        assert "vim" not in capture.err
        assert "hint: use -Rs to remove packages with their unneeded dependencies." in capture.err

    def test_removal_without_dependents_is_silent(self, reporter: Reporter, capture) -> None:
        reporter.removal_breakage({"vim": []})
        assert capture.err == ""


class TestSummaries:
    """Tests for transaction summaries and change lists."""

    @pytest.fixture
    def add_summary(self) -> AddSummary:
        return AddSummary(
            install_count=1, upgrade_count=2, download_size=3 * MiB, net_change=-512
        )

    def test_add_summary_normal(self, reporter: Reporter, capture, add_summary: AddSummary) -> None:
        reporter.add_summary(add_summary)
        lines = capture.out.splitlines()
        assert "Transaction Summary" in lines
        assert "  Install: 1" in lines
        assert "  Upgrade: 2" in lines
        assert "  Download Size: 3.0 MiB" in lines
        assert "  Net Installed Size: -512 B" in lines

    def test_add_summary_compact(
        self, make_reporter: Callable[..., Reporter], capture, add_summary: AddSummary
    ) -> None:
        make_reporter(OutputMode.COMPACT).add_summary(add_summary)
        assert capture.out == "summary: install=1 upgrade=2 download=3.0 MiB net=-512 B\n"

    def test_remove_summary_normal(self, reporter: Reporter, capture) -> None:
        reporter.remove_summary(RemoveSummary(remove_count=2, reclaimed=2048))
        lines = capture.out.splitlines()
        assert "  Remove: 2" in lines
        assert "  Reclaimed Space: 2.0 KiB" in lines
        assert "  Net Installed Size: -2.0 KiB" in lines

    def test_remove_summary_compact(self, make_reporter: Callable[..., Reporter], capture) -> None:
        make_reporter(OutputMode.COMPACT).remove_summary(RemoveSummary(1, 0))
        assert capture.out == "summary: remove=1 reclaimed=0 B net=+0 B\n"

    def test_package_changes_normal(self, reporter: Reporter, capture) -> None:
        """Each package is listed as name old -> new."""
        to_add = [
            Package(name="bash", version="5.2.026-2"),
            Package(name="vim", version="9.1-1"),
        ]
        installed = {"bash": Package(name="bash", version="5.2.021-1")}

        reporter.package_changes(to_add, installed)

        assert "  bash 5.2.021-1 -> 5.2.026-2" in capture.out
        assert "  vim none -> 9.1-1" in capture.out

    def test_package_changes_compact_is_silent(
        self, make_reporter: Callable[..., Reporter], capture
    ) -> None:
        make_reporter(OutputMode.COMPACT).package_changes([Package(name="a", version="1")], {})
        assert capture.out == ""

    def test_package_changes_verbose_table(
        self, make_reporter: Callable[..., Reporter], capture
    ) -> None:
        """Verbose mode renders a table with architecture and size."""
        pkg = Package(name="vim", version="9.1-1", arch="x86_64", installed_size=5 * MiB)
        make_reporter(OutputMode.VERBOSE).package_changes([pkg], {})
        assert "Packages to upgrade/install" in capture.out
        assert "x86_64" in capture.out
        assert "5.0 MiB" in capture.out

    def test_package_removals_verbose_only(
        self, make_reporter: Callable[..., Reporter], capture
    ) -> None:
        pkg = Package(name="vim", version="9.1-1", arch="x86_64", installed_size=1024)
        make_reporter(OutputMode.NORMAL).package_removals([pkg])
        assert capture.out == ""
        make_reporter(OutputMode.VERBOSE).package_removals([pkg])
        assert capture.out == "  vim 9.1-1 (x86_64, 1.0 KiB)\n"


class TestProgressCallbacks:
    """Tests for download and transaction progress rendering."""

    def test_download_progress_deduplicated(self, reporter: Reporter, capture) -> None:
        """The same percentage for a file is printed once."""
        reporter.on_download("core.db", "init", 0, 0)
        reporter.on_download("core.db", "progress", 512, 1024)
        reporter.on_download("core.db", "progress", 512, 1024)
        reporter.on_download("core.db", "progress", 1024, 1024)

        assert capture.out.count("Downloading core.db") == 2
        assert "50%" in capture.out
        assert "100%" in capture.out

    def test_download_progress_line(
        self, make_reporter: Callable[..., Reporter], capture
    ) -> None:
        reporter = make_reporter(progress_width=10)
        reporter.on_download("core.db", "progress", 512, 1024)
        assert capture.out == ":: Downloading core.db [#####.....] 50% (512 B/1.0 KiB)\r"

    def test_download_unknown_total_is_skipped(self, reporter: Reporter, capture) -> None:
        reporter.on_download("extra.db", "progress", 100, 0)
        assert capture.out == ""

    def test_download_completed_once(self, reporter: Reporter, capture) -> None:
        """Completion is announced once per download."""
        reporter.on_download("vim.pkg.tar.zst", "completed", 10, 10)
        reporter.on_download("vim.pkg.tar.zst", "completed", 10, 10)
        assert capture.out == ":: Downloaded vim.pkg.tar.zst\n"

    def test_restarted_download_prints_again(self, reporter: Reporter, capture) -> None:
        """An init event resets the per-file state."""
        reporter.on_download("a", "progress", 1, 2)
        reporter.on_download("a", "init", 0, 2)
        reporter.on_download("a", "progress", 1, 2)
        assert capture.out.count("Downloading a") == 2

    def test_transaction_progress_line(
        self, make_reporter: Callable[..., Reporter], capture
    ) -> None:
        reporter = make_reporter(progress_width=10)
        reporter.on_progress(ProgressEvent.ADD, "vim", 100, 2, 1)
        assert capture.out == ":: Installing vim [##########] 100% (1/2)\n"

    def test_transaction_progress_deduplicated(self, reporter: Reporter, capture) -> None:
        reporter.on_progress(ProgressEvent.REMOVE, "vim", 40, 1, 1)
        reporter.on_progress(ProgressEvent.REMOVE, "vim", 40, 1, 1)
        reporter.on_progress(ProgressEvent.REMOVE, "vim", 60, 1, 1)
        assert capture.out.count("Removing vim") == 2


class TestQueryOutput:
    """Tests for query and search rendering."""

    def test_no_results(self, reporter: Reporter, capture) -> None:
        reporter.no_results()
        assert capture.out == "No results found\n"

    def test_package_line(self, reporter: Reporter, capture) -> None:
        reporter.package_line(Package(name="bash", version="5.2-1"))
        assert capture.out == "bash 5.2-1\n"

    def test_search_result(self, reporter: Reporter, capture) -> None:
        pkg = Package(name="vim", version="9.1-1", description="Vi Improved")
        reporter.search_result(pkg, repository="extra")
        assert capture.out == "extra/vim 9.1-1\n    Vi Improved\n"

    def test_local_package_info(self, reporter: Reporter, capture) -> None:
        pkg = Package(
            name="bash",
            version="5.2-1",
            required_by=("base",),
            reason=InstallReason.DEPEND,
            installed_size=2048,
        )
        reporter.package_info(pkg, local=True)
        lines = capture.out.splitlines()
        assert "Name            : bash" in lines
        assert "Description     : None" in lines
        assert "Required By     : base" in lines
        assert "Install Reason  : Installed as a dependency for another package" in lines
        assert "Install Date    : None" in lines
        assert "Installed Size  : 2.0 KiB" in lines
        assert not any(line.startswith("Repository") for line in lines)

    def test_sync_package_info(self, reporter: Reporter, capture) -> None:
        pkg = Package(name="vim", version="9.1-1", repository="extra", download_size=1024)
        reporter.package_info(pkg, local=False)
        lines = capture.out.splitlines()
        assert "Repository      : extra" in lines
        assert "Download Size   : 1.0 KiB" in lines

    def test_package_files(self, reporter: Reporter, capture) -> None:
        pkg = Package(name="bash", version="5.2-1", files=("usr/bin/bash", "usr/bin/sh"))
        reporter.package_files(pkg)
        assert capture.out == "bash /usr/bin/bash\nbash /usr/bin/sh\n"

    def test_owner(self, reporter: Reporter, capture) -> None:
        reporter.owner(Package(name="bash", version="5.2-1"), "/usr/bin/bash")
        assert capture.out == "/usr/bin/bash is owned by bash 5.2-1\n"

    @pytest.mark.parametrize(
        ("removed", "text"),
        [(3, ":: Cache cleaned: 3 files removed\n"), (0, ":: Cache is clean\n")],
    )
    def test_cache_cleaned(self, reporter: Reporter, capture, removed: int, text: str) -> None:
        reporter.cache_cleaned(removed)
        assert capture.out == text


class TestDoctorAndHistory:
    """Tests for doctor and history rendering."""

    def test_doctor_report(self, reporter: Reporter, capture) -> None:
        report = DoctorReport(distro=Distro.ARCH)
        report.ok("Root directory exists")
        report.warn("Package cache path is missing")
        report.fail("GPG directory is missing")

        reporter.doctor_report(report, PackageManagerConfig())

        lines = capture.out.splitlines()
        assert lines[0] == "pacctl doctor"
        assert "Detected distro profile: Arch Linux" in lines
        assert "DBPath: /var/lib/pacman" in lines
        assert "[OK] Root directory exists" in lines
        assert "[WARN] Package cache path is missing" in lines
        assert "[FAIL] GPG directory is missing" in lines
        assert lines[-1] == "Doctor summary: ok=1 warn=1 fail=1"

    def test_history_list_empty(self, reporter: Reporter, capture) -> None:
        reporter.history_list([])
        assert capture.out == "No history entries found.\n"

    def test_history_list(self, reporter: Reporter, capture) -> None:
        entry = HistoryEntry(
            id="1718000000-42",
            timestamp=1718000000,
            operation="install",
            status="success",
            targets=("vim",),
            summary="transaction committed",
        )
        reporter.history_list([entry])
        assert capture.out.splitlines() == [
            "Recent pacctl history:",
            "1718000000-42  ts=1718000000  op=install  status=success  targets=vim",
        ]

    def test_history_entry(self, reporter: Reporter, capture) -> None:
        entry = HistoryEntry(
            id="1-1", timestamp=1, operation="sync", status="noop", targets=(), summary="s"
        )
        reporter.history_entry(entry)
        assert "targets : -" in capture.out.splitlines()
        assert "summary : s" in capture.out.splitlines()

    def test_history_usage(self, reporter: Reporter, capture) -> None:
        reporter.history_usage()
        assert capture.out.startswith("usage:\n")
        assert "pacctl history show <id>" in capture.out
