"""Terminal rendering for pacctl.

The :class:`Reporter` owns all user-facing output: transaction summaries,
progress lines, query results, doctor and history listings. It honours the
output mode of the invocation (normal, verbose or compact) and never makes
decisions about the transaction itself.
"""

from datetime import datetime

from rich.console import Console
from rich.markup import escape

from pacctl.core.config import PackageManagerConfig
from pacctl.core.doctor import CheckStatus, DoctorReport
from pacctl.core.policy import PolicyWarning
from pacctl.core.progress import (
    PROGRESS_LABELS,
    DownloadProgressState,
    ProgressEvent,
    TransactionProgressState,
    percent_of,
    progress_bar,
)
from pacctl.models.command import OutputMode
from pacctl.models.history import HistoryEntry
from pacctl.models.package import InstallReason, Package
from pacctl.models.transaction import AddSummary, RemoveSummary
from pacctl.utils import formatting
from pacctl.utils.formatting import create_package_table, format_bytes, format_net_bytes

NO_RESULTS = "No results found"
NOTHING_TO_DO = "there is nothing to do"

_CHECK_STYLES = {
    CheckStatus.OK: "success",
    CheckStatus.WARN: "warning",
    CheckStatus.FAIL: "error",
}

_REASON_TEXT = {
    InstallReason.EXPLICIT: "Explicitly installed",
    InstallReason.DEPEND: "Installed as a dependency for another package",
}


def format_list(items: tuple[str, ...] | list[str]) -> str:
    """Join values with two spaces, or ``None`` when empty."""
    return "  ".join(items) if items else "None"


def format_timestamp(timestamp: int | None) -> str:
    if not timestamp:
        return "None"
    return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M:%S")


class Reporter:
    """Renders pacctl output for one invocation.

    Attributes:
        mode: Output mode of the invocation.
        progress_width: Width of progress bars.
    """

    def __init__(
        self,
        mode: OutputMode = OutputMode.NORMAL,
        *,
        progress_width: int = 28,
        console: Console | None = None,
        err_console: Console | None = None,
    ) -> None:
        self.mode = mode
        self.progress_width = progress_width
        self.console = console or formatting.console
        self.err_console = err_console or formatting.err_console
        self._downloads = DownloadProgressState()
        self._transaction = TransactionProgressState()

    @property
    def compact(self) -> bool:
        return self.mode == OutputMode.COMPACT

    @property
    def verbose(self) -> bool:
        return self.mode == OutputMode.VERBOSE

    # -- status lines --------------------------------------------------

    def trace(self, message: str) -> None:
        """Print an operation trace line in verbose mode."""
        if self.verbose:
            self.console.print(f":: verbose: {escape(message)}", style="muted")

    def step(self, message: str) -> None:
        """Print a progress step, suppressed in compact mode."""
        if not self.compact:
            self.console.print(escape(message), style="info")

    def heading(self, message: str) -> None:
        """Print a ``::`` heading, suppressed in compact mode."""
        if not self.compact:
            self.console.print(f":: [bold][info]{escape(message)}[/][/]")

    def notice(self, message: str) -> None:
        self.console.print(f":: [warning]{escape(message)}[/]")

    def nothing_to_do(self) -> None:
        self.console.print(f" [warning]{NOTHING_TO_DO}[/]")

    def info(self, message: str) -> None:
        self.console.print(escape(message))

    def success(self, message: str) -> None:
        self.console.print(f":: [bold][success]{escape(message)}[/][/]")

    def warning(self, message: str) -> None:
        self.err_console.print(f"[warning]warning:[/] {escape(message)}")

    def hint(self, message: str) -> None:
        self.err_console.print(f"[info]hint:[/] {escape(message)}")

    def error(self, message: str) -> None:
        self.err_console.print(f"[error]error:[/] {escape(message)}")

    def policy_warnings(self, warnings: list[PolicyWarning]) -> None:
        for warning in warnings:
            self.warning(f"{warning.option}: {warning.message}")

    def removal_breakage(self, dependents: dict[str, list[str]]) -> None:
        """Warn about installed packages a removal may break.

        Args:
            dependents: Installed dependents outside the target set, by target.
        """
        warned = False
        for target, names in dependents.items():
            if not names:
                continue
            warned = True
            self.warning(f"removing '{target}' may break dependent packages: {', '.join(names)}")
        if warned:
            self.hint("use -Rs to remove packages with their unneeded dependencies.")

    # -- transaction summaries -----------------------------------------

    def add_summary(self, summary: AddSummary) -> None:
        """Print the summary of a prepared install/upgrade transaction."""
        if self.compact:
            self.console.print(
                f"summary: install={summary.install_count} upgrade={summary.upgrade_count} "
                f"download={format_bytes(summary.download_size)} "
                f"net={format_net_bytes(summary.net_change)}"
            )
            return
        self.console.print("\n[bold_header]Transaction Summary[/]")
        self.console.print(f"  Install: {summary.install_count}")
        self.console.print(f"  Upgrade: {summary.upgrade_count}")
        self.console.print(f"  Download Size: {format_bytes(summary.download_size)}")
        self.console.print(f"  Net Installed Size: {format_net_bytes(summary.net_change)}")

    def remove_summary(self, summary: RemoveSummary) -> None:
        """Print the summary of a prepared removal."""
        if self.compact:
            self.console.print(
                f"summary: remove={summary.remove_count} "
                f"reclaimed={format_bytes(summary.reclaimed)} "
                f"net={format_net_bytes(summary.net_change)}"
            )
            return
        self.console.print("\n[bold_header]Transaction Summary[/]")
        self.console.print(f"  Remove: {summary.remove_count}")
        self.console.print(f"  Reclaimed Space: {format_bytes(summary.reclaimed)}")
        self.console.print(f"  Net Installed Size: {format_net_bytes(summary.net_change)}")

    def package_changes(self, to_add: list[Package], installed: dict[str, Package]) -> None:
        """List ``name old -> new`` for each package of a sync transaction.

        Compact mode prints nothing; verbose mode renders a table with
        architecture and size columns.
        """
        if self.compact or not to_add:
            return
        if self.verbose:
            table = create_package_table("Packages to upgrade/install", verbose=True)
            for pkg in to_add:
                old = installed.get(pkg.name)
                table.add_row(
                    escape(pkg.name),
                    escape(old.version) if old is not None else "none",
                    escape(pkg.version),
                    escape(pkg.arch),
                    format_bytes(pkg.installed_size),
                )
            self.console.print(table)
            return
        self.console.print("\n[bold]Packages to upgrade/install:[/]")
        for pkg in to_add:
            old = installed.get(pkg.name)
            old_version = old.version if old is not None else "none"
            self.console.print(
                f"  {escape(pkg.name)} {escape(old_version)} -> {escape(pkg.version)}"
            )

    def package_removals(self, to_remove: list[Package]) -> None:
        """List packages of a removal in verbose mode."""
        if not self.verbose:
            return
        for pkg in to_remove:
            self.console.print(
                f"  {escape(pkg.name)} {escape(pkg.version)} "
                f"[muted]({escape(pkg.arch)}, {format_bytes(pkg.installed_size)})[/]"
            )

    # -- progress callbacks --------------------------------------------

    def on_download(self, filename: str, event: str, downloaded: int, total: int) -> None:
        """Download callback; repeated percentages are printed once."""
        if event == "init":
            self._downloads.start(filename)
        elif event == "progress":
            percent = percent_of(downloaded, total)
            if percent is None or not self._downloads.update(filename, percent):
                return
            bar = progress_bar(percent, self.progress_width)
            self.console.print(
                f":: [bold][progress]Downloading[/][/] {escape(filename)} "
                f"{escape(bar)} {percent}% "
                f"({format_bytes(downloaded)}/{format_bytes(total)})",
                end="\r",
            )
        elif event == "completed" and self._downloads.complete(filename):
            self.console.print(f":: [bold][success]Downloaded[/][/] {escape(filename)}")

    def on_progress(
        self,
        event: ProgressEvent,
        package: str,
        percent: int,
        total: int,
        current: int,
    ) -> None:
        """Transaction progress callback; identical reports are printed once."""
        if not self._transaction.update(event, package, percent, current, total):
            return
        label = PROGRESS_LABELS[event]
        bar = progress_bar(percent, self.progress_width)
        self.console.print(
            f":: [bold][progress]{label}[/][/] {escape(package)} {escape(bar)} "
            f"{percent}% ({current}/{total})",
            end="\n" if percent >= 100 else "\r",
        )

    # -- queries -------------------------------------------------------

    def no_results(self) -> None:
        self.console.print(NO_RESULTS)

    def package_line(self, pkg: Package) -> None:
        self.console.print(f"{escape(pkg.name)} {escape(pkg.version)}")

    def search_result(self, pkg: Package, *, repository: str | None = None) -> None:
        """Print a search hit as ``repo/name version`` plus its description."""
        prefix = f"{repository}/" if repository else ""
        self.console.print(
            f"[info]{escape(prefix)}[/][package.name]{escape(pkg.name)}[/] "
            f"[package.version]{escape(pkg.version)}[/]"
        )
        if pkg.description:
            self.console.print(f"    {escape(pkg.description)}")

    def package_info(self, pkg: Package, *, local: bool) -> None:
        """Print the ``Key : Value`` information block of a package."""
        rows = [
            ("Name", pkg.name),
            ("Version", pkg.version),
            ("Description", pkg.description or "None"),
            ("Architecture", pkg.arch),
            ("URL", pkg.url or "None"),
            ("Licenses", format_list(pkg.licenses)),
            ("Groups", format_list(pkg.groups)),
            ("Depends On", format_list(pkg.depends)),
            ("Optional Deps", format_list(pkg.optdepends)),
        ]
        if local:
            reason = _REASON_TEXT.get(pkg.reason, "Unknown") if pkg.reason else "Unknown"
            rows += [
                ("Required By", format_list(pkg.required_by)),
                ("Install Reason", reason),
                ("Install Date", format_timestamp(pkg.install_date)),
                ("Installed Size", format_bytes(pkg.installed_size)),
            ]
        else:
            rows += [
                ("Repository", pkg.repository or "unknown"),
                ("Download Size", format_bytes(pkg.download_size)),
                ("Installed Size", format_bytes(pkg.installed_size)),
            ]
        for key, value in rows:
            self.console.print(f"[header]{key:<16}[/]: {escape(value)}")
        self.console.print()

    def package_files(self, pkg: Package) -> None:
        for path in pkg.files:
            self.console.print(f"{escape(pkg.name)} /{escape(path.lstrip('/'))}")

    def owner(self, pkg: Package, path: str) -> None:
        self.console.print(f"{escape(path)} is owned by {escape(pkg.name)} {escape(pkg.version)}")

    def cache_cleaned(self, removed: int) -> None:
        if removed > 0:
            self.success(f"Cache cleaned: {removed} files removed")
        else:
            self.success("Cache is clean")

    # -- doctor --------------------------------------------------------

    def doctor_report(self, report: DoctorReport, config: PackageManagerConfig) -> None:
        """Print the doctor header, each check and the summary line."""
        self.console.print("[bold]pacctl doctor[/]")
        self.console.print(f"Detected distro profile: {report.distro.value}")
        self.console.print(f"Root: {escape(config.root_dir)}")
        self.console.print(f"DBPath: {escape(config.db_path)}")
        self.console.print(f"CacheDir: {escape(config.cache_dir)}")
        self.console.print()
        for result in report.results:
            style = _CHECK_STYLES[result.status]
            tag = f"[bold][{style}]\\[{result.status.value}][/][/]"
            self.console.print(f"{tag} {escape(result.label)}")
        self.console.print()
        self.console.print(
            f"[bold]Doctor summary:[/] ok={report.count(CheckStatus.OK)} "
            f"warn={report.count(CheckStatus.WARN)} fail={report.count(CheckStatus.FAIL)}"
        )

    # -- history -------------------------------------------------------

    def history_list(self, entries: list[HistoryEntry]) -> None:
        """Print history entries, newest first."""
        if not entries:
            self.console.print("No history entries found.")
            return
        self.console.print("[bold]Recent pacctl history:[/]")
        for e in entries:
            self.console.print(
                f"{escape(e.id)}  ts={e.timestamp}  op={escape(e.operation)}  "
                f"status={escape(e.status)}  targets={escape(e.targets_text)}"
            )

    def history_entry(self, entry: HistoryEntry) -> None:
        rows = [
            ("id", entry.id),
            ("ts", str(entry.timestamp)),
            ("op", entry.operation),
            ("status", entry.status),
            ("targets", entry.targets_text),
            ("summary", entry.summary),
        ]
        for key, value in rows:
            self.console.print(f"{key:<8}: {escape(value)}")

    def history_not_found(self, entry_id: str) -> None:
        self.console.print(f"history entry not found: {escape(entry_id)}")

    def history_usage(self) -> None:
        self.console.print("usage:")
        self.console.print("  pacctl history")
        self.console.print("  pacctl history <limit>")
        self.console.print("  pacctl history show <id>")
