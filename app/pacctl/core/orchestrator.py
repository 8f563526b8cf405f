"""Transaction orchestration.

The :class:`Orchestrator` executes one validated command. Mutating
operations go through preflight, then a :class:`TransactionSession`
(open, populate, prepare), then summary, confirmation and commit. The
outcome is appended to the history ledger. Read-only operations (queries,
search, info, doctor, history) never open a transaction.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from pacctl.backends.base import PackageBackend
from pacctl.core.cache import clean_cache
from pacctl.core.config import PackageManagerConfig, enforce_strict_config, parse_siglevel
from pacctl.core.doctor import run_checks
from pacctl.core.errors import BackendError, PacctlError, TargetNotFoundError
from pacctl.core.ledger import HistoryLedger, parse_selector
from pacctl.core.preflight import Preflight
from pacctl.core.session import TransactionSession
from pacctl.models.command import (
    Command,
    DoctorCommand,
    GlobalOptions,
    HistoryCommand,
    InstallLocalCommand,
    InstallReasonOverride,
    OperationKind,
    QueryCommand,
    QueryMode,
    RemoveCommand,
    SyncCommand,
)
from pacctl.models.history import HistoryStatus
from pacctl.models.package import InstallReason, Package
from pacctl.models.transaction import TransactionFlags, summarize_add, summarize_remove

if TYPE_CHECKING:
    from pacctl.cli.display import Reporter

logger = logging.getLogger(__name__)

BackendFactory = Callable[[PackageManagerConfig, GlobalOptions], PackageBackend]
ConfigLoader = Callable[[], PackageManagerConfig]
Confirm = Callable[[str], bool]

INSTALL_PROMPT = ":: Proceed with installation?"
REMOVE_PROMPT = ":: Proceed with removal?"

_NOOP_SUMMARIES = {
    "sync": "no package changes",
    "remove": "no packages to remove",
}
_DEFAULT_NOOP_SUMMARY = "no packages to install"

_REASONS = {
    InstallReasonOverride.DEPEND: InstallReason.DEPEND,
    InstallReasonOverride.EXPLICIT: InstallReason.EXPLICIT,
}


class Orchestrator:
    """Runs parsed commands against a package backend.

    Attributes:
        options: Global options of the invocation.
        ledger: History ledger receiving transaction outcomes.
        reporter: Output renderer.
    """

    def __init__(
        self,
        options: GlobalOptions,
        *,
        load_config: ConfigLoader,
        backend_factory: BackendFactory,
        ledger: HistoryLedger,
        reporter: Reporter,
        confirm: Confirm,
        preflight: Preflight | None = None,
    ) -> None:
        self.options = options
        self.ledger = ledger
        self.reporter = reporter
        self._load_config = load_config
        self._backend_factory = backend_factory
        self._confirm = confirm
        self._preflight = preflight or Preflight()
        self._config: PackageManagerConfig | None = None
        self._backend: PackageBackend | None = None

    @property
    def config(self) -> PackageManagerConfig:
        """Effective configuration, loaded on first use."""
        if self._config is None:
            self._config = self._load_config()
        return self._config

    @property
    def backend(self) -> PackageBackend:
        """Package backend, built on first use.

        Raises:
            ConfigError: If --strict finds a weak signature level.
            BackendError: If the backend cannot be initialized.
        """
        if self._backend is None:
            if self.options.strict:
                enforce_strict_config(self.config)
            backend = self._backend_factory(self.config, self.options)
            backend.set_callbacks(
                download=self.reporter.on_download,
                progress=self.reporter.on_progress,
            )
            self._backend = backend
        return self._backend

    def run(self, command: Command) -> HistoryStatus | None:
        """Execute a command to completion.

        Args:
            command: Validated command.

        Returns:
            The recorded history status for transactions, None for
            operations that do not write history.

        Raises:
            PacctlError: On any parse-independent failure.
        """
        handlers: dict[OperationKind, Callable[..., HistoryStatus | None]] = {
            OperationKind.SYNC: self.sync,
            OperationKind.QUERY: self.query,
            OperationKind.REMOVE: self.remove,
            OperationKind.INSTALL_LOCAL: self.install_local,
            OperationKind.DOCTOR: self.doctor,
            OperationKind.HISTORY: self.history,
        }
        handler = handlers.get(command.kind)
        if handler is None:
            msg = f"unsupported operation: {command.kind.value}"
            raise PacctlError(msg)
        return handler(command)

    # -- sync ----------------------------------------------------------

    def sync(self, command: SyncCommand) -> HistoryStatus | None:
        """Dispatch -S to search, info, cache cleaning or a transaction."""
        opts = command.options
        if opts.search:
            self.search_repositories(list(command.targets))
            return None
        if opts.info:
            self.sync_info(list(command.targets))
            return None

        self._preflight.check_root()
        if command.is_clean_cache:
            self.clean_cache(opts.clean_cache)
            return None
        return self.sync_install(command)

    def sync_install(self, command: SyncCommand) -> HistoryStatus | None:
        """Refresh, upgrade and/or install from the sync repositories.

        ``-Sy`` without targets only refreshes. Under --test the refresh is
        skipped with a notice and the transaction is never committed.
        """
        opts = command.options
        targets = list(command.targets)
        operation = "sync" if opts.refresh or opts.upgrade else "install"
        self.reporter.trace(
            f"operation={operation} refresh={str(opts.refresh).lower()} "
            f"upgrade={str(opts.upgrade).lower()} targets={' '.join(targets)}"
        )

        self._preflight.check_transaction(self.config, keyring=True)
        backend = self.backend

        if opts.refresh:
            self.reporter.heading("Synchronizing package databases...")
            if self.options.dry_run:
                self.reporter.notice("--test: skipping database update")
            else:
                backend.refresh_databases()

        if not opts.upgrade and not targets:
            return None

        packages = [self._find_sync(name) for name in targets]
        with TransactionSession(backend, TransactionFlags.for_install(self.options)) as session:
            session.open()
            if opts.upgrade:
                self.reporter.heading("Starting full system upgrade...")
                session.sysupgrade()
            for pkg in packages:
                session.add(pkg)
            return self._complete_add(session, operation, targets)

    def search_repositories(self, queries: list[str]) -> None:
        """-Ss: search every repository in registration order."""
        found = False
        for repository in self.backend.repositories():
            for pkg in self.backend.search_repository(repository, queries):
                self.reporter.search_result(pkg, repository=pkg.repository or repository)
                found = True
        if not found:
            self.reporter.no_results()

    def sync_info(self, names: list[str]) -> None:
        """-Si: show repository package information."""
        for name in names:
            pkg = self.backend.find_sync_package(name)
            if pkg is None:
                raise TargetNotFoundError(name, f"package '{name}' was not found")
            self.reporter.package_info(pkg, local=False)

    def clean_cache(self, level: int) -> None:
        """-Sc/-Scc: delete stale (level 1) or all (level 2) cached packages."""
        installed: dict[str, str] = {}
        if level < 2:
            installed = {pkg.name: pkg.version for pkg in self.backend.local_packages()}
        try:
            removed = clean_cache(Path(self.config.cache_dir), level, installed)
        except OSError as e:
            raise PacctlError(f"failed to clean cache {self.config.cache_dir}: {e}") from e
        self.reporter.cache_cleaned(removed)

    # -- install-local -------------------------------------------------

    def install_local(self, command: InstallLocalCommand) -> HistoryStatus:
        """-U: install package files with the local-file signature level."""
        self._preflight.check_root()
        files = list(command.targets)
        self.reporter.trace(f"operation=install-local files={' '.join(files)}")
        self._preflight.check_transaction(self.config, keyring=True)

        backend = self.backend
        siglevel = parse_siglevel(self.config.local_file_sig_level)
        packages = [backend.load_package_file(path, siglevel) for path in files]
        names = [pkg.name for pkg in packages]

        with TransactionSession(backend, TransactionFlags.for_install(self.options)) as session:
            session.open()
            for pkg in packages:
                session.add(pkg)
            return self._complete_add(session, "install-local", names)

    # -- remove --------------------------------------------------------

    def remove(self, command: RemoveCommand) -> HistoryStatus:
        """-R: remove installed packages after a breakage warning."""
        self._preflight.check_root()
        targets = list(command.targets)
        self.reporter.trace(f"operation=remove targets={' '.join(targets)}")
        self._preflight.check_transaction(self.config, keyring=False)

        backend = self.backend
        packages = [self._find_local(name) for name in targets]
        if not command.options.recursive:
            self.reporter.removal_breakage(dependents_outside(packages, targets))

        flags = TransactionFlags.for_remove(self.options, command.options)
        with TransactionSession(backend, flags) as session:
            session.open()
            for pkg in packages:
                session.remove(pkg)

            self.reporter.step("checking dependencies...")
            self.reporter.step("looking for conflicting packages...")
            session.prepare()

            if session.is_empty:
                return self._nothing_to_do(session, "remove", targets)

            to_remove = session.to_remove
            self.reporter.remove_summary(summarize_remove(to_remove))
            self.reporter.package_removals(to_remove)
            return self._confirm_and_commit(session, "remove", targets, REMOVE_PROMPT)

    # -- shared transaction tail ---------------------------------------

    def _complete_add(
        self,
        session: TransactionSession,
        operation: str,
        targets: list[str],
    ) -> HistoryStatus:
        self.reporter.step("resolving dependencies...")
        self.reporter.step("looking for conflicting packages...")
        session.prepare()

        if session.is_empty:
            return self._nothing_to_do(session, operation, targets)

        to_add = session.to_add
        installed = self._installed(to_add)
        self.reporter.add_summary(summarize_add(to_add, installed))
        self.reporter.package_changes(to_add, installed)

        status = self._confirm_and_commit(session, operation, targets, INSTALL_PROMPT)
        if status == HistoryStatus.SUCCESS:
            self._apply_install_reason(targets)
        return status

    def _nothing_to_do(
        self, session: TransactionSession, operation: str, targets: list[str]
    ) -> HistoryStatus:
        session.close()
        self.reporter.nothing_to_do()
        summary = _NOOP_SUMMARIES.get(operation, _DEFAULT_NOOP_SUMMARY)
        self._record(operation, HistoryStatus.NOOP, targets, summary)
        return HistoryStatus.NOOP

    def _confirm_and_commit(
        self,
        session: TransactionSession,
        operation: str,
        targets: list[str],
        question: str,
    ) -> HistoryStatus:
        """Confirm, then commit or skip a prepared transaction.

        Declining and --test both close the session without committing
        and return normally.

        Raises:
            PacctlError: If the commit fails; the failure is recorded first.
        """
        if not self._confirmed(question):
            session.cancel()
            self._record(operation, HistoryStatus.CANCELLED, targets, "user cancelled transaction")
            return HistoryStatus.CANCELLED

        if self.options.dry_run:
            self.reporter.notice("--test: skipping commit")
            session.cancel()
            self._record(operation, HistoryStatus.DRY_RUN, targets, "commit skipped by --test")
            return HistoryStatus.DRY_RUN

        try:
            session.commit()
        except PacctlError:
            self._record(operation, HistoryStatus.FAILED, targets, "transaction commit failed")
            raise
        self._record(operation, HistoryStatus.SUCCESS, targets, "transaction committed")
        return HistoryStatus.SUCCESS

    def _confirmed(self, question: str) -> bool:
        if self.options.noconfirm or self.options.dry_run:
            return True
        return self._confirm(question)

    def _apply_install_reason(self, names: list[str]) -> None:
        override = self.options.install_reason
        if override is None:
            return
        reason = _REASONS[override]
        for name in names:
            try:
                self.backend.set_install_reason(name, reason)
            except BackendError as e:
                logger.warning("Failed to set install reason for %s: %s", name, e)

    def _record(
        self,
        operation: str,
        status: HistoryStatus,
        targets: list[str],
        summary: str,
    ) -> None:
        """Append to the ledger; a failed write never changes the outcome."""
        try:
            self.ledger.record(operation, status, targets, summary)
        except OSError as e:
            logger.debug("Failed to write history entry to %s: %s", self.ledger.history_path, e)

    def _installed(self, packages: list[Package]) -> dict[str, Package]:
        installed: dict[str, Package] = {}
        for pkg in packages:
            local = self.backend.local_package(pkg.name)
            if local is not None:
                installed[pkg.name] = local
        return installed

    def _find_sync(self, name: str) -> Package:
        pkg = self.backend.find_sync_package(name)
        if pkg is None:
            raise TargetNotFoundError(name)
        return pkg

    def _find_local(self, name: str) -> Package:
        pkg = self.backend.local_package(name)
        if pkg is None:
            raise TargetNotFoundError(name, f"package '{name}' was not found")
        return pkg

    # -- queries -------------------------------------------------------

    def query(self, command: QueryCommand) -> None:
        """-Q: read-only queries against the local database."""
        mode = command.options.mode
        targets = list(command.targets)
        backend = self.backend

        if mode == QueryMode.INFO:
            for name in targets:
                self.reporter.package_info(self._find_local(name), local=True)
        elif mode == QueryMode.SEARCH:
            results = backend.search_local(targets)
            if not results:
                self.reporter.no_results()
            for pkg in results:
                self.reporter.search_result(pkg, repository="local")
        elif mode == QueryMode.FILES:
            for name in targets:
                self.reporter.package_files(self._find_local(name))
        elif mode == QueryMode.FOREIGN:
            for pkg in backend.local_packages():
                if backend.find_sync_package(pkg.name) is None:
                    self.reporter.package_line(pkg)
        elif mode == QueryMode.OWNS:
            self._query_owners(targets)
        elif mode == QueryMode.EXPLICIT:
            explicit = [pkg for pkg in backend.local_packages() if pkg.is_explicit]
            if not explicit:
                self.reporter.no_results()
            for pkg in explicit:
                self.reporter.package_line(pkg)
        elif targets:
            for name in targets:
                self.reporter.package_line(self._find_local(name))
        else:
            for pkg in backend.local_packages():
                self.reporter.package_line(pkg)

    def _query_owners(self, paths: list[str]) -> None:
        installed = self.backend.local_packages()
        for path in paths:
            owner = next((pkg for pkg in installed if pkg.owns(path)), None)
            if owner is None:
                self.reporter.error(f"No package owns {path}")
            else:
                self.reporter.owner(owner, path)

    # -- doctor / history ----------------------------------------------

    def doctor(self, command: DoctorCommand) -> None:
        """Run environment diagnostics.

        Raises:
            PacctlError: If any check failed.
        """
        report = run_checks(self.config)
        self.reporter.doctor_report(report, self.config)
        if report.failed:
            msg = "doctor found failing checks"
            raise PacctlError(msg)

    def history(self, command: HistoryCommand) -> None:
        """Show recent ledger entries or a single entry."""
        selector = parse_selector(command.targets)
        if selector is None:
            self.reporter.history_usage()
            return
        entries = self.ledger.select(selector)
        if selector.entry_id is None:
            self.reporter.history_list(entries)
        elif entries:
            self.reporter.history_entry(entries[0])
        else:
            self.reporter.history_not_found(selector.entry_id)


def dependents_outside(packages: list[Package], targets: list[str]) -> dict[str, list[str]]:
    """Map each removal target to installed dependents not being removed.

    Args:
        packages: Installed packages selected for removal.
        targets: Names of all removal targets.

    Returns:
        Dependents per package name (possibly empty lists).
    """
    target_set = set(targets)
    return {
        pkg.name: [name for name in pkg.required_by if name not in target_set]
        for pkg in packages
    }
