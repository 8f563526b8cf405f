"""Command models produced by the argument parser.

A command is an immutable, fully validated description of one invocation:
which operation to run, its operation-specific options, and its targets.
Consumers never re-check option combinations; the parser only hands out
values whose invariants already hold.
"""

from dataclasses import dataclass, field
from enum import Enum


class OperationKind(Enum):
    """Top-level operation selected on the command line."""

    SYNC = "sync"
    QUERY = "query"
    REMOVE = "remove"
    INSTALL_LOCAL = "install-local"
    DOCTOR = "doctor"
    HISTORY = "history"
    HELP = "help"


class OutputMode(Enum):
    """Terminal output verbosity."""

    NORMAL = "normal"
    VERBOSE = "verbose"
    COMPACT = "compact"


class InstallReasonOverride(Enum):
    """Explicit install reason requested with --asdeps/--asexplicit."""

    DEPEND = "depend"
    EXPLICIT = "explicit"


# Highest meaningful --nodeps level: 1 skips dependency checks,
# 2 additionally skips dependency version checks.
MAX_NODEPS_LEVEL = 2


@dataclass(frozen=True, slots=True)
class GlobalOptions:
    """Settings that apply regardless of the selected operation.

    Attributes:
        noconfirm: Skip the interactive confirmation prompt.
        nodeps: Dependency-check bypass level (0, 1 or 2).
        noscriptlet: Do not run install scriptlets.
        overwrite: Glob patterns of files that may be overwritten.
        needed: Do not reinstall up-to-date targets.
        install_reason: Install reason to apply after commit, if any.
        root_dir: Override for the installation root.
        db_path: Override for the package database path.
        cache_dir: Override for the package cache directory.
        strict: Reject risky option combinations and weak signature levels.
        output: Output verbosity mode.
        dry_run: Prepare and summarize but never commit.
    """

    noconfirm: bool = False
    nodeps: int = 0
    noscriptlet: bool = False
    overwrite: tuple[str, ...] = ()
    needed: bool = False
    install_reason: InstallReasonOverride | None = None
    root_dir: str | None = None
    db_path: str | None = None
    cache_dir: str | None = None
    strict: bool = False
    output: OutputMode = OutputMode.NORMAL
    dry_run: bool = False

    def __post_init__(self) -> None:
        """Validate option ranges after initialization."""
        if not 0 <= self.nodeps <= MAX_NODEPS_LEVEL:
            msg = f"nodeps level must be between 0 and {MAX_NODEPS_LEVEL}, got {self.nodeps}"
            raise ValueError(msg)

    @property
    def verbose(self) -> bool:
        """Check if verbose output was requested."""
        return self.output == OutputMode.VERBOSE

    @property
    def compact(self) -> bool:
        """Check if compact output was requested."""
        return self.output == OutputMode.COMPACT


@dataclass(frozen=True, slots=True)
class SyncOptions:
    """Options for -S."""

    refresh: bool = False
    upgrade: bool = False
    search: bool = False
    info: bool = False
    clean_cache: int = 0


class QueryMode(Enum):
    """Mutually exclusive -Q modes."""

    LIST = "list"
    INFO = "info"
    SEARCH = "search"
    FILES = "files"
    FOREIGN = "foreign"
    OWNS = "owns"
    EXPLICIT = "explicit"


@dataclass(frozen=True, slots=True)
class QueryOptions:
    """Options for -Q."""

    mode: QueryMode = QueryMode.LIST


@dataclass(frozen=True, slots=True)
class RemoveOptions:
    """Options for -R."""

    recursive: bool = False
    nosave: bool = False


@dataclass(frozen=True, slots=True)
class Command:
    """Base class for all parsed commands.

    Attributes:
        targets: Positional arguments (package names, files or search terms).
    """

    targets: tuple[str, ...] = ()

    @property
    def kind(self) -> OperationKind:
        """Return the operation this command selects."""
        raise NotImplementedError

    @property
    def is_mutating(self) -> bool:
        """Check if this command may change the package database."""
        return False


@dataclass(frozen=True, slots=True)
class SyncCommand(Command):
    """-S: install from repositories, upgrade, search, info or clean cache."""

    options: SyncOptions = field(default_factory=SyncOptions)

    @property
    def kind(self) -> OperationKind:
        return OperationKind.SYNC

    @property
    def is_mutating(self) -> bool:
        return not (self.options.search or self.options.info)

    @property
    def is_clean_cache(self) -> bool:
        """Check if this command only cleans the package cache."""
        return self.options.clean_cache > 0


@dataclass(frozen=True, slots=True)
class QueryCommand(Command):
    """-Q: read-only queries against the local database."""

    options: QueryOptions = field(default_factory=QueryOptions)

    @property
    def kind(self) -> OperationKind:
        return OperationKind.QUERY


@dataclass(frozen=True, slots=True)
class RemoveCommand(Command):
    """-R: remove installed packages."""

    options: RemoveOptions = field(default_factory=RemoveOptions)

    @property
    def kind(self) -> OperationKind:
        return OperationKind.REMOVE

    @property
    def is_mutating(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class InstallLocalCommand(Command):
    """-U: install local package files."""

    @property
    def kind(self) -> OperationKind:
        return OperationKind.INSTALL_LOCAL

    @property
    def is_mutating(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class DoctorCommand(Command):
    """doctor: environment diagnostics."""

    @property
    def kind(self) -> OperationKind:
        return OperationKind.DOCTOR


@dataclass(frozen=True, slots=True)
class HistoryCommand(Command):
    """history: show the transaction ledger."""

    @property
    def kind(self) -> OperationKind:
        return OperationKind.HISTORY


@dataclass(frozen=True, slots=True)
class HelpCommand(Command):
    """-h/--help: print usage."""

    @property
    def kind(self) -> OperationKind:
        return OperationKind.HELP


@dataclass(frozen=True, slots=True)
class ParsedInvocation:
    """A validated command paired with its global options."""

    command: Command
    options: GlobalOptions = field(default_factory=GlobalOptions)
