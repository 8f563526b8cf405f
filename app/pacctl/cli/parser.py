"""pacman-style command-line parser.

Turns raw argument tokens (without the program name) into a validated
:class:`ParsedInvocation`. Parsing is a single left-to-right scan that
collects state in a mutable builder; the builder only yields immutable
command values once every per-operation and cross-operation rule holds.

Examples of accepted input::

    -Syu --noconfirm
    -Rns firefox
    -Qi bash
    -S -- -weirdpkg
    history show 1718000000-4242
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from pacctl.core.errors import ParseError
from pacctl.core.policy import enforce_strict
from pacctl.models.command import (
    MAX_NODEPS_LEVEL,
    Command,
    DoctorCommand,
    GlobalOptions,
    HelpCommand,
    HistoryCommand,
    InstallLocalCommand,
    InstallReasonOverride,
    OperationKind,
    OutputMode,
    ParsedInvocation,
    QueryCommand,
    QueryMode,
    QueryOptions,
    RemoveCommand,
    RemoveOptions,
    SyncCommand,
    SyncOptions,
)

logger = logging.getLogger(__name__)

NO_TARGETS = "no targets specified (use -h for help)"

# Short option characters that select an operation
OPERATION_CHARS: dict[str, OperationKind] = {
    "S": OperationKind.SYNC,
    "Q": OperationKind.QUERY,
    "R": OperationKind.REMOVE,
    "U": OperationKind.INSTALL_LOCAL,
}

# Bare leading words that select a pseudo-operation
PSEUDO_OPERATIONS: dict[str, OperationKind] = {
    "doctor": OperationKind.DOCTOR,
    "history": OperationKind.HISTORY,
}

QUERY_MODE_CHARS: dict[str, QueryMode] = {
    "i": QueryMode.INFO,
    "s": QueryMode.SEARCH,
    "l": QueryMode.FILES,
    "m": QueryMode.FOREIGN,
    "o": QueryMode.OWNS,
    "e": QueryMode.EXPLICIT,
}

# Flags that only make sense when packages get installed
INSTALL_ONLY_OPERATIONS = (OperationKind.SYNC, OperationKind.INSTALL_LOCAL)
NODEPS_OPERATIONS = (OperationKind.SYNC, OperationKind.REMOVE, OperationKind.INSTALL_LOCAL)

_OPERATION_FLAGS: dict[OperationKind, str] = {
    OperationKind.SYNC: "-S",
    OperationKind.QUERY: "-Q",
    OperationKind.REMOVE: "-R",
    OperationKind.INSTALL_LOCAL: "-U",
    OperationKind.DOCTOR: "doctor",
    OperationKind.HISTORY: "history",
}


@dataclass
class _Builder:
    """Mutable parse state. Never leaves this module."""

    operation: OperationKind | None = None
    flag_chars: list[str] = field(default_factory=list)
    targets: list[str] = field(default_factory=list)
    noconfirm: bool = False
    nodeps: int = 0
    noscriptlet: bool = False
    overwrite: list[str] = field(default_factory=list)
    needed: bool = False
    asdeps: bool = False
    asexplicit: bool = False
    root_dir: str | None = None
    db_path: str | None = None
    cache_dir: str | None = None
    strict: bool = False
    verbose: bool = False
    compact: bool = False
    dry_run: bool = False

    def set_operation(self, operation: OperationKind) -> None:
        """Select the operation; a different second selection is an error."""
        if self.operation is not None and self.operation != operation:
            msg = "only one operation may be used at a time"
            raise ParseError(msg, token=_OPERATION_FLAGS[operation])
        self.operation = operation

    def add_nodeps(self) -> None:
        self.nodeps = min(self.nodeps + 1, MAX_NODEPS_LEVEL)

    def global_options(self) -> GlobalOptions:
        """Freeze the accumulated global settings."""
        if self.asdeps:
            reason: InstallReasonOverride | None = InstallReasonOverride.DEPEND
        elif self.asexplicit:
            reason = InstallReasonOverride.EXPLICIT
        else:
            reason = None

        if self.verbose:
            output = OutputMode.VERBOSE
        elif self.compact:
            output = OutputMode.COMPACT
        else:
            output = OutputMode.NORMAL

        return GlobalOptions(
            noconfirm=self.noconfirm,
            nodeps=self.nodeps,
            noscriptlet=self.noscriptlet,
            overwrite=tuple(self.overwrite),
            needed=self.needed,
            install_reason=reason,
            root_dir=self.root_dir,
            db_path=self.db_path,
            cache_dir=self.cache_dir,
            strict=self.strict,
            output=output,
            dry_run=self.dry_run,
        )


def _flag(attribute: str) -> Callable[[_Builder, str | None], None]:
    def apply(builder: _Builder, _value: str | None) -> None:
        setattr(builder, attribute, True)

    return apply


def _value(attribute: str) -> Callable[[_Builder, str | None], None]:
    def apply(builder: _Builder, value: str | None) -> None:
        setattr(builder, attribute, value)

    return apply


def _append_overwrite(builder: _Builder, value: str | None) -> None:
    if value is None:
        raise ParseError("--overwrite requires a value", token="--overwrite")
    builder.overwrite.append(value)


def _nodeps(builder: _Builder, _value: str | None) -> None:
    builder.add_nodeps()


def _operation(kind: OperationKind) -> Callable[[_Builder, str | None], None]:
    def apply(builder: _Builder, _value: str | None) -> None:
        builder.set_operation(kind)

    return apply


@dataclass(frozen=True, slots=True)
class LongOption:
    """Entry of the long option table."""

    name: str
    takes_value: bool
    apply: Callable[[_Builder, str | None], None]


LONG_OPTIONS: dict[str, LongOption] = {
    opt.name: opt
    for opt in (
        LongOption("--noconfirm", False, _flag("noconfirm")),
        LongOption("--needed", False, _flag("needed")),
        LongOption("--nodeps", False, _nodeps),
        LongOption("--noscriptlet", False, _flag("noscriptlet")),
        LongOption("--asdeps", False, _flag("asdeps")),
        LongOption("--asexplicit", False, _flag("asexplicit")),
        LongOption("--strict", False, _flag("strict")),
        LongOption("--compact", False, _flag("compact")),
        LongOption("--verbose", False, _flag("verbose")),
        LongOption("--test", False, _flag("dry_run")),
        LongOption("--dry-run", False, _flag("dry_run")),
        LongOption("--overwrite", True, _append_overwrite),
        LongOption("--root", True, _value("root_dir")),
        LongOption("--dbpath", True, _value("db_path")),
        LongOption("--cachedir", True, _value("cache_dir")),
        LongOption("--doctor", False, _operation(OperationKind.DOCTOR)),
        LongOption("--history", False, _operation(OperationKind.HISTORY)),
    )
}

HELP_TOKENS = ("-h", "--help")


def parse_args(tokens: Sequence[str]) -> ParsedInvocation:
    """Parse command-line tokens into a validated invocation.

    Args:
        tokens: Arguments without the program name.

    Returns:
        ParsedInvocation holding the command and its global options.
        An empty token list yields a help command.

    Raises:
        ParseError: If the command line is malformed or violates an
            option rule. The error names the offending token when possible.
    """
    if not tokens:
        return ParsedInvocation(command=HelpCommand())

    builder = _Builder()
    in_options = True
    index = 0

    while index < len(tokens):
        token = tokens[index]
        index += 1

        if not in_options:
            builder.targets.append(token)
            continue

        if token in HELP_TOKENS:
            return ParsedInvocation(command=HelpCommand())

        if token == "--":
            in_options = False
            continue

        if token.startswith("--"):
            index = _consume_long_option(builder, tokens, token, index)
            continue

        if token.startswith("-") and len(token) > 1:
            for ch in token[1:]:
                if ch in OPERATION_CHARS:
                    builder.set_operation(OPERATION_CHARS[ch])
                else:
                    builder.flag_chars.append(ch)
            continue

        if index == 1 and token in PSEUDO_OPERATIONS:
            builder.set_operation(PSEUDO_OPERATIONS[token])
            continue

        builder.targets.append(token)

    if builder.operation is None:
        msg = "no operation specified (use -h for help)"
        raise ParseError(msg)

    command = _build_command(builder, builder.operation)
    options = builder.global_options()
    _validate_cross_operation(builder, command.kind, options)

    logger.debug("Parsed %s with targets %s", command.kind.value, list(command.targets))
    return ParsedInvocation(command=command, options=options)


def _consume_long_option(
    builder: _Builder,
    tokens: Sequence[str],
    token: str,
    index: int,
) -> int:
    """Apply one long option and return the index of the next token."""
    name, sep, inline = token.partition("=")
    option = LONG_OPTIONS.get(name)
    if option is None:
        raise ParseError(f"invalid option '{token}'", token=token)

    value: str | None = None
    if option.takes_value:
        if sep:
            value = inline
        elif index < len(tokens):
            value = tokens[index]
            index += 1
        else:
            raise ParseError(f"{name} requires a value", token=name)
    elif sep:
        raise ParseError(f"option '{name}' does not take a value", token=token)

    option.apply(builder, value)
    return index


def _build_command(builder: _Builder, operation: OperationKind) -> Command:
    """Interpret sub-flags and targets for the selected operation."""
    targets = tuple(builder.targets)

    if operation == OperationKind.SYNC:
        return _build_sync(builder, targets)
    if operation == OperationKind.QUERY:
        return _build_query(builder, targets)
    if operation == OperationKind.REMOVE:
        return _build_remove(builder, targets)
    if operation == OperationKind.INSTALL_LOCAL:
        return _build_install_local(builder, targets)

    name = _OPERATION_FLAGS[operation]
    if builder.flag_chars:
        ch = builder.flag_chars[0]
        raise ParseError(f"invalid option '-{ch}' for {name}", token=f"-{ch}")
    if operation == OperationKind.DOCTOR:
        if targets:
            raise ParseError("doctor does not take targets", token=targets[0])
        return DoctorCommand()
    return HistoryCommand(targets=targets)


def _build_sync(builder: _Builder, targets: tuple[str, ...]) -> SyncCommand:
    refresh = upgrade = search = info = False
    clean_cache = 0

    for ch in builder.flag_chars:
        if ch == "y":
            refresh = True
        elif ch == "u":
            upgrade = True
        elif ch == "s":
            search = True
        elif ch == "i":
            info = True
        elif ch == "d":
            builder.add_nodeps()
        elif ch == "c":
            clean_cache = min(clean_cache + 1, 2)
        else:
            raise ParseError(f"invalid option '-{ch}' for -S", token=f"-{ch}")

    if search and info:
        raise ParseError("only one of -s or -i can be used with -S", token="-i")
    if (search or info) and (refresh or upgrade):
        raise ParseError("-s/-i cannot be combined with -y/-u", token="-s" if search else "-i")
    if (search or info) and not targets:
        raise ParseError(NO_TARGETS)
    if clean_cache and (search or info or refresh or upgrade or targets):
        raise ParseError("-Sc/-Scc cannot be combined with other -S options", token="-c")
    if not (search or info or refresh or upgrade or clean_cache or targets):
        raise ParseError(NO_TARGETS)

    options = SyncOptions(
        refresh=refresh,
        upgrade=upgrade,
        search=search,
        info=info,
        clean_cache=clean_cache,
    )
    return SyncCommand(targets=targets, options=options)


def _build_query(builder: _Builder, targets: tuple[str, ...]) -> QueryCommand:
    modes: list[QueryMode] = []
    for ch in builder.flag_chars:
        mode = QUERY_MODE_CHARS.get(ch)
        if mode is None:
            raise ParseError(f"invalid option '-{ch}' for -Q", token=f"-{ch}")
        if mode not in modes:
            modes.append(mode)

    if len(modes) > 1:
        raise ParseError("only one of -i, -s, -l, -m, -o or -e can be used with -Q")

    mode = modes[0] if modes else QueryMode.LIST
    needs_targets = (QueryMode.INFO, QueryMode.SEARCH, QueryMode.FILES, QueryMode.OWNS)
    if mode in needs_targets and not targets:
        raise ParseError(NO_TARGETS)
    if mode in (QueryMode.FOREIGN, QueryMode.EXPLICIT) and targets:
        flag = "-Qm" if mode == QueryMode.FOREIGN else "-Qe"
        raise ParseError(f"{flag} does not take targets", token=targets[0])

    return QueryCommand(targets=targets, options=QueryOptions(mode=mode))


def _build_remove(builder: _Builder, targets: tuple[str, ...]) -> RemoveCommand:
    recursive = nosave = False
    for ch in builder.flag_chars:
        if ch == "s":
            recursive = True
        elif ch == "n":
            nosave = True
        elif ch == "d":
            builder.add_nodeps()
        else:
            raise ParseError(f"invalid option '-{ch}' for -R", token=f"-{ch}")

    if not targets:
        raise ParseError(NO_TARGETS)

    return RemoveCommand(
        targets=targets,
        options=RemoveOptions(recursive=recursive, nosave=nosave),
    )


def _build_install_local(builder: _Builder, targets: tuple[str, ...]) -> InstallLocalCommand:
    for ch in builder.flag_chars:
        if ch == "d":
            builder.add_nodeps()
        else:
            raise ParseError(f"invalid option '-{ch}' for -U", token=f"-{ch}")

    if not targets:
        raise ParseError(NO_TARGETS)

    return InstallLocalCommand(targets=targets)


def _validate_cross_operation(
    builder: _Builder,
    operation: OperationKind,
    options: GlobalOptions,
) -> None:
    """Apply rules that span operations and global options."""
    if operation not in INSTALL_ONLY_OPERATIONS:
        install_only = [
            ("--needed", builder.needed),
            ("--asdeps", builder.asdeps),
            ("--asexplicit", builder.asexplicit),
            ("--noscriptlet", builder.noscriptlet),
            ("--overwrite", bool(builder.overwrite)),
        ]
        for name, enabled in install_only:
            if enabled:
                raise ParseError(f"{name} only applies to -S/-U", token=name)

    if builder.nodeps and operation not in NODEPS_OPERATIONS:
        raise ParseError("--nodeps only applies to -S/-R/-U", token="--nodeps")

    if builder.asdeps and builder.asexplicit:
        raise ParseError("--asdeps and --asexplicit cannot be used together", token="--asexplicit")

    if builder.compact and builder.verbose:
        raise ParseError("--compact and --verbose cannot be used together", token="--compact")

    enforce_strict(options)
