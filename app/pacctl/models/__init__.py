"""Data models for pacctl.

This module exports the core data structures used throughout the application.
"""

from pacctl.models.command import (
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
from pacctl.models.history import HistoryEntry, HistoryStatus, create_history_entry
from pacctl.models.package import InstallReason, Package
from pacctl.models.transaction import (
    AddSummary,
    RemoveSummary,
    SessionState,
    TransactionFlags,
)

__all__ = [
    "AddSummary",
    "Command",
    "DoctorCommand",
    "GlobalOptions",
    "HelpCommand",
    "HistoryCommand",
    "HistoryEntry",
    "HistoryStatus",
    "InstallLocalCommand",
    "InstallReason",
    "InstallReasonOverride",
    "OperationKind",
    "OutputMode",
    "Package",
    "ParsedInvocation",
    "QueryCommand",
    "QueryMode",
    "QueryOptions",
    "RemoveCommand",
    "RemoveOptions",
    "RemoveSummary",
    "SessionState",
    "SyncCommand",
    "SyncOptions",
    "TransactionFlags",
    "create_history_entry",
]
