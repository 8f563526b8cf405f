"""Transaction session lifecycle.

A :class:`TransactionSession` owns one backend transaction from open to
close. Every exit path (success, cancellation, dry-run, error) ends in
``SessionState.CLOSED``, and closing twice is a no-op.
"""

import logging
from types import TracebackType

from pacctl.backends.base import PackageBackend, TransactionHandle
from pacctl.core.errors import (
    ArchitectureMismatchError,
    BackendError,
    CommitError,
    DatabaseLockedError,
    PacctlError,
    ResolutionError,
    mentions_architecture,
)
from pacctl.models.package import ARCH_ANY, Package
from pacctl.models.transaction import SessionState, TransactionFlags

logger = logging.getLogger(__name__)

_TERMINAL_STATES = frozenset(
    {SessionState.COMMITTED, SessionState.CANCELLED, SessionState.FAILED, SessionState.CLOSED}
)


class SessionStateError(PacctlError):
    """Raised when a session method is called in the wrong state."""


def architecture_offenders(packages: list[Package], allowed: list[str]) -> list[str]:
    """List packages whose architecture the handle does not accept.

    Args:
        packages: Packages of the change set.
        allowed: Accepted architectures.

    Returns:
        ``name (arch)`` strings, in change-set order.
    """
    accepted = set(allowed) | {ARCH_ANY}
    return [f"{pkg.name} ({pkg.arch})" for pkg in packages if pkg.arch not in accepted]


class TransactionSession:
    """One transaction against the package backend.

    Example:
        >>> with TransactionSession(backend, flags) as session:
        ...     session.open()
        ...     session.add(pkg)
        ...     session.prepare()
        ...     session.commit()
    """

    def __init__(self, backend: PackageBackend, flags: TransactionFlags) -> None:
        self._backend = backend
        self._flags = flags
        self._handle: TransactionHandle | None = None
        self._state = SessionState.UNINITIALIZED

    @property
    def state(self) -> SessionState:
        """Current lifecycle state."""
        return self._state

    @property
    def flags(self) -> TransactionFlags:
        return self._flags

    @property
    def to_add(self) -> list[Package]:
        """Packages the prepared transaction will install or upgrade."""
        return self._require_handle().to_add

    @property
    def to_remove(self) -> list[Package]:
        """Packages the prepared transaction will remove."""
        return self._require_handle().to_remove

    @property
    def is_empty(self) -> bool:
        """True if the prepared change set contains nothing."""
        return not self.to_add and not self.to_remove

    def _require_handle(self) -> TransactionHandle:
        if self._handle is None:
            msg = f"transaction is not open (state: {self._state.value})"
            raise SessionStateError(msg)
        return self._handle

    def _require_state(self, *allowed: SessionState) -> None:
        if self._state not in allowed:
            msg = f"invalid transaction state: {self._state.value}"
            raise SessionStateError(msg)

    def open(self) -> None:
        """Acquire a backend transaction with this session's flags.

        Raises:
            BackendError: If the backend cannot initialize the transaction.
        """
        self._require_state(SessionState.UNINITIALIZED)
        enabled = ", ".join(self._flags.enabled()) or "none"
        logger.debug("Opening transaction with flags: %s", enabled)
        self._handle = self._backend.begin_transaction(self._flags)
        self._state = SessionState.OPEN

    def add(self, package: Package) -> None:
        """Queue a package for installation."""
        self._require_state(SessionState.OPEN, SessionState.POPULATED)
        self._require_handle().add_package(package)
        self._state = SessionState.POPULATED

    def remove(self, package: Package) -> None:
        """Queue an installed package for removal."""
        self._require_state(SessionState.OPEN, SessionState.POPULATED)
        self._require_handle().remove_package(package)
        self._state = SessionState.POPULATED

    def sysupgrade(self) -> None:
        """Queue a full system upgrade."""
        self._require_state(SessionState.OPEN, SessionState.POPULATED)
        self._require_handle().sysupgrade()
        self._state = SessionState.POPULATED

    def prepare(self) -> None:
        """Resolve the change set.

        On failure the session is closed before the error propagates.

        Raises:
            ArchitectureMismatchError: If resolution failed on architectures.
            DatabaseLockedError: If the database lock could not be taken.
            ResolutionError: For any other resolution failure.
        """
        self._require_state(SessionState.OPEN, SessionState.POPULATED)
        handle = self._require_handle()
        try:
            handle.prepare()
        except DatabaseLockedError:
            self._state = SessionState.FAILED
            self.close()
            raise
        except BackendError as e:
            error = self._resolution_error(handle, e)
            self._state = SessionState.FAILED
            self.close()
            raise error from e
        self._state = SessionState.PREPARED

    def _resolution_error(self, handle: TransactionHandle, error: BackendError) -> PacctlError:
        text = str(error)
        message = f"failed to prepare transaction: {text}"
        if mentions_architecture(text):
            try:
                offenders = architecture_offenders(handle.to_add, self._backend.architectures)
            except BackendError:
                offenders = []
            return ArchitectureMismatchError(message, self._backend.architectures, offenders)
        return ResolutionError(message)

    def commit(self) -> None:
        """Apply the prepared transaction and close the session.

        The session is closed exactly once whether or not the commit
        succeeds.

        Raises:
            DatabaseLockedError: If the database lock could not be taken.
            CommitError: If the backend fails to apply the transaction. The
                library's message is preserved.
        """
        self._require_state(SessionState.PREPARED)
        handle = self._require_handle()
        try:
            handle.commit()
            self._state = SessionState.COMMITTED
        except DatabaseLockedError:
            self._state = SessionState.FAILED
            raise
        except BackendError as e:
            self._state = SessionState.FAILED
            raise CommitError(f"failed to commit transaction: {e}") from e
        finally:
            self.close()

    def cancel(self) -> None:
        """Abandon the transaction without committing and close it."""
        if self._state not in _TERMINAL_STATES:
            self._state = SessionState.CANCELLED
        self.close()

    def close(self) -> None:
        """Release the backend transaction. Safe to call more than once."""
        if self._state == SessionState.CLOSED:
            return
        handle, self._handle = self._handle, None
        self._state = SessionState.CLOSED
        if handle is None:
            return
        try:
            handle.release()
        except BackendError as e:
            logger.warning("Failed to release transaction: %s", e)

    def __enter__(self) -> "TransactionSession":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
