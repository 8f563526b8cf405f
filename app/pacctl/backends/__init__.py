"""Package backends for pacctl.

The libalpm adapter lives in :mod:`pacctl.backends.alpm` and is imported
lazily because it needs the optional ``pyalpm`` extra.
"""

from pacctl.backends.base import (
    DownloadCallback,
    PackageBackend,
    ProgressCallback,
    TransactionHandle,
)

__all__ = [
    "DownloadCallback",
    "PackageBackend",
    "ProgressCallback",
    "TransactionHandle",
]
