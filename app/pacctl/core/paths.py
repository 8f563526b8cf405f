"""File locations used by pacctl.

Per-user files (settings, theme overrides) live in the XDG config
directory. The history ledger is system state and lives below the
installation root, so ``--root /mnt`` keeps a separate history:

- ``$XDG_CONFIG_HOME/pacctl/`` (default ``~/.config/pacctl/``)
- ``<root>/var/log/pacctl/history.log``
"""

import os
from pathlib import Path

APP_NAME = "pacctl"

HISTORY_FILENAME = "history.log"
HISTORY_SUBDIR = f"var/log/{APP_NAME}"


def get_config_dir() -> Path:
    """Per-user configuration directory, honouring XDG_CONFIG_HOME."""
    base = os.environ.get("XDG_CONFIG_HOME")
    config_home = Path(base) if base else Path.home() / ".config"
    return config_home / APP_NAME


def get_settings_path() -> Path:
    return get_config_dir() / "settings.toml"


def get_user_theme_path() -> Path:
    return get_config_dir() / "theme.toml"


def root_join(root: str | None, path: str) -> Path:
    """Re-root an absolute system path under an installation root.

    Args:
        root: Installation root; ``None`` or ``/`` is the running system.
        path: System path such as ``/etc/os-release``.

    Returns:
        ``<root>/<path>`` with the leading slash of ``path`` dropped.
    """
    relative = path.lstrip("/")
    if not root or root == "/":
        return Path("/") / relative
    return Path(root) / relative


def get_history_dir(root: str | None = None) -> Path:
    """Directory holding the history ledger for an installation root."""
    return root_join(root, HISTORY_SUBDIR)


def get_history_path(root: str | None = None) -> Path:
    return get_history_dir(root) / HISTORY_FILENAME
