"""Package cache cleaning (``-Sc`` / ``-Scc``)."""

import logging
from collections.abc import Mapping
from pathlib import Path

logger = logging.getLogger(__name__)

PACKAGE_MARKER = ".pkg.tar"


def parse_pkg_filename(file_name: str) -> tuple[str, str] | None:
    """Split a cached package file name into name and version.

    Args:
        file_name: File name such as ``bash-5.2.026-2-x86_64.pkg.tar.zst``.

    Returns:
        ``(name, "pkgver-pkgrel")`` or None if the name is malformed.
    """
    base = file_name.split(PACKAGE_MARKER, 1)[0]
    parts = base.rsplit("-", 3)
    if len(parts) != 4 or not all(parts):
        return None
    name, ver, rel, _arch = parts
    return name, f"{ver}-{rel}"


def should_remove(file_name: str, level: int, installed: Mapping[str, str]) -> bool:
    """Decide whether a cached file is removed at a clean level.

    Level 1 keeps files matching an installed package version and files
    whose name cannot be parsed. Level 2 removes everything.

    Args:
        file_name: Cached package file name.
        level: Clean level (1 or 2).
        installed: Installed versions by package name.
    """
    if level >= 2:
        return True
    parsed = parse_pkg_filename(file_name)
    if parsed is None:
        return False
    name, version = parsed
    return installed.get(name) != version


def clean_cache(cache_dir: Path, level: int, installed: Mapping[str, str]) -> int:
    """Delete cached package files.

    Args:
        cache_dir: Package cache directory. A missing directory is clean.
        level: Clean level (1 removes stale files, 2 removes all).
        installed: Installed versions by package name.

    Returns:
        Number of files removed.

    Raises:
        OSError: If the directory cannot be listed.
    """
    if not cache_dir.exists():
        return 0

    removed = 0
    for path in sorted(cache_dir.iterdir()):
        if not path.is_file() or PACKAGE_MARKER not in path.name:
            continue
        if not should_remove(path.name, level, installed):
            continue
        try:
            path.unlink()
        except OSError as e:
            logger.warning("Failed to remove %s: %s", path, e)
            continue
        logger.debug("Removed cached package %s", path.name)
        removed += 1
    return removed
