"""Package-manager configuration loading.

Reads a ``pacman.conf``-style file: an ``[options]`` section with global
settings followed by one section per repository. Values are consumed
read-only; command-line overrides are layered on top by
:func:`effective_config`.
"""

import logging
import platform
import re
from enum import Flag, auto
from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from pacctl.core.errors import ConfigError
from pacctl.models.command import GlobalOptions

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("/etc/pacman.conf")
DEFAULT_ROOT_DIR = "/"
DEFAULT_DB_PATH = "/var/lib/pacman"
DEFAULT_CACHE_DIR = "/var/cache/pacman/pkg"
DEFAULT_GPG_DIR = "/etc/pacman.d/gnupg"
DEFAULT_LOG_FILE = "/var/log/pacman.log"
DEFAULT_HOOK_DIRS = ("/etc/pacman.d/hooks", "/usr/share/libalpm/hooks")
DEFAULT_REPO_SIG_LEVEL = "Required DatabaseOptional"

_SECTION_RE = re.compile(r"^\[([^\]]+)\]")
_OPTION_RE = re.compile(r"^(\w+)\s*=\s*(.+)")
_SERVER_RE = re.compile(r"^\s*Server\s*=\s*(.+)")


class SigLevel(Flag):
    """Signature verification requirements understood by the backend."""

    NONE = 0
    PACKAGE = auto()
    PACKAGE_OPTIONAL = auto()
    DATABASE = auto()
    DATABASE_OPTIONAL = auto()
    USE_DEFAULT = auto()


_SIG_TOKENS: dict[str, SigLevel] = {
    "Required": SigLevel.PACKAGE,
    "Optional": SigLevel.PACKAGE_OPTIONAL,
    "DatabaseRequired": SigLevel.DATABASE,
    "DatabaseOptional": SigLevel.DATABASE_OPTIONAL,
}


def parse_siglevel(value: str | None) -> SigLevel | None:
    """Parse a SigLevel string.

    Args:
        value: Raw value such as ``"Required DatabaseOptional"``.

    Returns:
        The parsed level, or None when the value is empty or names no
        recognised requirement.
    """
    if not value:
        return None
    if "UseDefault" in value:
        return SigLevel.USE_DEFAULT
    if "Never" in value:
        return SigLevel.NONE

    level = SigLevel.NONE
    for token in value.split():
        level |= _SIG_TOKENS.get(token, SigLevel.NONE)
    return level if level != SigLevel.NONE else None


def siglevel_is_weak(value: str) -> bool:
    """Check if a SigLevel string disables or relaxes package signatures."""
    normalized = value.lower()
    return "never" in normalized or "required" not in normalized


class Repository(BaseModel):
    """A sync repository section.

    Attributes:
        name: Section name (e.g. ``core``).
        servers: Mirror URL templates in configuration order.
        sig_level: Raw SigLevel string for this repository.
    """

    model_config = ConfigDict(extra="forbid")

    name: Annotated[str, Field(min_length=1)]
    servers: list[str] = Field(default_factory=list)
    sig_level: str = DEFAULT_REPO_SIG_LEVEL


class PackageManagerConfig(BaseModel):
    """Global options plus registered repositories."""

    model_config = ConfigDict(extra="forbid")

    root_dir: str = DEFAULT_ROOT_DIR
    db_path: str = DEFAULT_DB_PATH
    cache_dir: str = DEFAULT_CACHE_DIR
    hook_dirs: list[str] = Field(default_factory=list)
    gpg_dir: str | None = None
    log_file: str | None = None
    use_syslog: bool = False
    check_space: bool = False
    architectures: list[str] = Field(default_factory=list)
    sig_level: str | None = None
    local_file_sig_level: str | None = None
    remote_file_sig_level: str | None = None
    repositories: list[Repository] = Field(default_factory=list)

    @property
    def effective_gpg_dir(self) -> str:
        """GPG directory, falling back to the distribution default."""
        return self.gpg_dir or DEFAULT_GPG_DIR

    @property
    def effective_log_file(self) -> str:
        """Log file, falling back to the distribution default."""
        return self.log_file or DEFAULT_LOG_FILE

    @property
    def effective_hook_dirs(self) -> list[str]:
        """Hook directories, falling back to the distribution defaults."""
        return list(self.hook_dirs) if self.hook_dirs else list(DEFAULT_HOOK_DIRS)

    @property
    def lock_path(self) -> Path:
        """Path of the database lock file."""
        return Path(self.db_path) / "db.lck"


def parse_config_text(content: str) -> PackageManagerConfig:
    """Parse the text of a pacman.conf-style file.

    Args:
        content: File content.

    Returns:
        Parsed configuration. Repositories without servers are dropped.
    """
    data: dict[str, object] = {}
    hook_dirs: list[str] = []
    architectures: list[str] = []
    repositories: list[Repository] = []
    current: Repository | None = None
    in_options = False

    def flush() -> None:
        if current is not None and current.servers:
            repositories.append(current)

    for raw in content.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        section = _SECTION_RE.match(line)
        if section:
            flush()
            name = section.group(1)
            in_options = name == "options"
            current = None if in_options else Repository(name=name)
            continue

        if in_options and line in ("CheckSpace", "UseSyslog"):
            data["check_space" if line == "CheckSpace" else "use_syslog"] = True
            continue

        match = _OPTION_RE.match(line)
        if not match:
            continue
        key, value = match.group(1), match.group(2).strip()

        if key == "RootDir":
            data["root_dir"] = value
        elif key == "DBPath":
            data["db_path"] = value
        elif key == "CacheDir":
            data["cache_dir"] = value
        elif in_options and key == "HookDir":
            hook_dirs.append(value)
        elif in_options and key == "GPGDir":
            data["gpg_dir"] = value
        elif in_options and key == "LogFile":
            data["log_file"] = value
        elif in_options and key == "Architecture":
            architectures.extend(value.split())
        elif in_options and key == "SigLevel":
            data["sig_level"] = value
        elif in_options and key == "LocalFileSigLevel":
            data["local_file_sig_level"] = value
        elif in_options and key == "RemoteFileSigLevel":
            data["remote_file_sig_level"] = value
        elif current is not None and key == "Server":
            current.servers.append(value)
        elif current is not None and key == "Include":
            current.servers.extend(_read_mirrorlist(Path(value)))
        elif current is not None and key == "SigLevel":
            current.sig_level = value

    flush()

    return PackageManagerConfig(
        **data,
        hook_dirs=hook_dirs,
        architectures=architectures,
        repositories=repositories,
    )


def _read_mirrorlist(path: Path) -> list[str]:
    """Read ``Server =`` lines from an included mirrorlist.

    Unreadable includes contribute no servers.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        logger.warning("Cannot read mirrorlist %s: %s", path, e)
        return []

    servers: list[str] = []
    for line in content.splitlines():
        match = _SERVER_RE.match(line)
        if match:
            servers.append(match.group(1).strip())
    return servers


def load_config(path: Path | None = None) -> PackageManagerConfig:
    """Load a package-manager configuration file.

    Args:
        path: Configuration file. Defaults to /etc/pacman.conf.

    Returns:
        Parsed configuration.

    Raises:
        ConfigError: If the file cannot be read.
    """
    config_path = path or DEFAULT_CONFIG_PATH
    try:
        content = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to read {config_path}: {e}") from e
    return parse_config_text(content)


def effective_config(
    options: GlobalOptions,
    path: Path | None = None,
) -> PackageManagerConfig:
    """Load the configuration and apply command-line path overrides.

    Args:
        options: Global options carrying --root/--dbpath/--cachedir.
        path: Configuration file override.

    Returns:
        Configuration with overrides applied.
    """
    config = load_config(path)
    overrides: dict[str, str] = {}
    if options.root_dir is not None:
        overrides["root_dir"] = options.root_dir
    if options.db_path is not None:
        overrides["db_path"] = options.db_path
    if options.cache_dir is not None:
        overrides["cache_dir"] = options.cache_dir
    return config.model_copy(update=overrides) if overrides else config


def enforce_strict_config(config: PackageManagerConfig) -> None:
    """Reject weak signature levels for --strict runs.

    Args:
        config: Effective configuration.

    Raises:
        ConfigError: If any global, file or repository SigLevel is weak.
    """
    named = [
        ("SigLevel", config.sig_level),
        ("LocalFileSigLevel", config.local_file_sig_level),
        ("RemoteFileSigLevel", config.remote_file_sig_level),
    ]
    for key, value in named:
        if value is not None and siglevel_is_weak(value):
            raise ConfigError(f"--strict requires strong {key}; found '{value}'")

    for repo in config.repositories:
        if siglevel_is_weak(repo.sig_level):
            raise ConfigError(
                f"--strict requires strong repository SigLevel; "
                f"repo '{repo.name}' has '{repo.sig_level}'"
            )


def expand_server_url(server: str, repo: str, arch: str, arch_v3: str, arch_v4: str) -> str:
    """Substitute repository and architecture variables in a mirror URL.

    ``$arch_v3`` and ``$arch_v4`` are replaced before ``$arch``.
    """
    return (
        server.replace("$repo", repo)
        .replace("$arch_v3", arch_v3)
        .replace("$arch_v4", arch_v4)
        .replace("$arch", arch)
    )


def host_architecture() -> str:
    """Return the machine architecture of the running host."""
    return platform.machine()


def arch_variants(arch: str) -> tuple[str, str, str]:
    """Return the base, v3 and v4 variants of an architecture.

    Only x86_64 has microarchitecture levels; other architectures map to
    themselves.
    """
    base = "x86_64" if arch.startswith("x86_64_v") else arch
    if base == "x86_64":
        return base, f"{base}_v3", f"{base}_v4"
    return base, base, base


def url_architecture(config: PackageManagerConfig) -> str:
    """Architecture substituted into mirror URLs."""
    if config.architectures and config.architectures[0] != "auto":
        return config.architectures[0]
    return host_architecture()


def resolve_architectures(config: PackageManagerConfig) -> list[str]:
    """Compute the ordered, de-duplicated architecture allow list.

    Configured entries come first (``auto`` meaning the URL architecture),
    followed by the base/v3/v4 variants.
    """
    arch = url_architecture(config)
    candidates = [arch if a == "auto" else a for a in config.architectures] or [arch]
    candidates.extend(arch_variants(arch))

    resolved: list[str] = []
    for value in candidates:
        if value not in resolved:
            resolved.append(value)
    return resolved
