"""Application settings.

Optional user settings are read from ~/.config/pacctl/settings.toml.
All keys are optional; a missing or invalid file yields the defaults.

Example::

    pacman_conf = "/etc/pacman.conf"
    history_dir = "/var/log/pacctl"
    progress_width = 28
"""

import logging
import tomllib
from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pacctl.core.config import DEFAULT_CONFIG_PATH
from pacctl.core.paths import get_settings_path

logger = logging.getLogger(__name__)


class Settings(BaseModel):
    """User-level pacctl settings.

    Attributes:
        pacman_conf: Package-manager configuration file to read.
        history_dir: Directory of the history ledger. If None, the ledger
            lives under the installation root.
        progress_width: Width of progress bars in characters.
    """

    model_config = ConfigDict(extra="forbid")

    pacman_conf: Path = DEFAULT_CONFIG_PATH
    history_dir: Path | None = None
    progress_width: Annotated[
        int,
        Field(ge=10, le=80, description="Progress bar width (10-80)"),
    ] = 28


def load_settings(path: Path | None = None) -> Settings:
    """Load settings, falling back to defaults.

    Args:
        path: Settings file. If None, uses ~/.config/pacctl/settings.toml.

    Returns:
        Validated Settings. Defaults are returned when the file is missing,
        unreadable or invalid.
    """
    settings_path = path or get_settings_path()

    try:
        with open(settings_path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        return Settings()
    except tomllib.TOMLDecodeError as e:
        logger.warning("Invalid TOML in %s, using defaults: %s", settings_path, e)
        return Settings()
    except OSError as e:
        logger.warning("Cannot read %s, using defaults: %s", settings_path, e)
        return Settings()

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        logger.warning("Invalid settings in %s, using defaults: %s", settings_path, e)
        return Settings()
