"""Colour theme for pacctl output.

The palette is read from the bundled ``data/theme.toml``; any subset of
keys can be overridden in ``~/.config/pacctl/theme.toml``. Invalid
overrides fall back to the built-in palette with a warning.
"""

import logging
import re
import sys
import tomllib
from functools import cache
from importlib import resources
from pathlib import Path
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, ValidationError
from rich.theme import Theme

from pacctl.core.paths import get_user_theme_path

logger = logging.getLogger(__name__)

_HEX_COLOR = re.compile(r"#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})")


def _check_hex_color(value: str) -> str:
    color = value.strip()
    if not _HEX_COLOR.fullmatch(color):
        msg = f"expected #RGB or #RRGGBB, got {value!r}"
        raise ValueError(msg)
    return color


HexColor = Annotated[str, AfterValidator(_check_hex_color)]


class ThemeColors(BaseModel):
    """Named colours of the output palette."""

    model_config = ConfigDict(extra="forbid")

    text: HexColor = "#ffffff"
    muted: HexColor = "#b2bec3"
    header: HexColor = "#69B9A1"
    border: HexColor = "#29526d"

    success: HexColor = "#03b971"
    warning: HexColor = "#f5b332"
    error: HexColor = "#f53263"
    info: HexColor = "#0ec1c8"

    # Package list and progress output
    added: HexColor = "#c1ff62"
    removed: HexColor = "#f53263"
    changed: HexColor = "#0e8ac8"
    progress: HexColor = "#0ec1c8"


# Styles built on top of the palette; the rest map 1:1 to a colour.
_DERIVED_STYLES = {
    "error": "bold {error}",
    "bold_header": "bold {header}",
    "package.name": "bold {text}",
    "package.version": "{muted}",
    "package.size": "{info}",
}


def get_bundled_theme_path() -> Path:
    """Path of the theme file shipped inside the package."""
    return Path(str(resources.files("pacctl.data").joinpath("theme.toml")))


def _read_colors(path: Path) -> dict[str, str]:
    """Read the ``[colors]`` table of a theme file.

    A missing file is silently empty; an unreadable or malformed file is
    logged and treated as empty. Non-string values are dropped.
    """
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
        logger.warning("Ignoring theme file %s: %s", path, e)
        return {}

    colors = data.get("colors", {})
    if not isinstance(colors, dict):
        logger.warning("Ignoring theme file %s: 'colors' is not a table", path)
        return {}
    return {name: value for name, value in colors.items() if isinstance(value, str)}


def load_theme(user_path: Path | None = None) -> ThemeColors:
    """Load the palette, applying user overrides to the bundled theme.

    Args:
        user_path: Override file; defaults to ~/.config/pacctl/theme.toml.
    """
    colors = _read_colors(get_bundled_theme_path())
    overrides_path = user_path or get_user_theme_path()
    overrides = _read_colors(overrides_path)
    if overrides:
        logger.debug("Applying %d theme overrides from %s", len(overrides), overrides_path)
        colors.update(overrides)

    try:
        return ThemeColors(**colors)
    except ValidationError as e:
        logger.warning("Theme validation failed, using defaults: %s", e)
        print(
            f"warning: invalid theme configuration in {overrides_path}, using defaults",
            file=sys.stderr,
        )
        return ThemeColors()


def get_rich_theme(colors: ThemeColors | None = None) -> Theme:
    """Build the Rich theme: one style per colour plus the derived styles."""
    palette = (colors or load_theme()).model_dump()
    styles = dict(palette)
    styles.update(
        {name: template.format(**palette) for name, template in _DERIVED_STYLES.items()}
    )
    return Theme(styles)


@cache
def get_theme() -> Theme:
    """Rich theme for the shared consoles, loaded once per process."""
    return get_rich_theme()
