"""Unit tests for theme module.

Tests for palette validation, theme file merging and Rich theme generation.
"""

# pyright: reportPrivateUsage=false

from pathlib import Path
from unittest.mock import patch

import pytest
from pacctl.core.theme import (
    ThemeColors,
    _read_colors,
    get_bundled_theme_path,
    get_rich_theme,
    get_theme,
    load_theme,
)
from pydantic import ValidationError
from rich.theme import Theme


class TestThemeColors:
    """Tests for ThemeColors Pydantic model."""

    def test_default_values(self) -> None:
        colors = ThemeColors()
        assert colors.text == "#ffffff"
        assert colors.progress == "#0ec1c8"

    @pytest.mark.parametrize("value", ["#abc", "#A1b2C3", "  #abcdef "])
    def test_valid_hex(self, value: str) -> None:
        assert ThemeColors(muted=value).muted == value.strip()

    @pytest.mark.parametrize("value", ["ffffff", "#ff", "#gggggg", "#abcd", "blue"])
    def test_invalid_hex(self, value: str) -> None:
        with pytest.raises(ValidationError, match="expected #RGB or #RRGGBB"):
            ThemeColors(text=value)

    def test_non_string_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ThemeColors(text=123)  # type: ignore[arg-type]

    def test_extra_fields_forbidden(self) -> None:
        with pytest.raises(ValidationError):
            ThemeColors(unknown_field="#ffffff")  # type: ignore[call-arg]


class TestReadColors:
    """Tests for reading the [colors] table."""

    def test_reads_string_values(self, tmp_path: Path) -> None:
        theme_file = tmp_path / "theme.toml"
        theme_file.write_text('[colors]\ntext = "#000000"\ncount = 3\n')

        assert _read_colors(theme_file) == {"text": "#000000"}

    def test_missing_file(self, tmp_path: Path) -> None:
        assert _read_colors(tmp_path / "nonexistent.toml") == {}

    def test_invalid_toml(self, tmp_path: Path) -> None:
        theme_file = tmp_path / "theme.toml"
        theme_file.write_text("not valid [ toml syntax")
        assert _read_colors(theme_file) == {}

    def test_colors_not_a_table(self, tmp_path: Path) -> None:
        theme_file = tmp_path / "theme.toml"
        theme_file.write_text('colors = "red"\n')
        assert _read_colors(theme_file) == {}


class TestLoadTheme:
    """Tests for load_theme function."""

    def test_bundled_theme_exists(self) -> None:
        assert get_bundled_theme_path().is_file()

    def test_bundled_theme_matches_defaults(self, tmp_path: Path) -> None:
        assert load_theme(tmp_path / "none.toml") == ThemeColors()

    def test_user_theme_overrides_bundled(self, tmp_path: Path) -> None:
        user_theme = tmp_path / "theme.toml"
        user_theme.write_text('[colors]\nprogress = "#ff0000"\n')

        colors = load_theme(user_theme)

        assert colors.progress == "#ff0000"
        assert colors.success == "#03b971"

    def test_default_user_path(self, tmp_path: Path) -> None:
        user_theme = tmp_path / "theme.toml"
        user_theme.write_text('[colors]\nheader = "#123456"\n')

        with patch("pacctl.core.theme.get_user_theme_path", return_value=user_theme):
            assert load_theme().header == "#123456"

    def test_invalid_user_colors_fall_back(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        user_theme = tmp_path / "theme.toml"
        user_theme.write_text('[colors]\nheader = "blue"\n')

        colors = load_theme(user_theme)

        assert colors == ThemeColors()
        assert "invalid theme configuration" in capsys.readouterr().err


class TestGetRichTheme:
    """Tests for get_rich_theme and get_theme."""

    def test_palette_and_derived_styles(self) -> None:
        theme = get_rich_theme(ThemeColors(header="#112233"))

        assert isinstance(theme, Theme)
        for name in ("info", "warning", "progress", "package.name", "package.size"):
            assert name in theme.styles
        assert theme.styles["bold_header"].bold
        assert theme.styles["error"].bold

    def test_get_theme_is_cached(self) -> None:
        get_theme.cache_clear()
        first = get_theme()
        assert get_theme() is first
