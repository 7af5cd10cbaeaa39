"""Dashboard colour themes.

Pure data: each Theme maps to a fixed Palette. Nothing in the sampling
pipeline reads this module.
"""

from dataclasses import dataclass
from enum import Enum


class Theme(Enum):
    """Selectable dashboard themes."""

    DARK = "dark"
    LIGHT = "light"
    DRACULA = "dracula"

    def next(self) -> "Theme":
        """Return the theme after this one, wrapping around."""
        members = list(Theme)
        return members[(members.index(self) + 1) % len(members)]


@dataclass(frozen=True)
class Palette:
    """Colours used by the dashboard widgets.

    textual_theme names the built-in Textual theme applied app-wide; the
    remaining fields are Rich colour strings for chart and table accents.
    """

    textual_theme: str
    cpu_line: str
    memory_line: str
    border: str
    accent: str
    muted: str
    warning: str
    critical: str


PALETTES: dict[Theme, Palette] = {
    Theme.DARK: Palette(
        textual_theme="textual-dark",
        cpu_line="#4ea1ff",
        memory_line="#b48ead",
        border="#5f6b7a",
        accent="#88c0d0",
        muted="#6c7086",
        warning="#ebcb8b",
        critical="#bf616a",
    ),
    Theme.LIGHT: Palette(
        textual_theme="textual-light",
        cpu_line="#0000e6",
        memory_line="#8839ef",
        border="#999999",
        accent="#1e66f5",
        muted="#7c7f93",
        warning="#df8e1d",
        critical="#d20f39",
    ),
    Theme.DRACULA: Palette(
        textual_theme="dracula",
        cpu_line="#8be9fd",  # Dracula cyan
        memory_line="#bd93f9",  # Dracula purple
        border="#6272a4",  # Dracula comment
        accent="#50fa7b",  # Dracula green
        muted="#6272a4",
        warning="#f1fa8c",  # Dracula yellow
        critical="#ff5555",  # Dracula red
    ),
}


def palette_for(theme: Theme | str) -> Palette:
    """Look up the palette for a theme or theme name."""
    return PALETTES[Theme(theme)]
