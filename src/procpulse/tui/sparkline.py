"""Sparkline widget for history series.

Renders a sequence of values as vertical bars using Unicode block
characters, with optional multi-row height for more vertical resolution.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from rich.text import Text
from textual.reactive import reactive
from textual.widgets import Static

if TYPE_CHECKING:
    from textual.app import RenderResult


class Sparkline(Static):
    """A sparkline widget for visualizing numerical data over time.

    Values are scaled to fit the vertical range:
    - height=1: 8 levels (▁ to █)
    - height=2: 16 levels (bottom row fills first, then top)
    - height=3: 24 levels
    - height=4: 32 levels

    The newest value is drawn at the right edge. When the widget is narrower
    than the data, the oldest values are cut off.
    """

    CHARS = " ▁▂▃▄▅▆▇█"
    LEVELS_PER_ROW = 8

    DEFAULT_CSS = """
    Sparkline {
        width: 1fr;
        height: auto;
    }
    """

    # Reactive property - triggers re-render on change
    data: reactive[list[float]] = reactive(list, always_update=True)

    def __init__(
        self,
        height: int = 1,
        max_value: float | None = 100,
        min_value: float = 0,
        color: str = "",
        **kwargs,
    ) -> None:
        """Initialize sparkline.

        Args:
            height: Number of character rows (1-4). Each row adds 8 levels.
            max_value: Maximum value for scaling. None for auto-scale.
            min_value: Minimum value for scaling.
            color: Rich color for the bars, "" for default text color.
            **kwargs: Passed to Static.__init__
        """
        super().__init__(**kwargs)
        self._height = max(1, min(4, height))  # Clamp to 1-4
        self.max_value = max_value
        self._min_value = min_value
        self.bar_color = color

    def set_data(self, values: Sequence[float]) -> None:
        """Replace the series."""
        self.data = list(values)

    def visible_values(self, width: int) -> list[float]:
        """Return the values that fit in the given width, newest last."""
        if width <= 0 or len(self.data) <= width:
            return list(self.data)
        return list(self.data[-width:])

    def render(self) -> RenderResult:
        """Render the sparkline as Rich Text."""
        width = self.size.width
        values = self.visible_values(width)
        if not values:
            return Text(" " * max(1, width))

        effective_max = self.max_value
        if effective_max is None:
            effective_max = max(values)
        if effective_max <= self._min_value:
            effective_max = self._min_value + 1.0

        # Rows are built bottom to top, then reversed for display
        rows: list[Text] = [Text() for _ in range(self._height)]
        for value in values:
            level = self.scale_value(value, effective_max)
            for row_idx, char in enumerate(self.render_column(level)):
                rows[row_idx].append(char, style=self.bar_color or None)

        result = Text()
        for i, row in enumerate(reversed(rows)):
            if i > 0:
                result.append("\n")
            result.append(row)
        return result

    def scale_value(self, value: float, effective_max: float) -> int:
        """Scale a value to 0..(height * LEVELS_PER_ROW)."""
        total_levels = self._height * self.LEVELS_PER_ROW
        normalized = (value - self._min_value) / (effective_max - self._min_value)
        normalized = max(0.0, min(1.0, normalized))  # Clamp
        return int(normalized * total_levels)

    def render_column(self, level: int) -> list[str]:
        """Render a single column as characters from bottom to top."""
        result: list[str] = []
        for row in range(self._height):
            remaining = level - row * self.LEVELS_PER_ROW
            if remaining <= 0:
                result.append(self.CHARS[0])
            elif remaining >= self.LEVELS_PER_ROW:
                result.append(self.CHARS[self.LEVELS_PER_ROW])
            else:
                result.append(self.CHARS[remaining])
        return result

    def watch_data(self, new_data: list[float]) -> None:
        """React to data changes by refreshing the widget."""
        self.refresh()
