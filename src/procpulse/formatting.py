"""Formatting utilities for consistent output across CLI, TUI and export."""

BYTES_PER_MB = 1_000_000


def bytes_to_mb(value: int | float) -> float:
    """Convert bytes to decimal megabytes."""
    return value / BYTES_PER_MB


def format_mb(value: int | float) -> str:
    """Format a byte count as megabytes with two decimals.

    Examples:
        >>> format_mb(1_500_000)
        '1.50'
    """
    return f"{bytes_to_mb(value):.2f}"


def format_percent(value: float) -> str:
    """Format a percentage with two decimals (no % sign)."""
    return f"{value:.2f}"


def format_duration(seconds: float) -> str:
    """Format an uptime compactly: "42s", "3m05s", "1h02m"."""
    seconds = int(seconds)
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m{seconds % 60:02d}s"
    return f"{seconds // 3600}h{(seconds % 3600) // 60:02d}m"


def truncate(text: str, length: int) -> str:
    """Shorten text to length, marking the cut with '..'."""
    if len(text) <= length:
        return text
    return text[: max(0, length - 2)] + ".."
