"""Tests for formatting utilities."""

from procpulse.formatting import (
    bytes_to_mb,
    format_duration,
    format_mb,
    format_percent,
    truncate,
)


class TestFormatMb:
    """Tests for decimal megabyte formatting."""

    def test_decimal_megabytes(self) -> None:
        """One MB is 10^6 bytes, not 2^20."""
        assert bytes_to_mb(1_000_000) == 1.0
        assert format_mb(1_048_576) == "1.05"

    def test_two_decimals(self) -> None:
        """Values always carry two decimals."""
        assert format_mb(1_500_000) == "1.50"
        assert format_mb(0) == "0.00"

    def test_large_value(self) -> None:
        """Gigabyte-scale values stay in MB."""
        assert format_mb(16_000_000_000) == "16000.00"


class TestFormatPercent:
    """Tests for percentage formatting."""

    def test_two_decimals(self) -> None:
        """Percent is rendered with two decimals and no sign."""
        assert format_percent(12.5) == "12.50"
        assert format_percent(0.0) == "0.00"
        assert format_percent(33.333) == "33.33"


class TestFormatDuration:
    """Tests for uptime formatting."""

    def test_seconds(self) -> None:
        """Under a minute shows seconds."""
        assert format_duration(42.9) == "42s"

    def test_minutes(self) -> None:
        """Under an hour shows minutes and padded seconds."""
        assert format_duration(185) == "3m05s"

    def test_hours(self) -> None:
        """An hour or more shows hours and padded minutes."""
        assert format_duration(3720) == "1h02m"


class TestTruncate:
    """Tests for text truncation."""

    def test_short_text_unchanged(self) -> None:
        """Text within the limit is returned as is."""
        assert truncate("bash", 10) == "bash"

    def test_long_text_marked(self) -> None:
        """Text past the limit ends with '..' and fits the length."""
        result = truncate("a_very_long_process_name", 10)
        assert result == "a_very_l.."
        assert len(result) == 10
