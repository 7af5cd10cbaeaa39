"""Configuration system for procpulse."""

from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path

import tomlkit

VALID_THEMES = ("dark", "light", "dracula")


@dataclass
class SamplingConfig:
    """Tick loop configuration."""

    interval: float = 1.0  # Seconds between ticks (1Hz)
    history_size: int = 100  # Samples kept per history chart
    heartbeat_ticks: int = 60  # Log heartbeat every N ticks (~1 minute at 1Hz)


@dataclass
class ExportConfig:
    """Export file configuration."""

    path: str = ""  # Empty means <data_dir>/processes.csv


@dataclass
class TUIConfig:
    """Dashboard configuration."""

    top_count: int = 30  # Rows shown in the process table
    theme: str = "dark"  # dark, light or dracula
    sparkline_height: int = 2  # Character rows per header sparkline (1-4)


@dataclass
class LoggingConfig:
    """Log file rotation."""

    max_bytes: int = 5 * 1024 * 1024  # Max log file size (5MB)
    backup_count: int = 3  # Number of backup log files to keep


def _dataclass_to_table(obj: object) -> tomlkit.items.Table:
    """Convert a dataclass instance to a tomlkit Table recursively."""
    table = tomlkit.table()
    for f in fields(obj):  # type: ignore[arg-type]
        value = getattr(obj, f.name)
        if is_dataclass(value) and not isinstance(value, type):
            table.add(f.name, _dataclass_to_table(value))
        else:
            table.add(f.name, value)
    return table


@dataclass
class Config:
    """Main configuration container."""

    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    tui: TUIConfig = field(default_factory=TUIConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def config_dir(self) -> Path:
        """Configuration directory."""
        return Path.home() / ".config" / "procpulse"

    @property
    def config_path(self) -> Path:
        """Path to config file."""
        return self.config_dir / "config.toml"

    @property
    def data_dir(self) -> Path:
        """Data directory (export files)."""
        return Path.home() / ".local" / "share" / "procpulse"

    @property
    def state_dir(self) -> Path:
        """State directory for logs."""
        return Path.home() / ".local" / "state" / "procpulse"

    @property
    def log_path(self) -> Path:
        """Log file path."""
        return self.state_dir / "procpulse.log"

    @property
    def export_path(self) -> Path:
        """Target path for exports."""
        if self.export.path:
            return Path(self.export.path).expanduser()
        return self.data_dir / "processes.csv"

    def save(self, path: Path | None = None) -> None:
        """Save config to TOML file."""
        path = path or self.config_path
        path.parent.mkdir(parents=True, exist_ok=True)

        doc = tomlkit.document()
        for name in ["sampling", "export", "tui", "logging"]:
            doc.add(name, _dataclass_to_table(getattr(self, name)))
            doc.add(tomlkit.nl())

        path.write_text(tomlkit.dumps(doc))

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Load config from TOML file, returning defaults for missing values.

        All defaults come from the dataclass definitions, so Config() and
        Config.load() agree when the file is absent.
        """
        defaults = cls()
        path = path or defaults.config_path
        if not path.exists():
            return defaults

        try:
            with open(path) as f:
                data = tomlkit.load(f)
        except tomlkit.exceptions.TOMLKitError as e:
            raise ValueError(f"Failed to parse config file {path}: {e}") from e

        return cls(
            sampling=_load_sampling_config(data.get("sampling", {})),
            export=ExportConfig(path=str(data.get("export", {}).get("path", ""))),
            tui=_load_tui_config(data.get("tui", {})),
            logging=_load_logging_config(data.get("logging", {})),
        )


def _load_sampling_config(data: dict) -> SamplingConfig:
    """Load sampling config from TOML data."""
    defaults = SamplingConfig()

    interval = float(data.get("interval", defaults.interval))
    history_size = int(data.get("history_size", defaults.history_size))
    heartbeat_ticks = int(data.get("heartbeat_ticks", defaults.heartbeat_ticks))

    if interval <= 0:
        raise ValueError(f"interval must be > 0, got {interval}")
    if history_size < 1:
        raise ValueError(f"history_size must be >= 1, got {history_size}")
    if heartbeat_ticks < 1:
        raise ValueError(f"heartbeat_ticks must be >= 1, got {heartbeat_ticks}")

    return SamplingConfig(
        interval=interval,
        history_size=history_size,
        heartbeat_ticks=heartbeat_ticks,
    )


def _load_tui_config(data: dict) -> TUIConfig:
    """Load TUI config from TOML data."""
    defaults = TUIConfig()

    top_count = int(data.get("top_count", defaults.top_count))
    theme = data.get("theme", defaults.theme)
    sparkline_height = int(data.get("sparkline_height", defaults.sparkline_height))

    if top_count < 1:
        raise ValueError(f"top_count must be >= 1, got {top_count}")
    if theme not in VALID_THEMES:
        raise ValueError(f"Invalid theme: {theme!r}. Must be one of {VALID_THEMES}")
    if not 1 <= sparkline_height <= 4:
        raise ValueError(f"sparkline_height must be 1-4, got {sparkline_height}")

    return TUIConfig(top_count=top_count, theme=str(theme), sparkline_height=sparkline_height)


def _load_logging_config(data: dict) -> LoggingConfig:
    """Load logging config from TOML data."""
    d = LoggingConfig()

    max_bytes = int(data.get("max_bytes", d.max_bytes))
    backup_count = int(data.get("backup_count", d.backup_count))

    if max_bytes < 0:
        raise ValueError(f"max_bytes must be >= 0, got {max_bytes}")
    if backup_count < 0:
        raise ValueError(f"backup_count must be >= 0, got {backup_count}")

    return LoggingConfig(max_bytes=max_bytes, backup_count=backup_count)
