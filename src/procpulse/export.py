"""Flat-file export of the ranked process list."""

import os
import tempfile
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import structlog

from procpulse.formatting import format_mb, format_percent
from procpulse.ranker import RankedProcess

log = structlog.get_logger()

DELIMITER = ","
HEADER = DELIMITER.join(["Process", "CPU %", "Memory (MB)"])

# Characters that would break a row apart, and what replaces them
_NAME_SUBSTITUTIONS = {
    DELIMITER: ".",
    "\r": " ",
    "\n": " ",
}


class ExportError(Exception):
    """The export file could not be written."""

    def __init__(self, path: Path, cause: OSError) -> None:
        super().__init__(f"Failed to write {path}: {cause.strerror or cause}")
        self.path = path
        self.cause = cause


@dataclass(frozen=True)
class ExportResult:
    """Outcome of one export request."""

    path: Path
    rows: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Return True if the file was written."""
        return self.error is None


def sanitize_name(name: str) -> str:
    """Replace characters that collide with the row format.

    Undecodable bytes (surrogate escapes from psutil) become "?" so the row
    always encodes as UTF-8.
    """
    name = name.encode("utf-8", errors="replace").decode("utf-8")
    for char, replacement in _NAME_SUBSTITUTIONS.items():
        name = name.replace(char, replacement)
    return name


def format_row(ranked: RankedProcess) -> str:
    """Render one process as an export line (no newline)."""
    return DELIMITER.join(
        [
            sanitize_name(ranked.record.name),
            format_percent(ranked.normalized_cpu_percent),
            format_mb(ranked.record.memory_bytes),
        ]
    )


def render(ranked: Sequence[RankedProcess]) -> str:
    """Render the full export document."""
    lines = [HEADER]
    lines.extend(format_row(r) for r in ranked)
    return "\n".join(lines) + "\n"


class ExportService:
    """Writes the ranked snapshot to a fixed path, replacing prior content."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def export(self, ranked: Sequence[RankedProcess], path: Path | None = None) -> ExportResult:
        """Overwrite the export file with the given ranking.

        The document is written to a temp file beside the target and then
        moved into place, so a failed write leaves any previous export intact.

        Raises:
            ExportError: If the file cannot be written.
        """
        target = path or self.path
        content = render(ranked)
        tmp_name: str | None = None
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=target.parent, prefix=f".{target.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(content)
            os.replace(tmp_name, target)
            tmp_name = None
        except OSError as e:
            log.warning("export_failed", path=str(target), error=str(e))
            raise ExportError(target, e) from e
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)

        log.info("export_written", path=str(target), rows=len(ranked))
        return ExportResult(path=target, rows=len(ranked))
