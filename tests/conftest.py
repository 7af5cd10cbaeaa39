"""Shared test fixtures for procpulse."""

import logging
import logging.handlers
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path

import pytest
import structlog

from procpulse.controller import Controller
from procpulse.executor import TerminateOutcome
from procpulse.export import ExportService
from procpulse.sampler import ProcessRecord, Sampler, Snapshot


def make_record(
    pid: int = 123,
    name: str = "test_proc",
    cpu: float = 0.0,
    mem: int = 0,
) -> ProcessRecord:
    """Create a ProcessRecord for testing."""
    return ProcessRecord(process_id=pid, name=name, raw_cpu_percent=cpu, memory_bytes=mem)


def make_snapshot(
    cpu: float = 0.0,
    mem: int = 0,
    processes: list[ProcessRecord] | None = None,
    total: int = 16_000_000_000,
) -> Snapshot:
    """Create a Snapshot for testing."""
    return Snapshot(
        timestamp=datetime(2024, 1, 1, 12, 0, 0),
        global_cpu_percent=cpu,
        global_memory_bytes=mem,
        processes=tuple(processes or []),
        memory_total_bytes=total,
    )


class FakeProbe:
    """Deterministic stand-in for PsutilProbe.

    Each refresh pops the next scripted reading; the last one repeats.
    """

    def __init__(
        self,
        readings: list[tuple[float, int, list[ProcessRecord]]] | None = None,
        cores: int = 4,
        total: int = 16_000_000_000,
    ) -> None:
        self._readings = list(readings or [(0.0, 0, [])])
        self._cores = cores
        self._total = total
        self._current = self._readings[0]
        self.calls = 0

    def core_count(self) -> int:
        return self._cores

    def cpu_percent(self) -> float:
        self.calls += 1
        self._current = self._readings.pop(0) if len(self._readings) > 1 else self._readings[0]
        return self._current[0]

    def memory(self) -> tuple[int, int]:
        return self._current[1], self._total

    def processes(self) -> Iterator[ProcessRecord]:
        yield from self._current[2]


class RecordingExecutor:
    """Executor stub that remembers requests and returns a fixed outcome."""

    def __init__(self, outcome: TerminateOutcome = TerminateOutcome.SIGNALLED) -> None:
        self.outcome = outcome
        self.requests: list[tuple[int, bool]] = []

    def terminate(self, pid: int, force: bool = False) -> TerminateOutcome:
        self.requests.append((pid, force))
        return self.outcome


@pytest.fixture
def export_path(tmp_path: Path) -> Path:
    """Export target inside tmp_path."""
    return tmp_path / "export" / "processes.csv"


@pytest.fixture
def probe() -> FakeProbe:
    """A probe with a single idle reading."""
    return FakeProbe()


@pytest.fixture
def controller(probe: FakeProbe, export_path: Path) -> Controller:
    """Controller wired to fakes, 4 cores, default history size."""
    return Controller(
        Sampler(probe),
        ExportService(export_path),
        RecordingExecutor(),  # type: ignore[arg-type]
    )


@pytest.fixture
def log_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Point the home directory at tmp_path and undo file logging afterwards."""
    monkeypatch.setenv("HOME", str(tmp_path))
    yield tmp_path
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, logging.handlers.RotatingFileHandler):
            handler.close()
            root.removeHandler(handler)
    structlog.reset_defaults()
