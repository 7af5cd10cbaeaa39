"""Tick orchestration.

The Controller is a reducer: every change to monitor state goes through
dispatch() with one of the event types below. Callers run dispatch() on a
single thread, so each event is handled to completion before the next.
"""

from dataclasses import dataclass
from pathlib import Path

import structlog

from procpulse.executor import CommandExecutor, TerminateOutcome
from procpulse.export import ExportError, ExportResult, ExportService
from procpulse.formatting import bytes_to_mb
from procpulse.history import HistoryBuffer
from procpulse.ranker import RankedProcess, rank
from procpulse.sampler import Sampler, Snapshot

log = structlog.get_logger()


@dataclass(frozen=True)
class Tick:
    """Timer fired. Carries a snapshot when sampling already happened off-loop."""

    snapshot: Snapshot | None = None


@dataclass(frozen=True)
class ExportRequested:
    """User asked to export the current ranking."""

    path: Path | None = None


@dataclass(frozen=True)
class TerminateRequested:
    """User asked to stop a process."""

    pid: int
    force: bool = False


Event = Tick | ExportRequested | TerminateRequested


@dataclass(frozen=True)
class MonitorState:
    """Everything the view layer reads after a tick."""

    snapshot: Snapshot
    ranked: tuple[RankedProcess, ...]
    cpu_history: tuple[float, ...]
    memory_history: tuple[float, ...]  # Used memory in MB
    tick_count: int = 0

    def top(self, count: int) -> tuple[RankedProcess, ...]:
        """Return the first count ranked processes."""
        return self.ranked[:count]


class Controller:
    """Owns the histories and the published state."""

    def __init__(
        self,
        sampler: Sampler,
        exporter: ExportService,
        executor: CommandExecutor | None = None,
        *,
        core_count: int | None = None,
        history_size: int = 100,
    ) -> None:
        self.sampler = sampler
        self.exporter = exporter
        self.executor = executor or CommandExecutor()
        # Read once; fixed for the process lifetime
        self.core_count = core_count if core_count is not None else sampler.probe.core_count()
        if self.core_count < 1:
            raise ValueError(f"core_count must be >= 1, got {self.core_count}")

        self.cpu_history = HistoryBuffer(history_size)
        self.memory_history = HistoryBuffer(history_size)
        self._state = MonitorState(
            snapshot=Snapshot.empty(),
            ranked=(),
            cpu_history=tuple(self.cpu_history.values()),
            memory_history=tuple(self.memory_history.values()),
        )

    @property
    def state(self) -> MonitorState:
        """Most recently published state."""
        return self._state

    def dispatch(self, event: Event) -> MonitorState | ExportResult | TerminateOutcome:
        """Apply one event and return its outcome."""
        if isinstance(event, Tick):
            return self._on_tick(event)
        if isinstance(event, ExportRequested):
            return self._on_export(event)
        if isinstance(event, TerminateRequested):
            return self._on_terminate(event)
        raise TypeError(f"Unknown event: {event!r}")

    def _on_tick(self, event: Tick) -> MonitorState:
        snapshot = event.snapshot if event.snapshot is not None else self.sampler.refresh()

        self.cpu_history.append(snapshot.global_cpu_percent)
        self.memory_history.append(bytes_to_mb(snapshot.global_memory_bytes))
        ranked = tuple(rank(snapshot.processes, self.core_count))

        # Published in one assignment so readers never see a half-updated state
        self._state = MonitorState(
            snapshot=snapshot,
            ranked=ranked,
            cpu_history=tuple(self.cpu_history.values()),
            memory_history=tuple(self.memory_history.values()),
            tick_count=self._state.tick_count + 1,
        )
        return self._state

    def _on_export(self, event: ExportRequested) -> ExportResult:
        target = event.path or self.exporter.path
        try:
            return self.exporter.export(self._state.ranked, target)
        except ExportError as e:
            return ExportResult(path=target, error=str(e))

    def _on_terminate(self, event: TerminateRequested) -> TerminateOutcome:
        return self.executor.terminate(event.pid, force=event.force)
