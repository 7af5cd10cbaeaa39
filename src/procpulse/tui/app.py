"""Interactive dashboard for procpulse.

The dashboard is only a view: it feeds timer ticks and key commands into the
Controller and redraws from the published MonitorState.
"""

import asyncio
import time
from typing import Any

import structlog
from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Horizontal
from textual.css.query import NoMatches
from textual.screen import Screen
from textual.widgets import DataTable, Footer, Label, Static

from procpulse.config import Config
from procpulse.controller import (
    Controller,
    ExportRequested,
    MonitorState,
    TerminateRequested,
    Tick,
)
from procpulse.executor import TerminateOutcome
from procpulse.formatting import format_duration, format_mb, format_percent, truncate
from procpulse.monitor import SnapshotFeed, build_controller
from procpulse.ranker import RankedProcess
from procpulse.sampler import Snapshot
from procpulse.theme import Palette, Theme, palette_for
from procpulse.tui.sparkline import Sparkline

log = structlog.get_logger()


def gauge_bar(percent: float, width: int = 20) -> str:
    """Render a percentage as a fixed-width bar."""
    filled = int(max(0.0, min(100.0, percent)) / 100 * width)
    return "█" * filled + "░" * (width - filled)


def memory_percent(snapshot: Snapshot) -> float:
    """Used memory as a percentage of total, 0 if total is unknown."""
    if snapshot.memory_total_bytes <= 0:
        return 0.0
    return snapshot.global_memory_bytes / snapshot.memory_total_bytes * 100


class HeaderBar(Static):
    """Header showing CPU and memory gauges with history sparklines."""

    DEFAULT_CSS = """
    HeaderBar {
        height: auto;
        padding: 0 1;
        border: solid $primary;
        border-title-align: left;
    }

    HeaderBar Horizontal {
        height: 1;
        width: 100%;
    }

    HeaderBar .gauge {
        width: 1fr;
    }

    HeaderBar #gauge-stats {
        width: auto;
        text-align: right;
    }
    """

    def __init__(self, sparkline_height: int = 2, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._sparkline_height = sparkline_height

    def compose(self) -> ComposeResult:
        """Create header layout."""
        yield Horizontal(
            Label("", id="gauge-cpu", classes="gauge"),
            Label("", id="gauge-stats"),
        )
        yield Sparkline(height=self._sparkline_height, max_value=100, id="cpu-spark")
        yield Horizontal(Label("", id="gauge-mem", classes="gauge"))
        yield Sparkline(height=self._sparkline_height, max_value=None, id="mem-spark")

    def on_mount(self) -> None:
        """Set border title."""
        self.border_title = "SYSTEM"

    def apply_palette(self, palette: Palette) -> None:
        """Recolor sparklines and border."""
        self.styles.border = ("solid", palette.border)
        try:
            self.query_one("#cpu-spark", Sparkline).bar_color = palette.cpu_line
            self.query_one("#mem-spark", Sparkline).bar_color = palette.memory_line
        except NoMatches:
            pass

    def update_from_state(self, state: MonitorState, core_count: int, uptime: float) -> None:
        """Redraw gauges and sparklines from the published state."""
        snap = state.snapshot
        mem_pct = memory_percent(snap)
        try:
            self.query_one("#gauge-cpu", Label).update(
                f"CPU {gauge_bar(snap.global_cpu_percent)} {snap.global_cpu_percent:6.2f}%"
            )
            self.query_one("#gauge-mem", Label).update(
                f"MEM {gauge_bar(mem_pct)} {format_mb(snap.global_memory_bytes)} MB"
            )
            self.query_one("#gauge-stats", Label).update(
                f"{snap.process_count} procs   {core_count} cores   "
                f"#{state.tick_count}   {format_duration(uptime)}"
            )
            self.query_one("#cpu-spark", Sparkline).set_data(state.cpu_history)
            mem_spark = self.query_one("#mem-spark", Sparkline)
            if snap.memory_total_bytes:
                mem_spark.max_value = snap.memory_total_bytes / 1_000_000
            mem_spark.set_data(state.memory_history)
        except NoMatches:
            pass


class ProcessTable(Static):
    """Top processes by CPU, normalized across cores.

    The highlighted row survives redraws as long as its PID is still listed.
    """

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $primary;
        border-title-align: left;
    }

    ProcessTable DataTable {
        width: 100%;
        height: 100%;
    }
    """

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._table: DataTable | None = None
        self._row_pids: list[int] = []

    def compose(self) -> ComposeResult:
        """Create the process table using DataTable."""
        yield DataTable(id="process-table", zebra_stripes=True, cursor_type="row")

    def on_mount(self) -> None:
        """Set up table columns."""
        self.border_title = "TOP PROCESSES"
        self._table = self.query_one("#process-table", DataTable)
        self._table.add_columns("PID", "Process", "CPU %", "Memory (MB)")

    def selected_pid(self) -> int | None:
        """PID of the highlighted row, if any."""
        if self._table is None or not self._row_pids:
            return None
        row = self._table.cursor_row
        if 0 <= row < len(self._row_pids):
            return self._row_pids[row]
        return None

    def update_rows(self, ranked: tuple[RankedProcess, ...], palette: Palette) -> None:
        """Replace table contents with the given ranking."""
        if self._table is None:
            return

        keep = self.selected_pid()
        self._table.clear()
        self._row_pids = []
        for r in ranked:
            rec = r.record
            cpu_style = palette.critical if r.normalized_cpu_percent >= 50 else ""
            self._table.add_row(
                Text(str(rec.process_id), style=palette.muted),
                truncate(rec.name, 40),
                Text(format_percent(r.normalized_cpu_percent), style=cpu_style),
                format_mb(rec.memory_bytes),
            )
            self._row_pids.append(rec.process_id)

        if keep is not None and keep in self._row_pids:
            self._table.move_cursor(row=self._row_pids.index(keep))


class GraphScreen(Screen):
    """Full-size CPU and memory history charts."""

    BINDINGS = [
        ("escape", "app.pop_screen", "Back"),
        ("b", "app.pop_screen", "Back"),
    ]

    DEFAULT_CSS = """
    GraphScreen {
        layout: vertical;
        padding: 1 2;
    }

    GraphScreen Label {
        margin-top: 1;
    }
    """

    def compose(self) -> ComposeResult:
        """Create the chart layout."""
        yield Label("CPU Usage", id="graph-cpu-title")
        yield Sparkline(height=4, max_value=100, id="graph-cpu")
        yield Label("Memory Usage", id="graph-mem-title")
        yield Sparkline(height=4, max_value=None, id="graph-mem")
        yield Footer()

    def update_from_state(self, state: MonitorState, palette: Palette) -> None:
        """Redraw charts from the published state."""
        snap = state.snapshot
        try:
            self.query_one("#graph-cpu-title", Label).update(
                f"CPU Usage: {snap.global_cpu_percent:.2f}%"
            )
            self.query_one("#graph-mem-title", Label).update(
                f"Memory Usage: {format_mb(snap.global_memory_bytes)} MB"
            )
            cpu = self.query_one("#graph-cpu", Sparkline)
            cpu.bar_color = palette.cpu_line
            cpu.set_data(state.cpu_history)
            mem = self.query_one("#graph-mem", Sparkline)
            mem.bar_color = palette.memory_line
            if snap.memory_total_bytes:
                mem.max_value = snap.memory_total_bytes / 1_000_000
            mem.set_data(state.memory_history)
        except NoMatches:
            pass


class ProcPulseApp(App):
    """Real-time CPU and memory dashboard."""

    CSS = """
    Screen {
        layout: vertical;
    }

    #main-area {
        height: 1fr;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("e", "export", "Export"),
        ("k", "terminate", "Kill"),
        ("g", "graph", "Graph"),
        ("t", "cycle_theme", "Theme"),
    ]

    def __init__(self, config: Config | None = None, controller: Controller | None = None):
        super().__init__()
        self.config = config or Config.load()
        self.controller = controller or build_controller(self.config)
        self.color_theme = Theme(self.config.tui.theme)
        self._feed = SnapshotFeed(self.controller.sampler, self.config.sampling.interval)
        self._feed_task: asyncio.Task | None = None
        self._consume_task: asyncio.Task | None = None
        self._graph_screen: GraphScreen | None = None
        self._started = time.monotonic()

    @property
    def palette(self) -> Palette:
        """Palette for the current theme."""
        return palette_for(self.color_theme)

    def compose(self) -> ComposeResult:
        """Create the TUI layout."""
        yield HeaderBar(sparkline_height=self.config.tui.sparkline_height, id="header")
        yield ProcessTable(id="main-area")
        yield Footer()

    def on_mount(self) -> None:
        """Apply theme and start sampling."""
        self.title = "procpulse"
        self.sub_title = f"{self.controller.core_count} cores"
        self._apply_theme()
        self._feed_task = asyncio.create_task(self._feed.run())
        self._consume_task = asyncio.create_task(self._consume_feed())

    async def on_unmount(self) -> None:
        """Stop background tasks."""
        await self.stop_sampling()

    async def stop_sampling(self) -> None:
        """Cancel the feed and consumer tasks and wait for them to finish."""
        for task in (self._consume_task, self._feed_task):
            if task and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._consume_task = None
        self._feed_task = None

    async def _consume_feed(self) -> None:
        """Turn each sampled snapshot into a Tick."""
        while True:
            snapshot = await self._feed.get()
            try:
                self.apply_tick(snapshot)
            except Exception as e:
                log.exception("tick_failed", error=str(e))
                self.notify(f"Tick failed: {e}", severity="error")

    def apply_tick(self, snapshot: Snapshot | None = None) -> MonitorState:
        """Dispatch a Tick and redraw."""
        state = self.controller.dispatch(Tick(snapshot))
        self._render_state(state)
        return state

    def _render_state(self, state: MonitorState) -> None:
        try:
            self.query_one("#header", HeaderBar).update_from_state(
                state, self.controller.core_count, time.monotonic() - self._started
            )
            self.query_one("#main-area", ProcessTable).update_rows(
                state.top(self.config.tui.top_count), self.palette
            )
        except NoMatches:
            pass
        if self._graph_screen is not None and self.screen is self._graph_screen:
            self._graph_screen.update_from_state(state, self.palette)

    def _apply_theme(self) -> None:
        palette = self.palette
        self.theme = palette.textual_theme
        try:
            self.query_one("#header", HeaderBar).apply_palette(palette)
        except NoMatches:
            pass

    def action_export(self) -> None:
        """Export the current ranking."""
        result = self.controller.dispatch(ExportRequested())
        if result.ok:
            self.notify(f"Exported {result.rows} processes to {result.path}")
        else:
            self.notify(f"Export failed: {result.error}", severity="error")

    def action_terminate(self) -> None:
        """Terminate the highlighted process."""
        try:
            pid = self.query_one("#main-area", ProcessTable).selected_pid()
        except NoMatches:
            pid = None
        if pid is None:
            self.notify("No process selected", severity="warning")
            return

        outcome = self.controller.dispatch(TerminateRequested(pid))
        if outcome is TerminateOutcome.SIGNALLED:
            self.notify(f"Sent SIGTERM to PID {pid}")
        elif outcome is TerminateOutcome.NOT_FOUND:
            self.notify(f"PID {pid} already exited")
        else:
            self.notify(f"Permission denied for PID {pid}", severity="error")

    def action_graph(self) -> None:
        """Show the full-size history charts."""
        if self._graph_screen is None:
            self._graph_screen = GraphScreen()
        if self.screen is not self._graph_screen:
            self.push_screen(self._graph_screen)
            self.call_after_refresh(
                self._graph_screen.update_from_state, self.controller.state, self.palette
            )

    def action_cycle_theme(self) -> None:
        """Switch to the next theme."""
        self.color_theme = self.color_theme.next()
        self._apply_theme()
        self.notify(f"Theme: {self.color_theme.value}")


def run_tui(config: Config | None = None) -> None:
    """Run the TUI application."""
    from procpulse import logging as console

    config = config or Config.load()
    if not config.config_path.exists():
        config.save()
        console.config_created(str(config.config_path))
    console.configure(config, source="tui")

    app = ProcPulseApp(config)
    app.run()
