"""Headless tick loop and the off-loop sampling feed."""

import asyncio
import signal
from dataclasses import dataclass

import structlog

from procpulse import logging as console
from procpulse.config import Config
from procpulse.controller import Controller, ExportRequested, Tick
from procpulse.executor import CommandExecutor
from procpulse.export import ExportService
from procpulse.sampler import PsutilProbe, Sampler, Snapshot

log = structlog.get_logger()


class SnapshotFeed:
    """Samples on a worker thread and hands snapshots to the event loop.

    The queue holds at most one snapshot; if the consumer falls behind, the
    stale snapshot is dropped in favour of the newer one. The feed never
    touches monitor state, it only produces Snapshots.
    """

    def __init__(self, sampler: Sampler, interval: float = 1.0) -> None:
        self._sampler = sampler
        self._interval = interval
        self._queue: asyncio.Queue[Snapshot] = asyncio.Queue(maxsize=1)
        self.dropped = 0

    async def run(self) -> None:
        """Produce snapshots at the configured interval until cancelled."""
        loop = asyncio.get_running_loop()
        while True:
            started = loop.time()
            try:
                snapshot = await asyncio.to_thread(self._sampler.refresh)
            except Exception as e:
                log.error("sample_failed", error=str(e))
            else:
                self._offer(snapshot)

            sleep_time = self._interval - (loop.time() - started)
            if sleep_time > 0:
                await asyncio.sleep(sleep_time)

    def _offer(self, snapshot: Snapshot) -> None:
        """Queue a snapshot, replacing one the consumer has not taken yet."""
        if self._queue.full():
            self._queue.get_nowait()
            self.dropped += 1
        self._queue.put_nowait(snapshot)

    async def get(self) -> Snapshot:
        """Wait for the next snapshot."""
        return await self._queue.get()


def build_controller(config: Config) -> Controller:
    """Wire a Controller against the real host."""
    sampler = Sampler(PsutilProbe())
    return Controller(
        sampler,
        ExportService(config.export_path),
        CommandExecutor(),
        history_size=config.sampling.history_size,
    )


@dataclass
class HeartbeatStats:
    """Running totals between heartbeat log lines."""

    ticks: int = 0
    cpu_sum: float = 0.0
    cpu_max: float = 0.0

    def add(self, cpu: float) -> None:
        """Record one tick's global CPU."""
        self.ticks += 1
        self.cpu_sum += cpu
        self.cpu_max = max(self.cpu_max, cpu)

    @property
    def avg_cpu(self) -> float:
        """Mean CPU over the ticks seen."""
        return self.cpu_sum / self.ticks if self.ticks else 0.0


class Monitor:
    """Runs the Controller on a timer without a UI.

    Each iteration:
    1. Wait for the next snapshot from the SnapshotFeed
    2. Dispatch it to the Controller as a Tick
    3. Export every export_every ticks (if set)
    4. Log a heartbeat every heartbeat_ticks ticks
    """

    def __init__(
        self,
        config: Config,
        controller: Controller,
        *,
        export_every: int | None = None,
        max_ticks: int | None = None,
    ) -> None:
        self.config = config
        self.controller = controller
        self.export_every = export_every
        self.max_ticks = max_ticks
        self.feed = SnapshotFeed(controller.sampler, config.sampling.interval)
        self._shutdown_event = asyncio.Event()
        self._feed_task: asyncio.Task | None = None

    def request_shutdown(self) -> None:
        """Stop after the current tick."""
        self._shutdown_event.set()

    def _handle_signal(self, sig: signal.Signals) -> None:
        """Handle shutdown signals."""
        log.info("signal_received", signal=sig.name)
        console.signal_received(sig.name)
        self.request_shutdown()

    async def run(self) -> None:
        """Run until shutdown is requested or max_ticks is reached."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, lambda s=sig: self._handle_signal(s))
            except (NotImplementedError, RuntimeError):
                pass  # Not on the main thread, or platform without signal support

        log.info(
            "monitor_started",
            core_count=self.controller.core_count,
            interval=self.config.sampling.interval,
        )
        console.monitor_started(self.controller.core_count, self.config.sampling.interval)

        self._feed_task = asyncio.create_task(self.feed.run())
        try:
            await self._main_loop()
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Cancel the sampling feed."""
        console.monitor_stopping()
        if self._feed_task:
            self._feed_task.cancel()
            try:
                await self._feed_task
            except asyncio.CancelledError:
                pass
            self._feed_task = None
        log.info("monitor_stopped", ticks=self.controller.state.tick_count)
        console.monitor_stopped()

    async def _next_snapshot(self) -> Snapshot | None:
        """Wait for a snapshot, or None if shutdown was requested first."""
        get_task = asyncio.ensure_future(self.feed.get())
        stop_task = asyncio.ensure_future(self._shutdown_event.wait())
        done, pending = await asyncio.wait(
            {get_task, stop_task}, return_when=asyncio.FIRST_COMPLETED
        )
        for task in pending:
            task.cancel()
        if get_task in done:
            return get_task.result()
        return None

    async def _main_loop(self) -> None:
        stats = HeartbeatStats()
        heartbeat_ticks = self.config.sampling.heartbeat_ticks

        while not self._shutdown_event.is_set():
            snapshot = await self._next_snapshot()
            if snapshot is None:
                break

            try:
                state = self.controller.dispatch(Tick(snapshot))
            except Exception as e:
                log.exception("tick_failed", error=str(e))
                console.tick_failed(str(e))
                continue

            stats.add(snapshot.global_cpu_percent)

            if self.export_every and state.tick_count % self.export_every == 0:
                result = self.controller.dispatch(ExportRequested())
                if result.ok:
                    console.export_written(str(result.path), result.rows)
                else:
                    console.export_failed(result.error or "unknown error")

            if stats.ticks >= heartbeat_ticks:
                top = state.ranked[0].record.name if state.ranked else None
                log.info(
                    "monitor_heartbeat",
                    ticks=stats.ticks,
                    avg_cpu=round(stats.avg_cpu, 1),
                    max_cpu=round(stats.cpu_max, 1),
                    processes=snapshot.process_count,
                    dropped=self.feed.dropped,
                )
                console.heartbeat(
                    ticks=stats.ticks,
                    avg_cpu=stats.avg_cpu,
                    max_cpu=stats.cpu_max,
                    memory_mb=state.memory_history[-1],
                    process_count=snapshot.process_count,
                    top_name=top,
                )
                stats = HeartbeatStats()

            if self.max_ticks is not None and state.tick_count >= self.max_ticks:
                break


async def run_monitor(
    config: Config | None = None,
    *,
    export_every: int | None = None,
    max_ticks: int | None = None,
) -> Controller:
    """Run the headless monitor until shutdown.

    Args:
        config: Optional config, loads from file if not provided
        export_every: Export every N ticks
        max_ticks: Stop after N ticks

    Returns:
        The controller, holding the final published state
    """
    if config is None:
        config = Config.load()

    console.configure(config)

    controller = build_controller(config)
    monitor = Monitor(config, controller, export_every=export_every, max_ticks=max_ticks)
    try:
        await monitor.run()
    except Exception as e:
        log.exception("monitor_crashed", error=str(e))
        raise
    return controller
