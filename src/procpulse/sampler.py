"""Host and per-process metrics sampling via psutil."""

import time
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

import psutil
import structlog

log = structlog.get_logger()


@dataclass(frozen=True)
class ProcessRecord:
    """One process as seen in a single sample.

    raw_cpu_percent is summed across cores, so it can exceed 100 on a
    saturated multi-core host.
    """

    process_id: int
    name: str
    raw_cpu_percent: float
    memory_bytes: int

    def to_dict(self) -> dict:
        """Serialize to a dictionary."""
        return {
            "process_id": self.process_id,
            "name": self.name,
            "raw_cpu_percent": self.raw_cpu_percent,
            "memory_bytes": self.memory_bytes,
        }


@dataclass(frozen=True)
class Snapshot:
    """One consistent reading of global and per-process metrics."""

    timestamp: datetime
    global_cpu_percent: float
    global_memory_bytes: int
    processes: tuple[ProcessRecord, ...] = ()
    memory_total_bytes: int = 0
    elapsed_ms: int = 0

    @classmethod
    def empty(cls) -> "Snapshot":
        """Placeholder snapshot published before the first tick."""
        return cls(timestamp=datetime.now(), global_cpu_percent=0.0, global_memory_bytes=0)

    @property
    def process_count(self) -> int:
        """Return number of processes in the snapshot."""
        return len(self.processes)


class HostProbe(Protocol):
    """OS access used by the Sampler."""

    def core_count(self) -> int: ...

    def cpu_percent(self) -> float: ...

    def memory(self) -> tuple[int, int]: ...

    def processes(self) -> Iterator[ProcessRecord]: ...


class PsutilProbe:
    """psutil-backed host probe.

    Keeps its own pid -> psutil.Process cache. psutil computes per-process
    CPU percent as a delta since the previous call on the same Process
    object, so the first reading of a newly seen process is always 0.0.
    """

    def __init__(self) -> None:
        self._procs: dict[int, psutil.Process] = {}
        self.omitted = 0  # Processes dropped during the last processes() pass
        # Prime the system-wide counter; first call always returns 0.0
        psutil.cpu_percent(interval=None)

    def core_count(self) -> int:
        """Return number of logical CPUs."""
        return psutil.cpu_count(logical=True) or 1

    def cpu_percent(self) -> float:
        """Return global CPU utilization since the previous call."""
        return psutil.cpu_percent(interval=None)

    def memory(self) -> tuple[int, int]:
        """Return (used, total) memory in bytes."""
        vm = psutil.virtual_memory()
        return vm.used, vm.total

    def processes(self) -> Iterator[ProcessRecord]:
        """Yield a record for every readable live process."""
        live = set(psutil.pids())
        for pid in list(self._procs):
            if pid not in live:
                del self._procs[pid]

        self.omitted = 0
        for pid in sorted(live):
            record = self._read(pid)
            if record is None:
                self.omitted += 1
                continue
            yield record

    def _read(self, pid: int) -> ProcessRecord | None:
        """Read one process, or None if it vanished or is unreadable."""
        try:
            proc = self._procs.get(pid)
            # is_running() also catches pid reuse (compares create time)
            if proc is None or not proc.is_running():
                proc = psutil.Process(pid)
                self._procs[pid] = proc

            with proc.oneshot():
                name = proc.name()
                try:
                    cpu = proc.cpu_percent(interval=None)
                    rss = proc.memory_info().rss
                except psutil.AccessDenied:
                    cpu, rss = 0.0, 0
        except psutil.NoSuchProcess:
            # Exited between enumeration and read (includes zombies)
            self._procs.pop(pid, None)
            log.debug("process_vanished", pid=pid)
            return None
        except psutil.AccessDenied:
            log.debug("process_access_denied", pid=pid)
            return None

        return ProcessRecord(
            process_id=pid,
            name=name or "unknown",
            raw_cpu_percent=float(cpu),
            memory_bytes=int(rss),
        )


class Sampler:
    """Produces a fresh Snapshot from the host probe on each refresh()."""

    def __init__(self, probe: HostProbe) -> None:
        self._probe = probe

    @property
    def probe(self) -> HostProbe:
        """The OS handle this sampler reads from."""
        return self._probe

    def refresh(self) -> Snapshot:
        """Query the OS and return a new Snapshot.

        Processes that vanish mid-read are omitted; this never fails the
        call as a whole.
        """
        start = time.monotonic()
        cpu = self._probe.cpu_percent()
        used, total = self._probe.memory()
        processes = tuple(self._probe.processes())
        elapsed_ms = int((time.monotonic() - start) * 1000)

        log.debug(
            "sample_collected",
            processes=len(processes),
            cpu=round(cpu, 1),
            elapsed_ms=elapsed_ms,
        )
        return Snapshot(
            timestamp=datetime.now(),
            global_cpu_percent=float(cpu),
            global_memory_bytes=int(used),
            processes=processes,
            memory_total_bytes=int(total),
            elapsed_ms=elapsed_ms,
        )
