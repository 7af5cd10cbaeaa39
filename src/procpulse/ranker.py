"""Per-process CPU normalization and ordering."""

from collections.abc import Iterable
from typing import NamedTuple

from procpulse.sampler import ProcessRecord


class RankedProcess(NamedTuple):
    """A process record with its CPU share normalized across cores."""

    record: ProcessRecord
    normalized_cpu_percent: float


def normalize_cpu(raw_cpu_percent: float, core_count: int) -> float:
    """Divide a summed-across-cores CPU percent by the logical core count."""
    return raw_cpu_percent / core_count


def rank(processes: Iterable[ProcessRecord], core_count: int) -> list[RankedProcess]:
    """Order processes by raw CPU, busiest first.

    The sort is stable: processes with equal CPU keep their input order.
    Every input process appears in the result; taking a top-K is up to the
    caller.
    """
    if core_count < 1:
        raise ValueError(f"core_count must be >= 1, got {core_count}")

    # sorted() stays stable with reverse=True
    ordered = sorted(processes, key=lambda p: p.raw_cpu_percent, reverse=True)
    return [RankedProcess(p, normalize_cpu(p.raw_cpu_percent, core_count)) for p in ordered]
