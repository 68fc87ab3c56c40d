"""
Top processes collector.

Process CPU usage is a delta like system CPU usage: every process is primed
before the settle wait and read after it. The Process objects live in a
ProcessBaseline owned by one collection, so concurrent collections never
share psutil's per-object counters.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass, field

import psutil

from ..const import DEFAULT_PROCESS_LIMIT
from ..models.snapshot import ProcessInfo, ProcessStatus
from .base import Collector

MIB = 1024 * 1024

# Only these kernel states have a display status; everything else
# (disk-sleep, tracing-stop, waking, parked, ...) is reported as Unknown
STATUS_MAP = {
    psutil.STATUS_RUNNING: ProcessStatus.RUNNING,
    psutil.STATUS_SLEEPING: ProcessStatus.SLEEPING,
    psutil.STATUS_STOPPED: ProcessStatus.STOPPED,
    psutil.STATUS_ZOMBIE: ProcessStatus.ZOMBIE,
    psutil.STATUS_DEAD: ProcessStatus.DEAD,
    psutil.STATUS_IDLE: ProcessStatus.IDLE,
}


def map_status(status: str | None) -> ProcessStatus:
    """Map a psutil status string to a display status."""
    return STATUS_MAP.get(status, ProcessStatus.UNKNOWN)


def usage_sort_key(value: object) -> float:
    """
    Sort key for CPU usage that is a total order.

    NaN and non-numeric values sort below every real number.
    """
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return -math.inf
    if math.isnan(number):
        return -math.inf
    return number


def rank_processes(
    entries: Iterable[ProcessInfo], limit: int = DEFAULT_PROCESS_LIMIT
) -> list[ProcessInfo]:
    """
    Sort processes by CPU usage, highest first, and keep the top entries.

    The sort is stable: equal usage keeps enumeration order.
    """
    ranked = sorted(entries, key=lambda p: usage_sort_key(p.cpu_usage_percent), reverse=True)
    return ranked[: max(limit, 0)]


@dataclass
class ProcessBaseline:
    """Processes with primed CPU counters."""

    processes: list[psutil.Process] = field(default_factory=list)


class ProcessRanker(Collector[list[ProcessInfo]]):
    """Ranks the process table by CPU usage."""

    NAME = "process"

    def __init__(self, limit: int = DEFAULT_PROCESS_LIMIT):
        super().__init__()
        self.limit = limit

    def prime(self) -> ProcessBaseline:
        """
        Snapshot the process table and prime CPU counters.

        Raises:
            OSError: When the process table cannot be enumerated
        """
        baseline = ProcessBaseline()
        for pid in psutil.pids():
            try:
                proc = psutil.Process(pid)
                proc.cpu_percent(interval=None)
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
            baseline.processes.append(proc)
        return baseline

    def read(self, proc: psutil.Process) -> ProcessInfo | None:
        """Read one primed process; None if it vanished or denies access."""
        try:
            with proc.oneshot():
                cpu = proc.cpu_percent(interval=None)
                return ProcessInfo(
                    pid=proc.pid,
                    name=proc.name(),
                    cpu_usage_percent=round(cpu, 1) if math.isfinite(cpu) else 0.0,
                    memory_mb=round(proc.memory_info().rss / MIB, 1),
                    status=map_status(proc.status()),
                )
        except psutil.ZombieProcess:
            return ProcessInfo(
                pid=proc.pid,
                name=self._cached_name(proc),
                cpu_usage_percent=0.0,
                memory_mb=0.0,
                status=ProcessStatus.ZOMBIE,
            )
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            return None

    @staticmethod
    def _cached_name(proc: psutil.Process) -> str:
        try:
            return proc.name()
        except psutil.Error:
            return "unknown"

    def rank(self, baseline: ProcessBaseline) -> list[ProcessInfo]:
        """Read every primed process and keep the top ones by CPU usage."""
        entries = []
        for proc in baseline.processes:
            info = self.read(proc)
            if info is not None:
                entries.append(info)
        return rank_processes(entries, self.limit)

    def collect(self) -> list[ProcessInfo]:
        """
        Rank without a settle wait.

        CPU usage only reflects the time between prime and rank; the
        aggregator places its CPU settle wait in between.
        """
        return self.rank(self.prime())

    def empty(self) -> list[ProcessInfo]:
        return []
