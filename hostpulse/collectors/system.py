"""
CPU, memory and host information collector.

CPU utilization is a delta between two readings of the kernel's cumulative
CPU time counters, so a valid percentage needs a settle wait between an
initial and a final read. The sampler keeps both readings in a CpuWindow
owned by the caller; concurrent collections never share counters.

Collects:
- Aggregate and per-core CPU usage
- CPU model name, frequency and core count
- Load average (1, 5, 15 minutes)
- Memory total/used (GiB) and usage percent
- Hostname and OS version
"""

import platform
import socket
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import psutil

from ..const import DEFAULT_SETTLE_INTERVAL
from ..models.snapshot import CpuAdvanced, HostInfo, ResourceUsage, percent_of
from .base import Collector, read_sysfs_value

GIB = 1024 * 1024 * 1024

CPUINFO_MODEL_KEYS = ("model name", "Hardware", "Processor", "cpu model")


def _total_time(times: Sequence[float]) -> float:
    # guest time is already accounted in user/nice on Linux
    return sum(times) - getattr(times, "guest", 0.0) - getattr(times, "guest_nice", 0.0)


def _busy_time(times: Sequence[float]) -> float:
    return _total_time(times) - getattr(times, "idle", 0.0) - getattr(times, "iowait", 0.0)


def cpu_busy_percent(before: Sequence[float], after: Sequence[float]) -> float:
    """
    Compute CPU utilization between two cpu_times readings.

    Args:
        before: Earlier psutil cpu_times namedtuple
        after: Later psutil cpu_times namedtuple of the same CPU

    Returns:
        Busy percentage in [0, 100]; 0.0 when no time elapsed
    """
    total_delta = _total_time(after) - _total_time(before)
    if total_delta <= 0:
        return 0.0
    busy_delta = _busy_time(after) - _busy_time(before)
    return round(min(max(busy_delta / total_delta * 100.0, 0.0), 100.0), 1)


def parse_cpu_model(cpuinfo: str) -> str | None:
    """
    Extract the CPU model name from /proc/cpuinfo text.

    x86 reports "model name", many ARM kernels "Hardware" or "Processor".
    """
    found: dict[str, str] = {}
    for line in cpuinfo.splitlines():
        key, sep, value = line.partition(":")
        key, value = key.strip(), value.strip()
        if sep and value and key in CPUINFO_MODEL_KEYS and key not in found:
            found[key] = value
    for key in CPUINFO_MODEL_KEYS:
        if key in found:
            return found[key]
    return None


def parse_os_release(text: str) -> str | None:
    """Get PRETTY_NAME from os-release content."""
    for line in text.splitlines():
        if line.startswith("PRETTY_NAME="):
            return line.split("=", 1)[1].strip().strip('"') or None
    return None


def get_host_info() -> HostInfo:
    """Hostname and human-readable OS version."""
    try:
        hostname = socket.gethostname()
    except OSError:
        hostname = platform.node()

    os_version = None
    os_release = read_sysfs_value(Path("/etc/os-release"))
    if os_release:
        os_version = parse_os_release(os_release)
    if not os_version:
        os_version = f"{platform.system()} {platform.release()}".strip()

    return HostInfo(hostname=hostname or "Unknown", os_version=os_version or "Unknown")


@dataclass
class CpuWindow:
    """First reading of a CPU sampling window."""

    started: float
    per_core: list[Any] = field(default_factory=list)


@dataclass
class CpuSample:
    """Result of a closed sampling window."""

    usage_percent: float = 0.0
    per_core: list[float] = field(default_factory=list)


class CpuMemorySampler(Collector[tuple[ResourceUsage, CpuAdvanced]]):
    """
    Sampler for CPU and memory usage.

    Uses psutil for counters and memory, /proc/cpuinfo for the model name.
    """

    NAME = "system"

    def __init__(
        self,
        settle_interval: float = DEFAULT_SETTLE_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        cpuinfo_path: Path = Path("/proc/cpuinfo"),
    ):
        """
        Initialize the sampler.

        Args:
            settle_interval: Seconds between the two CPU readings
            sleep: Blocking sleep function (replaced in tests)
            clock: Monotonic clock
            cpuinfo_path: Location of cpuinfo
        """
        super().__init__()
        self.settle_interval = settle_interval
        self._sleep = sleep
        self._clock = clock
        self.cpuinfo_path = cpuinfo_path

    def _read_times(self) -> list[Any]:
        try:
            return list(psutil.cpu_times(percpu=True))
        except OSError as e:
            self.logger.debug(f"Cannot read CPU times: {e}")
            return []

    def open_window(self) -> CpuWindow:
        """Take the initial CPU reading."""
        return CpuWindow(started=self._clock(), per_core=self._read_times())

    def close_window(self, window: CpuWindow) -> CpuSample:
        """
        Wait out the rest of the settle interval and take the final reading.

        Blocks the calling thread; never call from an event loop.
        """
        remaining = self.settle_interval - (self._clock() - window.started)
        if remaining > 0:
            self._sleep(remaining)

        after = self._read_times()
        per_core = [cpu_busy_percent(b, a) for b, a in zip(window.per_core, after)]
        usage = sum(per_core) / len(per_core) if per_core else 0.0
        return CpuSample(usage_percent=round(usage, 1), per_core=per_core)

    def read_cpu_name(self) -> str:
        """CPU model name, "Unknown" if not reported."""
        cpuinfo = read_sysfs_value(self.cpuinfo_path)
        name = parse_cpu_model(cpuinfo) if cpuinfo else None
        return name or platform.processor() or "Unknown"

    def read_frequency_mhz(self) -> int:
        """Current CPU frequency in MHz, 0 if unavailable."""
        try:
            freq = psutil.cpu_freq()
        except (OSError, NotImplementedError, AttributeError):
            return 0
        if freq is None:
            return 0
        return int(freq.current)

    def read_load_average(self) -> tuple[float, float, float]:
        """1/5/15 minute load averages, zeros where unsupported."""
        try:
            load1, load5, load15 = psutil.getloadavg()
        except (OSError, AttributeError):
            return 0.0, 0.0, 0.0
        return round(load1, 2), round(load5, 2), round(load15, 2)

    def read_memory(self) -> tuple[float, float, float]:
        """
        Memory totals.

        Returns:
            (total_gb, used_gb, usage_percent), used = total - available

        Raises:
            OSError: When the kernel memory counters cannot be read
        """
        mem = psutil.virtual_memory()
        total_gb = mem.total / GIB
        used_gb = (mem.total - mem.available) / GIB
        return total_gb, used_gb, percent_of(used_gb, total_gb)

    def build(self, cpu: CpuSample) -> tuple[ResourceUsage, CpuAdvanced]:
        """Combine a closed CPU window with memory, clock and load readings."""
        total_gb, used_gb, mem_percent = self.read_memory()
        load1, load5, load15 = self.read_load_average()

        resources = ResourceUsage(
            cpu_usage_percent=cpu.usage_percent,
            cpu_core_count=len(cpu.per_core),
            cpu_name=self.read_cpu_name(),
            memory_total_gb=round(total_gb, 2),
            memory_used_gb=round(used_gb, 2),
            memory_usage_percent=round(mem_percent, 1),
        )
        advanced = CpuAdvanced(
            per_core_usage=list(cpu.per_core),
            cpu_frequency_mhz=self.read_frequency_mhz(),
            load_avg_1=load1,
            load_avg_5=load5,
            load_avg_15=load15,
        )
        return resources, advanced

    def collect(self) -> tuple[ResourceUsage, CpuAdvanced]:
        """Run a full window (including the settle wait) and build the sections."""
        return self.build(self.close_window(self.open_window()))

    def empty(self) -> tuple[ResourceUsage, CpuAdvanced]:
        return ResourceUsage(), CpuAdvanced()
