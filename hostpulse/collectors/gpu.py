"""
GPU collector.

Tries vendor probes in a fixed order and reports the first GPU found:
- NVIDIA via NVML (nvidia-ml-py), device 0 only
- AMD via the DRM sysfs device (amdgpu)
- Intel via the DRM sysfs card (i915)

Every probe failure is treated as "GPU not present" and the next probe
runs. Only one vendor is ever reported.
"""

import re
from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import psutil
import pynvml

from ..config.schema import CollectorConfig
from ..const import DEFAULT_AMD_FAN_MAX_RPM, DEFAULT_GPU_PROCESS_LIMIT, DRM_CARD_PATH
from ..logging import get_logger
from ..models.snapshot import GpuInfo, GpuProcessInfo, GpuVendor
from .base import Collector, parse_int, read_sysfs_int, read_sysfs_value

logger = get_logger("collectors.gpu")

MIB = 1024 * 1024

AMD_VENDOR_ID = "0x1002"
INTEL_VENDOR_ID = "0x8086"

_UNIT_SUFFIX = re.compile(r"[A-Za-z]+$")


def parse_active_clock(text: str) -> int | None:
    """
    Get the active frequency from an amdgpu clock table (pp_dpm_sclk).

    The table lists one state per line and marks the active one with '*':

        0: 500Mhz
        1: 1750Mhz *

    Returns:
        Frequency in MHz from the first parseable marked line, or None
    """
    for line in text.splitlines():
        if "*" not in line:
            continue
        parts = line.split()
        if len(parts) < 2:
            continue
        mhz = parse_int(_UNIT_SUFFIX.sub("", parts[1]))
        if mhz is None:
            continue
        return mhz
    return None


def rpm_to_percent(rpm: int, max_rpm: int = DEFAULT_AMD_FAN_MAX_RPM) -> int:
    """Estimate fan duty from RPM against an assumed ceiling, clamped to 0..100."""
    if max_rpm <= 0 or rpm <= 0:
        return 0
    return min(int(rpm / max_rpm * 100), 100)


def vendor_matches(device_path: Path, vendor_id: str) -> bool:
    """
    Check the PCI vendor of a DRM device.

    A device without a vendor file is accepted, so stripped-down sysfs
    trees still detect.
    """
    vendor = read_sysfs_value(device_path / "vendor")
    if vendor is None:
        return True
    return vendor.lower() == vendor_id


class GpuProbe(ABC):
    """A vendor-specific GPU detection strategy."""

    vendor: GpuVendor

    @abstractmethod
    def detect(self) -> GpuInfo | None:
        """
        Probe for the GPU.

        Returns:
            GpuInfo, or None if this vendor's GPU is not present
        """

    def safe_detect(self) -> GpuInfo | None:
        """Detect, treating any failure as "not present"."""
        try:
            return self.detect()
        except Exception as e:
            logger.debug(f"{self.vendor.value} probe failed: {e}")
            return None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


def _decode(value: Any) -> str:
    # Older NVML bindings return bytes
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _process_name(pid: int) -> str:
    try:
        return psutil.Process(pid).name()
    except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
        return "unknown"


class NvidiaProbe(GpuProbe):
    """NVIDIA GPU via the NVML management library."""

    vendor = GpuVendor.NVIDIA

    def __init__(self, process_limit: int = DEFAULT_GPU_PROCESS_LIMIT, nvml: Any = pynvml):
        """
        Initialize the probe.

        Args:
            process_limit: Maximum graphics processes to report
            nvml: NVML binding module
        """
        self.process_limit = process_limit
        self.nvml = nvml

    def detect(self) -> GpuInfo | None:
        nvml = self.nvml
        try:
            nvml.nvmlInit()
        except nvml.NVMLError as e:
            logger.debug(f"NVML not available: {e}")
            return None

        try:
            handle = nvml.nvmlDeviceGetHandleByIndex(0)
            memory = nvml.nvmlDeviceGetMemoryInfo(handle)
            return GpuInfo(
                vendor=self.vendor,
                name=self._optional(lambda: _decode(nvml.nvmlDeviceGetName(handle)))
                or "Unknown GPU",
                usage_percent=self._optional(
                    lambda: int(nvml.nvmlDeviceGetUtilizationRates(handle).gpu)
                )
                or 0,
                memory_total_mb=int(memory.total) // MIB,
                memory_used_mb=int(memory.used) // MIB,
                temperature_c=self._optional(
                    lambda: int(
                        nvml.nvmlDeviceGetTemperature(handle, nvml.NVML_TEMPERATURE_GPU)
                    )
                )
                or 0,
                fan_speed_percent=self._optional(lambda: int(nvml.nvmlDeviceGetFanSpeed(handle))),
                core_clock_mhz=self._optional(
                    lambda: int(nvml.nvmlDeviceGetClockInfo(handle, nvml.NVML_CLOCK_GRAPHICS))
                ),
                memory_clock_mhz=self._optional(
                    lambda: int(nvml.nvmlDeviceGetClockInfo(handle, nvml.NVML_CLOCK_MEM))
                ),
                top_processes=self._processes(handle),
            )
        except nvml.NVMLError as e:
            logger.debug(f"NVML device 0 not readable: {e}")
            return None
        finally:
            try:
                nvml.nvmlShutdown()
            except nvml.NVMLError as e:
                logger.debug(f"NVML shutdown failed: {e}")

    def _optional(self, read):
        try:
            return read()
        except self.nvml.NVMLError:
            return None

    def _processes(self, handle: Any) -> list[GpuProcessInfo]:
        try:
            running = self.nvml.nvmlDeviceGetGraphicsRunningProcesses(handle)
        except self.nvml.NVMLError:
            return []

        processes = []
        for proc in list(running)[: self.process_limit]:
            used = getattr(proc, "usedGpuMemory", None) or 0
            processes.append(
                GpuProcessInfo(pid=int(proc.pid), name=_process_name(proc.pid), memory_mb=used // MIB)
            )
        return processes


class AmdProbe(GpuProbe):
    """AMD GPU via amdgpu sysfs files."""

    vendor = GpuVendor.AMD

    def __init__(
        self,
        card_path: str | Path = DRM_CARD_PATH,
        hwmon_index: int = 1,
        fan_max_rpm: int = DEFAULT_AMD_FAN_MAX_RPM,
    ):
        self.device_path = Path(card_path) / "device"
        self.hwmon_index = hwmon_index
        self.fan_max_rpm = fan_max_rpm

    def find_hwmon(self) -> Path | None:
        """
        Locate the device's hardware monitor directory.

        The configured index is preferred; hwmon numbering is global and
        shifts with other drivers, so the first available one is the fallback.
        """
        hwmon_root = self.device_path / "hwmon"
        preferred = hwmon_root / f"hwmon{self.hwmon_index}"
        if preferred.is_dir():
            return preferred
        try:
            candidates = sorted(p for p in hwmon_root.iterdir() if p.name.startswith("hwmon"))
        except OSError:
            return None
        return candidates[0] if candidates else None

    def detect(self) -> GpuInfo | None:
        if not self.device_path.exists():
            return None
        if not vendor_matches(self.device_path, AMD_VENDOR_ID):
            return None

        name = read_sysfs_value(self.device_path / "product_name") or "AMD GPU"

        clock_table = read_sysfs_value(self.device_path / "pp_dpm_sclk")
        core_clock = parse_active_clock(clock_table) if clock_table else None

        temperature = 0
        fan_percent = None
        hwmon = self.find_hwmon()
        if hwmon is not None:
            temp_milli = read_sysfs_int(hwmon / "temp1_input")
            if temp_milli is not None:
                temperature = temp_milli // 1000
            rpm = read_sysfs_int(hwmon / "fan1_input")
            if rpm is not None:
                fan_percent = rpm_to_percent(rpm, self.fan_max_rpm)

        # amdgpu load and VRAM are not read
        return GpuInfo(
            vendor=self.vendor,
            name=name,
            temperature_c=temperature,
            fan_speed_percent=fan_percent,
            core_clock_mhz=core_clock,
        )


class IntelProbe(GpuProbe):
    """Intel integrated graphics via i915 sysfs files."""

    vendor = GpuVendor.INTEL

    NAME = "Intel Integrated Graphics"
    FREQUENCY_FILES = ("gt_cur_freq_mhz", "gt/gt0/rps_cur_freq_mhz")

    def __init__(self, card_path: str | Path = DRM_CARD_PATH):
        self.card_path = Path(card_path)

    def detect(self) -> GpuInfo | None:
        device_path = self.card_path / "device"
        if not self.card_path.exists() or not device_path.exists():
            return None
        if not vendor_matches(device_path, INTEL_VENDOR_ID):
            return None

        core_clock = None
        for relative in self.FREQUENCY_FILES:
            core_clock = read_sysfs_int(self.card_path / relative)
            if core_clock is not None:
                break

        # Integrated GPU shares memory and the CPU thermal domain
        return GpuInfo(vendor=self.vendor, name=self.NAME, core_clock_mhz=core_clock)


class GpuProbeChain(Collector[GpuInfo | None]):
    """Ordered cascade of GPU probes; the first success wins."""

    NAME = "gpu"

    def __init__(self, probes: Iterable[GpuProbe]):
        super().__init__()
        self.probes = list(probes)

    @classmethod
    def default(cls, config: CollectorConfig | None = None) -> "GpuProbeChain":
        """Build the NVIDIA, AMD, Intel cascade."""
        config = config or CollectorConfig()
        return cls(
            [
                NvidiaProbe(process_limit=config.gpu_process_limit),
                AmdProbe(
                    card_path=config.drm_card,
                    hwmon_index=config.amd_hwmon_index,
                    fan_max_rpm=config.amd_fan_max_rpm,
                ),
                IntelProbe(card_path=config.drm_card),
            ]
        )

    def collect(self) -> GpuInfo | None:
        for probe in self.probes:
            info = probe.safe_detect()
            if info is not None:
                self.logger.debug(f"GPU detected by {probe!r}: {info.name}")
                return info
        return None

    def empty(self) -> GpuInfo | None:
        return None

    def __repr__(self) -> str:
        return f"GpuProbeChain({self.probes!r})"
