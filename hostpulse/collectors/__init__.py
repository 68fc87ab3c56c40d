"""
Hardware telemetry collectors.
"""

from .base import Collector
from .battery import BatteryProbe
from .disk import DiskEnumerator
from .gpu import AmdProbe, GpuProbe, GpuProbeChain, IntelProbe, NvidiaProbe
from .network import NetworkRateTracker
from .process import ProcessRanker
from .sensors import HardwareSensorScanner
from .system import CpuMemorySampler

__all__ = [
    "Collector",
    "CpuMemorySampler",
    "DiskEnumerator",
    "NetworkRateTracker",
    "GpuProbe",
    "NvidiaProbe",
    "AmdProbe",
    "IntelProbe",
    "GpuProbeChain",
    "ProcessRanker",
    "HardwareSensorScanner",
    "BatteryProbe",
]
