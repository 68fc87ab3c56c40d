"""
Data models for hardware snapshots.
"""

from .snapshot import (
    BatteryInfo,
    CpuAdvanced,
    DiskInfo,
    GpuInfo,
    GpuProcessInfo,
    GpuVendor,
    HostInfo,
    InterfaceTraffic,
    NetworkStats,
    ProcessInfo,
    ProcessStatus,
    ResourceUsage,
    SensorReadings,
    Snapshot,
    percent_of,
)

__all__ = [
    "Snapshot",
    "HostInfo",
    "ResourceUsage",
    "CpuAdvanced",
    "GpuInfo",
    "GpuProcessInfo",
    "GpuVendor",
    "ProcessInfo",
    "ProcessStatus",
    "DiskInfo",
    "InterfaceTraffic",
    "NetworkStats",
    "SensorReadings",
    "BatteryInfo",
    "percent_of",
]
