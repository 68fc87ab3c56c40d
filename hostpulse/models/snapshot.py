"""
Snapshot data model.

A Snapshot is the normalized result of one collection call. Every record
serializes to plain JSON types via to_dict(), using the field names the
dashboard expects.
"""

import json
import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class GpuVendor(Enum):
    """GPU vendors, in probe order."""

    NVIDIA = "NVIDIA"
    AMD = "AMD"
    INTEL = "Intel"


class ProcessStatus(Enum):
    """Display status of a process."""

    RUNNING = "Running"
    SLEEPING = "Sleeping"
    STOPPED = "Stopped"
    ZOMBIE = "Zombie"
    DEAD = "Dead"
    IDLE = "Idle"
    UNKNOWN = "Unknown"


def percent_of(used: float, total: float) -> float:
    """
    Compute used/total as a percentage.

    Returns 0.0 when total is zero (or not a positive finite number),
    never a division error or NaN.
    """
    if not total or total <= 0 or not math.isfinite(total):
        return 0.0
    return used / total * 100.0


@dataclass
class HostInfo:
    """Static host description."""

    hostname: str = "Unknown"
    os_version: str = "Unknown"

    def to_dict(self) -> dict[str, Any]:
        return {"hostname": self.hostname, "os_version": self.os_version}


@dataclass
class ResourceUsage:
    """Aggregate CPU and memory usage."""

    cpu_usage_percent: float = 0.0
    cpu_core_count: int = 0
    cpu_name: str = "Unknown"
    memory_total_gb: float = 0.0
    memory_used_gb: float = 0.0
    memory_usage_percent: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "cpu_usage_percent": self.cpu_usage_percent,
            "cpu_core_count": self.cpu_core_count,
            "cpu_name": self.cpu_name,
            "memory_total_gb": self.memory_total_gb,
            "memory_used_gb": self.memory_used_gb,
            "memory_usage_percent": self.memory_usage_percent,
        }


@dataclass
class CpuAdvanced:
    """Per-core usage, clock and load averages."""

    per_core_usage: list[float] = field(default_factory=list)
    cpu_frequency_mhz: int = 0
    load_avg_1: float = 0.0
    load_avg_5: float = 0.0
    load_avg_15: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "per_core_usage": list(self.per_core_usage),
            "cpu_frequency_mhz": self.cpu_frequency_mhz,
            "load_avg_1": self.load_avg_1,
            "load_avg_5": self.load_avg_5,
            "load_avg_15": self.load_avg_15,
        }


@dataclass
class GpuProcessInfo:
    """A process holding GPU memory."""

    pid: int
    name: str
    memory_mb: int

    def to_dict(self) -> dict[str, Any]:
        return {"pid": self.pid, "name": self.name, "memory_mb": self.memory_mb}


@dataclass
class GpuInfo:
    """State of the single reported GPU."""

    vendor: GpuVendor
    name: str
    usage_percent: int = 0
    memory_total_mb: int = 0
    memory_used_mb: int = 0
    temperature_c: int = 0
    fan_speed_percent: int | None = None
    core_clock_mhz: int | None = None
    memory_clock_mhz: int | None = None
    top_processes: list[GpuProcessInfo] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "vendor": self.vendor.value,
            "name": self.name,
            "usage_percent": self.usage_percent,
            "memory_total_mb": self.memory_total_mb,
            "memory_used_mb": self.memory_used_mb,
            "temperature_c": self.temperature_c,
            "fan_speed_percent": self.fan_speed_percent,
            "core_clock_mhz": self.core_clock_mhz,
            "memory_clock_mhz": self.memory_clock_mhz,
            "top_processes": [p.to_dict() for p in self.top_processes],
        }


@dataclass
class ProcessInfo:
    """One row of the top-processes table."""

    pid: int
    name: str
    cpu_usage_percent: float
    memory_mb: float
    status: ProcessStatus = ProcessStatus.UNKNOWN

    def to_dict(self) -> dict[str, Any]:
        return {
            "pid": self.pid,
            "name": self.name,
            "cpu_usage_percent": self.cpu_usage_percent,
            "memory_mb": self.memory_mb,
            "status": self.status.value,
        }


@dataclass
class DiskInfo:
    """Usage of one mounted volume."""

    name: str
    total_gb: float
    used_gb: float
    usage_percent: float
    mount_point: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "total_gb": self.total_gb,
            "used_gb": self.used_gb,
            "usage_percent": self.usage_percent,
            "mount_point": self.mount_point,
        }


@dataclass
class InterfaceTraffic:
    """Cumulative traffic of one network interface."""

    name: str
    received_mb: int
    transmitted_mb: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "received_mb": self.received_mb,
            "transmitted_mb": self.transmitted_mb,
        }


@dataclass
class NetworkStats:
    """Interfaces plus derived throughput (megabits per second)."""

    interfaces: list[InterfaceTraffic] = field(default_factory=list)
    download_speed_mbps: float = 0.0
    upload_speed_mbps: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "interfaces": [i.to_dict() for i in self.interfaces],
            "download_speed_mbps": self.download_speed_mbps,
            "upload_speed_mbps": self.upload_speed_mbps,
        }


@dataclass
class SensorReadings:
    """Hardware monitor readings; every field is optional."""

    cpu_temp_c: float | None = None
    motherboard_temp_c: float | None = None
    cpu_fan_rpm: int | None = None
    cpu_voltage: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "cpu_temp_c": self.cpu_temp_c,
            "motherboard_temp_c": self.motherboard_temp_c,
            "cpu_fan_rpm": self.cpu_fan_rpm,
            "cpu_voltage": self.cpu_voltage,
        }


@dataclass
class BatteryInfo:
    """Charge and health of the first battery."""

    percentage: float
    is_charging: bool
    time_remaining_minutes: int | None = None
    health_percent: float = 100.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "percentage": self.percentage,
            "is_charging": self.is_charging,
            "time_remaining_minutes": self.time_remaining_minutes,
            "health_percent": self.health_percent,
        }


@dataclass
class Snapshot:
    """Root aggregate produced by one collection call."""

    host: HostInfo = field(default_factory=HostInfo)
    resources: ResourceUsage = field(default_factory=ResourceUsage)
    cpu_advanced: CpuAdvanced = field(default_factory=CpuAdvanced)
    gpu: GpuInfo | None = None
    processes: list[ProcessInfo] = field(default_factory=list)
    disks: list[DiskInfo] = field(default_factory=list)
    network: NetworkStats = field(default_factory=NetworkStats)
    sensors: SensorReadings = field(default_factory=SensorReadings)
    battery: BatteryInfo | None = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        """Get the snapshot as a JSON-compatible dict."""
        return {
            "host": self.host.to_dict(),
            "resources": self.resources.to_dict(),
            "cpu_advanced": self.cpu_advanced.to_dict(),
            "gpu": self.gpu.to_dict() if self.gpu else None,
            "processes": [p.to_dict() for p in self.processes],
            "disks": [d.to_dict() for d in self.disks],
            "network": self.network.to_dict(),
            "sensors": self.sensors.to_dict(),
            "battery": self.battery.to_dict() if self.battery else None,
            "timestamp": self.timestamp.isoformat(timespec="seconds"),
        }

    def to_json(self, indent: int | None = None) -> str:
        """Serialize the snapshot to a JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    def __repr__(self) -> str:
        gpu = self.gpu.vendor.value if self.gpu else "none"
        return (
            f"Snapshot({self.host.hostname!r}, cpu={self.resources.cpu_usage_percent:.1f}%, "
            f"gpu={gpu}, processes={len(self.processes)}, disks={len(self.disks)})"
        )
