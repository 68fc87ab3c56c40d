"""
Disk space collector.

Reads usage of mounted partitions via psutil.

Collects per mount:
- Total size (GiB)
- Used space (GiB), computed as total - free
- Usage percentage (%), 0 when the volume reports no size
"""

from collections.abc import Iterable

import psutil

from ..models.snapshot import DiskInfo, percent_of
from .base import Collector

GIB = 1024 * 1024 * 1024


def build_disk_info(device: str, mountpoint: str, total: int, free: int) -> DiskInfo:
    """
    Build a DiskInfo from raw byte counts.

    Args:
        device: Device path as reported by the OS (e.g. /dev/sda1)
        mountpoint: Mount point
        total: Total size in bytes
        free: Space available to unprivileged users in bytes

    Returns:
        DiskInfo with GiB values
    """
    total_gb = total / GIB
    used_gb = max(total - free, 0) / GIB
    return DiskInfo(
        name=device,
        total_gb=round(total_gb, 2),
        used_gb=round(used_gb, 2),
        usage_percent=round(percent_of(used_gb, total_gb), 1),
        mount_point=mountpoint,
    )


class DiskEnumerator(Collector[list[DiskInfo]]):
    """Enumerates mounted volumes."""

    NAME = "disk"

    def __init__(self, exclude_fstypes: Iterable[str] = ()):
        super().__init__()
        self.exclude_fstypes = {fstype.lower() for fstype in exclude_fstypes}

    def collect(self) -> list[DiskInfo]:
        try:
            partitions = psutil.disk_partitions(all=False)
        except OSError as e:
            self.logger.debug(f"Cannot enumerate partitions: {e}")
            return []

        disks: list[DiskInfo] = []
        seen: set[str] = set()

        for partition in partitions:
            if partition.fstype.lower() in self.exclude_fstypes:
                continue
            # Bind mounts show the same mountpoint more than once
            if partition.mountpoint in seen:
                continue
            seen.add(partition.mountpoint)

            try:
                usage = psutil.disk_usage(partition.mountpoint)
            except OSError as e:
                self.logger.debug(f"Skipping {partition.mountpoint}: {e}")
                continue

            disks.append(
                build_disk_info(partition.device, partition.mountpoint, usage.total, usage.free)
            )

        return disks

    def empty(self) -> list[DiskInfo]:
        return []
