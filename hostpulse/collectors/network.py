"""
Network interface traffic and throughput collector.

Uses psutil.net_io_counters(pernic=True) for cumulative byte counters.
Throughput is derived from the difference against the previous sample,
which the tracker keeps for its whole lifetime.
"""

import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

import psutil

from ..models.snapshot import InterfaceTraffic, NetworkStats
from .base import Collector

MIB = 1024 * 1024
BITS_PER_MEGABIT = 1_000_000


@dataclass(frozen=True)
class RateBaseline:
    """Byte totals at the previous sample."""

    received_total: int
    transmitted_total: int
    timestamp: float


def megabits_per_second(delta_bytes: float, elapsed: float) -> float:
    """
    Convert a byte delta over a time span into Mbps.

    Negative deltas (counter reset, interface removed) count as zero.
    """
    if elapsed <= 0 or not math.isfinite(elapsed):
        return 0.0
    return max(delta_bytes, 0) * 8 / BITS_PER_MEGABIT / elapsed


class NetworkRateTracker(Collector[NetworkStats]):
    """
    Network traffic collector with a persisted rate baseline.

    The baseline is the only state shared between concurrent collections,
    so every read-modify-write of it happens under a lock.
    """

    NAME = "network"

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """
        Initialize the tracker.

        Args:
            clock: Monotonic clock in seconds
        """
        super().__init__()
        self._clock = clock
        self._lock = threading.Lock()
        self._baseline: RateBaseline | None = None

    @property
    def baseline(self) -> RateBaseline | None:
        with self._lock:
            return self._baseline

    def update(self, received_total: int, transmitted_total: int) -> tuple[float, float]:
        """
        Feed new byte totals and get the rates since the previous call.

        Args:
            received_total: Sum of received bytes over all interfaces
            transmitted_total: Sum of transmitted bytes over all interfaces

        Returns:
            (download_mbps, upload_mbps); (0, 0) on the first call
        """
        with self._lock:
            return self._advance(received_total, transmitted_total)

    def _advance(self, received_total: int, transmitted_total: int) -> tuple[float, float]:
        # Caller holds self._lock
        now = self._clock()
        previous = self._baseline
        self._baseline = RateBaseline(received_total, transmitted_total, now)

        if previous is None:
            return 0.0, 0.0

        elapsed = now - previous.timestamp
        return (
            megabits_per_second(received_total - previous.received_total, elapsed),
            megabits_per_second(transmitted_total - previous.transmitted_total, elapsed),
        )

    def reset(self) -> None:
        """Forget the baseline; the next update reports zero rates."""
        with self._lock:
            self._baseline = None

    def collect(self) -> NetworkStats:
        # Counters and their timestamp are read under one lock
        with self._lock:
            try:
                counters = psutil.net_io_counters(pernic=True)
            except OSError as e:
                self.logger.debug(f"Cannot read interface counters: {e}")
                return self.empty()

            rx_total = sum(data.bytes_recv for data in counters.values())
            tx_total = sum(data.bytes_sent for data in counters.values())
            download, upload = self._advance(rx_total, tx_total)

        interfaces = [
            InterfaceTraffic(
                name=name,
                received_mb=data.bytes_recv // MIB,
                transmitted_mb=data.bytes_sent // MIB,
            )
            for name, data in sorted(counters.items())
        ]
        return NetworkStats(
            interfaces=interfaces,
            download_speed_mbps=round(download, 3),
            upload_speed_mbps=round(upload, 3),
        )

    def sample(self) -> NetworkStats:
        """Collect interfaces and rates, never raising."""
        return self.safe_collect()

    def empty(self) -> NetworkStats:
        return NetworkStats()
