"""
Snapshot aggregator.

One collect() call runs the fixed sampling sequence:

1. open the CPU window and prime process counters
2. settle wait, close the CPU window
3. disk, network, GPU, sensor and battery probes in parallel on a thread
   pool, each bounded by the probe timeout
4. memory and process ranking, then merge into a Snapshot

collect() blocks for at least the settle interval. Async callers must run
it off the event loop (asyncio.to_thread).
"""

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Any

import psutil

from .collectors.base import Collector, describe
from .collectors.battery import BatteryProbe
from .collectors.disk import DiskEnumerator
from .collectors.gpu import GpuProbeChain
from .collectors.network import NetworkRateTracker
from .collectors.process import ProcessRanker
from .collectors.sensors import HardwareSensorScanner
from .collectors.system import CpuMemorySampler, get_host_info
from .config.schema import CollectorConfig
from .logging import get_logger
from .models.snapshot import Snapshot

logger = get_logger("aggregator")

DEFAULT_MAX_WORKERS = 8


class CollectionError(Exception):
    """Raised when the process table or memory counters cannot be read."""


class Aggregator:
    """
    Builds Snapshots from all collectors.

    The network tracker is the only state kept between calls; pass one in
    to share or inspect it. Safe to call collect() from several threads.

    Usage:
        with Aggregator(config.collector) as aggregator:
            snapshot = aggregator.collect()
    """

    def __init__(
        self,
        config: CollectorConfig | None = None,
        network_tracker: NetworkRateTracker | None = None,
        *,
        sampler: CpuMemorySampler | None = None,
        processes: ProcessRanker | None = None,
        disks: DiskEnumerator | None = None,
        gpu: GpuProbeChain | None = None,
        sensors: HardwareSensorScanner | None = None,
        battery: BatteryProbe | None = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ):
        """
        Initialize the aggregator.

        Args:
            config: Collector settings (defaults when None)
            network_tracker: Rate tracker to own
            sampler, processes, disks, gpu, sensors, battery: Replacement
                collectors; built from config when None
            max_workers: Size of the probe thread pool
        """
        self.config = config or CollectorConfig()
        cfg = self.config

        self.network = network_tracker or NetworkRateTracker()
        self.sampler = sampler or CpuMemorySampler(settle_interval=cfg.settle_interval)
        self.processes = processes or ProcessRanker(limit=cfg.process_limit)
        self.disks = disks or DiskEnumerator(exclude_fstypes=cfg.disk_exclude_fstypes)
        self.gpu = gpu or GpuProbeChain.default(cfg)
        self.sensors = sensors or HardwareSensorScanner(
            hwmon_path=cfg.hwmon_path,
            thermal_zone=cfg.thermal_zone,
            selection=cfg.sensor_selection,
        )
        self.battery = battery or BatteryProbe(power_supply_path=cfg.power_supply_path)

        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="hostpulse-probe"
        )
        # probe name -> future that outlived its deadline and is still running
        self._stalled: dict[str, Future] = {}
        self._stalled_lock = threading.Lock()

    def _probes(self) -> dict[str, Collector[Any]]:
        probes: dict[str, Collector[Any]] = {
            "disks": self.disks,
            "network": self.network,
        }
        if self.config.gpu:
            probes["gpu"] = self.gpu
        if self.config.sensors:
            probes["sensors"] = self.sensors
        if self.config.battery:
            probes["battery"] = self.battery
        return probes

    def _submit(self, name: str, collector: Collector[Any]) -> Future | None:
        """
        Schedule a probe on the pool.

        Returns None while an earlier run of the same probe is still stuck,
        so a hung probe holds at most one worker.
        """
        with self._stalled_lock:
            stalled = self._stalled.get(name)
            if stalled is not None:
                if not stalled.done():
                    logger.debug(f"{name} probe still running from an earlier collection, skipping")
                    return None
                del self._stalled[name]
        return self._executor.submit(collector.safe_collect)

    def _wait(self, futures: dict[str, tuple[Collector[Any], Future | None]]) -> dict[str, Any]:
        """Wait for all probe futures against one shared deadline."""
        deadline = time.monotonic() + self.config.probe_timeout
        results: dict[str, Any] = {}

        for name, (collector, future) in futures.items():
            if future is None:
                results[name] = collector.empty()
                continue
            try:
                results[name] = future.result(timeout=max(deadline - time.monotonic(), 0))
            except FutureTimeout:
                logger.warning(
                    f"{name} probe exceeded {self.config.probe_timeout}s, reporting empty value"
                )
                if not future.cancel():
                    with self._stalled_lock:
                        self._stalled[name] = future
                results[name] = collector.empty()
            else:
                logger.debug(f"{name}: {describe(results[name])}")

        return results

    def collect(self) -> Snapshot:
        """
        Collect one snapshot.

        Returns:
            Snapshot with every available section filled in

        Raises:
            CollectionError: If the process table or memory cannot be read
        """
        started = time.monotonic()

        window = self.sampler.open_window()
        try:
            baseline = self.processes.prime()
        except (OSError, psutil.Error) as e:
            raise CollectionError(f"Cannot enumerate processes: {e}") from e
        cpu = self.sampler.close_window(window)

        futures = {
            name: (collector, self._submit(name, collector))
            for name, collector in self._probes().items()
        }

        try:
            resources, cpu_advanced = self.sampler.build(cpu)
        except (OSError, psutil.Error) as e:
            raise CollectionError(f"Cannot read memory: {e}") from e
        processes = self.processes.rank(baseline)
        host = get_host_info()

        results = self._wait(futures)

        snapshot = Snapshot(
            host=host,
            resources=resources,
            cpu_advanced=cpu_advanced,
            gpu=results.get("gpu"),
            processes=processes,
            disks=results["disks"],
            network=results["network"],
            sensors=results.get("sensors", self.sensors.empty()),
            battery=results.get("battery"),
        )
        logger.debug(f"Collected {snapshot!r} in {time.monotonic() - started:.2f}s")
        return snapshot

    def close(self) -> None:
        """Stop the probe thread pool. Probes still running are abandoned."""
        self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "Aggregator":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Aggregator(settle={self.config.settle_interval}s, probes={list(self._probes())})"


def collect_snapshot(config: CollectorConfig | None = None) -> Snapshot:
    """Collect a single snapshot with a throwaway aggregator."""
    with Aggregator(config) as aggregator:
        return aggregator.collect()
