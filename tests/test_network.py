"""
Tests for the network rate tracker.
"""

import math
import threading
from collections import namedtuple

import psutil
import pytest

from hostpulse.collectors.network import NetworkRateTracker, megabits_per_second

NetIO = namedtuple("NetIO", "bytes_sent bytes_recv")

MIB = 1024 * 1024


def test_first_update_reports_zero(clock) -> None:
    tracker = NetworkRateTracker(clock=clock)

    assert tracker.update(5_000_000, 1_000_000) == (0.0, 0.0)
    assert tracker.baseline is not None
    assert tracker.baseline.received_total == 5_000_000


def test_rates_in_megabits(clock) -> None:
    tracker = NetworkRateTracker(clock=clock)
    tracker.update(0, 0)
    clock.advance(1.0)

    download, upload = tracker.update(1_000_000, 500_000)

    assert download == pytest.approx(8.0)
    assert upload == pytest.approx(4.0)


def test_baseline_is_overwritten_every_call(clock) -> None:
    tracker = NetworkRateTracker(clock=clock)
    tracker.update(0, 0)
    clock.advance(2.0)
    tracker.update(1_000_000, 0)
    clock.advance(1.0)

    download, _ = tracker.update(1_250_000, 0)

    assert download == pytest.approx(2.0)


def test_zero_elapsed_reports_zero(clock) -> None:
    tracker = NetworkRateTracker(clock=clock)
    tracker.update(0, 0)

    assert tracker.update(1_000_000, 1_000_000) == (0.0, 0.0)


def test_counter_reset_clamps_to_zero(clock) -> None:
    tracker = NetworkRateTracker(clock=clock)
    tracker.update(10_000_000, 10_000_000)
    clock.advance(1.0)

    assert tracker.update(0, 0) == (0.0, 0.0)


def test_reset_forgets_baseline(clock) -> None:
    tracker = NetworkRateTracker(clock=clock)
    tracker.update(0, 0)
    tracker.reset()
    clock.advance(1.0)

    assert tracker.update(1_000_000, 0) == (0.0, 0.0)


def test_megabits_per_second_guards() -> None:
    assert megabits_per_second(1_000_000, 0.0) == 0.0
    assert megabits_per_second(1_000_000, -1.0) == 0.0
    assert megabits_per_second(-5, 1.0) == 0.0
    assert megabits_per_second(125_000, 0.5) == pytest.approx(2.0)


def test_collect_lists_interfaces(monkeypatch: pytest.MonkeyPatch, clock) -> None:
    counters = [
        {"lo": NetIO(MIB, MIB), "eth0": NetIO(3 * MIB, 10 * MIB)},
        {"lo": NetIO(MIB, MIB), "eth0": NetIO(3 * MIB + 500_000, 10 * MIB + 1_000_000)},
    ]
    readings = iter(counters)
    monkeypatch.setattr(psutil, "net_io_counters", lambda pernic=False: next(readings))
    tracker = NetworkRateTracker(clock=clock)

    first = tracker.sample()
    clock.advance(1.0)
    second = tracker.sample()

    assert [i.name for i in first.interfaces] == ["eth0", "lo"]
    assert first.interfaces[0].received_mb == 10
    assert first.interfaces[0].transmitted_mb == 3
    assert first.download_speed_mbps == 0.0
    assert second.download_speed_mbps == pytest.approx(8.0)
    assert second.upload_speed_mbps == pytest.approx(4.0)


def test_collect_failure_leaves_baseline(monkeypatch: pytest.MonkeyPatch, clock) -> None:
    def broken(pernic=False):
        raise OSError("no /proc/net/dev")

    monkeypatch.setattr(psutil, "net_io_counters", broken)
    tracker = NetworkRateTracker(clock=clock)

    stats = tracker.sample()

    assert stats.interfaces == []
    assert stats.download_speed_mbps == 0.0
    assert tracker.baseline is None


def test_concurrent_updates_stay_finite() -> None:
    tracker = NetworkRateTracker()
    results: list[tuple[float, float]] = []
    lock = threading.Lock()

    def worker(offset: int) -> None:
        for step in range(200):
            rates = tracker.update((offset + step) * 1000, (offset + step) * 500)
            with lock:
                results.append(rates)

    threads = [threading.Thread(target=worker, args=(i * 10,)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert len(results) == 8 * 200
    for download, upload in results:
        assert download >= 0 and math.isfinite(download)
        assert upload >= 0 and math.isfinite(upload)


def test_interleaved_collects_keep_counters_paired(monkeypatch: pytest.MonkeyPatch) -> None:
    """A reader stalled inside the counter read must not install a stale baseline."""
    state = {"reads": 0}
    first_reading = threading.Event()
    second_done = threading.Event()

    def net_io_counters(pernic=False):
        state["reads"] += 1
        reads = state["reads"]
        if reads == 1:
            first_reading.set()
            second_done.wait(timeout=0.5)
        return {"eth0": NetIO(reads * 500_000, reads * 1_000_000)}

    tracker = NetworkRateTracker(clock=lambda: float(state["reads"]))
    tracker.update(0, 0)
    monkeypatch.setattr(psutil, "net_io_counters", net_io_counters)

    def second_collect() -> None:
        first_reading.wait(timeout=5)
        tracker.collect()
        second_done.set()

    thread = threading.Thread(target=second_collect)
    thread.start()
    first = tracker.collect()
    thread.join(timeout=5)
    third = tracker.collect()

    assert first.download_speed_mbps == pytest.approx(8.0)
    assert tracker.baseline is not None
    assert tracker.baseline.received_total == 3_000_000
    assert third.download_speed_mbps == pytest.approx(8.0)
