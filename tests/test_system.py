"""
Tests for the CPU and memory sampler.
"""

from collections import namedtuple
from pathlib import Path

import psutil
import pytest

from hostpulse.collectors.system import (
    CpuMemorySampler,
    cpu_busy_percent,
    parse_cpu_model,
    parse_os_release,
)

CpuTimes = namedtuple("CpuTimes", "user nice system idle iowait")
GuestCpuTimes = namedtuple("GuestCpuTimes", "user nice system idle iowait guest guest_nice")
VirtualMemory = namedtuple("VirtualMemory", "total available")

GIB = 1024**3


def test_cpu_busy_percent() -> None:
    before = CpuTimes(10, 0, 10, 80, 0)
    after = CpuTimes(20, 0, 20, 160, 0)

    assert cpu_busy_percent(before, after) == 20.0


def test_cpu_busy_percent_counts_iowait_as_idle() -> None:
    before = CpuTimes(0, 0, 0, 0, 0)
    after = CpuTimes(25, 0, 0, 50, 25)

    assert cpu_busy_percent(before, after) == 25.0


def test_cpu_busy_percent_excludes_guest_time() -> None:
    # guest is already part of user
    before = GuestCpuTimes(0, 0, 0, 0, 0, 0, 0)
    after = GuestCpuTimes(50, 0, 0, 50, 0, 40, 0)

    assert cpu_busy_percent(before, after) == 50.0


def test_cpu_busy_percent_no_elapsed_time() -> None:
    times = CpuTimes(1, 2, 3, 4, 5)

    assert cpu_busy_percent(times, times) == 0.0


def test_parse_cpu_model_x86() -> None:
    cpuinfo = "processor\t: 0\nvendor_id\t: GenuineIntel\nmodel name\t: Intel(R) Core(TM) i7\n"

    assert parse_cpu_model(cpuinfo) == "Intel(R) Core(TM) i7"


def test_parse_cpu_model_arm() -> None:
    cpuinfo = "processor\t: 0\nBogoMIPS\t: 108.00\n\nHardware\t: BCM2835\nModel\t: Raspberry Pi 4\n"

    assert parse_cpu_model(cpuinfo) == "BCM2835"


def test_parse_cpu_model_missing() -> None:
    assert parse_cpu_model("processor : 0\n") is None


def test_parse_os_release() -> None:
    text = 'NAME="Debian GNU/Linux"\nPRETTY_NAME="Debian GNU/Linux 12 (bookworm)"\n'

    assert parse_os_release(text) == "Debian GNU/Linux 12 (bookworm)"
    assert parse_os_release("NAME=Arch\n") is None


@pytest.fixture
def fake_psutil(monkeypatch: pytest.MonkeyPatch):
    readings = iter(
        [
            [CpuTimes(10, 0, 10, 80, 0), CpuTimes(0, 0, 0, 100, 0)],
            [CpuTimes(20, 0, 20, 160, 0), CpuTimes(50, 0, 0, 150, 0)],
        ]
    )
    monkeypatch.setattr(psutil, "cpu_times", lambda percpu=False: next(readings))
    monkeypatch.setattr(psutil, "virtual_memory", lambda: VirtualMemory(16 * GIB, 8 * GIB))
    monkeypatch.setattr(psutil, "cpu_freq", lambda: None)
    monkeypatch.setattr(psutil, "getloadavg", lambda: (0.5, 0.25, 0.125))


def test_sampler_window(fake_psutil, clock, tmp_path: Path) -> None:
    slept: list[float] = []
    cpuinfo = tmp_path / "cpuinfo"
    cpuinfo.write_text("model name\t: Test CPU\n")
    sampler = CpuMemorySampler(
        settle_interval=0.5, sleep=slept.append, clock=clock, cpuinfo_path=cpuinfo
    )

    window = sampler.open_window()
    clock.advance(0.2)
    resources, advanced = sampler.build(sampler.close_window(window))

    # Only the remaining part of the settle interval is slept
    assert slept == [pytest.approx(0.3)]
    assert advanced.per_core_usage == [20.0, 50.0]
    assert resources.cpu_usage_percent == 35.0
    assert resources.cpu_core_count == 2
    assert resources.cpu_name == "Test CPU"
    assert advanced.cpu_frequency_mhz == 0
    assert (advanced.load_avg_1, advanced.load_avg_5, advanced.load_avg_15) == (0.5, 0.25, 0.12)


def test_sampler_skips_sleep_when_window_already_settled(fake_psutil, clock) -> None:
    slept: list[float] = []
    sampler = CpuMemorySampler(settle_interval=0.5, sleep=slept.append, clock=clock)

    window = sampler.open_window()
    clock.advance(1.0)
    sampler.close_window(window)

    assert slept == []


def test_memory_usage_half(fake_psutil) -> None:
    total_gb, used_gb, percent = CpuMemorySampler().read_memory()

    assert total_gb == 16.0
    assert used_gb == 8.0
    assert percent == 50.0


def test_no_cores_gives_zero_usage(monkeypatch: pytest.MonkeyPatch, clock) -> None:
    monkeypatch.setattr(psutil, "cpu_times", lambda percpu=False: [])
    sampler = CpuMemorySampler(settle_interval=0.1, sleep=lambda s: None, clock=clock)

    sample = sampler.close_window(sampler.open_window())

    assert sample.usage_percent == 0.0
    assert sample.per_core == []


def test_memory_failure_propagates(monkeypatch: pytest.MonkeyPatch) -> None:
    def broken():
        raise OSError("no /proc/meminfo")

    monkeypatch.setattr(psutil, "virtual_memory", broken)

    with pytest.raises(OSError):
        CpuMemorySampler().read_memory()
