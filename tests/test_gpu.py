"""
Tests for the GPU probe cascade.
"""

from pathlib import Path
from types import SimpleNamespace

import pytest

from hostpulse.collectors.gpu import (
    AmdProbe,
    GpuProbe,
    GpuProbeChain,
    IntelProbe,
    NvidiaProbe,
    parse_active_clock,
    rpm_to_percent,
)
from hostpulse.models.snapshot import GpuInfo, GpuVendor

MIB = 1024 * 1024


class FailingProbe(GpuProbe):
    vendor = GpuVendor.NVIDIA

    def detect(self) -> GpuInfo | None:
        raise RuntimeError("driver exploded")


class AbsentProbe(GpuProbe):
    vendor = GpuVendor.NVIDIA

    def detect(self) -> GpuInfo | None:
        return None


def amd_card(sysfs, **extra: str) -> Path:
    files = {
        "card0/device/vendor": "0x1002\n",
        "card0/device/product_name": "Radeon RX 7800 XT\n",
        "card0/device/pp_dpm_sclk": "0: 500Mhz\n1: 1200Mhz\n2: 2124Mhz *\n",
        "card0/device/hwmon/hwmon1/temp1_input": "54000\n",
        "card0/device/hwmon/hwmon1/fan1_input": "1500\n",
    }
    files.update(extra)
    return sysfs(files) / "card0"


def test_parse_active_clock() -> None:
    assert parse_active_clock("0: 500Mhz\n1: 1750Mhz *\n") == 1750
    assert parse_active_clock("0: 500MHz *\n1: 1750MHz\n") == 500


def test_parse_active_clock_without_marker() -> None:
    assert parse_active_clock("0: 500Mhz\n1: 1750Mhz\n") is None
    assert parse_active_clock("") is None
    assert parse_active_clock("*\n") is None
    assert parse_active_clock("0: fastMhz *\n") is None


def test_parse_active_clock_skips_malformed_marked_line() -> None:
    assert parse_active_clock("0: fastMhz *\n1: 1750Mhz *\n") == 1750


def test_rpm_to_percent() -> None:
    assert rpm_to_percent(1500) == 50
    assert rpm_to_percent(3000) == 100
    assert rpm_to_percent(4500) == 100
    assert rpm_to_percent(0) == 0
    assert rpm_to_percent(1000, max_rpm=2000) == 50


def test_amd_probe_reads_sysfs(sysfs) -> None:
    info = AmdProbe(card_path=amd_card(sysfs)).detect()

    assert info is not None
    assert info.vendor is GpuVendor.AMD
    assert info.name == "Radeon RX 7800 XT"
    assert info.core_clock_mhz == 2124
    assert info.temperature_c == 54
    assert info.fan_speed_percent == 50
    assert info.usage_percent == 0
    assert info.memory_total_mb == 0
    assert info.memory_clock_mhz is None


def test_amd_probe_falls_back_to_first_hwmon(sysfs) -> None:
    card = sysfs(
        {
            "card0/device/product_name": "AMD Radeon\n",
            "card0/device/hwmon/hwmon4/temp1_input": "61000\n",
        }
    ) / "card0"

    info = AmdProbe(card_path=card, hwmon_index=1).detect()

    assert info is not None
    assert info.temperature_c == 61
    assert info.fan_speed_percent is None


def test_amd_probe_defaults_name(sysfs) -> None:
    card = sysfs({"card0/device/uevent": "DRIVER=amdgpu\n"}) / "card0"

    info = AmdProbe(card_path=card).detect()

    assert info is not None
    assert info.name == "AMD GPU"
    assert info.core_clock_mhz is None


def test_amd_probe_rejects_other_vendor(sysfs) -> None:
    card = amd_card(sysfs, **{"card0/device/vendor": "0x8086\n"})

    assert AmdProbe(card_path=card).detect() is None


def test_amd_probe_absent(tmp_path: Path) -> None:
    assert AmdProbe(card_path=tmp_path / "card0").detect() is None


def test_intel_probe(sysfs) -> None:
    card = sysfs(
        {
            "card0/device/vendor": "0x8086\n",
            "card0/gt_cur_freq_mhz": "350\n",
        }
    ) / "card0"

    info = IntelProbe(card_path=card).detect()

    assert info is not None
    assert info.vendor is GpuVendor.INTEL
    assert info.name == "Intel Integrated Graphics"
    assert info.core_clock_mhz == 350
    assert info.temperature_c == 0
    assert info.fan_speed_percent is None


def test_intel_probe_gt0_frequency(sysfs) -> None:
    card = sysfs(
        {
            "card0/device/vendor": "0x8086\n",
            "card0/gt/gt0/rps_cur_freq_mhz": "1100\n",
        }
    ) / "card0"

    info = IntelProbe(card_path=card).detect()

    assert info is not None
    assert info.core_clock_mhz == 1100


def test_intel_probe_requires_device_dir(sysfs) -> None:
    card = sysfs({"card0/gt_cur_freq_mhz": "350\n"}) / "card0"

    assert IntelProbe(card_path=card).detect() is None


class FakeNVMLError(Exception):
    pass


class FakeNvml:
    """Stand-in for the pynvml module."""

    NVMLError = FakeNVMLError
    NVML_TEMPERATURE_GPU = 0
    NVML_CLOCK_GRAPHICS = 0
    NVML_CLOCK_MEM = 2

    def __init__(self, init_fails: bool = False, fan_fails: bool = False, processes: int = 0):
        self.init_fails = init_fails
        self.fan_fails = fan_fails
        self.process_count = processes
        self.shutdown_calls = 0

    def nvmlInit(self) -> None:
        if self.init_fails:
            raise FakeNVMLError("NVML Shared Library Not Found")

    def nvmlShutdown(self) -> None:
        self.shutdown_calls += 1

    def nvmlDeviceGetHandleByIndex(self, index: int) -> str:
        return f"gpu{index}"

    def nvmlDeviceGetName(self, handle: str) -> bytes:
        return b"NVIDIA GeForce RTX 4070"

    def nvmlDeviceGetUtilizationRates(self, handle: str):
        return SimpleNamespace(gpu=37, memory=12)

    def nvmlDeviceGetMemoryInfo(self, handle: str):
        return SimpleNamespace(total=12288 * MIB, used=2048 * MIB, free=10240 * MIB)

    def nvmlDeviceGetTemperature(self, handle: str, sensor: int) -> int:
        return 48

    def nvmlDeviceGetFanSpeed(self, handle: str) -> int:
        if self.fan_fails:
            raise FakeNVMLError("Not Supported")
        return 30

    def nvmlDeviceGetClockInfo(self, handle: str, clock: int) -> int:
        return 2475 if clock == self.NVML_CLOCK_GRAPHICS else 10501

    def nvmlDeviceGetGraphicsRunningProcesses(self, handle: str):
        return [
            SimpleNamespace(pid=999_999_000 + i, usedGpuMemory=(i + 1) * 100 * MIB)
            for i in range(self.process_count)
        ]


def test_nvidia_probe_reads_device_zero() -> None:
    nvml = FakeNvml(processes=7)

    info = NvidiaProbe(nvml=nvml).detect()

    assert info is not None
    assert info.vendor is GpuVendor.NVIDIA
    assert info.name == "NVIDIA GeForce RTX 4070"
    assert info.usage_percent == 37
    assert info.memory_total_mb == 12288
    assert info.memory_used_mb == 2048
    assert info.temperature_c == 48
    assert info.fan_speed_percent == 30
    assert info.core_clock_mhz == 2475
    assert info.memory_clock_mhz == 10501
    assert len(info.top_processes) == 5
    assert info.top_processes[0].memory_mb == 100
    assert info.top_processes[0].name == "unknown"
    assert nvml.shutdown_calls == 1


def test_nvidia_probe_optional_fields() -> None:
    info = NvidiaProbe(nvml=FakeNvml(fan_fails=True)).detect()

    assert info is not None
    assert info.fan_speed_percent is None
    assert info.top_processes == []


def test_nvidia_probe_init_failure_is_absent() -> None:
    nvml = FakeNvml(init_fails=True)

    assert NvidiaProbe(nvml=nvml).detect() is None
    assert nvml.shutdown_calls == 0


def test_nvidia_probe_memory_failure_is_absent(monkeypatch: pytest.MonkeyPatch) -> None:
    nvml = FakeNvml()

    def broken(handle):
        raise FakeNVMLError("GPU is lost")

    monkeypatch.setattr(nvml, "nvmlDeviceGetMemoryInfo", broken)

    assert NvidiaProbe(nvml=nvml).detect() is None
    assert nvml.shutdown_calls == 1


def test_chain_falls_through_to_amd_not_intel(sysfs) -> None:
    card = amd_card(sysfs)
    chain = GpuProbeChain([FailingProbe(), AmdProbe(card_path=card), IntelProbe(card_path=card)])

    info = chain.collect()

    assert info is not None
    assert info.vendor is GpuVendor.AMD


def test_chain_reaches_intel_when_amd_fails(sysfs) -> None:
    card = sysfs(
        {
            "card0/device/vendor": "0x8086\n",
            "card0/gt_cur_freq_mhz": "300\n",
        }
    ) / "card0"
    chain = GpuProbeChain([AbsentProbe(), AmdProbe(card_path=card), IntelProbe(card_path=card)])

    info = chain.collect()

    assert info is not None
    assert info.vendor is GpuVendor.INTEL


def test_chain_none_when_all_fail(tmp_path: Path) -> None:
    card = tmp_path / "card0"
    chain = GpuProbeChain([FailingProbe(), AmdProbe(card_path=card), IntelProbe(card_path=card)])

    assert chain.collect() is None
    assert chain.safe_collect() is None


def test_default_chain_order() -> None:
    chain = GpuProbeChain.default()

    assert [p.vendor for p in chain.probes] == [GpuVendor.NVIDIA, GpuVendor.AMD, GpuVendor.INTEL]
