"""
Hardware monitor sensor collector.

Walks /sys/class/hwmon/hwmon* and classifies every chip by its name file:
- coretemp, k10temp, *cpu* -> CPU temperature
- acpitz, *board*          -> motherboard temperature

Readings (raw sysfs units):
- temp1_input: millidegrees Celsius
- in1_input:   millivolts
- fan1_input:  RPM

Falls back to the first thermal zone when no CPU chip yields a temperature.
"""

from dataclasses import dataclass
from pathlib import Path

from ..config.schema import SensorSelection
from ..const import HWMON_PATH, THERMAL_ZONE_TEMP
from ..models.snapshot import SensorReadings
from .base import Collector, read_sysfs_int, read_sysfs_milli, read_sysfs_value

CPU_SENSOR_KEYWORDS = ("coretemp", "k10temp", "cpu")
BOARD_SENSOR_KEYWORDS = ("acpitz", "board")


def is_cpu_sensor(name: str) -> bool:
    """Check if a hwmon chip name belongs to a CPU temperature sensor."""
    name = name.lower()
    return any(keyword in name for keyword in CPU_SENSOR_KEYWORDS)


def is_board_sensor(name: str) -> bool:
    """Check if a hwmon chip name belongs to a motherboard sensor."""
    name = name.lower()
    return any(keyword in name for keyword in BOARD_SENSOR_KEYWORDS)


@dataclass
class HwmonEntry:
    """Raw readings of one hwmon chip."""

    name: str
    temperature: float | None = None
    fan_rpm: int | None = None
    voltage: float | None = None

    @classmethod
    def read(cls, path: Path) -> "HwmonEntry":
        return cls(
            name=read_sysfs_value(path / "name", ""),
            temperature=read_sysfs_milli(path / "temp1_input"),
            fan_rpm=read_sysfs_int(path / "fan1_input"),
            voltage=read_sysfs_milli(path / "in1_input"),
        )


def select_last(entries: list[HwmonEntry]) -> SensorReadings:
    """
    Apply entries in order, each one overwriting earlier values.

    Temperatures are assigned by every matching chip; fan and voltage by
    every chip regardless of its name, so the last enumerated chip wins
    even when it reports nothing.
    """
    readings = SensorReadings()
    for entry in entries:
        if is_cpu_sensor(entry.name):
            readings.cpu_temp_c = entry.temperature
        if is_board_sensor(entry.name):
            readings.motherboard_temp_c = entry.temperature
        readings.cpu_fan_rpm = entry.fan_rpm
        readings.cpu_voltage = entry.voltage
    return readings


def select_first(entries: list[HwmonEntry]) -> SensorReadings:
    """
    Take the first matching chip with a readable value for each field.

    Fan and voltage only come from CPU chips. Stops once every field is set.
    """
    readings = SensorReadings()
    for entry in entries:
        if is_cpu_sensor(entry.name):
            if readings.cpu_temp_c is None:
                readings.cpu_temp_c = entry.temperature
            if readings.cpu_fan_rpm is None:
                readings.cpu_fan_rpm = entry.fan_rpm
            if readings.cpu_voltage is None:
                readings.cpu_voltage = entry.voltage
        if is_board_sensor(entry.name) and readings.motherboard_temp_c is None:
            readings.motherboard_temp_c = entry.temperature
        if None not in (
            readings.cpu_temp_c,
            readings.motherboard_temp_c,
            readings.cpu_fan_rpm,
            readings.cpu_voltage,
        ):
            break
    return readings


class HardwareSensorScanner(Collector[SensorReadings]):
    """Collector for hwmon temperature, fan and voltage readings."""

    NAME = "sensors"

    def __init__(
        self,
        hwmon_path: str | Path = HWMON_PATH,
        thermal_zone: str | Path = THERMAL_ZONE_TEMP,
        selection: SensorSelection = SensorSelection.LAST,
    ):
        super().__init__()
        self.hwmon_path = Path(hwmon_path)
        self.thermal_zone = Path(thermal_zone)
        self.selection = selection

    def discover(self) -> list[HwmonEntry]:
        """Read every hwmon chip in name order; missing registry gives []."""
        try:
            paths = sorted(p for p in self.hwmon_path.iterdir() if p.is_dir())
        except OSError:
            return []
        return [HwmonEntry.read(path) for path in paths]

    def collect(self) -> SensorReadings:
        entries = self.discover()
        if self.selection is SensorSelection.FIRST:
            readings = select_first(entries)
        else:
            readings = select_last(entries)

        if readings.cpu_temp_c is None:
            readings.cpu_temp_c = read_sysfs_milli(self.thermal_zone)

        return readings

    def empty(self) -> SensorReadings:
        return SensorReadings()
