"""
Battery collector.

Reads the first battery from /sys/class/power_supply/ (BAT0, BAT1, ...).
Drivers report either energy (uWh, uW) or charge (uAh, uA) counters;
both families are supported, with capacity (%) as the last resort.

Collects:
- Charge percentage
- Charging state (Charging or Full)
- Time to empty in minutes while discharging
- Health (full capacity relative to design capacity)
"""

from dataclasses import dataclass
from pathlib import Path

from ..const import POWER_SUPPLY_PATH
from ..models.snapshot import BatteryInfo
from .base import Collector, read_sysfs_int, read_sysfs_value

CHARGING_STATES = ("charging", "full")


@dataclass
class BatteryReading:
    """Raw power_supply attributes of one battery."""

    status: str = "Unknown"
    capacity: int | None = None
    energy_now: int | None = None
    energy_full: int | None = None
    energy_full_design: int | None = None
    power_now: int | None = None
    charge_now: int | None = None
    charge_full: int | None = None
    charge_full_design: int | None = None
    current_now: int | None = None
    time_to_empty_now: int | None = None

    @classmethod
    def read(cls, path: Path) -> "BatteryReading":
        """Read all attributes from a power_supply device directory."""
        counters = {
            name: read_sysfs_int(path / name)
            for name in (
                "capacity",
                "energy_now",
                "energy_full",
                "energy_full_design",
                "power_now",
                "charge_now",
                "charge_full",
                "charge_full_design",
                "current_now",
                "time_to_empty_now",
            )
        }
        return cls(status=read_sysfs_value(path / "status", "Unknown"), **counters)


def ratio(part: int | None, whole: int | None) -> float | None:
    """part/whole, None when either is missing or whole is not positive."""
    if part is None or whole is None or whole <= 0:
        return None
    return part / whole


def charge_fraction(reading: BatteryReading) -> float:
    """State of charge in [0, 1]."""
    fraction = ratio(reading.energy_now, reading.energy_full)
    if fraction is None:
        fraction = ratio(reading.charge_now, reading.charge_full)
    if fraction is None:
        fraction = reading.capacity / 100 if reading.capacity is not None else 0.0
    return min(max(fraction, 0.0), 1.0)


def health_fraction(reading: BatteryReading) -> float:
    """Full capacity relative to design capacity; 1.0 when not reported."""
    fraction = ratio(reading.energy_full, reading.energy_full_design)
    if fraction is None:
        fraction = ratio(reading.charge_full, reading.charge_full_design)
    if fraction is None:
        return 1.0
    return max(fraction, 0.0)


def is_charging(status: str) -> bool:
    return status.strip().lower() in CHARGING_STATES


def minutes_to_empty(reading: BatteryReading) -> int | None:
    """
    Estimated minutes until empty at the current discharge rate.

    Returns:
        Minutes, or None while charging or when no rate is reported
    """
    if is_charging(reading.status):
        return None

    hours = ratio(reading.energy_now, reading.power_now)
    if hours is None:
        hours = ratio(reading.charge_now, reading.current_now)
    if hours is not None:
        return int(hours * 60)

    if reading.time_to_empty_now is not None and reading.time_to_empty_now > 0:
        return reading.time_to_empty_now // 60
    return None


def build_battery_info(reading: BatteryReading) -> BatteryInfo:
    return BatteryInfo(
        percentage=round(charge_fraction(reading) * 100, 1),
        is_charging=is_charging(reading.status),
        time_remaining_minutes=minutes_to_empty(reading),
        health_percent=round(health_fraction(reading) * 100, 1),
    )


class BatteryProbe(Collector[BatteryInfo | None]):
    """Collector for the first battery."""

    NAME = "battery"

    def __init__(self, power_supply_path: str | Path = POWER_SUPPLY_PATH):
        super().__init__()
        self.power_supply_path = Path(power_supply_path)

    def discover(self) -> Path | None:
        """
        Find the first battery device.

        Returns:
            Device directory, or None if there is no battery
        """
        try:
            devices = sorted(self.power_supply_path.iterdir())
        except OSError:
            return None

        for device in devices:
            device_type = read_sysfs_value(device / "type", "")
            if device_type.lower() == "battery":
                return device
        return None

    def collect(self) -> BatteryInfo | None:
        device = self.discover()
        if device is None:
            return None
        return build_battery_info(BatteryReading.read(device))

    def empty(self) -> BatteryInfo | None:
        return None
