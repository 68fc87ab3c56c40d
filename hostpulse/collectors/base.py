"""
Base collector interface and sysfs helpers.

Collectors are synchronous: the aggregator runs them on worker threads.
Reading and parsing are kept apart so every parser can be tested with
plain strings instead of real hardware.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Generic, TypeVar

from ..logging import get_logger

T = TypeVar("T")


def read_sysfs_value(path: Path, default: str | None = None) -> str | None:
    """Read and strip a sysfs file, returning default on any read error."""
    try:
        return path.read_text().strip()
    except (OSError, UnicodeDecodeError):
        return default


def parse_int(text: str | None) -> int | None:
    """Parse an integer, tolerating whitespace. None for missing/malformed input."""
    if text is None:
        return None
    try:
        return int(text.strip())
    except ValueError:
        return None


def parse_float(text: str | None) -> float | None:
    """Parse a float. None for missing/malformed input."""
    if text is None:
        return None
    try:
        return float(text.strip())
    except ValueError:
        return None


def parse_milli(text: str | None) -> float | None:
    """
    Parse a milli-unit reading (millidegrees, millivolts) into base units.

    "45000" -> 45.0
    """
    value = parse_float(text)
    if value is None:
        return None
    return value / 1000.0


def read_sysfs_int(path: Path) -> int | None:
    """Read an integer from a sysfs file."""
    return parse_int(read_sysfs_value(path))


def read_sysfs_milli(path: Path) -> float | None:
    """Read a milli-unit sysfs file in base units."""
    return parse_milli(read_sysfs_value(path))


class Collector(ABC, Generic[T]):
    """
    Abstract base class for snapshot collectors.

    Each collector produces one section of the snapshot. collect() may
    raise; safe_collect() absorbs errors and returns the empty value, so a
    failing source degrades its own section only.
    """

    # Short name used for logging (override in subclasses)
    NAME: str = "unknown"

    def __init__(self) -> None:
        self.logger = get_logger(f"collectors.{self.NAME}")

    @abstractmethod
    def collect(self) -> T:
        """
        Collect this section.

        Returns:
            The section value
        """

    @abstractmethod
    def empty(self) -> T:
        """Value reported when the source is absent or failed."""

    def safe_collect(self) -> T:
        """Collect, returning empty() instead of raising."""
        try:
            return self.collect()
        except Exception as e:
            self.logger.debug(f"{self.NAME} collection failed: {e}")
            return self.empty()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


def describe(value: Any) -> str:
    """Short representation of a collected value for debug logs."""
    text = repr(value)
    return text if len(text) <= 120 else f"{text[:117]}..."
