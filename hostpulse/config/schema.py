"""
Configuration schema with dataclasses for validation and type safety.

Each section is built from its parsed block via from_block(); a missing
block yields the defaults.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..const import (
    DEFAULT_AMD_FAN_MAX_RPM,
    DEFAULT_GPU_PROCESS_LIMIT,
    DEFAULT_MQTT_KEEPALIVE,
    DEFAULT_MQTT_PORT,
    DEFAULT_PROBE_TIMEOUT,
    DEFAULT_PROCESS_LIMIT,
    DEFAULT_PUBLISH_INTERVAL,
    DEFAULT_QOS,
    DEFAULT_SETTLE_INTERVAL,
    DRM_CARD_PATH,
    HWMON_PATH,
    POWER_SUPPLY_PATH,
    THERMAL_ZONE_TEMP,
)
from .parser import Block, ConfigDocument

DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class RetainMode(Enum):
    """MQTT retain message modes."""

    OFF = "off"  # Don't retain any messages
    ONLINE = "online"  # Only retain availability (LWT) status
    FULL = "full"  # Retain all messages (default)


class SensorSelection(Enum):
    """
    How the hardware monitor scan picks values when several entries match.

    LAST keeps the historical behavior: every matching entry overwrites the
    temperatures, and fan/voltage come from whichever entry is enumerated
    last. FIRST takes the first matching entry that yields a value.
    """

    LAST = "last"
    FIRST = "first"


def _get_bool(block: Block, name: str, default: bool) -> bool:
    value = block.get_value(name)
    return default if value is None else bool(value)


def _get_float(block: Block, name: str, default: float) -> float:
    value = block.get_value(name)
    return default if value is None else float(value)


def _get_int(block: Block, name: str, default: int) -> int:
    value = block.get_value(name)
    return default if value is None else int(value)


@dataclass
class MQTTConfig:
    """MQTT connection configuration."""

    host: str = "localhost"
    port: int = DEFAULT_MQTT_PORT
    username: str | None = None
    password: str | None = None
    client_id: str | None = None
    topic_prefix: str = "hostpulse"
    qos: int = DEFAULT_QOS
    retain: RetainMode = RetainMode.FULL
    keepalive: int = DEFAULT_MQTT_KEEPALIVE

    @classmethod
    def from_block(cls, block: Block | None) -> "MQTTConfig":
        """Create MQTTConfig from a parsed 'mqtt' block."""
        if block is None:
            return cls()

        retain_val = block.get_value("retain", "full")
        if isinstance(retain_val, bool):
            retain = RetainMode.FULL if retain_val else RetainMode.OFF
        else:
            try:
                retain = RetainMode(str(retain_val).lower())
            except ValueError:
                retain = RetainMode.FULL

        return cls(
            host=str(block.get_value("host", "localhost")),
            port=_get_int(block, "port", DEFAULT_MQTT_PORT),
            username=block.get_value("username"),
            password=block.get_value("password"),
            client_id=block.get_value("client_id"),
            topic_prefix=str(block.get_value("topic_prefix", "hostpulse")),
            qos=_get_int(block, "qos", DEFAULT_QOS),
            retain=retain,
            keepalive=_get_int(block, "keepalive", DEFAULT_MQTT_KEEPALIVE),
        )

    def should_retain_data(self) -> bool:
        """Check if data messages should be retained."""
        return self.retain == RetainMode.FULL

    def should_retain_status(self) -> bool:
        """Check if status/availability messages should be retained."""
        return self.retain in (RetainMode.FULL, RetainMode.ONLINE)


@dataclass
class CollectorConfig:
    """Settings for one collection pass."""

    settle_interval: float = DEFAULT_SETTLE_INTERVAL
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT
    process_limit: int = DEFAULT_PROCESS_LIMIT
    gpu_process_limit: int = DEFAULT_GPU_PROCESS_LIMIT

    gpu: bool = True
    sensors: bool = True
    battery: bool = True

    sensor_selection: SensorSelection = SensorSelection.LAST
    hwmon_path: str = HWMON_PATH
    thermal_zone: str = THERMAL_ZONE_TEMP
    drm_card: str = DRM_CARD_PATH
    amd_hwmon_index: int = 1
    amd_fan_max_rpm: int = DEFAULT_AMD_FAN_MAX_RPM
    power_supply_path: str = POWER_SUPPLY_PATH
    disk_exclude_fstypes: list[str] = field(default_factory=list)

    @classmethod
    def from_block(cls, block: Block | None) -> "CollectorConfig":
        """Create CollectorConfig from a parsed 'collector' block."""
        if block is None:
            return cls()

        selection_val = str(block.get_value("sensor_selection", "last")).lower()
        try:
            selection = SensorSelection(selection_val)
        except ValueError:
            selection = SensorSelection.LAST

        return cls(
            settle_interval=_get_float(block, "settle_interval", DEFAULT_SETTLE_INTERVAL),
            probe_timeout=_get_float(block, "probe_timeout", DEFAULT_PROBE_TIMEOUT),
            process_limit=_get_int(block, "process_limit", DEFAULT_PROCESS_LIMIT),
            gpu_process_limit=_get_int(block, "gpu_process_limit", DEFAULT_GPU_PROCESS_LIMIT),
            gpu=_get_bool(block, "gpu", True),
            sensors=_get_bool(block, "sensors", True),
            battery=_get_bool(block, "battery", True),
            sensor_selection=selection,
            hwmon_path=str(block.get_value("hwmon_path", HWMON_PATH)),
            thermal_zone=str(block.get_value("thermal_zone", THERMAL_ZONE_TEMP)),
            drm_card=str(block.get_value("drm_card", DRM_CARD_PATH)),
            amd_hwmon_index=_get_int(block, "amd_hwmon_index", 1),
            amd_fan_max_rpm=_get_int(block, "amd_fan_max_rpm", DEFAULT_AMD_FAN_MAX_RPM),
            power_supply_path=str(block.get_value("power_supply_path", POWER_SUPPLY_PATH)),
            disk_exclude_fstypes=[str(v) for v in block.get_all_values("disk_exclude_fstype")],
        )


@dataclass
class PublishConfig:
    """Snapshot publishing schedule."""

    interval: float = DEFAULT_PUBLISH_INTERVAL
    split_topics: bool = False

    @classmethod
    def from_block(cls, block: Block | None) -> "PublishConfig":
        """Create PublishConfig from a parsed 'publish' block."""
        if block is None:
            return cls()
        return cls(
            interval=_get_float(block, "interval", DEFAULT_PUBLISH_INTERVAL),
            split_topics=_get_bool(block, "split_topics", False),
        )


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"
    file: str | None = None
    file_level: str = "debug"
    file_max_size: int = 10  # MB
    file_keep: int = 5
    colors: bool = True
    format: str = DEFAULT_LOG_FORMAT

    @classmethod
    def from_block(cls, block: Block | None) -> "LoggingConfig":
        """Create LoggingConfig from a parsed 'logging' block."""
        if block is None:
            return cls()

        return cls(
            level=str(block.get_value("level", "info")),
            file=block.get_value("file"),
            file_level=str(block.get_value("file_level", "debug")),
            file_max_size=_get_int(block, "file_max_size", 10),
            file_keep=_get_int(block, "file_keep", 5),
            colors=_get_bool(block, "colors", True),
            format=str(block.get_value("format", DEFAULT_LOG_FORMAT)),
        )


@dataclass
class Config:
    """Complete application configuration."""

    mqtt: MQTTConfig = field(default_factory=MQTTConfig)
    collector: CollectorConfig = field(default_factory=CollectorConfig)
    publish: PublishConfig = field(default_factory=PublishConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_document(cls, doc: ConfigDocument) -> "Config":
        """Create Config from a parsed ConfigDocument."""
        return cls(
            mqtt=MQTTConfig.from_block(doc.get_block("mqtt")),
            collector=CollectorConfig.from_block(doc.get_block("collector")),
            publish=PublishConfig.from_block(doc.get_block("publish")),
            logging=LoggingConfig.from_block(doc.get_block("logging")),
        )

    def summary(self) -> dict[str, Any]:
        """Short description used by --validate."""
        return {
            "mqtt": f"{self.mqtt.host}:{self.mqtt.port}",
            "topic_prefix": self.mqtt.topic_prefix,
            "publish_interval": self.publish.interval,
            "settle_interval": self.collector.settle_interval,
            "sensor_selection": self.collector.sensor_selection.value,
            "logging": self.logging.level,
        }
