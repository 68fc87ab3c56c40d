"""
Configuration loader with file reading and validation.
"""

from pathlib import Path

from .lexer import LexerError
from .parser import Block, ConfigDocument, ParseError, parse_config, parse_config_file
from .schema import Config


class ConfigError(Exception):
    """Exception raised for configuration errors."""


class ConfigLoader:
    """
    Loads and validates configuration from files or strings.

    Usage:
        loader = ConfigLoader()
        config = loader.load_file("/etc/hostpulse/config.conf")
        warnings = loader.validate(config)
    """

    # Known directives for each block type
    KNOWN_DIRECTIVES = {
        "mqtt": {
            "host",
            "port",
            "username",
            "password",
            "client_id",
            "topic_prefix",
            "qos",
            "retain",
            "keepalive",
        },
        "collector": {
            "settle_interval",
            "probe_timeout",
            "process_limit",
            "gpu_process_limit",
            "gpu",
            "sensors",
            "battery",
            "sensor_selection",
            "hwmon_path",
            "thermal_zone",
            "drm_card",
            "amd_hwmon_index",
            "amd_fan_max_rpm",
            "power_supply_path",
            "disk_exclude_fstype",
        },
        "publish": {"interval", "split_topics"},
        "logging": {
            "level",
            "file",
            "file_level",
            "file_max_size",
            "file_keep",
            "colors",
            "format",
        },
    }

    def __init__(self):
        self.last_document: ConfigDocument | None = None

    def load_file(self, path: str | Path) -> Config:
        """
        Load configuration from a file.

        Raises:
            ConfigError: If the file cannot be read or parsed
        """
        path = Path(path)

        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")
        if not path.is_file():
            raise ConfigError(f"Not a file: {path}")

        try:
            document = parse_config_file(path)
        except (LexerError, ParseError) as e:
            raise ConfigError(f"Failed to parse configuration: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to read configuration: {e}") from e

        return self._build(document)

    def load_string(
        self,
        source: str,
        filename: str = "<string>",
        base_path: str | Path | None = None,
    ) -> Config:
        """
        Load configuration from a string.

        Raises:
            ConfigError: If the configuration cannot be parsed
        """
        try:
            document = parse_config(source, filename, Path(base_path) if base_path else None)
        except (LexerError, ParseError) as e:
            raise ConfigError(f"Failed to parse configuration: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to read included file: {e}") from e

        return self._build(document)

    def _build(self, document: ConfigDocument) -> Config:
        self.last_document = document
        try:
            return Config.from_document(document)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration value: {e}") from e

    def validate(self, config: Config) -> list[str]:
        """
        Validate configuration and return a list of warnings.

        Args:
            config: Configuration to validate

        Returns:
            Warning messages (empty if no issues)
        """
        warnings: list[str] = []

        if self.last_document:
            warnings.extend(self._check_unknown_directives(self.last_document))

        if not config.mqtt.host:
            warnings.append("MQTT host is not configured")

        collector = config.collector
        if collector.settle_interval <= 0:
            warnings.append("settle_interval must be positive; CPU usage will read as 0")
        elif not 0.1 <= collector.settle_interval <= 2.0:
            warnings.append(
                f"settle_interval {collector.settle_interval}s is outside the usual 0.1s-2s window"
            )
        if collector.probe_timeout <= 0:
            warnings.append("probe_timeout must be positive")
        if collector.process_limit < 0 or collector.gpu_process_limit < 0:
            warnings.append("process limits must not be negative")
        if collector.amd_fan_max_rpm <= 0:
            warnings.append("amd_fan_max_rpm must be positive")

        if config.publish.interval < collector.settle_interval:
            warnings.append("publish interval is shorter than the CPU settle interval")

        return warnings

    def _check_unknown_directives(self, document: ConfigDocument) -> list[str]:
        """Check for unknown blocks and directives in a parsed document."""
        warnings: list[str] = []

        for directive in document.directives:
            warnings.append(
                f"Unknown top-level directive '{directive.name}' (line {directive.line})"
            )

        def check_block(block: Block) -> None:
            known = self.KNOWN_DIRECTIVES.get(block.type)
            if known is None:
                warnings.append(f"Unknown block '{block.type}' (line {block.line})")
                return
            for directive in block.directives:
                if directive.name not in known:
                    warnings.append(
                        f"Unknown directive '{directive.name}' in {block.type} block "
                        f"(line {directive.line})"
                    )
            for nested in block.blocks:
                warnings.append(
                    f"Unexpected nested block '{nested.type}' in {block.type} block "
                    f"(line {nested.line})"
                )

        for block in document.blocks:
            check_block(block)

        return warnings
